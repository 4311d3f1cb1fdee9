# backend/api/websocket.py

from __future__ import annotations

import json
import logging
from typing import Dict

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from backend.core import state
from backend.core.errors import ChatError, InvalidArgument
from backend.services.fanout_hub import SubscriptionToken

logger = logging.getLogger(__name__)

router = APIRouter()

# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket, token: str = ""):
    """
    WebSocket endpoint for live room events.

    Protocol:
    =========

    Client -> Server Actions:
    -------------------------
    Subscribe to a room:
        {"action": "subscribe", "code": "abc123"}
        Response: {"type": "subscribed", "code": "abc123"}

    Unsubscribe:
        {"action": "unsubscribe", "code": "abc123"}
        Response: {"type": "unsubscribed", "code": "abc123"}

    Post a message:
        {"action": "post", "code": "abc123", "body": "hello"}
        Response: {"type": "message_posted", "code": "abc123", "id": "<message id>"}

    Server -> Client Messages:
    -------------------------
    On connect:
        {"type": "connected", "userId": "u1", "username": "alice"}

    New message in a subscribed room:
        {"type": "new_message", "room_code": "abc123", "message": {...}}

    Room created (sent to every connection):
        {"type": "room_created", "room": {"code": "abc123", "name": "Team"}}

    Subscribed room deleted (subscription ends afterwards):
        {"type": "room_deleted", "room_code": "abc123"}

    Error:
        {"type": "error", "status": 404, "error": "not_found", "message": "..."}

    Lifecycle:
    ==========
    1. Client connects with ?token=<bearer token>; invalid tokens are
       rejected with close code 1008
    2. Client fetches history over REST, then subscribes to the room
    3. Client receives events of subscribed rooms only
    4. On disconnect, all its subscriptions are removed

    A message published between the history fetch and the subscribe is not
    replayed; clients that care re-fetch history after subscribing.
    """
    try:
        user = state.identity_gate.verify(token)
    except ChatError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    state.hub.connect(websocket)
    subscriptions: Dict[str, SubscriptionToken] = {}
    await websocket.send_json({"type": "connected", "userId": user.id, "username": user.display_name})

    try:
        while True:
            data = await websocket.receive_text()

            try:
                message = json.loads(data)
                if not isinstance(message, dict):
                    raise InvalidArgument("Expected a JSON object")
                action = message.get("action")
                code = message.get("code") or ""
                body = message.get("body") or ""
                if not isinstance(code, str) or not isinstance(body, str):
                    raise InvalidArgument("code and body must be strings")
                logger.info("Websocket input from %s: action=%s code=%s", user.id, action, code)

                if action == "subscribe":
                    await state.room_service.validate_room_access(user, code)
                    existing = subscriptions.get(code)
                    if existing is None or not state.hub.is_subscribed(existing):
                        subscriptions[code] = state.hub.subscribe(code, websocket)
                    await websocket.send_json({"type": "subscribed", "code": code})

                elif action == "unsubscribe":
                    sub = subscriptions.pop(code, None)
                    if sub is not None:
                        state.hub.unsubscribe(sub)
                    await websocket.send_json({"type": "unsubscribed", "code": code})

                elif action == "post":
                    posted = await state.room_service.post_message(user, code, body)
                    await websocket.send_json(
                        {"type": "message_posted", "code": code, "id": posted.id}
                    )

                else:
                    raise InvalidArgument(f"Unknown action: {action}")

            except json.JSONDecodeError:
                await websocket.send_json(
                    {"type": "error", "status": 400, "error": "invalid_argument", "message": "Invalid JSON"}
                )
            except ChatError as e:
                await websocket.send_json(
                    {"type": "error", "status": e.status_code, "error": e.kind, "message": e.message}
                )

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error: %s", e)
    finally:
        state.hub.disconnect(websocket)
