# backend/services/fanout_hub.py

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Protocol, Set

logger = logging.getLogger(__name__)


class Subscriber(Protocol):
    """Anything that can receive a JSON event. A FastAPI WebSocket qualifies."""

    async def send_json(self, data: Any) -> None: ...


@dataclass(frozen=True)
class SubscriptionToken:
    room_code: str
    subscription_id: str


# ============================================================================
# FANOUT HUB
# ============================================================================

class FanoutHub:
    """
    Delivers live events to the subscribers of each room.

    Nothing here is persisted: subscriptions live as long as the client
    connection and are rebuilt by clients on reconnect. History replay is
    the message log's job; the hub only delivers what is published while a
    subscriber is registered.

    Data Structures:
        rooms: Maps room_code -> {subscription_id: subscriber}
               Example: {"abc123": {"9f1c...": websocket1, "02ab...": websocket2}}

        connections: Every live connection (the "lobby"), used for
                     announcements that are not tied to one room.

        _locks: One asyncio.Lock per room. Publishes to the same room are
                serialized so each subscriber sees them in publish order;
                different rooms never contend.

    Subscribe/unsubscribe never suspend, so on a single event loop they are
    atomic with respect to a publish taking its snapshot.
    """

    def __init__(self) -> None:
        self.rooms: Dict[str, Dict[str, Subscriber]] = {}
        self.connections: Set[Subscriber] = set()
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, room_code: str) -> asyncio.Lock:
        lock = self._locks.get(room_code)
        if lock is None:
            lock = self._locks[room_code] = asyncio.Lock()
        return lock

    # ------------------------------------------------------------------ lobby

    def connect(self, handle: Subscriber) -> None:
        self.connections.add(handle)
        logger.info("✓ Connection attached. Total: %d", len(self.connections))

    def disconnect(self, handle: Subscriber) -> None:
        """
        Forget a connection and every room subscription it still holds.

        Safe to call more than once (disconnect races with failed sends).
        """
        self.connections.discard(handle)
        for room_code in list(self.rooms):
            subs = self.rooms[room_code]
            for sub_id in [sid for sid, h in subs.items() if h is handle]:
                del subs[sub_id]
            if not subs:
                del self.rooms[room_code]
        logger.info("✗ Connection detached. Total: %d", len(self.connections))

    async def announce(self, event: dict) -> int:
        """Send an event to every live connection, regardless of rooms."""
        delivered = 0
        for handle in list(self.connections):
            try:
                await handle.send_json(event)
                delivered += 1
            except Exception as e:
                logger.warning("Announce failed, dropping connection: %s", e)
                self.disconnect(handle)
        return delivered

    # ------------------------------------------------------------------ rooms

    def subscribe(self, room_code: str, handle: Subscriber) -> SubscriptionToken:
        """
        Register ``handle`` for live events of ``room_code``.

        Several subscriptions for the same room are allowed, one per live
        connection; each gets its own token.
        """
        token = SubscriptionToken(room_code=room_code, subscription_id=str(uuid.uuid4()))
        self.rooms.setdefault(room_code, {})[token.subscription_id] = handle
        logger.info("→ Subscribed to %s (%d subscribers)", room_code, len(self.rooms[room_code]))
        return token

    def unsubscribe(self, token: SubscriptionToken) -> None:
        """Remove a subscription. No-op if it is already gone."""
        subs = self.rooms.get(token.room_code)
        if not subs:
            return
        if subs.pop(token.subscription_id, None) is not None:
            logger.info("← Unsubscribed from %s (%d subscribers)", token.room_code, len(subs))
        if not subs:
            del self.rooms[token.room_code]

    def is_subscribed(self, token: SubscriptionToken) -> bool:
        return token.subscription_id in self.rooms.get(token.room_code, {})

    def subscriber_count(self, room_code: str) -> int:
        return len(self.rooms.get(room_code, {}))

    async def publish(self, room_code: str, event: dict) -> int:
        """
        Deliver ``event`` to the subscribers of ``room_code`` at call time.

        Args:
            room_code: Target room
            event: JSON-serializable event

        Returns:
            Number of subscribers the event was delivered to

        Error Handling:
            A failed send only affects that subscriber: it is logged and the
            subscription is removed. Other subscribers still get the event
            and the caller never sees the failure.

        A ``room_deleted`` event closes the room: after delivery every
        subscription of that room is dropped.
        """
        async with self._lock_for(room_code):
            subs = dict(self.rooms.get(room_code, {}))
            if not subs:
                logger.debug("[routing] Skipped publish: room=%s has 0 subscribers", room_code)
            else:
                logger.info("📨 Publishing to room %s: %d subscribers", room_code, len(subs))

            delivered = 0
            failed = []
            for sub_id, handle in subs.items():
                try:
                    await handle.send_json(event)
                    delivered += 1
                except Exception as e:
                    logger.error("Send error in room %s: %s", room_code, e)
                    failed.append(sub_id)

            for sub_id in failed:
                self.unsubscribe(SubscriptionToken(room_code, sub_id))

            if event.get("type") == "room_deleted":
                self.rooms.pop(room_code, None)

        if event.get("type") == "room_deleted":
            self._locks.pop(room_code, None)
        return delivered

    def stats(self) -> Dict[str, int]:
        """Counts for /health and /metrics."""
        return {
            "connections": len(self.connections),
            "active_rooms": len(self.rooms),
            "subscriptions": sum(len(s) for s in self.rooms.values()),
        }
