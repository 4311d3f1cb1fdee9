# backend/services/room_service.py

from __future__ import annotations

import asyncio
import logging
from typing import Dict, List

from backend.core.errors import InvalidArgument, NotFound
from backend.models.models import Message, Room, User
from backend.services.assistant import AssistantBridge
from backend.services.message_log import MessageLog
from backend.services.publisher import Publisher
from backend.services.room_directory import RoomDirectory

logger = logging.getLogger(__name__)


# ============================================================================
# ROOM SERVICE
# ============================================================================

class RoomService:
    """
    Business rules of the chat rooms: create, join, delete, post, list and
    access validation.

    Stores are only touched through their own methods. A lock per room code
    is the single serialization point for writes to that room:

        - post: the message is appended and published while holding the
          room's lock, so live delivery order equals log order.
        - delete: the room record and its messages are removed back to back
          with no await in between, so readers never see one without the
          other.

    The assistant call happens before the lock is taken; a slow assistant
    only delays its own message. A post re-checks under the lock that the
    room it validated is still the same record, so a post in flight across
    a delete never lands in a room later re-created with the same code.

    Live delivery runs inside the room's lock: publish awaits every
    subscriber's send, so a slow socket delays the poster's response and
    later posts to that room (never other rooms). Failed sockets are
    dropped by the hub.

    Posting does not require membership. Anyone authenticated who knows a
    room's code can post to it and read its history.
    """

    def __init__(
        self,
        directory: RoomDirectory,
        message_log: MessageLog,
        publisher: Publisher,
        assistant: AssistantBridge,
    ) -> None:
        self.directory = directory
        self.message_log = message_log
        self.publisher = publisher
        self.assistant = assistant
        self.message_counter = 0
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, code: str) -> asyncio.Lock:
        lock = self._locks.get(code)
        if lock is None:
            lock = self._locks[code] = asyncio.Lock()
        return lock

    async def _publish(self, code: str, event: dict) -> None:
        # Live delivery is best-effort: the write already succeeded.
        try:
            await self.publisher.publish(code, event)
        except Exception:
            logger.exception("Publish to room %s failed", code)

    async def _announce(self, event: dict) -> None:
        try:
            await self.publisher.announce(event)
        except Exception:
            logger.exception("Announcement failed")

    # ------------------------------------------------------------------ rooms

    async def create_room(self, user: User, code: str, name: str) -> Room:
        room = self.directory.create_room(code, name, user.id)
        await self._announce({"type": "room_created", "room": {"code": room.code, "name": room.name}})
        return room

    async def join_room(self, user: User, code: str) -> Room:
        return self.directory.join(code, user.id)

    async def delete_room(self, user: User, code: str) -> None:
        """
        Delete a room and its history. Creator only.

        Raises:
            NotFound: the room does not exist
            Forbidden: ``user`` is not the creator; nothing is changed
        """
        async with self._lock_for(code):
            self.directory.delete(code, user.id)
            self.message_log.purge_room(code)
            await self._publish(code, {"type": "room_deleted", "room_code": code})
        self._locks.pop(code, None)
        logger.info("✓ Room %s deleted by %s", code, user.display_name)

    async def list_accessible_rooms(self, user: User) -> List[Room]:
        return self.directory.list_accessible(user.id)

    async def validate_room_access(self, user: User, code: str) -> Room:
        """Check that the room exists. Membership is not required."""
        if not code:
            raise InvalidArgument("Room code is required")
        return self.directory.find_by_code(code)

    # --------------------------------------------------------------- messages

    async def post_message(self, user: User, code: str, body: str) -> Message:
        """
        Store a message and deliver it live to the room's subscribers.

        Flow:
            1. Validate input and that the room exists
            2. Ask the assistant for a reply if the body triggers it (bounded)
            3. Under the room's lock: re-check the room, append, publish

        The poster gets its own message back only through its live
        subscription, not in the return value of the API call.

        Raises:
            InvalidArgument: empty code or body
            NotFound: the room does not exist (or was deleted meanwhile)
        """
        if not code:
            raise InvalidArgument("Room code is required")
        if not body:
            raise InvalidArgument("Message body is required")
        room = self.directory.find_by_code(code)

        reply = await self.assistant.maybe_reply(body)

        async with self._lock_for(code):
            if self.directory.find_by_code(code) is not room:
                # Deleted (and possibly re-created under the same code) meanwhile
                raise NotFound(f"Room '{code}' not found")
            message = self.message_log.append(code, user.display_name, body, reply)
            self.message_counter += 1
            await self._publish(
                code,
                {"type": "new_message", "room_code": code, "message": message.model_dump()},
            )
        return message

    async def get_history(self, user: User, code: str) -> List[Message]:
        """Full ordered history of a room; empty for unknown codes."""
        if not code:
            raise InvalidArgument("Room code is required")
        return self.message_log.list_by_room(code)
