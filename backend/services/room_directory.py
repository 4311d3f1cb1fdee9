# backend/services/room_directory.py

from __future__ import annotations

import json
import logging
import os
from typing import Dict, List, Optional

from backend.core.errors import AlreadyExists, Forbidden, InvalidArgument, NotFound
from backend.models.models import Room

logger = logging.getLogger(__name__)

# ============================================================================
# ROOM DIRECTORY
# ============================================================================
class RoomDirectory:
    """
    Owns room records: identity, name, creator and member set.

    Rooms are kept in memory and, when ``path`` is given, persisted to a JSON
    file after every mutation so they survive backend restarts. This is the
    only writer of ``members``.

    Attributes:
        rooms: Dictionary mapping room code -> Room object

    Storage Format (rooms.json):
        {
            "abc123": {
                "code": "abc123",
                "name": "Team",
                "creator_id": "u1",
                "members": ["u1", "u2"]
            }
        }

    Usage:
        directory = RoomDirectory("rooms.json")
        room = directory.create_room("abc123", "Team", "u1")
        directory.join("abc123", "u2")
    """

    def __init__(self, path: Optional[str] = None) -> None:
        """Initialize the directory and load existing rooms from file."""
        self.path = path or None
        self.rooms: Dict[str, Room] = {}
        self.load_rooms()

    def load_rooms(self) -> None:
        """
        Load rooms from persistent storage.

        A missing file means a fresh start; an unreadable one is logged and
        the directory starts empty.
        """
        if not self.path or not os.path.exists(self.path):
            return
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
            self.rooms = {k: Room(**v) for k, v in data.items()}
            logger.info("✓ Loaded %d rooms from %s", len(self.rooms), self.path)
        except (OSError, ValueError) as e:
            logger.error("Load error (%s): %s", self.path, e)
            self.rooms = {}

    def save_rooms(self) -> None:
        """Persist rooms to file. No-op for an in-memory directory."""
        if not self.path:
            return
        try:
            data = {k: v.model_dump() for k, v in self.rooms.items()}
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
        except OSError as e:
            logger.error("Save error (%s): %s", self.path, e)

    def create_room(self, code: str, name: str, creator_id: str) -> Room:
        """
        Create a new room owned by ``creator_id``.

        Args:
            code: Unique, case-sensitive room code
            name: Display name of the room
            creator_id: User id of the creator, who becomes the first member

        Returns:
            Room: The newly created room

        Raises:
            InvalidArgument: code or name is blank
            AlreadyExists: another room already uses ``code``
        """
        if not code or not code.strip() or not name or not name.strip():
            raise InvalidArgument("Room code and name are required")
        if code in self.rooms:
            raise AlreadyExists(f"Room code '{code}' already exists")

        room = Room(code=code, name=name, creator_id=creator_id, members=[creator_id])
        self.rooms[code] = room
        self.save_rooms()
        logger.info("✓ Created room: %s (%s) by %s", room.code, room.name, creator_id)
        return room

    def find_by_code(self, code: str) -> Room:
        room = self.rooms.get(code)
        if room is None:
            raise NotFound(f"Room '{code}' not found")
        return room

    def list_accessible(self, user_id: str) -> List[Room]:
        """
        Get every room the user created or joined, once per room code.
        """
        return [
            room
            for room in self.rooms.values()
            if room.creator_id == user_id or user_id in room.members
        ]

    def join(self, code: str, user_id: str) -> Room:
        """
        Add ``user_id`` to the room's members.

        Joining twice is a no-op: no error and no duplicate entry.

        Raises:
            NotFound: the room does not exist
        """
        room = self.find_by_code(code)
        if user_id not in room.members:
            room.members.append(user_id)
            self.save_rooms()
            logger.info("→ %s joined room %s (%d members)", user_id, code, len(room.members))
        return room

    def delete(self, code: str, requester_id: str) -> Room:
        """
        Remove a room record. Only its creator may do this.

        The caller is responsible for purging the room's messages in the same
        logical step (see RoomService.delete_room).

        Raises:
            NotFound: the room does not exist
            Forbidden: ``requester_id`` is not the creator
        """
        room = self.find_by_code(code)
        if room.creator_id != requester_id:
            raise Forbidden("Only the creator can delete this room")
        del self.rooms[code]
        self.save_rooms()
        logger.info("✓ Deleted room: %s", code)
        return room
