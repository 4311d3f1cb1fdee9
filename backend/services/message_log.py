# backend/services/message_log.py

from __future__ import annotations

import itertools
import json
import logging
import os
from typing import Dict, List, Optional

from backend.core.errors import InvalidArgument
from backend.models.models import Message

logger = logging.getLogger(__name__)

# ============================================================================
# MESSAGE LOG
# ============================================================================
class MessageLog:
    """
    Append-only, per-room ordered message store.

    Every appended message gets the next value of a single process-wide
    sequence counter. History is ordered by that counter, never by wall
    clock, so replay order is deterministic even when ``created_at`` values
    collide or go backwards.

    Storage Format (messages.jsonl), one message per line in append order:
        {"id": "...", "room_code": "abc123", "author": "alice", "body": "hello", "assistant_reply": null, "created_at": "2025-01-01T00:00:00+00:00", "seq": 1}
        {"id": "...", "room_code": "xyz", "author": "bob", "body": "hi", "assistant_reply": null, "created_at": "2025-01-01T00:00:02+00:00", "seq": 2}

    Appends only add a line; the file is rewritten when a room is purged.
    Older files holding a single {room_code: [messages]} JSON object are
    still read.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or None
        self.messages: Dict[str, List[Message]] = {}
        self.load_messages()
        last_seq = max(
            (m.seq for msgs in self.messages.values() for m in msgs), default=0
        )
        self._seq = itertools.count(last_seq + 1)

    def _read_records(self) -> List[dict]:
        with open(self.path, "r", encoding="utf-8") as f:
            text = f.read()
        try:
            records = [json.loads(line) for line in text.splitlines() if line.strip()]
        except ValueError:
            records = [json.loads(text)]
        if len(records) == 1 and isinstance(records[0], dict) and "room_code" not in records[0]:
            # Legacy layout: one JSON object mapping room code -> messages
            return [m for msgs in records[0].values() for m in msgs]
        return records

    def load_messages(self) -> None:
        if not self.path or not os.path.exists(self.path):
            return
        try:
            records = self._read_records()
            messages: Dict[str, List[Message]] = {}
            for record in records:
                message = Message(**record)
                messages.setdefault(message.room_code, []).append(message)
            self.messages = {
                code: sorted(msgs, key=lambda m: m.seq) for code, msgs in messages.items()
            }
            logger.info("✓ Loaded %d messages from %s", len(records), self.path)
        except (OSError, TypeError, ValueError) as e:
            logger.error("Load error (%s): %s", self.path, e)
            self.messages = {}

    def _append_line(self, message: Message) -> None:
        if not self.path:
            return
        try:
            with open(self.path, "a", encoding="utf-8") as f:
                f.write(message.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Append error (%s): %s", self.path, e)

    def save_messages(self) -> None:
        """Rewrite the whole file from memory (after a purge)."""
        if not self.path:
            return
        try:
            everything = sorted(
                (m for msgs in self.messages.values() for m in msgs), key=lambda m: m.seq
            )
            with open(self.path, "w", encoding="utf-8") as f:
                for message in everything:
                    f.write(message.model_dump_json() + "\n")
        except OSError as e:
            logger.error("Save error (%s): %s", self.path, e)

    def append(
        self,
        room_code: str,
        author: str,
        body: str,
        assistant_reply: Optional[str] = None,
    ) -> Message:
        """
        Append a message to a room's history.

        Args:
            room_code: Code of the room the message belongs to
            author: Display name of the poster
            body: Message text
            assistant_reply: Optional assistant text stored with the message

        Returns:
            Message: The stored message, with ``id`` and ``seq`` assigned

        Raises:
            InvalidArgument: room_code or body is empty
        """
        if not room_code:
            raise InvalidArgument("Room code is required")
        if not body:
            raise InvalidArgument("Message body is required")

        message = Message(
            room_code=room_code,
            author=author,
            body=body,
            assistant_reply=assistant_reply,
            seq=next(self._seq),
        )
        self.messages.setdefault(room_code, []).append(message)
        self._append_line(message)
        return message

    def list_by_room(self, room_code: str) -> List[Message]:
        """Full history of a room in sequence order (a fresh snapshot per call)."""
        return list(self.messages.get(room_code, []))

    def purge_room(self, room_code: str) -> int:
        """
        Delete all messages of a room. Idempotent.

        Returns:
            Number of messages removed
        """
        removed = self.messages.pop(room_code, [])
        if removed:
            self.save_messages()
            logger.info("✓ Purged %d messages of room %s", len(removed), room_code)
        return len(removed)
