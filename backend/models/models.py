# backend/models/models.py
from datetime import datetime, timezone
from typing import List, Optional
import uuid

from pydantic import BaseModel, Field


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class User(BaseModel):
    """Authenticated identity as handed over by the identity gate."""
    id: str
    display_name: str

class Room(BaseModel):
    code: str
    name: str
    creator_id: str
    members: List[str] = Field(default_factory=list)

class Message(BaseModel):
    """
    A persisted chat message.

    ``seq`` is assigned by the message log and is the ordering key;
    ``created_at`` is wall clock time for display only.
    """
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    room_code: str
    author: str
    body: str
    assistant_reply: Optional[str] = None
    created_at: str = Field(default_factory=_utc_now)
    seq: int = 0

class CreateRoomRequest(BaseModel):
    code: str = ""
    name: str = ""

class RoomCodeRequest(BaseModel):
    code: str = ""

class PostMessageRequest(BaseModel):
    code: str = ""
    body: str = ""
