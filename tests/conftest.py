"""
Shared pytest fixtures.

Environment is pinned before the backend is imported: in-memory stores,
local relay, no assistant API key, a known JWT secret.
"""
from __future__ import annotations

import asyncio
import os
import time
from typing import Any, List, Optional

import pytest

os.environ["ROOMS_FILE"] = ""
os.environ["MESSAGES_FILE"] = ""
os.environ["PUB_SUB_SERVICE"] = "local"
os.environ["GROQ_API_KEY"] = ""
os.environ["JWT_SECRET"] = "test-secret"

from jose import jwt  # noqa: E402

from backend.models.models import User  # noqa: E402
from backend.services.assistant import AssistantBridge  # noqa: E402
from backend.services.fanout_hub import FanoutHub  # noqa: E402
from backend.services.message_log import MessageLog  # noqa: E402
from backend.services.publisher import LocalPublisher  # noqa: E402
from backend.services.room_directory import RoomDirectory  # noqa: E402
from backend.services.room_service import RoomService  # noqa: E402

TEST_SECRET = "test-secret"


class FakeSubscriber:
    """Stands in for a WebSocket: records every event it is sent."""

    def __init__(self, fail: bool = False, gate: Optional[asyncio.Event] = None) -> None:
        self.events: List[Any] = []
        self.fail = fail
        self.gate = gate

    async def send_json(self, data: Any) -> None:
        if self.gate is not None:
            await self.gate.wait()
        if self.fail:
            raise RuntimeError("connection closed")
        self.events.append(data)

    def of_type(self, event_type: str) -> List[dict]:
        return [e for e in self.events if e.get("type") == event_type]


class FakeReplyGenerator:
    def __init__(self, reply: Optional[str] = "Here to help", delay: float = 0.0, error: Exception | None = None):
        self.reply = reply
        self.delay = delay
        self.error = error
        self.calls: List[str] = []

    async def generate(self, text: str) -> Optional[str]:
        self.calls.append(text)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


def make_token(user_id: str, username: str, secret: str = TEST_SECRET, expires_in: int = 3600) -> str:
    claims = {"userId": user_id, "username": username, "exp": int(time.time()) + expires_in}
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture()
def u1() -> User:
    return User(id="u1", display_name="alice")


@pytest.fixture()
def u2() -> User:
    return User(id="u2", display_name="bob")


@pytest.fixture()
def directory() -> RoomDirectory:
    return RoomDirectory()


@pytest.fixture()
def message_log() -> MessageLog:
    return MessageLog()


@pytest.fixture()
def hub() -> FanoutHub:
    return FanoutHub()


@pytest.fixture()
def reply_generator() -> FakeReplyGenerator:
    return FakeReplyGenerator()


@pytest.fixture()
def service(directory, message_log, hub, reply_generator) -> RoomService:
    return RoomService(
        directory=directory,
        message_log=message_log,
        publisher=LocalPublisher(hub),
        assistant=AssistantBridge(reply_generator, trigger="/help", timeout=0.5),
    )


@pytest.fixture()
def client(monkeypatch, directory, message_log, hub):
    """TestClient over the real app wired to fresh in-memory state."""
    from fastapi.testclient import TestClient

    from backend.core import state
    from backend.main import app

    room_service = RoomService(
        directory=directory,
        message_log=message_log,
        publisher=LocalPublisher(hub),
        assistant=AssistantBridge(None),
    )
    monkeypatch.setattr(state, "room_directory", directory)
    monkeypatch.setattr(state, "message_log", message_log)
    monkeypatch.setattr(state, "hub", hub)
    monkeypatch.setattr(state, "room_service", room_service)

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def auth_u1() -> dict:
    return {"Authorization": f"Bearer {make_token('u1', 'alice')}"}


@pytest.fixture()
def auth_u2() -> dict:
    return {"Authorization": f"Bearer {make_token('u2', 'bob')}"}
