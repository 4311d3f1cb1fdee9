# backend/services/publisher.py

from __future__ import annotations

from typing import Protocol

from backend.services.fanout_hub import FanoutHub


class Publisher(Protocol):
    """
    Outbound side of live delivery as seen by the room service.

    Implementations may deliver in-process (LocalPublisher) or relay through
    a broker so every worker process reaches its own connections
    (AsyncRedisPubSubService).
    """

    async def publish(self, room_code: str, event: dict) -> None: ...

    async def announce(self, event: dict) -> None: ...


class LocalPublisher:
    """Single-process publisher: hands events straight to the local hub."""

    def __init__(self, hub: FanoutHub) -> None:
        self.hub = hub

    async def publish(self, room_code: str, event: dict) -> None:
        await self.hub.publish(room_code, event)

    async def announce(self, event: dict) -> None:
        await self.hub.announce(event)
