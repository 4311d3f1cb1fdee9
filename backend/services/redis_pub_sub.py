# backend/services/redis_pub_sub.py
from __future__ import annotations

import json
import logging
from typing import Optional

import redis.asyncio as redis

from backend.services.fanout_hub import FanoutHub

logger = logging.getLogger(__name__)

ROOM_CHANNEL_PREFIX = "room:"
LOBBY_CHANNEL = "rooms"


class AsyncRedisPubSubService:
    """
    Redis relay for live delivery across worker processes.

    Publishing goes to one channel per room (``room:<code>``) plus a lobby
    channel for announcements. Every process runs ``listen()`` and forwards
    what it receives to its own FanoutHub, which owns the actual
    connections. Redis keeps per-channel order, so per-room publish order is
    preserved end to end.
    """

    def __init__(
        self,
        hub: FanoutHub,
        host: str = "localhost",
        port: int = 6379,
        access_key: str = "",
        client: Optional[redis.Redis] = None,
    ):
        self.hub = hub
        self.host = host
        self.port = port
        self.access_key = access_key
        self.client = client
        self.pubsub = None

    async def connect(self):
        """Establish async connection to Redis."""
        if self.client is None:
            if self.access_key:
                url = f"rediss://:{self.access_key}@{self.host}:{self.port}"
            else:
                url = f"redis://{self.host}:{self.port}"
            self.client = redis.from_url(url, decode_responses=True)
        await self.client.ping()
        logger.info("✓ Connected to Redis at %s:%s", self.host, self.port)

    async def publish(self, room_code: str, event: dict) -> None:
        """Publish a room event to ``room:<code>``."""
        channel = f"{ROOM_CHANNEL_PREFIX}{room_code}"
        await self.client.publish(channel, json.dumps(event))
        logger.info("📤 Published to Redis channel '%s'", channel)

    async def announce(self, event: dict) -> None:
        await self.client.publish(LOBBY_CHANNEL, json.dumps(event))

    async def dispatch(self, message: dict) -> None:
        """
        Route one raw pub/sub message to the local hub.

        Malformed payloads are logged and skipped so one bad message never
        stops the listener.
        """
        if message.get("type") not in ("message", "pmessage"):
            return
        channel = message.get("channel") or ""
        try:
            event = json.loads(message["data"])
        except (TypeError, ValueError) as e:
            logger.error("Error decoding Redis message on %s: %s", channel, e)
            return

        if channel == LOBBY_CHANNEL:
            await self.hub.announce(event)
        elif channel.startswith(ROOM_CHANNEL_PREFIX):
            room_code = channel[len(ROOM_CHANNEL_PREFIX):]
            logger.info("➡ Redis: Routing to room=%s", room_code)
            await self.hub.publish(room_code, event)
        else:
            logger.warning("Redis message on unexpected channel %s - ignoring", channel)

    async def listen(self):
        """Subscribe to every room channel plus the lobby and forward to the hub."""
        self.pubsub = self.client.pubsub()
        await self.pubsub.psubscribe(f"{ROOM_CHANNEL_PREFIX}*")
        await self.pubsub.subscribe(LOBBY_CHANNEL)
        logger.info("✓ Subscribed to Redis pattern '%s*' and '%s'", ROOM_CHANNEL_PREFIX, LOBBY_CHANNEL)

        async for message in self.pubsub.listen():
            await self.dispatch(message)

    async def close(self):
        """Close connections."""
        if self.pubsub:
            await self.pubsub.unsubscribe()
            await self.pubsub.punsubscribe()
            await self.pubsub.aclose()
        if self.client:
            await self.client.aclose()
        logger.info("Redis connection closed")
