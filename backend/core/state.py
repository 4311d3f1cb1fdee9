# backend/core/state.py
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Optional

from backend.core.config import settings
from backend.services.assistant import AssistantBridge, GroqReplyGenerator
from backend.services.fanout_hub import FanoutHub
from backend.services.identity import IdentityGate
from backend.services.message_log import MessageLog
from backend.services.publisher import LocalPublisher
from backend.services.redis_pub_sub import AsyncRedisPubSubService
from backend.services.room_directory import RoomDirectory
from backend.services.room_service import RoomService

# Global singletons for app state
identity_gate = IdentityGate(settings.JWT_SECRET, settings.JWT_ALGORITHM)
room_directory = RoomDirectory(settings.ROOMS_FILE)
message_log = MessageLog(settings.MESSAGES_FILE)
hub = FanoutHub()

assistant = AssistantBridge(
    GroqReplyGenerator(
        api_key=settings.GROQ_API_KEY,
        model=settings.ASSISTANT_MODEL,
        base_url=settings.ASSISTANT_BASE_URL,
    ) if settings.GROQ_API_KEY else None,
    trigger=settings.ASSISTANT_TRIGGER,
    timeout=settings.ASSISTANT_TIMEOUT_SECONDS,
)

# Publisher is swapped for the Redis relay on startup when PUB_SUB_SERVICE=redis
room_service = RoomService(
    directory=room_directory,
    message_log=message_log,
    publisher=LocalPublisher(hub),
    assistant=assistant,
)
redis_service: Optional[AsyncRedisPubSubService] = None
redis_listener: Optional[asyncio.Task] = None

# Metrics
app_start_time: datetime = datetime.now(timezone.utc)
