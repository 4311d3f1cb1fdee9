# backend/api/routes/metrics.py
from fastapi import APIRouter
from datetime import datetime, timezone

from backend.core import state
from backend.core.config import settings

router = APIRouter()

@router.get("/metrics")
async def get_metrics():
    """
    Usage metrics for monitoring.

    Returns:
        dict: Message statistics (total, messages/sec), live capacity
              (connections, subscriptions, rooms) and the active relay.
    """
    uptime_seconds = (datetime.now(timezone.utc) - state.app_start_time).total_seconds()
    total = state.room_service.message_counter

    if uptime_seconds > 0:
        messages_per_second = total / uptime_seconds
    else:
        messages_per_second = 0

    stats = state.hub.stats()
    return {
        # Statistics
        "total_messages": total,
        "uptime_hours": round(uptime_seconds / 3600, 2) if uptime_seconds > 0 else 0,
        "messages_per_second": round(messages_per_second, 2),

        # Capacity
        "concurrent_connections": stats["connections"],
        "subscriptions": stats["subscriptions"],
        "total_rooms": len(state.room_directory.rooms),
        "active_rooms_with_subscribers": stats["active_rooms"],

        "relay": settings.PUB_SUB_SERVICE,
    }
