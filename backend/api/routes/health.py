# backend/api/routes/health.py

from fastapi import APIRouter

from backend.core import state

router = APIRouter()

@router.get("/health")
async def health():
    """
    Health check endpoint.

    Returns current system status, connection counts, and room counts.

    Returns:
        dict: Status, connection count, room count, active room count
    """
    stats = state.hub.stats()
    return {
        "status": "healthy",
        "connections": stats["connections"],
        "rooms": len(state.room_directory.rooms),
        "active_rooms_with_subscribers": stats["active_rooms"],
    }
