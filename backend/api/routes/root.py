# backend/api/routes/root.py

from fastapi import APIRouter

router = APIRouter()


@router.get("/")
async def root():
    """
    Root endpoint - API information.

    Returns basic info about the API and its features.
    """
    return {
        "message": "Welcome to the Chatrix chat rooms API",
        "version": "1.0",
        "features": ["rooms", "membership", "live_fanout", "assistant_replies"],
        "endpoints": {
            "websocket": "/ws",
            "rooms": "/rooms",
            "messages": "/messages",
            "validate_token": "/validate-token",
            "health": "/health",
            "metrics": "/metrics",
        },
    }
