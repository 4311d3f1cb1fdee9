"""
Bearer token authentication for the REST API.

Features:
- FastAPI dependency for protected endpoints (Authorization: Bearer <token>)
- /validate-token endpoint for clients restoring a session

WebSocket clients pass the same token as the ``token`` query parameter
(see api/websocket.py).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request

from backend.core import state
from backend.models.models import User

router = APIRouter(tags=["Authentication"])


def bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_current_user(request: Request) -> User:
    """
    Get current authenticated user from the Authorization header.
    Use as dependency for protected endpoints.
    """
    return state.identity_gate.verify(bearer_token(request))


@router.get("/validate-token")
async def validate_token(current_user: User = Depends(get_current_user)):
    """Confirm a token is still valid and echo the identity it carries."""
    return {"userId": current_user.id, "username": current_user.display_name}
