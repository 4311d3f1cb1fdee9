# backend/api/routes/messages.py
from typing import List

from fastapi import APIRouter, Depends

from backend.core import state
from backend.models.models import Message, PostMessageRequest, User
from backend.services.auth_service import get_current_user

# ============================================================================
# MESSAGE ENDPOINTS
# ============================================================================

router = APIRouter(tags=["Messages"])

@router.post("/messages")
async def post_message(request: PostMessageRequest, user: User = Depends(get_current_user)):
    """
    Post a message to a room.

    Flow:
        1. Validate room exists
        2. Ask the assistant for a reply if the body contains the trigger
           (bounded wait; failures just leave the reply empty)
        3. Append to the room's history
        4. Publish to the room's live subscribers

    The response is only an acknowledgement. The message itself reaches
    clients (the poster included) through their live subscription.

    Raises:
        400 if code or body is empty, 404 if the room does not exist
    """
    await state.room_service.post_message(user, request.code, request.body)
    return {"success": True}


@router.get("/messages", response_model=List[Message])
async def get_history(code: str = "", user: User = Depends(get_current_user)):
    """
    Full history of a room, oldest first.

    Clients fetch history before subscribing to the live feed; a message
    published between the two calls is not replayed.
    """
    return await state.room_service.get_history(user, code)
