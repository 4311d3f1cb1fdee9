# backend/api/routes/rooms.py

from typing import List

from fastapi import APIRouter, Depends

from backend.core import state
from backend.models.models import CreateRoomRequest, Room, RoomCodeRequest, User
from backend.services.auth_service import get_current_user

router = APIRouter(tags=["Rooms"])

# ============================================================================
# ROOM ENDPOINTS
# ============================================================================

@router.post("/rooms", response_model=Room, status_code=201)
async def create_room(request: CreateRoomRequest, user: User = Depends(get_current_user)):
    """
    Create a new chat room owned by the caller.

    Args:
        request: CreateRoomRequest with code and name

    Returns:
        Room: The newly created room (creator is its first member)

    Raises:
        400 if code or name is empty, 409 if the code is taken

    Side Effects:
        - "room_created" announced to every live connection
    """
    return await state.room_service.create_room(user, request.code, request.name)


@router.get("/rooms")
async def list_rooms(user: User = Depends(get_current_user)):
    """List every room the caller created or joined."""
    rooms: List[Room] = await state.room_service.list_accessible_rooms(user)
    return {"rooms": [r.model_dump() for r in rooms]}


@router.post("/rooms/join")
async def join_room(request: RoomCodeRequest, user: User = Depends(get_current_user)):
    """
    Join a room by code. Joining a room twice is harmless.

    Raises:
        404 if the room does not exist
    """
    room = await state.room_service.join_room(user, request.code)
    return {"status": "joined", "code": room.code}


@router.post("/rooms/validate")
async def validate_room(request: RoomCodeRequest, user: User = Depends(get_current_user)):
    """Check that a room code refers to an existing room before entering it."""
    room = await state.room_service.validate_room_access(user, request.code)
    return {"status": "granted", "code": room.code, "name": room.name}


@router.delete("/rooms/{code}")
async def delete_room(code: str, user: User = Depends(get_current_user)):
    """
    Delete a room and its whole history.

    Raises:
        404 if the room does not exist, 403 if the caller is not its creator

    Side Effects:
        - All messages of the room are purged
        - "room_deleted" sent to the room's subscribers, who are then dropped
    """
    await state.room_service.delete_room(user, code)
    return {"status": "deleted", "code": code}
