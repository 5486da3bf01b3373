from __future__ import annotations

from typing import List, Union

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..actions import ROOM_NOT_FOUND, RoomActions
from ..constants import ESTIMATION_CARDS, MAX_ROOM_NAME_LENGTH
from ..schemas import (
    ActionResponse,
    CreateRoomRequest,
    CreateRoomResponse,
    JoinResponse,
    RoomActionRequest,
    RoomInfoResponse,
    RoomStateResponse,
)
from ..store import RoomStore
from ..utils import sanitize_input

router = APIRouter(prefix="/api", tags=["rooms"])


def get_store(request: Request) -> RoomStore:
    return request.app.state.store


def get_actions(request: Request) -> RoomActions:
    return request.app.state.actions


@router.post("/rooms", response_model=CreateRoomResponse, status_code=status.HTTP_201_CREATED)
async def create_room(req: CreateRoomRequest, store: RoomStore = Depends(get_store)):
    name = sanitize_input(req.name)
    if not name:
        raise HTTPException(status_code=400, detail="Room name is required")
    if len(name) > MAX_ROOM_NAME_LENGTH:
        raise HTTPException(
            status_code=400, detail=f"Room name must be {MAX_ROOM_NAME_LENGTH} characters or less"
        )
    room_id = store.create_room(name)
    return CreateRoomResponse(room_id=room_id, name=name, message="Room created successfully")


@router.get("/rooms/{room_id}", response_model=RoomInfoResponse)
async def get_room(room_id: str, actions: RoomActions = Depends(get_actions)):
    actions.ensure_room(room_id)
    info = actions.store.get_room_info(room_id)
    if info is None:
        raise HTTPException(status_code=404, detail=ROOM_NOT_FOUND)
    return info


@router.get("/rooms/{room_id}/state", response_model=RoomStateResponse)
async def get_room_state(room_id: str, store: RoomStore = Depends(get_store)):
    snapshot = store.get_room_snapshot(room_id) if store.room_exists(room_id) else None
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Room not found")
    return RoomStateResponse(room_state=snapshot)


@router.post("/rooms/{room_id}/actions", response_model=None)
async def room_action(
    room_id: str, req: RoomActionRequest, actions: RoomActions = Depends(get_actions)
) -> Union[JoinResponse, ActionResponse]:
    return await actions.handle(room_id, req)


@router.get("/cards", response_model=List[dict])
async def list_cards():
    return ESTIMATION_CARDS
