from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from roomchat.api.deps import get_store
from roomchat.core.errors import ValidationError
from roomchat.schemas.chat import RoomCreate, RoomRead
from roomchat.services.store import ChatStore

router = APIRouter(prefix="/rooms", tags=["rooms"])


@router.get("", response_model=list[RoomRead])
async def list_rooms(store: ChatStore = Depends(get_store)):
    rooms = await run_in_threadpool(store.list_rooms)
    return [RoomRead.model_validate(room) for room in rooms]


# Unauthenticated on purpose: only posting messages needs a token.
@router.post("", response_model=RoomRead, status_code=status.HTTP_201_CREATED)
async def create_room(payload: RoomCreate, store: ChatStore = Depends(get_store)):
    name = (payload.name or "").strip()
    if not name:
        raise ValidationError("name required")
    room = await run_in_threadpool(store.create_room, name)
    return RoomRead.model_validate(room)
