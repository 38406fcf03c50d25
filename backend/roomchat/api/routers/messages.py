from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.concurrency import run_in_threadpool

from roomchat.api.deps import bearer_token, get_ingress, get_store
from roomchat.schemas.chat import MessageCreate, MessageRead
from roomchat.services.ingress import MessageIngress
from roomchat.services.store import ChatStore

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("", response_model=list[MessageRead])
async def list_messages(
    room_id: str | None = Query(default=None, alias="roomId"),
    store: ChatStore = Depends(get_store),
):
    # no roomId lists legacy messages posted without a room
    room_id = (room_id or "").strip() or None
    messages = await run_in_threadpool(store.list_messages, room_id)
    return [MessageRead.model_validate(m) for m in messages]


@router.post("", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def post_message(
    payload: MessageCreate,
    request: Request,
    ingress: MessageIngress = Depends(get_ingress),
):
    message = await run_in_threadpool(
        ingress.post_message,
        payload.text,
        payload.author,
        payload.room_id,
        bearer_token(request),
    )
    return MessageRead.model_validate(message)
