from __future__ import annotations

from fastapi import APIRouter, Depends, status
from fastapi.concurrency import run_in_threadpool

from roomchat.api.deps import get_identity
from roomchat.schemas.chat import Credentials, TokenRead, UserRead
from roomchat.services.identity import IdentityService

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register(payload: Credentials, identity: IdentityService = Depends(get_identity)):
    user = await run_in_threadpool(identity.register, payload.username, payload.password)
    return UserRead.model_validate(user)


@router.post("/login", response_model=TokenRead)
async def login(payload: Credentials, identity: IdentityService = Depends(get_identity)):
    token = await run_in_threadpool(identity.login, payload.username, payload.password)
    return TokenRead(token=token)
