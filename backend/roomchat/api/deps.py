from __future__ import annotations

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from roomchat.db.session import get_db
from roomchat.services.fanout import FanoutChannel
from roomchat.services.identity import IdentityService, TokenIssuer
from roomchat.services.ingress import MessageIngress
from roomchat.services.store import ChatStore


def get_store(db: Session = Depends(get_db)) -> ChatStore:
    return ChatStore(db)


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_fanout(request: Request) -> FanoutChannel:
    return request.app.state.fanout


def get_identity(
    store: ChatStore = Depends(get_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
) -> IdentityService:
    return IdentityService(store, issuer)


def get_ingress(
    store: ChatStore = Depends(get_store),
    issuer: TokenIssuer = Depends(get_token_issuer),
    fanout: FanoutChannel = Depends(get_fanout),
) -> MessageIngress:
    return MessageIngress(store, issuer, fanout)


def bearer_token(request: Request) -> str | None:
    header = request.headers.get("Authorization", "")
    if header.startswith("Bearer "):
        return header[len("Bearer "):].strip() or None
    return None
