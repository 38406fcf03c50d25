from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class Credentials(BaseModel):
    username: str = ""
    password: str = ""


class UserRead(WireModel):
    id: str
    username: str


class TokenRead(WireModel):
    token: str


class RoomCreate(BaseModel):
    name: str = ""


class RoomRead(WireModel):
    id: str
    name: str
    created_at: datetime


class MessageCreate(WireModel):
    # shape checks happen in ingress so malformed fields answer 400
    text: Any = ""
    author: Any = ""
    room_id: Any = None


class MessageRead(WireModel):
    id: str
    text: str
    author: str
    room_id: str | None = None
    created_at: datetime


class JoinAck(WireModel):
    ok: bool
    room_id: str | None = None
    error: str | None = None


def message_payload(message) -> dict:
    """Full persisted record as pushed in ``message:new``."""
    return MessageRead.model_validate(message).model_dump(mode="json", by_alias=True)
