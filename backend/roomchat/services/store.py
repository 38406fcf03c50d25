from __future__ import annotations

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from roomchat.models.chat import Message, Room, User

logger = logging.getLogger(__name__)


class ChatStore:
    """Durable users, rooms and messages."""

    def __init__(self, db: Session):
        self.db = db

    def find_user_by_username(self, username: str) -> User | None:
        return self.db.scalar(select(User).where(User.username == username))

    def create_user(self, username: str, password_hash: str) -> User:
        user = User(username=username, password_hash=password_hash)
        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise
        self.db.refresh(user)
        return user

    def find_room_by_name(self, name: str) -> Room | None:
        return self.db.scalar(select(Room).where(Room.name == name))

    def find_room_by_id(self, room_id: str) -> Room | None:
        return self.db.get(Room, room_id)

    def create_room(self, name: str) -> Room:
        """Upsert on name: an existing room with this name is returned as is."""
        room = self.find_room_by_name(name)
        if room:
            return room

        room = Room(name=name)
        self.db.add(room)
        try:
            self.db.commit()
        except IntegrityError:
            # lost a race against a concurrent create with the same name
            self.db.rollback()
            existing = self.find_room_by_name(name)
            if existing is None:
                raise
            return existing
        self.db.refresh(room)
        logger.info("Created room %s (%s)", room.name, room.id)
        return room

    def list_rooms(self) -> list[Room]:
        return list(self.db.execute(select(Room).order_by(Room.created_at)).scalars().all())

    def create_message(self, text: str, author: str, room_id: str | None) -> Message:
        message = Message(text=text, author=author, room_id=room_id)
        self.db.add(message)
        self.db.commit()
        self.db.refresh(message)
        return message

    def list_messages(self, room_id: str | None) -> list[Message]:
        """Newest first. ``None`` lists legacy messages that have no room."""
        query = select(Message)
        if room_id is None:
            query = query.where(Message.room_id.is_(None))
        else:
            query = query.where(Message.room_id == room_id)
        query = query.order_by(Message.created_at.desc())
        return list(self.db.execute(query).scalars().all())
