from __future__ import annotations

import logging

from roomchat.core.errors import NotFoundError, ValidationError
from roomchat.models.chat import Message
from roomchat.services.fanout import FanoutChannel
from roomchat.services.identity import TokenIssuer
from roomchat.services.store import ChatStore

logger = logging.getLogger(__name__)


class MessageIngress:
    """Entry point for new messages: validate, persist, then push live.

    Nothing is written until every check has passed. The write and the push
    are not one transaction; if the push fails the stored message is still
    returned and clients recover it by re-fetching history.
    """

    def __init__(self, store: ChatStore, identity: TokenIssuer, fanout: FanoutChannel):
        self.store = store
        self.identity = identity
        self.fanout = fanout

    def post_message(
        self,
        text: str | None,
        author: str | None,
        room_id: object | None,
        credential: str | None,
    ) -> Message:
        if not isinstance(text, str) or not text.strip():
            raise ValidationError("text and author required")
        if not isinstance(author, str) or not author.strip():
            raise ValidationError("text and author required")

        target_room = self._resolve_room(room_id)
        poster = self.identity.verify_credential(credential)

        message = self.store.create_message(text=text, author=author, room_id=target_room)
        logger.info(
            "Message %s posted by %s as %r in room %s",
            message.id,
            poster.display_handle or poster.subject_id,
            author,
            target_room,
        )

        try:
            self.fanout.publish(message)
        except Exception:
            logger.exception("Publishing message %s failed; stored but not pushed", message.id)
        return message

    def _resolve_room(self, room_id: object | None) -> str | None:
        if room_id is None:
            return None
        if not isinstance(room_id, str):
            raise ValidationError("malformed roomId")
        room_id = room_id.strip()
        if not room_id:
            return None
        room = self.store.find_room_by_id(room_id)
        if room is None:
            raise NotFoundError("Room not found")
        return room.id
