from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, Union

from roomchat.schemas.chat import message_payload
from roomchat.services.membership import MembershipRegistry

logger = logging.getLogger(__name__)

MESSAGE_NEW = "message:new"


@dataclass(frozen=True)
class RoomScope:
    room_id: str


@dataclass(frozen=True)
class GlobalScope:
    """Legacy messages without a room go to every open connection."""


MessageScope = Union[RoomScope, GlobalScope]


def scope_of(message: Any) -> MessageScope:
    room_id = getattr(message, "room_id", None)
    if room_id:
        return RoomScope(room_id)
    return GlobalScope()


class Transport(Protocol):
    def deliver(self, connection_id: str, event: str, payload: dict) -> None:
        """Hand one event to one connection without waiting for it to be written."""


class FanoutChannel:
    """Pushes persisted messages to the connections that should see them.

    Targets are a snapshot of the registry taken when ``publish`` is called;
    a connection joining afterwards gets nothing. Delivery is best effort:
    a failing connection is logged and skipped, never retried.
    """

    def __init__(self, registry: MembershipRegistry, transport: Transport) -> None:
        self.registry = registry
        self.transport = transport

    def targets(self, scope: MessageScope) -> frozenset[str]:
        if isinstance(scope, RoomScope):
            return self.registry.members_of(scope.room_id)
        if isinstance(scope, GlobalScope):
            return self.registry.open_connections()
        raise TypeError(f"unknown message scope: {scope!r}")

    def publish(self, message: Any) -> list[str]:
        scope = scope_of(message)
        targets = sorted(self.targets(scope))
        payload = message_payload(message)

        delivered: list[str] = []
        for connection_id in targets:
            try:
                self.transport.deliver(connection_id, MESSAGE_NEW, payload)
            except Exception:
                logger.warning("Delivery to %s missed for message %s", connection_id, payload["id"], exc_info=True)
                continue
            delivered.append(connection_id)

        logger.debug("Published message %s to %s (%d connections)", payload["id"], scope, len(delivered))
        return delivered
