from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Dict, Set

from roomchat.core.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


class MembershipRegistry:
    """In-memory map of open connections to their selected room.

    A connection is a member of at most one room. The registry is the only
    writer of this state; publishers read point-in-time snapshots of it.
    The lock is held for the map operation only, never while delivering.
    """

    def __init__(self) -> None:
        self._room_by_connection: Dict[str, str | None] = {}
        self._members: Dict[str, Set[str]] = defaultdict(set)
        self._lock = threading.Lock()

    def open(self, connection_id: str) -> None:
        with self._lock:
            self._room_by_connection.setdefault(connection_id, None)
        logger.debug("Connection %s opened", connection_id)

    def join(self, connection_id: str, room_id: object) -> str:
        if not isinstance(room_id, str) or not room_id.strip():
            raise ValidationError("room id required")
        room_id = room_id.strip()

        with self._lock:
            # a join racing a disconnect must not bring the connection back
            if connection_id not in self._room_by_connection:
                raise NotFoundError("connection is not open")
            previous = self._room_by_connection[connection_id]
            if previous is not None:
                self._discard_member(previous, connection_id)
            self._room_by_connection[connection_id] = room_id
            self._members[room_id].add(connection_id)

        if previous and previous != room_id:
            logger.info("Connection %s switched room %s -> %s", connection_id, previous, room_id)
        else:
            logger.info("Connection %s joined room %s", connection_id, room_id)
        return room_id

    def leave(self, connection_id: str) -> None:
        with self._lock:
            if connection_id not in self._room_by_connection:
                return
            previous = self._room_by_connection.pop(connection_id)
            if previous is not None:
                self._discard_member(previous, connection_id)
        logger.debug("Connection %s released (room %s)", connection_id, previous)

    def members_of(self, room_id: str) -> frozenset[str]:
        with self._lock:
            return frozenset(self._members.get(room_id, ()))

    def open_connections(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._room_by_connection)

    def room_of(self, connection_id: str) -> str | None:
        with self._lock:
            return self._room_by_connection.get(connection_id)

    def __len__(self) -> int:
        with self._lock:
            return len(self._room_by_connection)

    def _discard_member(self, room_id: str, connection_id: str) -> None:
        members = self._members.get(room_id)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            self._members.pop(room_id, None)
