"""Client-side live subscription for one chat session.

One Socket.IO connection is opened per session and reused across room
switches. Pushed messages are kept only for the room on screen; anything
else is dropped, and ``refresh`` re-reads history when a push was missed.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any

import httpx
import socketio

logger = logging.getLogger(__name__)

ROOM_JOIN = "room:join"
MESSAGE_NEW = "message:new"


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    JOINED = "joined"


class SubscriptionManager:
    def __init__(
        self,
        base_url: str,
        socket: Any | None = None,
        http: httpx.AsyncClient | None = None,
        socketio_path: str = "socket.io",
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.socketio_path = socketio_path
        self.socket = socket if socket is not None else socketio.AsyncClient()
        self._owns_http = http is None
        self.http = http if http is not None else httpx.AsyncClient(base_url=self.base_url)

        self.state = ConnectionState.DISCONNECTED
        self.selected_room: str | None = None
        self._messages: dict[str | None, list[dict[str, Any]]] = {}

        self.socket.on("connect", self._on_connect)
        self.socket.on("disconnect", self._on_disconnect)
        self.socket.on(MESSAGE_NEW, self.handle_message)

    @property
    def messages(self) -> list[dict[str, Any]]:
        """Cached messages for the selected room, newest first."""
        return list(self._messages.get(self.selected_room, []))

    def messages_for(self, room_id: str | None) -> list[dict[str, Any]]:
        return list(self._messages.get(room_id, []))

    async def connect(self) -> None:
        if self.state is not ConnectionState.DISCONNECTED:
            return
        self.state = ConnectionState.CONNECTING
        try:
            await self.socket.connect(self.base_url, socketio_path=self.socketio_path)
        except Exception:
            self.state = ConnectionState.DISCONNECTED
            raise

    async def disconnect(self) -> None:
        await self.socket.disconnect()
        self.state = ConnectionState.DISCONNECTED
        if self._owns_http:
            await self.http.aclose()

    async def select_room(self, room_id: str | None) -> None:
        room_id = (room_id or "").strip() or None
        live = self.state in (ConnectionState.CONNECTED, ConnectionState.JOINED)
        # join intent goes out before the local switch
        if live and room_id is not None:
            await self.socket.emit(ROOM_JOIN, room_id)
        self.selected_room = room_id
        if live:
            self.state = ConnectionState.JOINED if room_id is not None else ConnectionState.CONNECTED
        logger.debug("Selected room %s (state %s)", room_id, self.state.value)

    def handle_message(self, payload: dict[str, Any]) -> bool:
        """Prepend a pushed message if it belongs to the room on screen."""
        room_id = payload.get("roomId")
        if room_id != self.selected_room:
            logger.debug("Discarding push for room %s while viewing %s", room_id, self.selected_room)
            return False

        cached = self._messages.setdefault(room_id, [])
        message_id = payload.get("id")
        if message_id is not None and any(m.get("id") == message_id for m in cached):
            return False
        cached.insert(0, payload)
        return True

    async def refresh(self) -> list[dict[str, Any]]:
        """Re-read history for the selected room.

        The fetched history replaces what was cached before the request.
        Pushes accepted while it was in flight stay in front of it unless
        the history already holds them.
        """
        room_id = self.selected_room
        params = {"roomId": room_id} if room_id else {}
        cached_before = {m.get("id") for m in self._messages.get(room_id, [])}
        response = await self.http.get("/messages", params=params)
        response.raise_for_status()

        fetched = list(response.json())
        fetched_ids = {m.get("id") for m in fetched}
        arrived = [
            m
            for m in self._messages.get(room_id, [])
            if m.get("id") not in cached_before and m.get("id") not in fetched_ids
        ]
        self._messages[room_id] = arrived + fetched
        return self.messages_for(room_id)

    async def _on_connect(self) -> None:
        if self.selected_room is not None:
            await self.socket.emit(ROOM_JOIN, self.selected_room)
            self.state = ConnectionState.JOINED
        else:
            self.state = ConnectionState.CONNECTED
        logger.info("Connected to %s", self.base_url)

    async def _on_disconnect(self, *args: Any) -> None:
        self.state = ConnectionState.DISCONNECTED
        logger.info("Disconnected from %s", self.base_url)
