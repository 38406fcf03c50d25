"""Socket.IO server wiring for room membership and live message pushes.

Wire events:
- inbound ``room:join`` (payload: room id string) switches the connection's
  selected room; the ack is ``{"ok": true, "roomId": ...}`` or
  ``{"ok": false, "error": ...}``.
- outbound ``message:new`` carries the full persisted message record.

Connections are not authenticated; posting goes through ``POST /messages``,
which requires a bearer token.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import logging
from typing import Any

import socketio

from roomchat.core.config import Settings
from roomchat.core.errors import ChatError
from roomchat.schemas.chat import JoinAck
from roomchat.services.membership import MembershipRegistry

logger = logging.getLogger(__name__)

ROOM_JOIN = "room:join"


def create_server(config: Settings) -> socketio.AsyncServer:
    origins: Any = "*" if config.cors_origins == ["*"] else config.cors_origins
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=origins,
        logger=False,
        engineio_logger=False,
    )


class SocketIOTransport:
    """Fan-out transport that schedules one emit per connection.

    ``deliver`` never waits for the write. Ingress may run in a worker
    thread, so emits are handed to the server's event loop; callbacks
    scheduled from one thread run in order, which keeps a single publisher's
    messages ordered per subscriber.
    """

    def __init__(self, sio: socketio.AsyncServer) -> None:
        self.sio = sio
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[Any] = set()

    def bind_loop(self, loop: asyncio.AbstractEventLoop) -> None:
        self._loop = loop

    def deliver(self, connection_id: str, event: str, payload: dict) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            raise RuntimeError("realtime event loop is not running")

        coro = self.sio.emit(event, payload, to=connection_id)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        try:
            if running is loop:
                future = loop.create_task(coro)
            else:
                future = asyncio.run_coroutine_threadsafe(coro, loop)
        except RuntimeError:
            coro.close()
            raise
        self._pending.add(future)
        future.add_done_callback(self._finished)

    def _finished(self, future: Any) -> None:
        self._pending.discard(future)
        if future.cancelled():
            return
        try:
            exc = future.exception()
        except (asyncio.CancelledError, concurrent.futures.CancelledError):
            return
        if exc is not None:
            logger.debug("Emit failed: %s", exc)


class RealtimeGateway:
    """Keeps the membership registry in step with Socket.IO connections."""

    def __init__(
        self,
        sio: socketio.AsyncServer,
        registry: MembershipRegistry,
        transport: SocketIOTransport | None = None,
    ) -> None:
        self.sio = sio
        self.registry = registry
        self.transport = transport
        sio.on("connect", self.on_connect)
        sio.on("disconnect", self.on_disconnect)
        sio.on(ROOM_JOIN, self.on_join)

    async def on_connect(self, sid: str, environ: dict[str, Any], auth: Any | None = None) -> None:
        if self.transport is not None:
            self.transport.bind_loop(asyncio.get_running_loop())
        self.registry.open(sid)
        logger.info("Socket connected: %s", sid)

    async def on_disconnect(self, sid: str, *args: Any) -> None:
        # release membership before the session goes away
        self.registry.leave(sid)
        logger.info("Socket disconnected: %s", sid)

    async def on_join(self, sid: str, room_id: Any = None) -> dict[str, Any]:
        try:
            joined = self.registry.join(sid, room_id)
        except ChatError as exc:
            logger.info("Rejected room:join from %s: %s", sid, exc.detail)
            return JoinAck(ok=False, error=exc.detail).model_dump(by_alias=True, exclude_none=True)
        return JoinAck(ok=True, room_id=joined).model_dump(by_alias=True, exclude_none=True)
