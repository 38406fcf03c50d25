import asyncio

import httpx
import pytest

from roomchat.client.subscription import MESSAGE_NEW, ROOM_JOIN, ConnectionState, SubscriptionManager


class FakeSocket:
    """Stands in for ``socketio.AsyncClient``; fires handlers synchronously."""

    def __init__(self):
        self.handlers = {}
        self.emitted = []
        self.connect_calls = 0
        self.manager = None

    def on(self, event, handler):
        self.handlers[event] = handler

    async def connect(self, url, socketio_path=None):
        self.connect_calls += 1
        await self.handlers["connect"]()

    async def disconnect(self):
        await self.handlers["disconnect"]()

    async def emit(self, event, data=None):
        selected = self.manager.selected_room if self.manager else None
        self.emitted.append((event, data, selected))


def push(message_id, room_id):
    return {"id": message_id, "text": "hi", "author": "alice", "roomId": room_id, "createdAt": "2024-01-01T00:00:00Z"}


@pytest.fixture
def socket():
    return FakeSocket()


@pytest.fixture
def http():
    def handler(request):
        room_id = request.url.params.get("roomId")
        return httpx.Response(200, json=[push("h2", room_id), push("h1", room_id)])

    return httpx.AsyncClient(base_url="http://chat.test", transport=httpx.MockTransport(handler))


@pytest.fixture
def manager(socket, http):
    manager = SubscriptionManager("http://chat.test", socket=socket, http=http)
    socket.manager = manager
    return manager


def test_registers_push_handler(manager, socket):
    assert socket.handlers[MESSAGE_NEW] == manager.handle_message


def test_state_machine_and_single_connection(manager, socket):
    async def scenario():
        states = [manager.state]
        await manager.connect()
        states.append(manager.state)
        await manager.select_room("r1")
        states.append(manager.state)
        await manager.select_room("r2")
        states.append(manager.state)
        await manager.connect()
        await manager.disconnect()
        states.append(manager.state)
        return states

    states = asyncio.run(scenario())

    assert states == [
        ConnectionState.DISCONNECTED,
        ConnectionState.CONNECTED,
        ConnectionState.JOINED,
        ConnectionState.JOINED,
        ConnectionState.DISCONNECTED,
    ]
    assert socket.connect_calls == 1
    assert [(event, data) for event, data, _ in socket.emitted] == [(ROOM_JOIN, "r1"), (ROOM_JOIN, "r2")]


def test_join_intent_is_emitted_before_local_switch(manager, socket):
    async def scenario():
        await manager.connect()
        await manager.select_room("r1")
        await manager.select_room("r2")

    asyncio.run(scenario())

    # selected room seen by the socket at emit time is still the previous one
    assert [selected for _, _, selected in socket.emitted] == [None, "r1"]
    assert manager.selected_room == "r2"


def test_room_selected_before_connect_is_joined_on_connect(manager, socket):
    async def scenario():
        await manager.select_room("r1")
        assert socket.emitted == []
        await manager.connect()

    asyncio.run(scenario())

    assert [(event, data) for event, data, _ in socket.emitted] == [(ROOM_JOIN, "r1")]
    assert manager.state is ConnectionState.JOINED


def test_selecting_no_room_does_not_emit(manager, socket):
    async def scenario():
        await manager.connect()
        await manager.select_room("r1")
        await manager.select_room(None)

    asyncio.run(scenario())

    assert len(socket.emitted) == 1
    assert manager.selected_room is None
    assert manager.state is ConnectionState.CONNECTED


def test_push_for_selected_room_is_prepended(manager):
    asyncio.run(manager.select_room("r1"))

    assert manager.handle_message(push("m1", "r1"))
    assert manager.handle_message(push("m2", "r1"))

    assert [m["id"] for m in manager.messages] == ["m2", "m1"]


def test_push_for_other_room_is_discarded(manager):
    asyncio.run(manager.select_room("r1"))

    assert not manager.handle_message(push("m1", "r2"))
    assert not manager.handle_message(push("m2", None))

    assert manager.messages == []
    assert manager.messages_for("r2") == []


def test_legacy_push_matches_global_view(manager):
    assert manager.selected_room is None

    assert manager.handle_message(push("m1", None))
    assert not manager.handle_message(push("m2", "r1"))

    assert [m["id"] for m in manager.messages] == ["m1"]


def test_duplicate_push_is_ignored(manager):
    asyncio.run(manager.select_room("r1"))

    manager.handle_message(push("m1", "r1"))
    assert not manager.handle_message(push("m1", "r1"))

    assert len(manager.messages) == 1


def test_refresh_replaces_cache_for_selected_room(manager):
    async def scenario():
        await manager.select_room("r1")
        manager.handle_message(push("stale", "r1"))
        return await manager.refresh()

    refreshed = asyncio.run(scenario())

    assert [m["id"] for m in refreshed] == ["h2", "h1"]
    assert all(m["roomId"] == "r1" for m in manager.messages)
    assert manager.handle_message(push("h3", "r1"))
    assert not manager.handle_message(push("h1", "r1"))


def test_refresh_keeps_pushes_that_arrive_while_fetching(socket):
    manager = None

    def handler(request):
        # pushes land between the request going out and the response
        manager.handle_message(push("live", "r1"))
        manager.handle_message(push("h2", "r1"))
        return httpx.Response(200, json=[push("h2", "r1"), push("h1", "r1")])

    http = httpx.AsyncClient(base_url="http://chat.test", transport=httpx.MockTransport(handler))
    manager = SubscriptionManager("http://chat.test", socket=socket, http=http)
    socket.manager = manager

    async def scenario():
        await manager.select_room("r1")
        manager.handle_message(push("stale", "r1"))
        return await manager.refresh()

    refreshed = asyncio.run(scenario())

    assert [m["id"] for m in refreshed] == ["live", "h2", "h1"]
    assert not manager.handle_message(push("live", "r1"))


def test_refresh_for_global_view_omits_room_param(manager):
    refreshed = asyncio.run(manager.refresh())

    assert [m["roomId"] for m in refreshed] == [None, None]


def test_transport_reconnect_rejoins_selected_room(manager, socket):
    async def scenario():
        await manager.connect()
        await manager.select_room("r1")
        await socket.handlers["disconnect"]()
        assert manager.state is ConnectionState.DISCONNECTED
        await socket.handlers["connect"]()

    asyncio.run(scenario())

    assert [data for _, data, _ in socket.emitted] == ["r1", "r1"]
    assert manager.state is ConnectionState.JOINED
