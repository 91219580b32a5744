import secrets

import pytest

from race_server.connections import ConnectionRegistry
from race_server.constants import ROOM_CODE_ALPHABET
from race_server.registry import RoomRegistry
from race_server.schemas import Player

from .conftest import FakeWebSocket


def _player(pid: str = "p1") -> Player:
    return Player(id=pid, name=pid)


class TestRoomRegistry:
    @pytest.mark.asyncio
    async def test_create_generates_upper_case_code(self):
        rooms = RoomRegistry(ConnectionRegistry())
        room = rooms.create(_player())
        assert len(room.room_id) == 6
        assert all(ch in ROOM_CODE_ALPHABET for ch in room.room_id)
        assert rooms.get(room.room_id) is room
        assert room.host_id == "p1"

    @pytest.mark.asyncio
    async def test_code_collision_is_regenerated(self, monkeypatch):
        rooms = RoomRegistry(ConnectionRegistry(), code_length=1)
        first = rooms.create(_player("a"))
        # Force the generator to hit the live code once before a free one.
        picks = iter([first.room_id, "Z" if first.room_id != "Z" else "Y"])
        monkeypatch.setattr(secrets, "choice", lambda _alphabet: next(picks))
        second = rooms.create(_player("b"))
        assert second.room_id != first.room_id
        assert len(rooms) == 2

    @pytest.mark.asyncio
    async def test_delete_is_idempotent_and_list_reflects_it(self):
        rooms = RoomRegistry(ConnectionRegistry())
        room = rooms.create(_player())
        assert [s.id for s in rooms.list()] == [room.room_id]
        rooms.delete(room.room_id)
        rooms.delete(room.room_id)
        assert rooms.get(room.room_id) is None
        assert rooms.list() == []

    def test_get_none_returns_none(self):
        assert RoomRegistry(ConnectionRegistry()).get(None) is None

    @pytest.mark.asyncio
    async def test_summary_uses_wire_names(self):
        rooms = RoomRegistry(ConnectionRegistry())
        room = rooms.create(_player("host"))
        row = rooms.list()[0].model_dump(by_alias=True)
        assert row == {"id": room.room_id, "host": "host", "playerCount": 1, "isRacing": False}


class TestConnectionRegistry:
    @pytest.mark.asyncio
    async def test_register_lookup_unregister(self):
        registry = ConnectionRegistry()
        ws = FakeWebSocket()
        client = registry.register(ws)
        assert registry.lookup(client.client_id) is client
        assert client.client_id in registry
        registry.unregister(client.client_id)
        registry.unregister(client.client_id)
        assert registry.lookup(client.client_id) is None
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_ids_are_unique(self):
        registry = ConnectionRegistry()
        ids = {registry.register(FakeWebSocket()).client_id for _ in range(50)}
        assert len(ids) == 50

    @pytest.mark.asyncio
    async def test_send_failure_is_swallowed(self):
        registry = ConnectionRegistry()
        client = registry.register(FakeWebSocket(fail=True))
        assert await registry.send(client.client_id, {"action": "error", "error": "x"}) is False

    @pytest.mark.asyncio
    async def test_send_to_unknown_client(self):
        registry = ConnectionRegistry()
        assert await registry.send("nobody", {"action": "error", "error": "x"}) is False
