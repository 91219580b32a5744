import json
from typing import Any, Dict, List

import pytest

from race_server.config import Settings
from race_server.race_logic import handle_connect, handle_ws_message
from race_server.state import ServerState


class FakeWebSocket:
    """Collects everything the server sends; can be told to fail on send."""

    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_json(self, message: Dict[str, Any]) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)

    def actions(self) -> List[str]:
        return [m["action"] for m in self.sent]

    def of(self, action: str) -> List[Dict[str, Any]]:
        return [m for m in self.sent if m["action"] == action]

    def last(self, action: str) -> Dict[str, Any]:
        return self.of(action)[-1]

    def clear(self) -> None:
        self.sent.clear()


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def advance(self, ms: float) -> None:
        self.now += ms

    def __call__(self) -> float:
        return self.now


class Peer:
    """A connected fake client bound to a :class:`ServerState`."""

    def __init__(self, state: ServerState, client, ws: FakeWebSocket):
        self.state = state
        self.client = client
        self.ws = ws

    @property
    def id(self) -> str:
        return self.client.client_id

    async def send(self, **message: Any) -> None:
        await handle_ws_message(self.state, self.client, json.dumps(message))

    async def create_room(self, name: str = "Alice", is_ready: bool = False) -> str:
        await self.send(
            action="create_room",
            playerName=name,
            socketEffectName="sparks",
            trailEffectName="flame",
            spriteName="car_red",
            isReady=is_ready,
        )
        return self.ws.last("room_created")["roomId"]

    async def join_room(self, room_id: str, name: str = "Bob") -> None:
        await self.send(
            action="join_room",
            roomId=room_id,
            playerName=name,
            socketEffectName="smoke",
            trailEffectName="ice",
            spriteName="car_blue",
        )


@pytest.fixture
def settings() -> Settings:
    return Settings(start_delay_seconds=0.01)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def state(settings, clock) -> ServerState:
    return ServerState(settings, clock=clock)


@pytest.fixture
def connect(state):
    async def _connect(fail: bool = False) -> Peer:
        ws = FakeWebSocket(fail=fail)
        client = await handle_connect(state, ws)
        return Peer(state, client, ws)

    return _connect
