"""End-to-end sessions through the FastAPI websocket endpoint."""
import time

import pytest
from fastapi.testclient import TestClient

from race_server.app import create_app
from race_server.config import Settings


@pytest.fixture
def client():
    app = create_app(Settings(start_delay_seconds=0.05), configure_logging=False)
    with TestClient(app) as test_client:
        yield test_client


def _create_payload(name):
    return {
        "action": "create_room",
        "playerName": name,
        "socketEffectName": "sparks",
        "trailEffectName": "flame",
        "spriteName": "car_red",
        "isReady": False,
    }


def _join_payload(room_id, name):
    return {
        "action": "join_room",
        "roomId": room_id,
        "playerName": name,
        "socketEffectName": "smoke",
        "trailEffectName": "ice",
        "spriteName": "car_blue",
    }


def _wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.02)
    return False


def test_two_player_race(client):
    with client.websocket_connect("/") as a, client.websocket_connect("/ws") as b:
        a_id = a.receive_json()["playerId"]
        b_id = b.receive_json()["playerId"]
        assert a_id != b_id

        a.send_json(_create_payload("Alice"))
        created = a.receive_json()
        assert created["action"] == "room_created"
        room_id = created["roomId"]

        b.send_json(_join_payload(room_id, "Bob"))
        joined_notice = a.receive_json()
        assert joined_notice["action"] == "player_joined"
        assert len(joined_notice["players"]) == 2
        joined = b.receive_json()
        assert joined["action"] == "room_joined"
        assert joined["isHost"] is False
        assert len(joined["players"]) == 2

        for sender in (a, b):
            sender.send_json({"action": "player_ready", "isReady": True})
            assert a.receive_json()["action"] == "player_ready"
            assert b.receive_json()["action"] == "player_ready"

        a.send_json({"action": "start_race"})
        assert a.receive_json()["action"] == "game_starting"
        assert b.receive_json()["action"] == "game_starting"
        assert a.receive_json()["action"] == "game_started"
        assert b.receive_json()["action"] == "game_started"

        rows = client.get("/rooms").json()
        assert rows == [{"id": room_id, "host": a_id, "playerCount": 2, "isRacing": True}]

        a.send_json({"action": "get_race_time"})
        race_time = a.receive_json()
        assert race_time["action"] == "race_time"
        assert race_time["currentTime"] >= 0

        a.send_json({"action": "player_finished"})
        first = a.receive_json()
        assert first["action"] == "player_finished"
        assert first["playerId"] == a_id
        assert b.receive_json()["playerId"] == a_id

        time.sleep(0.01)
        b.send_json({"action": "player_finished"})
        for ws in (a, b):
            finished = ws.receive_json()
            assert finished["playerId"] == b_id
            assert finished["raceTime"] >= first["raceTime"]
            ended = ws.receive_json()
            assert ended["action"] == "race_ended"
            assert [e["playerId"] for e in ended["finishTimes"]] == [a_id, b_id]


def test_disconnect_of_sole_member_removes_room(client):
    with client.websocket_connect("/") as a:
        a.receive_json()
        a.send_json(_create_payload("Alice"))
        room_id = a.receive_json()["roomId"]
        assert [r["id"] for r in client.get("/rooms").json()] == [room_id]

    assert _wait_for(lambda: client.get("/rooms").json() == [])

    with client.websocket_connect("/") as watcher:
        watcher.receive_json()
        watcher.send_json({"action": "get_rooms"})
        assert watcher.receive_json() == {"action": "rooms_list", "rooms": []}


def test_bad_frames_keep_connection_open(client):
    with client.websocket_connect("/") as ws:
        ws.receive_json()
        ws.send_text("definitely not json")
        assert ws.receive_json() == {"action": "error", "error": "Invalid message"}
        ws.send_text("[" * 100000)
        assert ws.receive_json() == {"action": "error", "error": "Invalid message"}
        ws.send_json({"action": "get_rooms"})
        assert ws.receive_json() == {"action": "rooms_list", "rooms": []}
        ws.send_json({"action": "teleport"})
        assert ws.receive_json() == {"action": "error", "error": "Unknown action"}
        ws.send_json(_join_payload("ZZZZZZ", "Bob"))
        assert ws.receive_json() == {"action": "error", "error": "Room not found"}
        ws.send_json({"action": "get_rooms"})
        assert ws.receive_json()["action"] == "rooms_list"


def test_health(client):
    body = client.get("/health").json()
    assert body == {"status": "ok", "rooms": 0, "connections": 0}
