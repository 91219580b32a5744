"""Race lobby mechanics and the websocket message dispatcher.

Handlers operate on :class:`~race_server.room.Room` instances held by the
:class:`~race_server.state.ServerState`; the websocket router only feeds
raw frames into :func:`handle_ws_message` and reports connects/disconnects.

Every handler that touches a room goes through :func:`_locked_room`, which
takes the room's lock and then re-checks that the room is still registered
and the caller is still a member.
"""
from __future__ import annotations

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, Optional

from fastapi import WebSocket
from pydantic import ValidationError

from .connections import ClientConnection
from .constants import (
    CHAT_MESSAGE,
    CONNECTED,
    CREATE_ROOM,
    ERR_INTERNAL,
    ERR_INVALID_MESSAGE,
    ERR_ROOM_NOT_FOUND,
    ERR_UNKNOWN_ACTION,
    ERROR,
    GAME_STARTED,
    GAME_STARTING,
    GET_RACE_TIME,
    GET_ROOMS,
    INBOUND_ACTIONS,
    JOIN_ROOM,
    LEAVE_ROOM,
    PHASE_OPEN,
    PLAYER_CHECKPOINT,
    PLAYER_FINISHED,
    PLAYER_JOINED,
    PLAYER_LEAVE,
    PLAYER_LEFT,
    PLAYER_MOVED,
    PLAYER_READY,
    RACE_ENDED,
    RACE_TIME,
    ROOM_CREATED,
    ROOM_JOINED,
    ROOMS_LIST,
    START_RACE,
)
from .lobby import collect_room_summaries
from .room import Room
from .schemas import (
    ChatMessageRequest,
    CreateRoomRequest,
    JoinRoomRequest,
    Player,
    PlayerCheckpointRequest,
    PlayerMovedRequest,
    PlayerReadyRequest,
    inbound_adapter,
)
from .state import ServerState

logger = logging.getLogger(__name__)


class RoomNotFoundError(Exception):
    """A request named a room code that is not live."""

    def __init__(self, room_id: str):
        super().__init__(room_id)
        self.room_id = room_id


# ---------------------------------------------------------------------------
# Room access
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _locked_room(state: ServerState, client: ClientConnection) -> AsyncIterator[Optional[Room]]:
    """Yield the caller's room under its lock, or ``None`` if it is gone."""
    room = state.rooms.get(client.room_id)
    if room is None:
        yield None
        return
    async with room.lock:
        live = state.rooms.get(room.room_id) is room and client.client_id in room.players
        yield room if live else None


async def _end_race(room: Room) -> None:
    room.end_race()
    logger.info("Room %s: race ended", room.room_id)
    await room.broadcast({"action": RACE_ENDED, "finishTimes": room.finish_entries()})


async def _remove_from_room(state: ServerState, client: ClientConnection, explicit: bool) -> None:
    """Shared path for ``leave_room`` and disconnects."""
    async with _locked_room(state, client) as room:
        client.room_id = None
        if room is None:
            return
        cid = client.client_id
        room.remove_player(cid)

        if not room.players:
            state.rooms.delete(room.room_id)
            return

        if explicit:
            payload: Dict[str, Any] = {
                "action": PLAYER_LEAVE,
                "playerId": cid,
                "players": room.roster(),
                "hostId": room.host_id,
            }
        else:
            payload = {"action": PLAYER_LEFT, "playerId": cid, "hostId": room.host_id}
        await room.broadcast(payload)

        # The departed player may have been the last one still racing.
        if room.is_racing and room.everyone_finished():
            await _end_race(room)


def _player_from_request(client: ClientConnection, req: Any, is_ready: bool) -> Player:
    return Player(
        id=client.client_id,
        name=req.player_name,
        is_ready=is_ready,
        socket_effect_name=req.socket_effect_name,
        trail_effect_name=req.trail_effect_name,
        sprite_name=req.sprite_name,
    )


# ---------------------------------------------------------------------------
# Connection lifecycle
# ---------------------------------------------------------------------------


async def handle_connect(state: ServerState, websocket: WebSocket) -> ClientConnection:
    """Register *websocket* and tell it which id it was given."""
    client = state.connections.register(websocket)
    await state.connections.send(client, {"action": CONNECTED, "playerId": client.client_id})
    return client


async def handle_disconnect(state: ServerState, client: ClientConnection) -> None:
    try:
        await _remove_from_room(state, client, explicit=False)
    finally:
        state.connections.unregister(client.client_id)


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------


async def handle_get_rooms(state: ServerState, client: ClientConnection, _req: Any) -> None:
    await state.connections.send(
        client, {"action": ROOMS_LIST, "rooms": collect_room_summaries(state.rooms)}
    )
    logger.debug("Sent list of rooms to client %s", client.client_id)


async def handle_create_room(state: ServerState, client: ClientConnection, req: CreateRoomRequest) -> None:
    await _remove_from_room(state, client, explicit=True)

    player = _player_from_request(client, req, is_ready=req.is_ready)
    room = state.rooms.create(player)
    client.room_id = room.room_id

    async with room.lock:
        await room.send(
            client.client_id,
            {
                "action": ROOM_CREATED,
                "playerName": req.player_name,
                "roomId": room.room_id,
                "spriteName": req.sprite_name,
                "trailEffectName": req.trail_effect_name,
                "socketEffectName": req.socket_effect_name,
                "players": room.roster(),
                "playerId": client.client_id,
                "isHost": True,
            },
        )


async def handle_join_room(state: ServerState, client: ClientConnection, req: JoinRoomRequest) -> None:
    room = state.rooms.get(req.room_id)
    if room is None:
        raise RoomNotFoundError(req.room_id)

    cid = client.client_id
    if client.room_id != room.room_id:
        await _remove_from_room(state, client, explicit=True)

    async with room.lock:
        if state.rooms.get(room.room_id) is not room:
            raise RoomNotFoundError(req.room_id)

        rejoin = cid in room.players
        if not rejoin:
            # Racing rooms accept joiners; they simply have to finish too.
            room.add_player(_player_from_request(client, req, is_ready=False))
        client.room_id = room.room_id
        logger.info("Client %s joined room %s", cid, room.room_id)

        if not rejoin:
            await room.broadcast(
                {
                    "action": PLAYER_JOINED,
                    "playerName": req.player_name,
                    "players": room.roster(),
                    "playerId": cid,
                },
                exclude_id=cid,
            )
        await room.send(
            cid,
            {
                "action": ROOM_JOINED,
                "roomId": room.room_id,
                "playerId": cid,
                "isHost": False,
                "players": room.roster(),
            },
        )


async def handle_leave_room(state: ServerState, client: ClientConnection, _req: Any) -> None:
    await _remove_from_room(state, client, explicit=True)


async def handle_chat_message(state: ServerState, client: ClientConnection, req: ChatMessageRequest) -> None:
    async with _locked_room(state, client) as room:
        if room is None:
            return
        player = room.players[client.client_id]
        await room.broadcast(
            {
                "action": CHAT_MESSAGE,
                "playerId": client.client_id,
                "senderName": player.name,
                "chatMessage": req.chat_message,
            }
        )


async def handle_player_ready(state: ServerState, client: ClientConnection, req: PlayerReadyRequest) -> None:
    async with _locked_room(state, client) as room:
        if room is None:
            return
        room.players[client.client_id].is_ready = req.is_ready
        await room.broadcast({"action": PLAYER_READY, "players": room.roster()})


# ---------------------------------------------------------------------------
# Race flow
# ---------------------------------------------------------------------------


async def _start_after_delay(state: ServerState, room: Room) -> None:
    """Countdown task: commit the race unless the room went away meanwhile."""
    try:
        await asyncio.sleep(state.settings.start_delay_seconds)
        if state.rooms.get(room.room_id) is not room:
            logger.info("Room %s is gone, race start dropped", room.room_id)
            return
        async with room.lock:
            if state.rooms.get(room.room_id) is not room:
                return
            room.begin_race(state.clock())
            room.start_task = None
            logger.info("Room %s: race started", room.room_id)
            await room.broadcast({"action": GAME_STARTED, "players": room.roster()})
    except asyncio.CancelledError:
        logger.debug("Room %s: race start cancelled", room.room_id)
        raise
    except Exception:
        logger.exception("Room %s: race start failed", room.room_id)


async def handle_start_race(state: ServerState, client: ClientConnection, _req: Any) -> None:
    async with _locked_room(state, client) as room:
        if room is None:
            return
        if room.host_id != client.client_id or not room.all_ready() or room.phase != PHASE_OPEN:
            logger.debug("Room %s: start_race from %s ignored", room.room_id, client.client_id)
            return

        await room.broadcast({"action": GAME_STARTING, "players": room.roster()})
        room.start_task = asyncio.create_task(
            _start_after_delay(state, room), name=f"race-start-{room.room_id}"
        )


async def handle_player_moved(state: ServerState, client: ClientConnection, req: PlayerMovedRequest) -> None:
    async with _locked_room(state, client) as room:
        if room is None:
            return
        player = room.players[client.client_id]
        player.position = req.position
        player.rotation = req.rotation
        await room.broadcast(
            {
                "action": PLAYER_MOVED,
                "playerId": client.client_id,
                "position": req.position,
                "rotation": req.rotation,
            },
            exclude_id=client.client_id,
        )


async def handle_player_checkpoint(
    state: ServerState, client: ClientConnection, req: PlayerCheckpointRequest
) -> None:
    async with _locked_room(state, client) as room:
        if room is None:
            return
        payload = {**req.relay_fields(), "action": PLAYER_CHECKPOINT, "playerId": client.client_id}
        await room.broadcast(payload, exclude_id=client.client_id)


async def handle_get_race_time(state: ServerState, client: ClientConnection, _req: Any) -> None:
    async with _locked_room(state, client) as room:
        if room is None or not room.is_racing:
            return
        await room.send(
            client.client_id,
            {
                "action": RACE_TIME,
                "currentTime": room.elapsed(state.clock()),
                "finishTimes": [[pid, t] for pid, t in room.finish_times.items()],
            },
        )


async def handle_player_finished(state: ServerState, client: ClientConnection, _req: Any) -> None:
    async with _locked_room(state, client) as room:
        if room is None or not room.is_racing:
            return
        race_time = room.record_finish(client.client_id, state.clock())
        if race_time is None:
            logger.debug("Room %s: duplicate finish from %s ignored", room.room_id, client.client_id)
            return

        await room.broadcast(
            {
                "action": PLAYER_FINISHED,
                "playerId": client.client_id,
                "raceTime": race_time,
                "finishTimes": room.finish_entries(),
            }
        )
        if room.everyone_finished():
            await _end_race(room)


# ---------------------------------------------------------------------------
# Primary dispatcher used by websocket endpoint
# ---------------------------------------------------------------------------

Handler = Callable[[ServerState, ClientConnection, Any], Awaitable[None]]

_HANDLERS: Dict[str, Handler] = {
    CHAT_MESSAGE: handle_chat_message,
    GET_ROOMS: handle_get_rooms,
    CREATE_ROOM: handle_create_room,
    JOIN_ROOM: handle_join_room,
    PLAYER_MOVED: handle_player_moved,
    PLAYER_READY: handle_player_ready,
    START_RACE: handle_start_race,
    PLAYER_CHECKPOINT: handle_player_checkpoint,
    LEAVE_ROOM: handle_leave_room,
    GET_RACE_TIME: handle_get_race_time,
    PLAYER_FINISHED: handle_player_finished,
}


async def _reply_error(state: ServerState, client: ClientConnection, error: str) -> None:
    await state.connections.send(client, {"action": ERROR, "error": error})


async def handle_ws_message(state: ServerState, client: ClientConnection, raw: Any) -> None:
    """Decode one frame and route it. Never raises for a bad message."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError, RecursionError):
        logger.warning("Undecodable message from %s", client.client_id)
        await _reply_error(state, client, ERR_INVALID_MESSAGE)
        return

    action = data.get("action") if isinstance(data, dict) else None
    if not isinstance(action, str):
        logger.warning("Message without action from %s", client.client_id)
        await _reply_error(state, client, ERR_INVALID_MESSAGE)
        return
    if action not in INBOUND_ACTIONS:
        logger.warning("Unknown action: %s", action)
        await _reply_error(state, client, ERR_UNKNOWN_ACTION)
        return

    try:
        request = inbound_adapter.validate_python(data)
    except ValidationError as exc:
        logger.warning("Invalid %s from %s: %s", action, client.client_id, exc.error_count())
        await _reply_error(state, client, ERR_INVALID_MESSAGE)
        return

    logger.debug("Received %s from %s", action, client.client_id)
    try:
        await _HANDLERS[action](state, client, request)
    except RoomNotFoundError as exc:
        logger.info("Client %s asked for missing room %s", client.client_id, exc.room_id)
        await _reply_error(state, client, ERR_ROOM_NOT_FOUND)
    except Exception:
        logger.exception("Error handling %s from %s", action, client.client_id)
        await _reply_error(state, client, ERR_INTERNAL)


__all__ = [
    "RoomNotFoundError",
    "handle_connect",
    "handle_disconnect",
    "handle_ws_message",
    "handle_get_rooms",
    "handle_create_room",
    "handle_join_room",
    "handle_leave_room",
    "handle_chat_message",
    "handle_player_ready",
    "handle_start_race",
    "handle_player_moved",
    "handle_player_checkpoint",
    "handle_get_race_time",
    "handle_player_finished",
]
