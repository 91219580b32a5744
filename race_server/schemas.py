"""Pydantic data schemas used across the race server.

Inbound envelopes are a closed set of models tagged by ``action``; the
:data:`inbound_adapter` validates a decoded JSON object into exactly one of
them. Wire names are camelCase, Python attributes snake_case.
"""
from __future__ import annotations

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

# -----------------------------
# Runtime
# -----------------------------


class Player(BaseModel):
    """Membership record for one client inside a room."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    is_ready: bool = Field(default=False, alias="isReady")
    socket_effect_name: Optional[str] = Field(default=None, alias="socketEffectName")
    trail_effect_name: Optional[str] = Field(default=None, alias="trailEffectName")
    sprite_name: Optional[str] = Field(default=None, alias="spriteName")

    # Last reported transform; opaque to the server
    position: Any = None
    rotation: Any = None

    def roster_entry(self) -> Dict[str, Any]:
        """Shape used in every ``players`` roster sent to clients."""
        return self.model_dump(by_alias=True, exclude={"position", "rotation"})


class RoomSummary(BaseModel):
    """One row of the lobby listing."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    host: str
    player_count: int = Field(alias="playerCount")
    is_racing: bool = Field(alias="isRacing")


class FinishEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    player_id: str = Field(alias="playerId")
    time: int


# -----------------------------
# Inbound envelopes
# -----------------------------


class _Inbound(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class _Appearance(_Inbound):
    player_name: str = Field(alias="playerName")
    socket_effect_name: Optional[str] = Field(alias="socketEffectName")
    trail_effect_name: Optional[str] = Field(alias="trailEffectName")
    sprite_name: Optional[str] = Field(alias="spriteName")


class ChatMessageRequest(_Inbound):
    action: Literal["chat_message"]
    chat_message: str = Field(alias="chatMessage")


class GetRoomsRequest(_Inbound):
    action: Literal["get_rooms"]


class CreateRoomRequest(_Appearance):
    action: Literal["create_room"]
    is_ready: bool = Field(alias="isReady")


class JoinRoomRequest(_Appearance):
    action: Literal["join_room"]
    room_id: str = Field(alias="roomId")

    @field_validator("room_id")
    @classmethod
    def _normalise_code(cls, value: str) -> str:
        return value.strip().upper()


class PlayerMovedRequest(_Inbound):
    action: Literal["player_moved"]
    position: Any
    rotation: Any


class PlayerReadyRequest(_Inbound):
    action: Literal["player_ready"]
    is_ready: bool = Field(alias="isReady")


class StartRaceRequest(_Inbound):
    action: Literal["start_race"]


class PlayerCheckpointRequest(_Inbound):
    """Checkpoint payloads are relayed untouched, so unknown fields are kept."""

    model_config = ConfigDict(extra="allow")

    action: Literal["player_checkpoint"]

    def relay_fields(self) -> Dict[str, Any]:
        return dict(self.model_extra or {})


class LeaveRoomRequest(_Inbound):
    action: Literal["leave_room"]


class GetRaceTimeRequest(_Inbound):
    action: Literal["get_race_time"]


class PlayerFinishedRequest(_Inbound):
    action: Literal["player_finished"]


InboundMessage = Annotated[
    Union[
        ChatMessageRequest,
        GetRoomsRequest,
        CreateRoomRequest,
        JoinRoomRequest,
        PlayerMovedRequest,
        PlayerReadyRequest,
        StartRaceRequest,
        PlayerCheckpointRequest,
        LeaveRoomRequest,
        GetRaceTimeRequest,
        PlayerFinishedRequest,
    ],
    Field(discriminator="action"),
]

inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)


def roster(players: List[Player]) -> List[Dict[str, Any]]:
    return [p.roster_entry() for p in players]


__all__ = [
    # runtime
    "Player",
    "RoomSummary",
    "FinishEntry",
    "roster",
    # inbound
    "ChatMessageRequest",
    "GetRoomsRequest",
    "CreateRoomRequest",
    "JoinRoomRequest",
    "PlayerMovedRequest",
    "PlayerReadyRequest",
    "StartRaceRequest",
    "PlayerCheckpointRequest",
    "LeaveRoomRequest",
    "GetRaceTimeRequest",
    "PlayerFinishedRequest",
    "InboundMessage",
    "inbound_adapter",
]
