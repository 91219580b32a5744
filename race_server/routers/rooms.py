from __future__ import annotations

from typing import List

from fastapi import APIRouter, Request

from ..schemas import RoomSummary
from ..state import ServerState

router = APIRouter(prefix="", tags=["rooms"])


def _state(request: Request) -> ServerState:
    return request.app.state.server


# ---------------------------------------------------------------------------
# Lobby listing
# ---------------------------------------------------------------------------


@router.get("/rooms", response_model=List[RoomSummary])
async def list_rooms(request: Request):
    """Same rows a websocket client gets from ``get_rooms``."""
    return _state(request).rooms.list()


@router.get("/health")
async def health(request: Request):
    state = _state(request)
    return {"status": "ok", "rooms": len(state.rooms), "connections": len(state.connections)}
