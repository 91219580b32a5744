"""Utility helpers for the lobby room listing."""
from __future__ import annotations

from typing import Any, Dict, List

from .registry import RoomRegistry


def collect_room_summaries(rooms: RoomRegistry) -> List[Dict[str, Any]]:
    """Return *all* live rooms as ``{id, host, playerCount, isRacing}``."""
    return [s.model_dump(by_alias=True) for s in rooms.list()]


__all__ = ["collect_room_summaries"]
