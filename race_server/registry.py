"""Room registry: room code -> :class:`~race_server.room.Room`."""
from __future__ import annotations

import logging
import secrets
from typing import Dict, Iterator, List, Optional

from .connections import ConnectionRegistry
from .constants import ROOM_CODE_ALPHABET
from .room import Room
from .schemas import Player, RoomSummary

logger = logging.getLogger(__name__)


class RoomRegistry:
    """Owns every live room.

    All methods are synchronous; on a single event loop a create or delete
    can therefore never interleave with another registry mutation.
    """

    def __init__(self, connections: ConnectionRegistry, code_length: int = 6):
        self._rooms: Dict[str, Room] = {}
        self._connections = connections
        self.code_length = code_length

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __iter__(self) -> Iterator[Room]:
        return iter(list(self._rooms.values()))

    def _generate_code(self) -> str:
        while True:
            code = "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(self.code_length))
            if code not in self._rooms:
                return code
            logger.debug("Room code collision on %s, regenerating", code)

    def create(self, host: Player) -> Room:
        room = Room(self._generate_code(), host, self._connections)
        self._rooms[room.room_id] = room
        logger.info("Creating room: %s for client: %s", room.room_id, host.id)
        return room

    def get(self, room_id: Optional[str]) -> Optional[Room]:
        if room_id is None:
            return None
        return self._rooms.get(room_id)

    def delete(self, room_id: str) -> None:
        room = self._rooms.pop(room_id, None)
        if room is None:
            return
        room.cancel_countdown()
        logger.info("Room %s has been deleted", room_id)

    def list(self) -> List[RoomSummary]:
        return [room.summary() for room in self._rooms.values()]


__all__ = ["RoomRegistry"]
