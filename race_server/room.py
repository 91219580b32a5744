from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from .constants import PHASE_OPEN, PHASE_RACING, PHASE_STARTING
from .schemas import FinishEntry, Player, RoomSummary, roster

if TYPE_CHECKING:
    from .connections import ConnectionRegistry

logger = logging.getLogger(__name__)


class Room:
    """Runtime state for one race lobby.

    Every mutation happens while holding :attr:`lock`; the lock is also held
    across the broadcast that follows so members observe events in the
    order the state changed.
    """

    def __init__(self, room_id: str, host_player: Player, connections: "ConnectionRegistry"):
        self.room_id = room_id
        self.host_id = host_player.id
        self.players: Dict[str, Player] = {host_player.id: host_player}
        self.is_racing: bool = False
        self.race_start_time: Optional[float] = None
        # client id -> elapsed ms; insertion order is finish order
        self.finish_times: Dict[str, int] = {}
        self.lock = asyncio.Lock()
        # Pending ``game_starting`` -> ``game_started`` countdown
        self.start_task: Optional[asyncio.Task] = None
        self._connections = connections

    # ---------------------------------------------------------------------
    # State helpers
    # ---------------------------------------------------------------------

    @property
    def phase(self) -> str:
        if self.is_racing:
            return PHASE_RACING
        if self.start_task is not None and not self.start_task.done():
            return PHASE_STARTING
        return PHASE_OPEN

    def summary(self) -> RoomSummary:
        return RoomSummary(
            id=self.room_id,
            host=self.host_id,
            player_count=len(self.players),
            is_racing=self.is_racing,
        )

    def roster(self) -> List[Dict[str, Any]]:
        return roster(list(self.players.values()))

    def finish_entries(self) -> List[Dict[str, Any]]:
        """Finish times as ``[{playerId, time}]``, fastest first."""
        ordered = sorted(self.finish_times.items(), key=lambda item: item[1])
        return [
            FinishEntry(player_id=pid, time=t).model_dump(by_alias=True)
            for pid, t in ordered
        ]

    # -------------------- Player management -------------------- #

    def add_player(self, player: Player) -> None:
        self.players[player.id] = player

    def remove_player(self, client_id: str) -> Optional[Player]:
        """Drop *client_id*; hand host to the oldest remaining member if needed."""
        player = self.players.pop(client_id, None)
        if client_id == self.host_id and self.players:
            self.host_id = next(iter(self.players))
            logger.info("Room %s: host passed to %s", self.room_id, self.host_id)
        return player

    def all_ready(self) -> bool:
        return bool(self.players) and all(p.is_ready for p in self.players.values())

    def everyone_finished(self) -> bool:
        return bool(self.players) and all(pid in self.finish_times for pid in self.players)

    # -------------------- Race timing -------------------- #

    def begin_race(self, now: float) -> None:
        self.is_racing = True
        self.race_start_time = now
        self.finish_times = {}

    def elapsed(self, now: float) -> int:
        if self.race_start_time is None:
            return 0
        return max(0, int(now - self.race_start_time))

    def record_finish(self, client_id: str, now: float) -> Optional[int]:
        """Store the first finish of *client_id*; ``None`` if it already finished."""
        if client_id in self.finish_times:
            return None
        race_time = self.elapsed(now)
        self.finish_times[client_id] = race_time
        return race_time

    def end_race(self) -> None:
        self.is_racing = False

    def cancel_countdown(self) -> None:
        if self.start_task is not None and not self.start_task.done():
            self.start_task.cancel()
        self.start_task = None

    # -------------------- Broadcasting helpers -------------------- #

    async def send(self, client_id: str, payload: Dict[str, Any]) -> None:
        await self._connections.send(client_id, payload)

    async def broadcast(self, payload: Dict[str, Any], exclude_id: Optional[str] = None) -> None:
        """Send *payload* to every member except *exclude_id*.

        A failing recipient is logged by the registry and skipped.
        """
        for pid in list(self.players):
            if pid == exclude_id:
                continue
            await self._connections.send(pid, payload)


__all__ = ["Room"]
