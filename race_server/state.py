"""Process-scoped runtime state.

One :class:`ServerState` is created per application instance and hung off
``app.state.server``; routers and handlers receive it explicitly instead of
importing module-level dictionaries.
"""
from __future__ import annotations

import time
from typing import Callable, Optional

from .config import Settings
from .connections import ConnectionRegistry
from .registry import RoomRegistry

Clock = Callable[[], float]


def monotonic_ms() -> float:
    """Milliseconds from a clock that never goes backwards."""
    return time.monotonic() * 1000.0


class ServerState:
    def __init__(self, settings: Settings, clock: Optional[Clock] = None):
        self.settings = settings
        self.clock: Clock = clock or monotonic_ms
        self.connections = ConnectionRegistry()
        self.rooms = RoomRegistry(self.connections, code_length=settings.room_code_length)

    async def shutdown(self) -> None:
        """Stop pending countdowns so no task outlives the event loop."""
        for room in self.rooms:
            room.cancel_countdown()


__all__ = ["Clock", "monotonic_ms", "ServerState"]
