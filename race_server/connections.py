"""Connection registry: client id -> live websocket.

The registry is the only owner of websocket handles. Rooms refer to clients
by id and go through :meth:`ConnectionRegistry.send` for every outbound
message, which is where send failures are absorbed.
"""
from __future__ import annotations

import logging
import uuid
from typing import Any, Dict, Iterator, Optional, Union

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ClientConnection:
    """A connected client: its id, socket and the room it currently sits in."""

    def __init__(self, client_id: str, websocket: WebSocket):
        self.client_id = client_id
        self.websocket = websocket
        self.room_id: Optional[str] = None

    def __repr__(self) -> str:
        return f"ClientConnection(client_id={self.client_id!r}, room_id={self.room_id!r})"


class ConnectionRegistry:
    def __init__(self) -> None:
        self._clients: Dict[str, ClientConnection] = {}

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._clients

    def __iter__(self) -> Iterator[ClientConnection]:
        return iter(list(self._clients.values()))

    def register(self, websocket: WebSocket) -> ClientConnection:
        """Store *websocket* under a fresh, unused client id."""
        client_id = str(uuid.uuid4())
        while client_id in self._clients:
            client_id = str(uuid.uuid4())
        client = ClientConnection(client_id, websocket)
        self._clients[client_id] = client
        logger.info("Client connected: %s", client_id)
        return client

    def unregister(self, client_id: str) -> None:
        if self._clients.pop(client_id, None) is not None:
            logger.info("Client disconnected: %s", client_id)

    def lookup(self, client_id: str) -> Optional[ClientConnection]:
        return self._clients.get(client_id)

    async def send(self, target: Union[str, ClientConnection], message: Dict[str, Any]) -> bool:
        """Send *message* as JSON. Returns ``False`` instead of raising on failure."""
        client = self._clients.get(target) if isinstance(target, str) else target
        if client is None:
            logger.debug("Dropping %s for unknown client %s", message.get("action"), target)
            return False
        try:
            await client.websocket.send_json(message)
        except Exception as exc:
            # Connection already closing; the disconnect path cleans up.
            logger.warning(
                "Error sending %s to %s: %s", message.get("action"), client.client_id, exc
            )
            return False
        return True


__all__ = ["ClientConnection", "ConnectionRegistry"]
