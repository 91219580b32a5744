from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..race_logic import handle_connect, handle_disconnect, handle_ws_message
from ..state import ServerState

logger = logging.getLogger(__name__)

router = APIRouter(prefix="", tags=["ws"])


@router.websocket("/")
@router.websocket("/ws")
async def websocket_endpoint(ws: WebSocket):
    state: ServerState = ws.app.state.server
    await ws.accept()
    client = await handle_connect(state, ws)
    try:
        while True:
            event = await ws.receive()
            if event["type"] == "websocket.disconnect":
                break
            raw = event.get("text")
            if raw is None:
                raw = event.get("bytes") or b""
            await handle_ws_message(state, client, raw)
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("WebSocket error for client %s", client.client_id)
    finally:
        await handle_disconnect(state, client)
