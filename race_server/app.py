from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .logging_config import setup_logging
from .routers import rooms as rooms_router
from .routers import websockets as ws_router
from .state import Clock, ServerState

# -----------------------------
# FastAPI app factory
# -----------------------------


def create_app(
    settings: Optional[Settings] = None,
    clock: Optional[Clock] = None,
    configure_logging: bool = True,
) -> FastAPI:
    settings = settings or get_settings()
    if configure_logging:
        setup_logging(settings)

    server = ServerState(settings, clock=clock)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await server.shutdown()

    app = FastAPI(title="Race Lobby Server", lifespan=lifespan)
    app.state.server = server

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)
    return app


app = create_app()

__all__ = ["app", "create_app"]
