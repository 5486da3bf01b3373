from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .actions import RoomActions
from .config import Config
from .engine import Policy, RoomSessionEngine, allow_all
from .logging_config import get_logger, setup_logging
from .notifier import Broadcaster, ConnectionHub
from .reaper import RoomReaper
from .routers import rooms as rooms_router
from .routers import websockets as ws_router
from .store import RoomStore

logger = get_logger(__name__)


def create_app(
    config_class=Config,
    clock: Callable[[], float] = time.time,
    broadcaster: Optional[Broadcaster] = None,
    policy: Policy = allow_all,
) -> FastAPI:
    """Build the app and the room services it owns.

    The store, engine and reaper live exactly as long as the returned app.
    """
    setup_logging(log_level=config_class.LOG_LEVEL, log_file=config_class.LOG_FILE)

    store = RoomStore(ttl_sec=config_class.ROOM_TTL_SEC, clock=clock)
    engine = RoomSessionEngine(
        store,
        voting_duration_sec=config_class.VOTING_DURATION_SEC,
        duplicate_join_window_sec=config_class.DUPLICATE_JOIN_WINDOW_SEC,
        policy=policy,
    )
    broadcaster = broadcaster if broadcaster is not None else ConnectionHub()
    reaper = RoomReaper(store, interval_sec=config_class.REAP_INTERVAL_SEC)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if config_class.ENABLE_REAPER:
            reaper.start()
        yield
        await reaper.stop()

    app = FastAPI(title="Planning Poker", lifespan=lifespan)
    app.state.config = config_class
    app.state.store = store
    app.state.engine = engine
    app.state.broadcaster = broadcaster
    app.state.reaper = reaper
    app.state.actions = RoomActions(store, engine, broadcaster)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config_class.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(rooms_router.router)
    app.include_router(ws_router.router)

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    @app.get("/health")
    async def health():
        return {"status": "ok", "rooms": len(store)}

    logger.info("Planning Poker application initialized")
    return app


__all__ = ["create_app"]
