from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI

from common.config import get_settings
from common.db import ensure_schema, get_engine, get_session_factory
from . import __version__
from .endpoints import health_router, master_tools_router, tool_life_router, tool_stock_router
from .errors import register_exception_handlers
from .notifications import NotificationDispatcher, get_gateway

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Arranque: esquema, gateway de notificaciones y dispatcher."""
    settings = get_settings()
    logger.info("[APP] Starting Tool Life Service v%s env=%s", __version__, settings.environment)

    ensure_schema(get_engine(settings))
    gateway = get_gateway().init(settings)
    app.state.dispatcher = NotificationDispatcher(
        gateway,
        get_session_factory(),
        max_workers=settings.notify_workers,
    )
    yield

    logger.info("[APP] Shutting down - waiting for pending notifications")
    app.state.dispatcher.shutdown(wait=True)


def create_app() -> FastAPI:
    app = FastAPI(title="Tool Life Service", version=__version__, lifespan=lifespan)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(tool_life_router)
    app.include_router(master_tools_router)
    app.include_router(tool_stock_router)
    return app


app = create_app()
