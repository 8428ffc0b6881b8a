"""Health and readiness endpoints."""

import logging

from fastapi import APIRouter, HTTPException, Request
from sqlalchemy import text

from common.db import get_engine

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health")
def health():
    """Liveness: ok mientras el proceso esté vivo."""
    return {"status": "ok"}


@router.get("/ready")
def ready(request: Request):
    """Readiness: conexión a BD y estado de los canales de notificación."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        # No exponer detalles del error al cliente
        logger.exception("[DB] Readiness check failed")
        raise HTTPException(status_code=503, detail="not ready")

    dispatcher = getattr(request.app.state, "dispatcher", None)
    gateway = dispatcher.gateway if dispatcher is not None else None
    return {
        "status": "ready",
        "notifications": {
            "initialized": bool(gateway and gateway.initialized),
            "email": bool(gateway and gateway.email_enabled),
            "push": bool(gateway and gateway.push_enabled),
        },
    }
