"""Proveedores de dependencias FastAPI (sobrescribibles en tests)."""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.config import get_settings
from common.db import get_db
from .notifications.dispatcher import NotificationDispatcher
from .resilience import RetryConfig
from .stock.service import ToolStockService
from .tool_life.service import ToolLifeService


def get_dispatcher(request: Request) -> Optional[NotificationDispatcher]:
    # Creado en el startup de la app; None si el arranque no lo configuró.
    return getattr(request.app.state, "dispatcher", None)


def get_tool_life_service(
    db: Session = Depends(get_db),
    dispatcher: Optional[NotificationDispatcher] = Depends(get_dispatcher),
) -> ToolLifeService:
    settings = get_settings()
    retry_config = RetryConfig(
        max_attempts=max(1, settings.ledger_append_attempts),
        retryable_exceptions=(IntegrityError,),
    )
    return ToolLifeService(db, dispatcher=dispatcher, retry_config=retry_config)


def get_stock_service(db: Session = Depends(get_db)) -> ToolStockService:
    return ToolStockService(db)
