"""Traducción de errores de almacenamiento a HTTP 500."""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from typing import Iterator

from fastapi import HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

logger = logging.getLogger(__name__)


@contextmanager
def storage_errors(db: Session, route: str) -> Iterator[None]:
    """Rollback + 500 "DB error: <Tipo>" ante fallos de BD.

    Los errores de dominio (ToolLifeError) no son SQLAlchemyError y pasan
    intactos a sus handlers.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception("DB error in %s err=%s", route, type(e).__name__)
        db.rollback()
        detail = f"DB error: {type(e).__name__}"
        if os.getenv("TOOLLIFE_DEBUG_ERRORS", "").strip() == "1":
            detail = f"{detail}: {e}"
        raise HTTPException(status_code=500, detail=detail)
