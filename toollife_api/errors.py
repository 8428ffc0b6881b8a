"""Taxonomía de errores del servicio y su traducción a HTTP."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ToolLifeError(Exception):
    """Base de los errores de dominio. ``status_code`` es el equivalente HTTP."""

    status_code = 500

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.message = message
        self.errors = errors or []
        super().__init__(message)


class ValidationError(ToolLifeError):
    """Entrada mal formada o incompleta. Siempre corregible por el cliente."""

    status_code = 400

    @classmethod
    def for_field(cls, field: str, message: str) -> "ValidationError":
        return cls(f"{field}: {message}", errors=[{"field": field, "message": message}])


class NotFoundError(ToolLifeError):
    status_code = 404


class ConflictError(ToolLifeError):
    status_code = 409


class InsufficientStockError(ToolLifeError):
    status_code = 400

    def __init__(self, current_stock: int, requested: int):
        self.current_stock = current_stock
        self.requested = requested
        super().__init__(
            f"Insufficient stock. Current: {current_stock}, Requested: {requested}"
        )


class NotificationDispatchError(ToolLifeError):
    """Fallo de envío en todos los canales.

    Nunca se propaga al registro de uso; solo se expone en el reintento manual.
    """

    status_code = 502


def _error_body(message: str, errors: List[Dict[str, Any]]) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": False, "message": message}
    if errors:
        body["errors"] = errors
    return body


async def _handle_tool_life_error(request: Request, exc: ToolLifeError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("[API] %s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message, exc.errors))


async def _handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for err in exc.errors():
        # loc = ("body", "holes_count") -> "holes_count"
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "invalid")})
    return JSONResponse(status_code=400, content=_error_body("Validation failed", errors))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ToolLifeError, _handle_tool_life_error)
    app.add_exception_handler(RequestValidationError, _handle_request_validation)
