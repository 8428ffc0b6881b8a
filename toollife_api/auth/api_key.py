"""Autenticación por API Key compartida.

SECURITY: En producción, TOOLLIFE_API_KEY debe estar configurado.
"""

from __future__ import annotations

import hmac
import logging

from fastapi import Header, HTTPException

from common.config import get_settings

logger = logging.getLogger(__name__)


def require_api_key(
    x_api_key: str | None = Header(default=None, alias="X-API-Key")
) -> None:
    """Valida la API key de los endpoints /api.

    En modo desarrollo, sin key configurada, permite acceso con warning.
    """
    settings = get_settings()
    expected = settings.api_key

    if not expected:
        if settings.is_production:
            logger.error("CRITICAL: TOOLLIFE_API_KEY not configured in production!")
            raise HTTPException(
                status_code=500,
                detail="Server misconfiguration: API key not set"
            )
        logger.warning(
            "[SECURITY WARNING] TOOLLIFE_API_KEY not set - "
            "allowing unauthenticated access (DEV ONLY)"
        )
        return

    if not x_api_key:
        raise HTTPException(status_code=401, detail="API key required")

    if not hmac.compare_digest(x_api_key, expected):
        logger.warning("Invalid API key attempt from request")
        raise HTTPException(status_code=401, detail="Invalid API key")
