"""Módulo de endpoints HTTP.

Contiene los routers de la API de vida útil organizados por función.
"""

from .health import router as health_router
from .master_tools import router as master_tools_router
from .tool_life import router as tool_life_router
from .tool_stock import router as tool_stock_router

__all__ = [
    "health_router",
    "master_tools_router",
    "tool_life_router",
    "tool_stock_router",
]
