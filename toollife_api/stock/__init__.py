"""Inventario de herramientas (ToolStock)."""

from .status import StockStatus, derive_stock_status, needs_reordering

__all__ = ["StockStatus", "derive_stock_status", "needs_reordering"]
