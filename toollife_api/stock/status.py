"""Estado de stock derivado de las cantidades."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class StockStatus(str, Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    CRITICAL = "critical"
    OUT_OF_STOCK = "out_of_stock"


LOW_STOCK_STATUSES = (
    StockStatus.LOW_STOCK.value,
    StockStatus.CRITICAL.value,
    StockStatus.OUT_OF_STOCK.value,
)


def derive_stock_status(current_stock: int, minimum_stock: int, reorder_level: int) -> StockStatus:
    # Orden de evaluación: agotado, crítico, bajo, normal.
    if current_stock == 0:
        return StockStatus.OUT_OF_STOCK
    if current_stock <= minimum_stock:
        return StockStatus.CRITICAL
    if current_stock <= reorder_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def needs_reordering(current_stock: int, reorder_level: int) -> bool:
    return current_stock <= reorder_level


@dataclass
class ToolStock:
    tool_name: str
    atc_pocket_no: str = ""
    tool_room_no: str = ""
    current_stock: int = 0
    minimum_stock: int = 5
    maximum_stock: int = 50
    reorder_level: int = 10
    reorder_quantity: int = 20
    unit: str = "pieces"
    location: str = "Tool Room"
    cost_per_unit: float = 0.0
    notes: str = ""
    status: StockStatus = StockStatus.IN_STOCK
    last_updated_by_name: Optional[str] = None
    last_restock_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def needs_reordering(self) -> bool:
        return needs_reordering(self.current_stock, self.reorder_level)

    def refresh_status(self) -> StockStatus:
        self.status = derive_stock_status(self.current_stock, self.minimum_stock, self.reorder_level)
        return self.status
