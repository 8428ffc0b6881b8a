"""Operaciones de inventario de herramientas.

El estado (in_stock/low_stock/critical/out_of_stock) se recalcula en
cada escritura que toca cantidades; nunca se acepta desde el cliente.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError, InsufficientStockError, NotFoundError, ToolLifeError, ValidationError
from . import repository as stock_repo
from .status import ToolStock

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
LOW_STOCK_LIMIT = 50

_QUANTITY_FIELDS = ("current_stock", "minimum_stock", "maximum_stock", "reorder_level", "reorder_quantity")
_TEXT_FIELDS = ("tool_name", "atc_pocket_no", "tool_room_no", "unit", "location", "notes")


@dataclass
class StockPage:
    items: List[ToolStock]
    page: int
    limit: int
    total: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class BatchResult:
    success: int = 0
    failed: int = 0
    errors: List[Dict[str, Any]] = field(default_factory=list)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _non_negative_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError.for_field(name, "must be an integer")
    if value < 0:
        raise ValidationError.for_field(name, "must be >= 0")
    return value


def _positive_quantity(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationError.for_field("quantity", "Quantity must be greater than 0")
    return value


class ToolStockService:
    def __init__(self, db: Session) -> None:
        self._db = db

    def create(self, data: Dict[str, Any], updated_by: Optional[str] = None) -> ToolStock:
        stock = self._build(data, updated_by)
        if stock_repo.find_by_name_and_pocket(self._db, stock.tool_name, stock.atc_pocket_no) is not None:
            raise ConflictError("Tool stock already exists for this tool")

        try:
            stock_repo.insert_stock(self._db, stock, _now())
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            raise ConflictError("Tool stock already exists for this tool")

        logger.info("[STOCK] Created id=%s tool=%s stock=%s status=%s",
                    stock.id, stock.tool_name, stock.current_stock, stock.status.value)
        return stock

    def _build(self, data: Dict[str, Any], updated_by: Optional[str]) -> ToolStock:
        name = (data.get("tool_name") or "").strip()
        if not name:
            raise ValidationError.for_field("tool_name", "Tool name is required")
        if data.get("current_stock") is None:
            raise ValidationError.for_field("current_stock", "Current stock is required")

        stock = ToolStock(tool_name=name, last_updated_by_name=updated_by, last_restock_date=_now())
        for key in _QUANTITY_FIELDS:
            if data.get(key) is not None:
                setattr(stock, key, _non_negative_int(key, data[key]))
        for key in _TEXT_FIELDS[1:]:
            if data.get(key) is not None:
                setattr(stock, key, str(data[key]).strip())
        if data.get("cost_per_unit") is not None:
            if data["cost_per_unit"] < 0:
                raise ValidationError.for_field("cost_per_unit", "must be >= 0")
            stock.cost_per_unit = float(data["cost_per_unit"])
        stock.refresh_status()
        return stock

    def get(self, stock_id: int) -> ToolStock:
        stock = stock_repo.get_stock(self._db, stock_id)
        if stock is None:
            raise NotFoundError("Tool stock not found")
        return stock

    def list(self, page: int = 1, limit: int = DEFAULT_PAGE_SIZE, search: Optional[str] = None) -> StockPage:
        page = max(1, int(page or 1))
        limit = min(MAX_PAGE_SIZE, max(1, int(limit or DEFAULT_PAGE_SIZE)))
        items, total = stock_repo.list_stocks(self._db, page, limit, search)
        return StockPage(items=items, page=page, limit=limit, total=total)

    def update(self, stock_id: int, changes: Dict[str, Any], updated_by: Optional[str] = None) -> ToolStock:
        stock = self.get(stock_id)
        previous_stock = stock.current_stock

        for key in _TEXT_FIELDS:
            if changes.get(key) is not None:
                setattr(stock, key, str(changes[key]).strip())
        if not stock.tool_name:
            raise ValidationError.for_field("tool_name", "Tool name is required")
        for key in _QUANTITY_FIELDS:
            if changes.get(key) is not None:
                setattr(stock, key, _non_negative_int(key, changes[key]))
        if changes.get("cost_per_unit") is not None:
            if changes["cost_per_unit"] < 0:
                raise ValidationError.for_field("cost_per_unit", "must be >= 0")
            stock.cost_per_unit = float(changes["cost_per_unit"])

        stock.refresh_status()
        stock.last_updated_by_name = updated_by
        now = _now()
        if stock.current_stock > previous_stock:
            stock.last_restock_date = now

        fields = {key: getattr(stock, key) for key in _TEXT_FIELDS + _QUANTITY_FIELDS}
        fields.update(
            cost_per_unit=stock.cost_per_unit,
            status=stock.status.value,
            last_updated_by_name=stock.last_updated_by_name,
            last_restock_date=stock.last_restock_date,
        )
        try:
            stock_repo.update_stock_fields(self._db, stock_id, fields, now)
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            raise ConflictError("Tool stock already exists for this tool")

        logger.info("[STOCK] Updated id=%s stock=%s status=%s", stock_id, stock.current_stock, stock.status.value)
        return self.get(stock_id)

    def delete(self, stock_id: int) -> ToolStock:
        stock = self.get(stock_id)
        stock_repo.delete_stock(self._db, stock_id)
        self._db.commit()
        logger.info("[STOCK] Deleted id=%s tool=%s", stock_id, stock.tool_name)
        return stock

    def add_stock(self, stock_id: int, quantity: Any, updated_by: Optional[str] = None) -> ToolStock:
        quantity = _positive_quantity(quantity)
        try:
            if not stock_repo.increment_stock(self._db, stock_id, quantity, updated_by, _now()):
                raise NotFoundError("Tool stock not found")
            stock = self._refresh_status(stock_id)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        logger.info("[STOCK] Added %s units id=%s stock=%s status=%s",
                    quantity, stock_id, stock.current_stock, stock.status.value)
        return stock

    def remove_stock(self, stock_id: int, quantity: Any, updated_by: Optional[str] = None) -> ToolStock:
        quantity = _positive_quantity(quantity)
        try:
            # UPDATE condicionado: nunca deja stock negativo, ni con escritores concurrentes.
            if not stock_repo.decrement_stock(self._db, stock_id, quantity, updated_by, _now()):
                current = self.get(stock_id)
                raise InsufficientStockError(current.current_stock, quantity)
            stock = self._refresh_status(stock_id)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        logger.info("[STOCK] Removed %s units id=%s stock=%s status=%s",
                    quantity, stock_id, stock.current_stock, stock.status.value)
        return stock

    def _refresh_status(self, stock_id: int) -> ToolStock:
        stock = self.get(stock_id)
        stock.refresh_status()
        stock_repo.update_stock_fields(self._db, stock_id, {"status": stock.status.value}, _now())
        return stock

    def batch_create(self, items: List[Dict[str, Any]], updated_by: Optional[str] = None) -> BatchResult:
        if not items:
            raise ValidationError.for_field("tools", "Tools array is required")

        result = BatchResult()
        for index, item in enumerate(items):
            try:
                self.create(item, updated_by)
                result.success += 1
            except ToolLifeError as exc:
                result.failed += 1
                result.errors.append({"index": index, "error": exc.message})

        logger.info("[STOCK] Batch import completed: %s success, %s failed", result.success, result.failed)
        return result

    def low_stock(self, limit: int = LOW_STOCK_LIMIT) -> List[ToolStock]:
        return stock_repo.list_low_stock(self._db, limit)

    def statistics(self) -> Dict[str, Any]:
        return stock_repo.get_statistics(self._db)
