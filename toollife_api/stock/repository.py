"""Repositorio de inventario (tool_stocks)."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import case, delete, func, insert, or_, select, update
from sqlalchemy.orm import Session

from common.schema import tool_stocks
from .status import LOW_STOCK_STATUSES, StockStatus, ToolStock


def _to_stock(row: Any) -> ToolStock:
    return ToolStock(
        id=int(row.id),
        tool_name=str(row.tool_name),
        atc_pocket_no=row.atc_pocket_no or "",
        tool_room_no=row.tool_room_no or "",
        current_stock=int(row.current_stock),
        minimum_stock=int(row.minimum_stock),
        maximum_stock=int(row.maximum_stock),
        reorder_level=int(row.reorder_level),
        reorder_quantity=int(row.reorder_quantity),
        unit=row.unit,
        location=row.location,
        cost_per_unit=float(row.cost_per_unit or 0),
        notes=row.notes or "",
        status=StockStatus(row.status),
        last_updated_by_name=row.last_updated_by_name,
        last_restock_date=row.last_restock_date,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _search_clause(search: str):
    pattern = f"%{search.strip().lower()}%"
    return or_(
        func.lower(tool_stocks.c.tool_name).like(pattern),
        func.lower(tool_stocks.c.atc_pocket_no).like(pattern),
        func.lower(tool_stocks.c.tool_room_no).like(pattern),
        func.lower(tool_stocks.c.location).like(pattern),
    )


def get_stock(db: Session, stock_id: int) -> Optional[ToolStock]:
    row = db.execute(select(tool_stocks).where(tool_stocks.c.id == stock_id)).fetchone()
    return _to_stock(row) if row else None


def find_by_name_and_pocket(db: Session, tool_name: str, atc_pocket_no: str) -> Optional[ToolStock]:
    row = db.execute(
        select(tool_stocks).where(
            tool_stocks.c.tool_name == tool_name,
            tool_stocks.c.atc_pocket_no == atc_pocket_no,
        )
    ).fetchone()
    return _to_stock(row) if row else None


def list_stocks(
    db: Session, page: int, limit: int, search: Optional[str] = None
) -> Tuple[List[ToolStock], int]:
    """Página ordenada por nombre + total de filas que cumplen el filtro."""
    stmt = select(tool_stocks)
    count_stmt = select(func.count()).select_from(tool_stocks)
    if search and search.strip():
        clause = _search_clause(search)
        stmt = stmt.where(clause)
        count_stmt = count_stmt.where(clause)

    rows = db.execute(
        stmt.order_by(tool_stocks.c.tool_name, tool_stocks.c.id)
        .offset((page - 1) * limit)
        .limit(limit)
    ).fetchall()
    total = int(db.execute(count_stmt).scalar_one())
    return [_to_stock(r) for r in rows], total


def list_low_stock(db: Session, limit: int) -> List[ToolStock]:
    rows = db.execute(
        select(tool_stocks)
        .where(tool_stocks.c.status.in_(LOW_STOCK_STATUSES))
        .order_by(tool_stocks.c.status, tool_stocks.c.current_stock, tool_stocks.c.id)
        .limit(limit)
    ).fetchall()
    return [_to_stock(r) for r in rows]


def insert_stock(db: Session, stock: ToolStock, now: datetime) -> ToolStock:
    result = db.execute(
        insert(tool_stocks)
        .values(
            tool_name=stock.tool_name,
            atc_pocket_no=stock.atc_pocket_no,
            tool_room_no=stock.tool_room_no,
            current_stock=stock.current_stock,
            minimum_stock=stock.minimum_stock,
            maximum_stock=stock.maximum_stock,
            reorder_level=stock.reorder_level,
            reorder_quantity=stock.reorder_quantity,
            unit=stock.unit,
            status=stock.status.value,
            location=stock.location,
            cost_per_unit=stock.cost_per_unit,
            notes=stock.notes,
            last_updated_by_name=stock.last_updated_by_name,
            last_restock_date=stock.last_restock_date,
            created_at=now,
            updated_at=now,
        )
        .returning(tool_stocks.c.id)
    )
    stock.id = int(result.scalar_one())
    stock.created_at = now
    stock.updated_at = now
    return stock


def update_stock_fields(db: Session, stock_id: int, fields: Dict[str, Any], now: datetime) -> None:
    values = dict(fields)
    values["updated_at"] = now
    db.execute(update(tool_stocks).where(tool_stocks.c.id == stock_id).values(**values))


def increment_stock(db: Session, stock_id: int, quantity: int, updated_by: Optional[str], now: datetime) -> bool:
    result = db.execute(
        update(tool_stocks)
        .where(tool_stocks.c.id == stock_id)
        .values(
            current_stock=tool_stocks.c.current_stock + quantity,
            last_updated_by_name=updated_by,
            last_restock_date=now,
            updated_at=now,
        )
    )
    return (result.rowcount or 0) > 0


def decrement_stock(db: Session, stock_id: int, quantity: int, updated_by: Optional[str], now: datetime) -> bool:
    """Resta solo si alcanza. False si no hay stock suficiente (o no existe)."""
    result = db.execute(
        update(tool_stocks)
        .where(tool_stocks.c.id == stock_id, tool_stocks.c.current_stock >= quantity)
        .values(
            current_stock=tool_stocks.c.current_stock - quantity,
            last_updated_by_name=updated_by,
            updated_at=now,
        )
    )
    return (result.rowcount or 0) > 0


def delete_stock(db: Session, stock_id: int) -> bool:
    result = db.execute(delete(tool_stocks).where(tool_stocks.c.id == stock_id))
    return (result.rowcount or 0) > 0


def get_statistics(db: Session) -> Dict[str, Any]:
    def _count(status: StockStatus):
        return func.coalesce(func.sum(case((tool_stocks.c.status == status.value, 1), else_=0)), 0)

    row = db.execute(
        select(
            func.count(tool_stocks.c.id).label("total_items"),
            func.coalesce(func.sum(tool_stocks.c.current_stock), 0).label("total_stock"),
            func.coalesce(
                func.sum(tool_stocks.c.current_stock * tool_stocks.c.cost_per_unit), 0
            ).label("total_value"),
            _count(StockStatus.LOW_STOCK).label("low_stock_count"),
            _count(StockStatus.CRITICAL).label("critical_count"),
            _count(StockStatus.OUT_OF_STOCK).label("out_of_stock_count"),
        )
    ).fetchone()
    return {
        "total_items": int(row.total_items or 0),
        "total_stock": int(row.total_stock or 0),
        "total_value": float(row.total_value or 0),
        "low_stock_count": int(row.low_stock_count or 0),
        "critical_count": int(row.critical_count or 0),
        "out_of_stock_count": int(row.out_of_stock_count or 0),
    }
