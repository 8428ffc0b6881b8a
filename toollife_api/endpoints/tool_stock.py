"""Endpoints de inventario de herramientas."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from common.db import get_db
from ..auth import require_api_key
from ..dependencies import get_stock_service
from ..schemas import (
    BatchResultOut,
    LowStockOut,
    Pagination,
    StockQuantityIn,
    StockStatisticsOut,
    ToolStockBatchIn,
    ToolStockIn,
    ToolStockOut,
    ToolStockPageOut,
    ToolStockUpdate,
)
from ..stock.service import DEFAULT_PAGE_SIZE, LOW_STOCK_LIMIT, ToolStockService
from ..stock.status import ToolStock
from .db_errors import storage_errors

router = APIRouter(prefix="/api/tool-stock", tags=["tool-stock"], dependencies=[Depends(require_api_key)])


def _out(stock: ToolStock) -> ToolStockOut:
    return ToolStockOut.model_validate(stock, from_attributes=True)


@router.get("", response_model=ToolStockPageOut)
def list_stocks(
    page: int = Query(default=1),
    limit: int = Query(default=DEFAULT_PAGE_SIZE),
    search: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    """Listado paginado (page >= 1, 1 <= limit <= 100), búsqueda opcional."""
    with storage_errors(db, "/tool-stock"):
        result = service.list(page=page, limit=limit, search=search)
    return ToolStockPageOut(
        data=[_out(s) for s in result.items],
        pagination=Pagination(
            page=result.page,
            limit=result.limit,
            total=result.total,
            total_pages=result.total_pages,
        ),
    )


@router.get("/low-stock", response_model=LowStockOut)
def low_stock(
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/low-stock"):
        items = service.low_stock(LOW_STOCK_LIMIT)
    return LowStockOut(data=[_out(s) for s in items], count=len(items))


@router.get("/statistics", response_model=StockStatisticsOut)
def statistics(
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/statistics"):
        return StockStatisticsOut(**service.statistics())


@router.post("/batch", response_model=BatchResultOut)
def batch_create(
    payload: ToolStockBatchIn,
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/batch"):
        result = service.batch_create(
            [item.model_dump() for item in payload.tools], updated_by=payload.updated_by
        )
    return BatchResultOut(
        message=f"Batch import completed: {result.success} success, {result.failed} failed",
        success=result.success,
        failed=result.failed,
        errors=result.errors,
    )


@router.get("/{stock_id}", response_model=ToolStockOut)
def get_stock(
    stock_id: int,
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/get"):
        return _out(service.get(stock_id))


@router.post("", response_model=ToolStockOut, status_code=201)
def create_stock(
    payload: ToolStockIn,
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/create"):
        return _out(service.create(payload.model_dump()))


@router.put("/{stock_id}", response_model=ToolStockOut)
def update_stock(
    stock_id: int,
    payload: ToolStockUpdate,
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    changes = payload.model_dump(exclude_unset=True)
    updated_by = changes.pop("updated_by", None)
    with storage_errors(db, "/tool-stock/update"):
        return _out(service.update(stock_id, changes, updated_by=updated_by))


@router.delete("/{stock_id}", response_model=ToolStockOut)
def delete_stock(
    stock_id: int,
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/delete"):
        return _out(service.delete(stock_id))


@router.post("/{stock_id}/add-stock", response_model=ToolStockOut)
def add_stock(
    stock_id: int,
    payload: StockQuantityIn,
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/add-stock"):
        return _out(service.add_stock(stock_id, payload.quantity, updated_by=payload.updated_by))


@router.post("/{stock_id}/remove-stock", response_model=ToolStockOut)
def remove_stock(
    stock_id: int,
    payload: StockQuantityIn,
    db: Session = Depends(get_db),
    service: ToolStockService = Depends(get_stock_service),
):
    with storage_errors(db, "/tool-stock/remove-stock"):
        return _out(service.remove_stock(stock_id, payload.quantity, updated_by=payload.updated_by))
