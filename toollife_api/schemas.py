from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt

from .tool_life.models import AlertStatus, AlertTier, ToolStatus, UsageEventType
from .stock.status import StockStatus

# Insumos de desgaste: números estrictos (sin strings ni bool). NaN/inf y
# negativos los rechaza el servicio con error por campo.
WearNumber = Union[StrictInt, StrictFloat]


# ---------------------------------------------------------------------------
# Vida útil
# ---------------------------------------------------------------------------


class UsageRecordIn(BaseModel):
    tool_id: int = Field(..., ge=1)
    component_id: str = Field(..., min_length=1, max_length=100)
    holes_count: WearNumber
    cutting_length: WearNumber
    operator_id: Optional[str] = Field(default=None, max_length=100)


class UsageRecordOut(BaseModel):
    tool_id: int
    tool_name: str
    usage_score: float
    cumulative_total: float
    tool_life_threshold: float
    usage_percentage: float
    remaining_life: float
    alert_tier: AlertTier
    registry_status: ToolStatus
    threshold_reached: bool
    warning_threshold_reached: bool
    alert_id: Optional[int] = None
    recommendation: str


class ToolStatusOut(BaseModel):
    tool_id: int
    tool_name: str
    tool_life_threshold: float
    cumulative_usage: float
    usage_percentage: float
    remaining_life: float
    alert_status: AlertTier
    status: ToolStatus
    threshold_reached: bool
    warning_threshold_reached: bool
    components_used: List[str] = Field(default_factory=list)
    last_used: Optional[datetime] = None
    supervisor_email: Optional[str] = None
    recommendation: str


class UsageEventOut(BaseModel):
    id: int
    tool_id: int
    tool_name: str
    sequence_no: int
    event_type: UsageEventType
    component_id: str
    no_of_holes: float
    cutting_length: float
    usage_score: float
    cumulative_total_before: float
    cumulative_total_after: float
    tool_life_threshold: float
    usage_percentage: float
    remaining_life: float
    alert_type: AlertTier
    alert_triggered: bool
    operator_id: Optional[str] = None
    notes: Optional[str] = None
    timestamp: datetime


class LedgerVerifyOut(BaseModel):
    tool_id: int
    events: int
    stored_total: float
    replayed_total: float
    consistent: bool
    broken_links: List[int] = Field(default_factory=list)


class ResetIn(BaseModel):
    technician_id: Optional[str] = Field(default=None, max_length=100)
    notes: Optional[str] = None


class ResetOut(BaseModel):
    tool_id: int
    previous_total: float
    new_cumulative_total: float
    status: ToolStatus
    acknowledged_alerts: int


class AlertOut(BaseModel):
    id: int
    tool_id: int
    tool_name: str
    tool_life_threshold: float
    cumulative_usage: float
    alert_type: AlertTier
    alert_severity: str
    usage_percentage: float
    remaining_life: float
    components_used: List[str] = Field(default_factory=list)
    supervisor_email: Optional[str] = None
    alert_status: AlertStatus
    alert_message: str
    alert_description: str
    created_at: datetime
    sent_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None


class NotifyIn(BaseModel):
    alert_id: int = Field(..., ge=1)
    supervisor_email: Optional[str] = Field(default=None, max_length=254)


# ---------------------------------------------------------------------------
# Registro de herramientas
# ---------------------------------------------------------------------------


class MasterToolIn(BaseModel):
    tool_id: int = Field(..., ge=1)
    tool_name: str = Field(..., min_length=1, max_length=200)
    tool_life_threshold: float = Field(..., gt=0, allow_inf_nan=False)
    holder_name: str = Field(default="", max_length=200)
    atc_pocket_no: str = Field(default="", max_length=50)
    tool_room_no: str = Field(default="", max_length=50)
    supervisor_email: Optional[str] = Field(default=None, max_length=254)


class MasterToolPatch(BaseModel):
    tool_name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    tool_life_threshold: Optional[float] = Field(default=None, gt=0, allow_inf_nan=False)
    holder_name: Optional[str] = Field(default=None, max_length=200)
    atc_pocket_no: Optional[str] = Field(default=None, max_length=50)
    tool_room_no: Optional[str] = Field(default=None, max_length=50)
    supervisor_email: Optional[str] = Field(default=None, max_length=254)


class MasterToolOut(BaseModel):
    tool_id: int
    tool_name: str
    tool_life_threshold: float
    status: ToolStatus
    holder_name: str = ""
    atc_pocket_no: str = ""
    tool_room_no: str = ""
    supervisor_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class MasterToolWithUsageOut(MasterToolOut):
    cumulative_usage: float
    usage_percentage: float
    remaining_life: float


# ---------------------------------------------------------------------------
# Inventario
# ---------------------------------------------------------------------------


class ToolStockIn(BaseModel):
    tool_name: Optional[str] = Field(default=None, max_length=200)
    atc_pocket_no: str = Field(default="", max_length=50)
    tool_room_no: str = Field(default="", max_length=50)
    current_stock: Optional[int] = Field(default=None, ge=0)
    minimum_stock: int = Field(default=5, ge=0)
    maximum_stock: int = Field(default=50, ge=0)
    reorder_level: int = Field(default=10, ge=0)
    reorder_quantity: int = Field(default=20, ge=0)
    unit: str = Field(default="pieces", max_length=30)
    location: str = Field(default="Tool Room", max_length=100)
    cost_per_unit: float = Field(default=0.0, ge=0, allow_inf_nan=False)
    notes: str = ""


class ToolStockUpdate(BaseModel):
    tool_name: Optional[str] = Field(default=None, max_length=200)
    atc_pocket_no: Optional[str] = Field(default=None, max_length=50)
    tool_room_no: Optional[str] = Field(default=None, max_length=50)
    current_stock: Optional[int] = Field(default=None, ge=0)
    minimum_stock: Optional[int] = Field(default=None, ge=0)
    maximum_stock: Optional[int] = Field(default=None, ge=0)
    reorder_level: Optional[int] = Field(default=None, ge=0)
    reorder_quantity: Optional[int] = Field(default=None, ge=0)
    unit: Optional[str] = Field(default=None, max_length=30)
    location: Optional[str] = Field(default=None, max_length=100)
    cost_per_unit: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    notes: Optional[str] = None
    updated_by: Optional[str] = Field(default=None, max_length=200)


class StockQuantityIn(BaseModel):
    # > 0 lo valida el servicio para devolver el mensaje de negocio.
    quantity: StrictInt
    updated_by: Optional[str] = Field(default=None, max_length=200)


class ToolStockBatchIn(BaseModel):
    tools: List[ToolStockIn] = Field(default_factory=list)
    updated_by: Optional[str] = Field(default=None, max_length=200)


class ToolStockOut(BaseModel):
    id: int
    tool_name: str
    atc_pocket_no: str
    tool_room_no: str
    current_stock: int
    minimum_stock: int
    maximum_stock: int
    reorder_level: int
    reorder_quantity: int
    unit: str
    location: str
    cost_per_unit: float
    notes: str
    status: StockStatus
    needs_reordering: bool
    last_updated_by_name: Optional[str] = None
    last_restock_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class ToolStockPageOut(BaseModel):
    data: List[ToolStockOut] = Field(default_factory=list)
    pagination: Pagination


class LowStockOut(BaseModel):
    data: List[ToolStockOut] = Field(default_factory=list)
    count: int


class StockStatisticsOut(BaseModel):
    total_items: int = 0
    total_stock: int = 0
    total_value: float = 0.0
    low_stock_count: int = 0
    critical_count: int = 0
    out_of_stock_count: int = 0


class BatchErrorOut(BaseModel):
    index: int
    error: str


class BatchResultOut(BaseModel):
    message: str
    success: int
    failed: int
    errors: List[BatchErrorOut] = Field(default_factory=list)
