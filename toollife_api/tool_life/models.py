"""Modelos de dominio del motor de vida útil.

Dataclasses y enums que viajan entre repositorios, servicio y endpoints.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class AlertTier(str, Enum):
    """Nivel de desgaste de una herramienta respecto a su umbral."""

    NONE = "NONE"
    ORDER = "ORDER"  # Informativo: revisar disponibilidad para pedir reemplazo
    WARNING = "WARNING"
    CRITICAL = "CRITICAL"


class ToolStatus(str, Enum):
    ACTIVE = "ACTIVE"
    NEAR_END_OF_LIFE = "NEAR_END_OF_LIFE"
    END_OF_LIFE = "END_OF_LIFE"
    MAINTENANCE_REQUIRED = "MAINTENANCE_REQUIRED"
    REPLACED = "REPLACED"


class AlertStatus(str, Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    ACKNOWLEDGED = "ACKNOWLEDGED"


OPEN_ALERT_STATUSES = (AlertStatus.PENDING.value, AlertStatus.SENT.value)

# Solo estos niveles generan alertas persistidas.
ALERTABLE_TIERS = (AlertTier.WARNING, AlertTier.CRITICAL)


class UsageEventType(str, Enum):
    USAGE = "USAGE"
    RESET = "RESET"  # Checkpoint de mantenimiento


MAINTENANCE_RESET_COMPONENT = "MAINTENANCE_RESET"


@dataclass
class MasterTool:
    """Entrada del registro de herramientas."""

    tool_id: int
    tool_name: str
    tool_life_threshold: float
    status: ToolStatus = ToolStatus.ACTIVE
    holder_name: str = ""
    atc_pocket_no: str = ""
    tool_room_no: str = ""
    supervisor_email: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass
class WearComputation:
    """Resultado puro del acumulador para un evento."""

    usage_score: float
    cumulative_before: float
    cumulative_after: float
    threshold: float
    usage_percentage: float
    remaining_life: float


@dataclass
class Classification:
    tier: AlertTier
    registry_status: ToolStatus

    @property
    def alert_triggered(self) -> bool:
        return self.tier is not AlertTier.NONE


@dataclass
class UsageEvent:
    """Fila inmutable del ledger de uso."""

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
    timestamp: datetime
    operator_id: Optional[str] = None
    notes: Optional[str] = None
    id: Optional[int] = None


@dataclass
class ToolAlert:
    tool_id: int
    tool_name: str
    tool_life_threshold: float
    cumulative_usage: float
    alert_type: AlertTier
    usage_percentage: float
    remaining_life: float
    alert_message: str
    alert_description: str
    created_at: datetime
    components_used: List[str] = field(default_factory=list)
    supervisor_email: Optional[str] = None
    alert_status: AlertStatus = AlertStatus.PENDING
    sent_at: Optional[datetime] = None
    acknowledged_at: Optional[datetime] = None
    id: Optional[int] = None

    @property
    def alert_severity(self) -> str:
        return self.alert_type.value

    @property
    def is_open(self) -> bool:
        return self.alert_status.value in OPEN_ALERT_STATUSES


def format_number(value: float) -> str:
    """1400.0 -> '1400', 12.5 -> '12.5' (como en los mensajes de alerta)."""
    if float(value).is_integer():
        return str(int(value))
    return f"{value:.4f}".rstrip("0").rstrip(".")
