"""Repositorio del ledger de uso (tool_usage_logs).

Append-only: el servicio nunca actualiza ni borra filas. El orden total
por herramienta lo da ``sequence_no``; la restricción única
(tool_id, sequence_no) hace que dos escritores que leyeron el mismo
último evento no puedan anexar ambos.
"""

from __future__ import annotations

from typing import Any, List, Optional

from sqlalchemy import insert, select
from sqlalchemy.orm import Session

from common.schema import tool_usage_logs
from .models import AlertTier, UsageEvent, UsageEventType


def _to_event(row: Any) -> UsageEvent:
    return UsageEvent(
        id=int(row.id),
        tool_id=int(row.tool_id),
        tool_name=str(row.tool_name),
        sequence_no=int(row.sequence_no),
        event_type=UsageEventType(row.event_type),
        component_id=str(row.component_id),
        no_of_holes=float(row.no_of_holes),
        cutting_length=float(row.cutting_length),
        usage_score=float(row.usage_score),
        cumulative_total_before=float(row.cumulative_total_before),
        cumulative_total_after=float(row.cumulative_total_after),
        tool_life_threshold=float(row.tool_life_threshold),
        usage_percentage=float(row.usage_percentage),
        remaining_life=float(row.remaining_life),
        alert_type=AlertTier(row.alert_type),
        alert_triggered=bool(row.alert_triggered),
        operator_id=row.operator_id,
        notes=row.notes,
        timestamp=row.timestamp,
    )


def get_last_event(db: Session, tool_id: int) -> Optional[UsageEvent]:
    row = db.execute(
        select(tool_usage_logs)
        .where(tool_usage_logs.c.tool_id == tool_id)
        .order_by(tool_usage_logs.c.sequence_no.desc())
        .limit(1)
    ).fetchone()
    return _to_event(row) if row else None


def get_cumulative_usage(db: Session, tool_id: int) -> float:
    """Total acumulado desde el último reset (0 si no hay historial)."""
    last = get_last_event(db, tool_id)
    return last.cumulative_total_after if last else 0.0


def append_event(db: Session, event: UsageEvent) -> UsageEvent:
    """Inserta el evento. Lanza IntegrityError si el sequence_no ya existe."""
    result = db.execute(
        insert(tool_usage_logs)
        .values(
            tool_id=event.tool_id,
            tool_name=event.tool_name,
            sequence_no=event.sequence_no,
            event_type=event.event_type.value,
            component_id=event.component_id,
            no_of_holes=event.no_of_holes,
            cutting_length=event.cutting_length,
            usage_score=event.usage_score,
            cumulative_total_before=event.cumulative_total_before,
            cumulative_total_after=event.cumulative_total_after,
            tool_life_threshold=event.tool_life_threshold,
            usage_percentage=event.usage_percentage,
            remaining_life=event.remaining_life,
            alert_type=event.alert_type.value,
            alert_triggered=event.alert_triggered,
            operator_id=event.operator_id,
            notes=event.notes,
            timestamp=event.timestamp,
        )
        .returning(tool_usage_logs.c.id)
    )
    event.id = int(result.scalar_one())
    return event


def list_events(db: Session, tool_id: int, newest_first: bool = False) -> List[UsageEvent]:
    order = tool_usage_logs.c.sequence_no.desc() if newest_first else tool_usage_logs.c.sequence_no.asc()
    rows = db.execute(
        select(tool_usage_logs).where(tool_usage_logs.c.tool_id == tool_id).order_by(order)
    ).fetchall()
    return [_to_event(r) for r in rows]


def get_components_used(db: Session, tool_id: int) -> List[str]:
    """Componentes distintos producidos con la herramienta (sin checkpoints)."""
    rows = db.execute(
        select(tool_usage_logs.c.component_id)
        .where(
            tool_usage_logs.c.tool_id == tool_id,
            tool_usage_logs.c.event_type == UsageEventType.USAGE.value,
        )
        .distinct()
        .order_by(tool_usage_logs.c.component_id)
    ).fetchall()
    return [str(r[0]) for r in rows]
