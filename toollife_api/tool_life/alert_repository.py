"""Repositorio de alertas de vida útil (tool_alerts)."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, List, Optional

from sqlalchemy import insert, select, update
from sqlalchemy.orm import Session

from common.schema import tool_alerts
from .models import OPEN_ALERT_STATUSES, AlertStatus, AlertTier, ToolAlert

logger = logging.getLogger(__name__)


def _to_alert(row: Any) -> ToolAlert:
    return ToolAlert(
        id=int(row.id),
        tool_id=int(row.tool_id),
        tool_name=str(row.tool_name),
        tool_life_threshold=float(row.tool_life_threshold),
        cumulative_usage=float(row.cumulative_usage),
        alert_type=AlertTier(row.alert_type),
        usage_percentage=float(row.usage_percentage),
        remaining_life=float(row.remaining_life),
        components_used=list(row.components_used or []),
        supervisor_email=row.supervisor_email,
        alert_status=AlertStatus(row.alert_status),
        alert_message=str(row.alert_message),
        alert_description=str(row.alert_description),
        created_at=row.created_at,
        sent_at=row.sent_at,
        acknowledged_at=row.acknowledged_at,
    )


def find_open_alert(db: Session, tool_id: int, tier: AlertTier) -> Optional[ToolAlert]:
    row = db.execute(
        select(tool_alerts)
        .where(
            tool_alerts.c.tool_id == tool_id,
            tool_alerts.c.alert_type == tier.value,
            tool_alerts.c.alert_status.in_(OPEN_ALERT_STATUSES),
        )
        .order_by(tool_alerts.c.created_at.desc())
        .limit(1)
    ).fetchone()
    return _to_alert(row) if row else None


def insert_alert(db: Session, alert: ToolAlert) -> ToolAlert:
    """Persiste la alerta.

    Lanza IntegrityError si ya existe una alerta abierta para
    (tool_id, alert_type): el índice único parcial lo impide.
    """
    result = db.execute(
        insert(tool_alerts)
        .values(
            tool_id=alert.tool_id,
            tool_name=alert.tool_name,
            tool_life_threshold=alert.tool_life_threshold,
            cumulative_usage=alert.cumulative_usage,
            alert_type=alert.alert_type.value,
            alert_severity=alert.alert_severity,
            usage_percentage=alert.usage_percentage,
            remaining_life=alert.remaining_life,
            components_used=list(alert.components_used),
            supervisor_email=alert.supervisor_email,
            alert_status=alert.alert_status.value,
            alert_message=alert.alert_message,
            alert_description=alert.alert_description,
            created_at=alert.created_at,
        )
        .returning(tool_alerts.c.id)
    )
    alert.id = int(result.scalar_one())
    return alert


def get_alert(db: Session, alert_id: int) -> Optional[ToolAlert]:
    row = db.execute(select(tool_alerts).where(tool_alerts.c.id == alert_id)).fetchone()
    return _to_alert(row) if row else None


def list_open_alerts(db: Session, tool_id: int | None = None) -> List[ToolAlert]:
    stmt = select(tool_alerts).where(tool_alerts.c.alert_status.in_(OPEN_ALERT_STATUSES))
    if tool_id is not None:
        stmt = stmt.where(tool_alerts.c.tool_id == tool_id)
    rows = db.execute(stmt.order_by(tool_alerts.c.created_at.desc(), tool_alerts.c.id.desc())).fetchall()
    return [_to_alert(r) for r in rows]


def mark_sent(db: Session, alert_id: int, sent_at: datetime) -> bool:
    """PENDING/SENT -> SENT. No toca alertas ya reconocidas."""
    result = db.execute(
        update(tool_alerts)
        .where(
            tool_alerts.c.id == alert_id,
            tool_alerts.c.alert_status.in_(OPEN_ALERT_STATUSES),
        )
        .values(alert_status=AlertStatus.SENT.value, sent_at=sent_at)
    )
    return (result.rowcount or 0) > 0


def acknowledge_open_alerts(db: Session, tool_id: int, acknowledged_at: datetime) -> int:
    result = db.execute(
        update(tool_alerts)
        .where(
            tool_alerts.c.tool_id == tool_id,
            tool_alerts.c.alert_status.in_(OPEN_ALERT_STATUSES),
        )
        .values(alert_status=AlertStatus.ACKNOWLEDGED.value, acknowledged_at=acknowledged_at)
    )
    return int(result.rowcount or 0)


def acknowledge_alert(db: Session, alert_id: int, acknowledged_at: datetime) -> bool:
    result = db.execute(
        update(tool_alerts)
        .where(
            tool_alerts.c.id == alert_id,
            tool_alerts.c.alert_status.in_(OPEN_ALERT_STATUSES),
        )
        .values(alert_status=AlertStatus.ACKNOWLEDGED.value, acknowledged_at=acknowledged_at)
    )
    return (result.rowcount or 0) > 0
