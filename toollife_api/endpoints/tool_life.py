"""Endpoints de vida útil: registro de uso, estado, historial, reset y alertas."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from common.db import get_db
from ..auth import require_api_key
from ..dependencies import get_tool_life_service
from ..schemas import (
    AlertOut,
    LedgerVerifyOut,
    NotifyIn,
    ResetIn,
    ResetOut,
    ToolStatusOut,
    UsageEventOut,
    UsageRecordIn,
    UsageRecordOut,
)
from ..tool_life.models import ALERTABLE_TIERS
from ..tool_life.service import ToolLifeService
from .db_errors import storage_errors

router = APIRouter(prefix="/api/tool-life", tags=["tool-life"], dependencies=[Depends(require_api_key)])
logger = logging.getLogger(__name__)


@router.post("/usage/record", response_model=UsageRecordOut)
def record_usage(
    payload: UsageRecordIn,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    """Registra un evento de uso y devuelve la clasificación resultante.

    El envío de la alerta (si se creó) no afecta esta respuesta.
    """
    with storage_errors(db, "/usage/record"):
        result = service.record_usage(
            tool_id=payload.tool_id,
            component_id=payload.component_id,
            holes_count=payload.holes_count,
            cutting_length=payload.cutting_length,
            operator_id=payload.operator_id,
        )

    wear = result.wear
    return UsageRecordOut(
        tool_id=result.tool.tool_id,
        tool_name=result.tool.tool_name,
        usage_score=wear.usage_score,
        cumulative_total=wear.cumulative_after,
        tool_life_threshold=wear.threshold,
        usage_percentage=round(wear.usage_percentage, 2),
        remaining_life=wear.remaining_life,
        alert_tier=result.classification.tier,
        registry_status=result.classification.registry_status,
        threshold_reached=result.event.cumulative_total_after >= wear.threshold,
        warning_threshold_reached=result.classification.tier in ALERTABLE_TIERS,
        alert_id=result.alert.id if result.alert else None,
        recommendation=result.recommendation,
    )


@router.get("/alerts/active", response_model=List[AlertOut])
def list_active_alerts(
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/alerts/active"):
        alerts = service.list_active_alerts()
    return [AlertOut.model_validate(a, from_attributes=True) for a in alerts]


@router.post("/alerts/notify", response_model=AlertOut)
def notify_alert(
    payload: NotifyIn,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    """Reintento manual de envío. 502 si ningún canal entregó."""
    with storage_errors(db, "/alerts/notify"):
        alert = service.notify_alert(payload.alert_id, payload.supervisor_email)
    return AlertOut.model_validate(alert, from_attributes=True)


@router.post("/alerts/{alert_id}/acknowledge", response_model=AlertOut)
def acknowledge_alert(
    alert_id: int,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/alerts/acknowledge"):
        alert = service.acknowledge_alert(alert_id)
    return AlertOut.model_validate(alert, from_attributes=True)


@router.get("/{tool_id}/status", response_model=ToolStatusOut)
def get_tool_status(
    tool_id: int,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/status"):
        view = service.get_tool_status(tool_id)

    tool = view.tool
    return ToolStatusOut(
        tool_id=tool.tool_id,
        tool_name=tool.tool_name,
        tool_life_threshold=tool.tool_life_threshold,
        cumulative_usage=view.cumulative_usage,
        usage_percentage=round(view.usage_percentage, 2),
        remaining_life=view.remaining_life,
        alert_status=view.alert_status,
        status=tool.status,
        threshold_reached=view.threshold_reached,
        warning_threshold_reached=view.warning_threshold_reached,
        components_used=view.components_used,
        last_used=view.last_used,
        supervisor_email=tool.supervisor_email,
        recommendation=view.recommendation,
    )


@router.get("/{tool_id}/history", response_model=List[UsageEventOut])
def get_history(
    tool_id: int,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/history"):
        events = service.get_history(tool_id)
    return [UsageEventOut.model_validate(e, from_attributes=True) for e in events]


@router.get("/{tool_id}/ledger/verify", response_model=LedgerVerifyOut)
def verify_ledger(
    tool_id: int,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    with storage_errors(db, "/ledger/verify"):
        check = service.verify_ledger(tool_id)
    return LedgerVerifyOut(
        tool_id=tool_id,
        events=check.events,
        stored_total=check.stored_total,
        replayed_total=check.replayed_total,
        consistent=check.consistent,
        broken_links=check.broken_links,
    )


@router.post("/{tool_id}/reset", response_model=ResetOut)
def reset_tool(
    tool_id: int,
    payload: ResetIn | None = None,
    db: Session = Depends(get_db),
    service: ToolLifeService = Depends(get_tool_life_service),
):
    """Reset de mantenimiento: checkpoint en el ledger + alertas reconocidas."""
    payload = payload or ResetIn()
    with storage_errors(db, "/reset"):
        result = service.reset_tool(tool_id, payload.technician_id, payload.notes)
    return ResetOut(
        tool_id=result.tool_id,
        previous_total=result.previous_total,
        new_cumulative_total=result.new_cumulative_total,
        status=result.status,
        acknowledged_alerts=result.acknowledged_alerts,
    )
