"""Gestión de alertas de vida útil.

Reglas:
- Solo WARNING y CRITICAL crean alertas persistidas. ORDER queda
  marcado en el ledger y se loguea.
- Como máximo UNA alerta abierta (PENDING/SENT) por (tool_id, nivel).
  Si ya existe, no se crea ni se despacha nada.
- La alerta nace PENDING; el envío ocurre después del commit.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import alert_repository as alerts_repo
from . import ledger_repository as ledger_repo
from .models import (
    ALERTABLE_TIERS,
    AlertStatus,
    AlertTier,
    MasterTool,
    ToolAlert,
    UsageEvent,
    format_number,
)

logger = logging.getLogger(__name__)

_DESCRIPTIONS = {
    AlertTier.WARNING: "Warning notification - tool approaching end of life, prepare for maintenance",
    AlertTier.CRITICAL: "Critical notification - immediate action required",
}


def build_alert_message(tool: MasterTool, event: UsageEvent, components: list[str]) -> str:
    cumulative = format_number(event.cumulative_total_after)
    threshold = format_number(event.tool_life_threshold)
    percentage = f"{event.usage_percentage:.2f}"
    affected = ", ".join(components)

    if event.alert_type is AlertTier.CRITICAL:
        return (
            f"ALERT: Tool ID {tool.tool_id} ({tool.tool_name}) has reached its tool life limit of "
            f"{threshold}. Cumulative usage: {cumulative} ({percentage}%). Immediate "
            f"maintenance/replacement required. Components affected: {affected}"
        )
    if event.alert_type is AlertTier.WARNING:
        return (
            f"CAUTION: Tool ID {tool.tool_id} ({tool.tool_name}) is nearing its tool life limit. "
            f"Current usage: {cumulative}/{threshold} ({percentage}%). Remaining usage: "
            f"{format_number(event.remaining_life)} units. Please prepare for tool "
            f"maintenance/replacement. Components affected: {affected}"
        )
    raise ValueError(f"tier {event.alert_type.value} does not create alerts")


class AlertManager:
    """Crea y deduplica alertas. El envío lo hace NotificationDispatcher."""

    def __init__(self, db: Session) -> None:
        self._db = db

    def maybe_raise_alert(self, tool: MasterTool, event: UsageEvent) -> Optional[ToolAlert]:
        """Devuelve la alerta creada (PENDING) o None.

        Debe llamarse con el lock de la herramienta tomado; el índice único
        parcial cubre escritores de otros procesos.
        """
        tier = event.alert_type

        if tier is AlertTier.ORDER:
            logger.info(
                "[ALERT] ORDER tier tool_id=%s usage=%.2f%% - check availability to order replacement",
                tool.tool_id, event.usage_percentage,
            )
            return None
        if tier not in ALERTABLE_TIERS:
            return None

        existing = alerts_repo.find_open_alert(self._db, tool.tool_id, tier)
        if existing is not None:
            logger.debug(
                "[ALERT] Open alert exists tool_id=%s tier=%s alert_id=%s - skip",
                tool.tool_id, tier.value, existing.id,
            )
            return None

        components = ledger_repo.get_components_used(self._db, tool.tool_id)
        alert = ToolAlert(
            tool_id=tool.tool_id,
            tool_name=tool.tool_name,
            tool_life_threshold=event.tool_life_threshold,
            cumulative_usage=event.cumulative_total_after,
            alert_type=tier,
            usage_percentage=event.usage_percentage,
            remaining_life=event.remaining_life,
            components_used=components,
            supervisor_email=tool.supervisor_email,
            alert_status=AlertStatus.PENDING,
            alert_message=build_alert_message(tool, event, components),
            alert_description=_DESCRIPTIONS[tier],
            created_at=datetime.now(timezone.utc),
        )

        try:
            with self._db.begin_nested():
                alerts_repo.insert_alert(self._db, alert)
        except IntegrityError:
            # Otro proceso abrió la alerta entre la consulta y el insert.
            logger.info("[ALERT] Concurrent open alert tool_id=%s tier=%s - skip", tool.tool_id, tier.value)
            return None

        logger.warning(
            "[ALERT] %s alert created alert_id=%s tool_id=%s cumulative=%s/%s",
            tier.value, alert.id, tool.tool_id,
            format_number(event.cumulative_total_after), format_number(event.tool_life_threshold),
        )
        return alert
