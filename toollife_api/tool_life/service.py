"""Servicio de vida útil: orquesta ledger, clasificación, alertas y registro.

Unidad de trabajo por evento de uso (con el lock de la herramienta):
leer último acumulado -> calcular -> anexar al ledger -> clasificar y
deduplicar alerta -> actualizar estado del registro -> commit.
El envío de la alerta se programa después del commit y nunca afecta
la respuesta del registro de uso.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..errors import ConflictError, NotFoundError, NotificationDispatchError, ValidationError
from ..notifications.dispatcher import NotificationDispatcher
from ..resilience import RetryConfig, RetryExecutor
from . import alert_repository as alerts_repo
from . import ledger_repository as ledger_repo
from . import tool_repository as tools_repo
from .alert_manager import AlertManager
from .classifier import WARNING_FRACTION, classify, recommendation_for
from .locks import ToolLockRegistry, get_tool_locks
from .models import (
    MAINTENANCE_RESET_COMPONENT,
    AlertTier,
    Classification,
    MasterTool,
    ToolAlert,
    ToolStatus,
    UsageEvent,
    UsageEventType,
    WearComputation,
)
from .wear import LedgerCheck, check_ledger, compute_wear, remaining_life, usage_percentage, validate_wear_input

logger = logging.getLogger(__name__)


@dataclass
class UsageResult:
    tool: MasterTool
    event: UsageEvent
    wear: WearComputation
    classification: Classification
    alert: Optional[ToolAlert] = None

    @property
    def recommendation(self) -> str:
        return recommendation_for(self.classification.registry_status)


@dataclass
class ToolStatusView:
    tool: MasterTool
    cumulative_usage: float
    usage_percentage: float
    remaining_life: float
    alert_status: AlertTier
    components_used: List[str]
    last_used: Optional[datetime]

    @property
    def threshold_reached(self) -> bool:
        return self.cumulative_usage >= self.tool.tool_life_threshold

    @property
    def warning_threshold_reached(self) -> bool:
        return self.cumulative_usage >= self.tool.tool_life_threshold * WARNING_FRACTION

    @property
    def recommendation(self) -> str:
        return recommendation_for(self.tool.status)


@dataclass
class ResetResult:
    tool_id: int
    previous_total: float
    new_cumulative_total: float
    status: ToolStatus
    acknowledged_alerts: int
    event: UsageEvent


@dataclass
class ToolWithUsage:
    tool: MasterTool
    cumulative_usage: float
    usage_percentage: float
    remaining_life: float
    extra: Dict[str, Any] = field(default_factory=dict)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_email(email: Optional[str]) -> Optional[str]:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


class ToolLifeService:
    def __init__(
        self,
        db: Session,
        dispatcher: Optional[NotificationDispatcher] = None,
        locks: Optional[ToolLockRegistry] = None,
        retry_config: Optional[RetryConfig] = None,
    ) -> None:
        self._db = db
        self._dispatcher = dispatcher
        self._locks = locks or get_tool_locks()
        self._retry_config = retry_config or RetryConfig(retryable_exceptions=(IntegrityError,))

    # ------------------------------------------------------------------
    # Registro de uso
    # ------------------------------------------------------------------

    def record_usage(
        self,
        tool_id: int,
        component_id: str,
        holes_count: Any,
        cutting_length: Any,
        operator_id: Optional[str] = None,
    ) -> UsageResult:
        if component_id is None or not str(component_id).strip():
            raise ValidationError.for_field("component_id", "is required")
        holes = validate_wear_input("holes_count", holes_count)
        length = validate_wear_input("cutting_length", cutting_length)
        component = str(component_id).strip()

        with self._locks.hold(tool_id):
            result = RetryExecutor(self._retry_config).execute(
                lambda: self._record_usage_once(tool_id, component, holes, length, operator_id),
                on_retry=lambda attempt, exc: self._db.rollback(),
            )

        logger.info(
            "[USAGE] tool_id=%s seq=%s score=%s cumulative=%s tier=%s status=%s",
            tool_id, result.event.sequence_no, result.wear.usage_score,
            result.wear.cumulative_after, result.classification.tier.value,
            result.classification.registry_status.value,
        )

        if result.alert is not None:
            self._schedule_dispatch(result.tool, result.alert)
        return result

    def _record_usage_once(
        self,
        tool_id: int,
        component_id: str,
        holes: float,
        length: float,
        operator_id: Optional[str],
    ) -> UsageResult:
        try:
            tool = self._require_tool(tool_id)
            last = ledger_repo.get_last_event(self._db, tool_id)
            before = last.cumulative_total_after if last else 0.0

            wear = compute_wear(before, holes, length, tool.tool_life_threshold)
            classification = classify(wear.cumulative_after, tool.tool_life_threshold)

            event = UsageEvent(
                tool_id=tool.tool_id,
                tool_name=tool.tool_name,
                sequence_no=(last.sequence_no + 1) if last else 1,
                event_type=UsageEventType.USAGE,
                component_id=component_id,
                no_of_holes=holes,
                cutting_length=length,
                usage_score=wear.usage_score,
                cumulative_total_before=wear.cumulative_before,
                cumulative_total_after=wear.cumulative_after,
                tool_life_threshold=wear.threshold,
                usage_percentage=wear.usage_percentage,
                remaining_life=wear.remaining_life,
                alert_type=classification.tier,
                alert_triggered=classification.alert_triggered,
                operator_id=operator_id,
                timestamp=_now(),
            )
            ledger_repo.append_event(self._db, event)

            alert = AlertManager(self._db).maybe_raise_alert(tool, event)

            # El estado del registro sigue a la clasificación, se envíe o no la alerta.
            tools_repo.set_status(self._db, tool.tool_id, classification.registry_status, _now())
            tool.status = classification.registry_status

            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        return UsageResult(tool=tool, event=event, wear=wear, classification=classification, alert=alert)

    def _schedule_dispatch(self, tool: MasterTool, alert: ToolAlert) -> None:
        if not tool.supervisor_email:
            logger.info("[ALERT] No supervisor email for tool_id=%s - alert_id=%s stays PENDING", tool.tool_id, alert.id)
            return
        if self._dispatcher is None:
            logger.warning("[ALERT] Dispatcher not configured - alert_id=%s stays PENDING", alert.id)
            return
        try:
            self._dispatcher.submit(alert.id, tool.supervisor_email)
        except RuntimeError as e:
            # Executor cerrado (shutdown): el uso ya está confirmado.
            logger.error("[ALERT] Dispatch not scheduled alert_id=%s stays PENDING: %s", alert.id, e)

    # ------------------------------------------------------------------
    # Consultas
    # ------------------------------------------------------------------

    def get_tool_status(self, tool_id: int) -> ToolStatusView:
        tool = self._require_tool(tool_id)
        last = ledger_repo.get_last_event(self._db, tool_id)
        cumulative = last.cumulative_total_after if last else 0.0
        threshold = tool.tool_life_threshold

        # Porcentaje contra el umbral ACTUAL (no el snapshot del ledger).
        return ToolStatusView(
            tool=tool,
            cumulative_usage=cumulative,
            usage_percentage=usage_percentage(cumulative, threshold),
            remaining_life=remaining_life(cumulative, threshold),
            alert_status=classify(cumulative, threshold).tier,
            components_used=ledger_repo.get_components_used(self._db, tool_id),
            last_used=last.timestamp if last else None,
        )

    def get_history(self, tool_id: int) -> List[UsageEvent]:
        # Historial disponible aunque la herramienta haya sido borrada.
        return ledger_repo.list_events(self._db, tool_id, newest_first=True)

    def verify_ledger(self, tool_id: int) -> LedgerCheck:
        check = check_ledger(ledger_repo.list_events(self._db, tool_id))
        if not check.consistent:
            logger.error(
                "[USAGE] Ledger inconsistent tool_id=%s stored=%s replayed=%s broken=%s",
                tool_id, check.stored_total, check.replayed_total, check.broken_links,
            )
        return check

    # ------------------------------------------------------------------
    # Mantenimiento
    # ------------------------------------------------------------------

    def reset_tool(
        self,
        tool_id: int,
        technician_id: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ResetResult:
        with self._locks.hold(tool_id):
            result = RetryExecutor(self._retry_config).execute(
                lambda: self._reset_once(tool_id, technician_id, notes),
                on_retry=lambda attempt, exc: self._db.rollback(),
            )

        logger.info(
            "[USAGE] Tool reset tool_id=%s previous=%s acknowledged_alerts=%s",
            tool_id, result.previous_total, result.acknowledged_alerts,
        )
        return result

    def _reset_once(self, tool_id: int, technician_id: Optional[str], notes: Optional[str]) -> ResetResult:
        try:
            tool = self._require_tool(tool_id)
            last = ledger_repo.get_last_event(self._db, tool_id)
            previous = last.cumulative_total_after if last else 0.0
            now = _now()

            event = UsageEvent(
                tool_id=tool.tool_id,
                tool_name=tool.tool_name,
                sequence_no=(last.sequence_no + 1) if last else 1,
                event_type=UsageEventType.RESET,
                component_id=MAINTENANCE_RESET_COMPONENT,
                no_of_holes=0.0,
                cutting_length=0.0,
                usage_score=0.0,
                cumulative_total_before=previous,
                cumulative_total_after=0.0,
                tool_life_threshold=tool.tool_life_threshold,
                usage_percentage=0.0,
                remaining_life=tool.tool_life_threshold,
                alert_type=AlertTier.NONE,
                alert_triggered=False,
                operator_id=technician_id,
                notes=notes,
                timestamp=now,
            )
            ledger_repo.append_event(self._db, event)
            tools_repo.set_status(self._db, tool_id, ToolStatus.ACTIVE, now)
            acknowledged = alerts_repo.acknowledge_open_alerts(self._db, tool_id, now)

            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        return ResetResult(
            tool_id=tool_id,
            previous_total=previous,
            new_cumulative_total=0.0,
            status=ToolStatus.ACTIVE,
            acknowledged_alerts=acknowledged,
            event=event,
        )

    # ------------------------------------------------------------------
    # Alertas
    # ------------------------------------------------------------------

    def list_active_alerts(self) -> List[ToolAlert]:
        return alerts_repo.list_open_alerts(self._db)

    def notify_alert(self, alert_id: int, supervisor_email: Optional[str] = None) -> ToolAlert:
        """Reintento manual de envío. SENT si algún canal tuvo éxito."""
        alert = alerts_repo.get_alert(self._db, alert_id)
        if alert is None:
            raise NotFoundError("Alert not found")
        if not alert.is_open:
            raise ConflictError("Alert already acknowledged")
        if self._dispatcher is None:
            raise NotificationDispatchError("Notification dispatcher not configured")

        email = _clean_email(supervisor_email) or alert.supervisor_email
        try:
            outcome = self._dispatcher.send(self._db, alert, email)
            self._db.commit()
        except Exception:
            self._db.rollback()
            raise

        if not outcome.ok:
            raise NotificationDispatchError(
                "Notification could not be delivered",
                errors=[
                    {"field": "email", "message": outcome.email_error or "not attempted"},
                    {"field": "push", "message": outcome.push_error or "not attempted"},
                ],
            )
        return alerts_repo.get_alert(self._db, alert_id)

    def acknowledge_alert(self, alert_id: int) -> ToolAlert:
        alert = alerts_repo.get_alert(self._db, alert_id)
        if alert is None:
            raise NotFoundError("Alert not found")
        if alert.is_open:
            alerts_repo.acknowledge_alert(self._db, alert_id, _now())
            self._db.commit()
        return alerts_repo.get_alert(self._db, alert_id)

    # ------------------------------------------------------------------
    # Registro de herramientas
    # ------------------------------------------------------------------

    def create_tool(
        self,
        tool_id: int,
        tool_name: str,
        tool_life_threshold: float,
        holder_name: str = "",
        atc_pocket_no: str = "",
        tool_room_no: str = "",
        supervisor_email: Optional[str] = None,
    ) -> MasterTool:
        if not tool_name or not tool_name.strip():
            raise ValidationError.for_field("tool_name", "is required")
        if tool_life_threshold is None or tool_life_threshold <= 0:
            raise ValidationError.for_field("tool_life_threshold", "must be > 0")
        if tools_repo.get_tool(self._db, tool_id) is not None:
            raise ConflictError("Tool with this ID already exists")

        tool = MasterTool(
            tool_id=tool_id,
            tool_name=tool_name.strip(),
            tool_life_threshold=float(tool_life_threshold),
            holder_name=(holder_name or "").strip(),
            atc_pocket_no=(atc_pocket_no or "").strip(),
            tool_room_no=(tool_room_no or "").strip(),
            supervisor_email=_clean_email(supervisor_email),
        )
        try:
            tools_repo.insert_tool(self._db, tool, _now())
            self._db.commit()
        except IntegrityError:
            self._db.rollback()
            raise ConflictError("Tool with this ID already exists")
        logger.info("[TOOLS] Master tool created tool_id=%s threshold=%s", tool_id, tool.tool_life_threshold)
        return tool

    def get_tool(self, tool_id: int) -> MasterTool:
        return self._require_tool(tool_id)

    def list_tools_with_usage(self) -> List[ToolWithUsage]:
        result = []
        for tool in tools_repo.list_tools(self._db):
            cumulative = ledger_repo.get_cumulative_usage(self._db, tool.tool_id)
            result.append(
                ToolWithUsage(
                    tool=tool,
                    cumulative_usage=cumulative,
                    usage_percentage=usage_percentage(cumulative, tool.tool_life_threshold),
                    remaining_life=remaining_life(cumulative, tool.tool_life_threshold),
                )
            )
        return result

    def update_tool(self, tool_id: int, changes: Dict[str, Any]) -> MasterTool:
        """Actualización parcial.

        Un cambio de umbral no rebasa el historial: las filas conservan su
        snapshot y el estado del registro se recalcula con el acumulado
        actual contra el umbral nuevo.
        """
        fields: Dict[str, Any] = {}
        for key in ("tool_name", "holder_name", "atc_pocket_no", "tool_room_no"):
            if changes.get(key) is not None:
                fields[key] = str(changes[key]).strip()
        if "tool_name" in fields and not fields["tool_name"]:
            raise ValidationError.for_field("tool_name", "must not be blank")
        if "supervisor_email" in changes:
            fields["supervisor_email"] = _clean_email(changes["supervisor_email"])
        threshold = changes.get("tool_life_threshold")
        if threshold is not None:
            if threshold <= 0:
                raise ValidationError.for_field("tool_life_threshold", "must be > 0")
            fields["tool_life_threshold"] = float(threshold)

        with self._locks.hold(tool_id):
            try:
                tool = self._require_tool(tool_id)
                now = _now()
                if threshold is not None:
                    cumulative = ledger_repo.get_cumulative_usage(self._db, tool_id)
                    fields["status"] = classify(cumulative, float(threshold)).registry_status.value
                if fields:
                    tools_repo.update_tool_fields(self._db, tool_id, fields, now)
                self._db.commit()
            except Exception:
                self._db.rollback()
                raise

        if threshold is not None and float(threshold) != tool.tool_life_threshold:
            logger.info(
                "[TOOLS] Threshold changed tool_id=%s %s -> %s (history not rebased)",
                tool_id, tool.tool_life_threshold, threshold,
            )
        return self._require_tool(tool_id)

    def delete_tool(self, tool_id: int) -> None:
        # El historial de uso queda huérfano a propósito.
        with self._locks.hold(tool_id):
            deleted = tools_repo.delete_tool(self._db, tool_id)
            if not deleted:
                self._db.rollback()
                raise NotFoundError("Tool not found")
            self._db.commit()
        logger.info("[TOOLS] Master tool deleted tool_id=%s", tool_id)

    def _require_tool(self, tool_id: int) -> MasterTool:
        tool = tools_repo.get_tool(self._db, tool_id)
        if tool is None:
            raise NotFoundError("Tool not found in master list")
        return tool
