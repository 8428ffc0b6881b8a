"""Despacho de notificaciones de alertas.

El registro de uso nunca espera al envío: la alerta queda PENDING en la
misma transacción y el envío corre en un pool de hilos con su propia
sesión. El estado persistido (PENDING/SENT) es el registro durable del
resultado. Un solo intento automático; el reintento es manual.
"""

from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy.orm import Session

from ..tool_life import alert_repository as alerts_repo
from ..tool_life.models import ToolAlert
from .base import DispatchOutcome
from .gateway import NotificationGateway
from .payload import AlertNotification
from .recipients import get_supervisor_push_tokens

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    def __init__(
        self,
        gateway: NotificationGateway,
        session_factory: Callable[[], Session],
        executor: Optional[Executor] = None,
        max_workers: int = 4,
    ) -> None:
        self._gateway = gateway
        self._session_factory = session_factory
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="alert-dispatch"
        )

    @property
    def gateway(self) -> NotificationGateway:
        return self._gateway

    def send(self, db: Session, alert: ToolAlert, email: Optional[str]) -> DispatchOutcome:
        """Envía una alerta y la marca SENT si algún canal tuvo éxito.

        No hace commit: el llamador decide el límite transaccional.
        """
        tokens = get_supervisor_push_tokens(db)
        outcome = self._gateway.dispatch(email, AlertNotification.from_alert(alert), tokens)

        if outcome.ok:
            alerts_repo.mark_sent(db, alert.id, datetime.now(timezone.utc))
            logger.info(
                "[ALERT] Alert sent alert_id=%s tool_id=%s tier=%s email=%s push=%s",
                alert.id, alert.tool_id, alert.alert_type.value,
                outcome.email_sent, outcome.push_sent,
            )
        else:
            logger.warning(
                "[ALERT] Dispatch failed alert_id=%s tool_id=%s email_err=%s push_err=%s - stays PENDING",
                alert.id, alert.tool_id, outcome.email_error, outcome.push_error,
            )
        return outcome

    def submit(self, alert_id: int, email: Optional[str]) -> Future:
        """Fire-and-forget: programa el envío tras el commit del request."""
        return self._executor.submit(self._run, alert_id, email)

    def _run(self, alert_id: int, email: Optional[str]) -> Optional[DispatchOutcome]:
        db = self._session_factory()
        try:
            alert = alerts_repo.get_alert(db, alert_id)
            if alert is None or not alert.is_open:
                logger.info("[ALERT] Skip dispatch alert_id=%s (missing or closed)", alert_id)
                return None

            outcome = self.send(db, alert, email)
            db.commit()
            return outcome
        except Exception:
            # Hilo de fondo: no hay llamador que reciba el error.
            db.rollback()
            logger.exception("[ALERT] Background dispatch error alert_id=%s", alert_id)
            return None
        finally:
            db.close()

    def shutdown(self, wait: bool = True) -> None:
        self._executor.shutdown(wait=wait)
