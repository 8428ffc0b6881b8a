"""Notification Gateway: fan-out email + push con canales independientes.

Estado de proceso explícito: ``init()`` se llama una vez al arrancar y la
instancia se inyecta en el dispatcher. Llamar ``init()`` de nuevo no
reconstruye los canales.
"""

from __future__ import annotations

import logging
import threading
from typing import List, Optional

from common.config import Settings, get_settings
from .base import DispatchOutcome
from .email_channel import EmailChannel
from .payload import AlertNotification
from .push_channel import PushChannel

logger = logging.getLogger(__name__)


class NotificationGateway:
    def __init__(
        self,
        email: Optional[EmailChannel] = None,
        push: Optional[PushChannel] = None,
    ) -> None:
        self._email = email
        self._push = push
        self._lock = threading.Lock()
        self._initialized = email is not None and push is not None

    @property
    def initialized(self) -> bool:
        return self._initialized

    @property
    def email_enabled(self) -> bool:
        return bool(self._email is not None and self._email.enabled)

    @property
    def push_enabled(self) -> bool:
        return bool(self._push is not None and self._push.enabled)

    def init(self, settings: Settings | None = None) -> "NotificationGateway":
        with self._lock:
            if self._initialized:
                return self

            settings = settings or get_settings()
            if self._email is None:
                self._email = EmailChannel(
                    api_key=settings.sendgrid_api_key,
                    from_email=settings.email_from,
                    from_name=settings.email_from_name,
                    timeout_seconds=settings.notify_timeout_seconds,
                )
            if self._push is None:
                self._push = PushChannel(
                    gateway_url=settings.push_gateway_url,
                    internal_key=settings.internal_api_key,
                    timeout_seconds=settings.notify_timeout_seconds,
                )
            self._initialized = True
            logger.info(
                "[NOTIFY] Gateway initialized email=%s push=%s",
                self._email.enabled,
                self._push.enabled,
            )
            return self

    def dispatch(
        self,
        email: Optional[str],
        notification: AlertNotification,
        push_tokens: List[str],
    ) -> DispatchOutcome:
        """Envía por ambos canales. Un fallo en uno no anula el otro."""
        if not self._initialized:
            self.init()

        outcome = DispatchOutcome()

        if email:
            try:
                result = self._email.send_tool_life_alert(email, notification)
                outcome.email_sent = result.success
                outcome.email_error = result.error
            except Exception as e:
                outcome.email_error = type(e).__name__
                logger.error("[EMAIL] Error sending tool alert tool_id=%s: %s", notification.tool_id, e)

        if push_tokens:
            try:
                result = self._push.send_to_many(
                    push_tokens,
                    notification.push_title,
                    notification.push_body,
                    notification.push_data(),
                )
                outcome.push_sent = result.success
                outcome.push_error = result.error
            except Exception as e:
                outcome.push_error = type(e).__name__
                logger.error("[PUSH] Error sending push tool_id=%s: %s", notification.tool_id, e)

        return outcome


_gateway = NotificationGateway()


def get_gateway() -> NotificationGateway:
    return _gateway
