"""Canal de email: SendGrid (SDK oficial)."""

from __future__ import annotations

import logging
from typing import Optional

from python_http_client.exceptions import HTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Content, Email, Mail, To

from .base import ChannelResult
from .payload import AlertNotification

logger = logging.getLogger(__name__)

_ACCEPTED = (200, 201, 202)


class EmailChannel:
    """Envía alertas de vida útil al supervisor de la herramienta."""

    def __init__(
        self,
        api_key: Optional[str],
        from_email: str,
        from_name: str,
        timeout_seconds: float = 5.0,
        client: Optional[SendGridAPIClient] = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._from_name = from_name
        self._timeout = timeout_seconds
        self._client = client

        if not api_key:
            logger.warning("[EMAIL] SENDGRID_API_KEY not configured - email notifications disabled")
        elif self._client is None:
            self._client = SendGridAPIClient(api_key)
            # python_http_client propaga el timeout a cada request.
            self._client.client.timeout = timeout_seconds

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def build_message(self, to_email: str, notification: AlertNotification) -> Mail:
        message = Mail(
            from_email=Email(self._from_email, self._from_name),
            to_emails=To(to_email),
            subject=notification.email_subject,
        )
        message.add_content(Content("text/plain", notification.email_text()))
        message.add_content(Content("text/html", notification.email_html()))
        return message

    def send_tool_life_alert(self, to_email: str, notification: AlertNotification) -> ChannelResult:
        if not self.enabled:
            return ChannelResult(success=False, error="email not configured")
        if not to_email:
            return ChannelResult(success=False, error="no recipient")

        try:
            response = self._client.send(self.build_message(to_email, notification))
        except HTTPError as e:
            logger.warning(
                "[EMAIL] Failed to send tool alert tool_id=%s status=%s",
                notification.tool_id,
                e.status_code,
            )
            return ChannelResult(success=False, error=f"HTTP {e.status_code}")

        if response.status_code in _ACCEPTED:
            # No loguear la dirección del destinatario.
            logger.info("[EMAIL] Tool alert sent tool_id=%s status=%s", notification.tool_id, response.status_code)
            return ChannelResult(success=True, delivered=1)

        logger.warning(
            "[EMAIL] Failed to send tool alert tool_id=%s status=%s",
            notification.tool_id,
            response.status_code,
        )
        return ChannelResult(success=False, error=f"HTTP {response.status_code}")
