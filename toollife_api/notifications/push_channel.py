"""Canal push: multicast FCM a través del gateway interno.

El gateway (backend de notificaciones) mantiene las credenciales de
Firebase; este servicio solo le envía tokens + payload.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

import requests

from .base import ChannelResult

logger = logging.getLogger(__name__)


class PushChannel:
    def __init__(
        self,
        gateway_url: Optional[str],
        internal_key: Optional[str],
        timeout_seconds: float = 5.0,
        http: Optional[requests.Session] = None,
    ) -> None:
        self._gateway_url = gateway_url.rstrip("/") if gateway_url else None
        self._internal_key = internal_key
        self._timeout = timeout_seconds
        self._http = http or requests.Session()

        if not self.enabled:
            logger.warning("[PUSH] PUSH_GATEWAY_URL/INTERNAL_API_KEY not configured - push disabled")

    @property
    def enabled(self) -> bool:
        return bool(self._gateway_url and self._internal_key)

    def send_to_many(
        self,
        tokens: List[str],
        title: str,
        body: str,
        data: Dict[str, str],
    ) -> ChannelResult:
        if not self.enabled:
            return ChannelResult(success=False, error="push not configured")
        if not tokens:
            return ChannelResult(success=False, error="no device tokens")

        response = self._http.post(
            f"{self._gateway_url}/notifications/internal/send-multicast",
            json={
                "tokens": tokens,
                "notification": {"title": title, "body": body},
                "data": data,
                "android": {"priority": "high", "notification": {"channelId": "tool_alerts"}},
            },
            headers={
                "X-Internal-Key": self._internal_key,
                "Content-Type": "application/json",
            },
            timeout=self._timeout,
        )

        if not response.ok:
            logger.warning("[PUSH] Failed to send multicast: %s %s", response.status_code, response.text)
            return ChannelResult(success=False, error=f"HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError:
            payload = {}
        delivered = int(payload.get("successCount", len(tokens)))

        logger.info("[PUSH] Push notifications sent: %s/%s", delivered, len(tokens))
        return ChannelResult(success=delivered > 0, delivered=delivered)
