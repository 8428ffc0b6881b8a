"""Notificaciones de alertas de vida útil (email + push)."""

from .base import ChannelResult, DispatchOutcome
from .dispatcher import NotificationDispatcher
from .gateway import NotificationGateway, get_gateway
from .payload import AlertNotification

__all__ = [
    "AlertNotification",
    "ChannelResult",
    "DispatchOutcome",
    "NotificationDispatcher",
    "NotificationGateway",
    "get_gateway",
]
