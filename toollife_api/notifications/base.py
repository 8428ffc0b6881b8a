"""Resultados de envío por canal."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass
class ChannelResult:
    success: bool
    error: Optional[str] = None
    delivered: int = 0


@dataclass
class DispatchOutcome:
    """Resultado combinado: éxito si el email fue aceptado O llegó algún push."""

    email_sent: bool = False
    push_sent: bool = False
    email_error: Optional[str] = None
    push_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.email_sent or self.push_sent
