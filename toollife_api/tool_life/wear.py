"""Acumulador de desgaste.

Cálculo puro sobre eventos ordenados: el total acumulado es un fold
sobre el ledger. Reproducir la misma secuencia desde un ledger vacío
produce exactamente los mismos totales en cada paso.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from numbers import Real
from typing import Iterable, List, Optional

from ..errors import ValidationError
from .models import UsageEvent, UsageEventType, WearComputation


def validate_wear_input(field: str, value: object) -> float:
    """Valida un insumo de desgaste (agujeros o longitud de corte).

    Rechaza ausentes, no numéricos (incluido bool), NaN/inf y negativos.
    """
    if value is None:
        raise ValidationError.for_field(field, "is required")
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError.for_field(field, "must be a number")

    number = float(value)
    if not math.isfinite(number):
        raise ValidationError.for_field(field, "must be a finite number")
    if number < 0:
        raise ValidationError.for_field(field, "must be >= 0")
    return number


def compute_wear(
    cumulative_before: float,
    holes_count: float,
    cutting_length: float,
    threshold: float,
) -> WearComputation:
    usage_score = holes_count * cutting_length
    cumulative_after = cumulative_before + usage_score
    return WearComputation(
        usage_score=usage_score,
        cumulative_before=cumulative_before,
        cumulative_after=cumulative_after,
        threshold=threshold,
        usage_percentage=usage_percentage(cumulative_after, threshold),
        remaining_life=remaining_life(cumulative_after, threshold),
    )


def usage_percentage(cumulative: float, threshold: float) -> float:
    return cumulative / threshold * 100


def remaining_life(cumulative: float, threshold: float) -> float:
    return max(0.0, threshold - cumulative)


def apply_event(total: float, event: UsageEvent) -> float:
    if event.event_type is UsageEventType.RESET:
        return 0.0
    return total + event.usage_score


def replay_cumulative(events: Iterable[UsageEvent]) -> float:
    """Recalcula el total acumulado desde cero (eventos en orden ascendente)."""
    total = 0.0
    for event in events:
        total = apply_event(total, event)
    return total


@dataclass
class LedgerCheck:
    stored_total: float
    replayed_total: float
    events: int
    broken_links: List[int]

    @property
    def consistent(self) -> bool:
        return not self.broken_links and math.isclose(
            self.stored_total, self.replayed_total, rel_tol=1e-9, abs_tol=1e-9
        )


def check_ledger(events: List[UsageEvent]) -> LedgerCheck:
    """Verifica la cadena before/after y el total reconstruido.

    ``broken_links`` contiene los sequence_no cuyo ``cumulative_total_before``
    no coincide con el ``cumulative_total_after`` del evento anterior.
    """
    broken: List[int] = []
    previous_after: Optional[float] = None
    total = 0.0

    for event in events:
        expected_before = previous_after if previous_after is not None else 0.0
        if not math.isclose(event.cumulative_total_before, expected_before, abs_tol=1e-9):
            broken.append(event.sequence_no)
        total = apply_event(total, event)
        if not math.isclose(event.cumulative_total_after, total, abs_tol=1e-9):
            broken.append(event.sequence_no)
        previous_after = event.cumulative_total_after

    stored = events[-1].cumulative_total_after if events else 0.0
    return LedgerCheck(
        stored_total=stored,
        replayed_total=total,
        events=len(events),
        broken_links=sorted(set(broken)),
    )
