"""Clasificación del desgaste acumulado en niveles de alerta.

Función pura: sin I/O, se invoca síncronamente dentro del registro de uso.
"""

from __future__ import annotations

from .models import AlertTier, Classification, ToolStatus

ORDER_FRACTION = 0.75
WARNING_FRACTION = 0.90
CRITICAL_FRACTION = 1.00

_REGISTRY_STATUS = {
    AlertTier.CRITICAL: ToolStatus.END_OF_LIFE,
    AlertTier.WARNING: ToolStatus.NEAR_END_OF_LIFE,
    AlertTier.ORDER: ToolStatus.ACTIVE,
    AlertTier.NONE: ToolStatus.ACTIVE,
}

_RECOMMENDATIONS = {
    ToolStatus.END_OF_LIFE: "Tool requires immediate replacement",
    ToolStatus.NEAR_END_OF_LIFE: "Tool nearing end of life, prepare for replacement",
}
_DEFAULT_RECOMMENDATION = "Tool usage normal, continue monitoring"


def classify_tier(cumulative_after: float, threshold: float) -> AlertTier:
    """Orden de evaluación: CRITICAL, WARNING, ORDER, NONE."""
    if threshold <= 0:
        raise ValueError("threshold must be positive")

    if cumulative_after >= threshold * CRITICAL_FRACTION:
        return AlertTier.CRITICAL
    if cumulative_after >= threshold * WARNING_FRACTION:
        return AlertTier.WARNING
    if cumulative_after >= threshold * ORDER_FRACTION:
        return AlertTier.ORDER
    return AlertTier.NONE


def classify(cumulative_after: float, threshold: float) -> Classification:
    tier = classify_tier(cumulative_after, threshold)
    return Classification(tier=tier, registry_status=_REGISTRY_STATUS[tier])


def recommendation_for(status: ToolStatus | str) -> str:
    return _RECOMMENDATIONS.get(ToolStatus(status), _DEFAULT_RECOMMENDATION)
