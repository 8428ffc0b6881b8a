"""Retry con backoff exponencial.

Se usa para el append del ledger: si otro proceso anexó primero el mismo
sequence_no, la unidad de trabajo completa se repite con el acumulado nuevo.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RetryConfig:
    """Configuración para retry con backoff."""

    max_attempts: int = 3
    base_delay: float = 0.05  # segundos
    max_delay: float = 1.0  # segundos
    exponential_base: float = 2.0
    jitter: bool = True  # Añadir variación aleatoria
    retryable_exceptions: Tuple[Type[Exception], ...] = (Exception,)

    def calculate_delay(self, attempt: int) -> float:
        """Calcula el delay para un intento dado (1-indexed)."""
        delay = self.base_delay * (self.exponential_base ** (attempt - 1))
        delay = min(delay, self.max_delay)

        if self.jitter:
            # Añadir jitter de ±25%
            jitter_range = delay * 0.25
            delay += random.uniform(-jitter_range, jitter_range)

        return max(0, delay)


class RetryExecutor:
    """Ejecutor de operaciones con retry.

    ``on_retry(attempt, exc)`` se llama antes de cada reintento; el servicio
    lo usa para hacer rollback de la sesión.
    """

    def __init__(self, config: Optional[RetryConfig] = None):
        self._config = config or RetryConfig()

    def execute(
        self,
        func: Callable[[], T],
        on_retry: Optional[Callable[[int, Exception], None]] = None,
    ) -> T:
        for attempt in range(1, self._config.max_attempts + 1):
            try:
                return func()

            except self._config.retryable_exceptions as e:
                if attempt == self._config.max_attempts:
                    logger.error(
                        "RETRY_EXHAUSTED func=%s attempts=%d err=%s",
                        getattr(func, "__name__", "call"), attempt, type(e).__name__,
                    )
                    raise

                delay = self._config.calculate_delay(attempt)
                logger.warning(
                    "RETRY func=%s attempt=%d/%d delay=%.2fs err=%s",
                    getattr(func, "__name__", "call"), attempt,
                    self._config.max_attempts, delay, type(e).__name__,
                )
                if on_retry:
                    on_retry(attempt, e)
                time.sleep(delay)

        raise RuntimeError("Retry loop completed without result")
