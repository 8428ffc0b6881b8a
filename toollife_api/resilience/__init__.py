"""Utilidades de resiliencia (reintentos ante conflictos de escritura)."""

from .retry import RetryConfig, RetryExecutor

__all__ = ["RetryConfig", "RetryExecutor"]
