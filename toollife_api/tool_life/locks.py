"""Serialización por herramienta.

Cada herramienta tiene su propio lock: leer el último acumulado, anexar
al ledger, deduplicar alertas y actualizar el registro ocurren como una
sola unidad de trabajo. Herramientas distintas se procesan en paralelo.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Iterator


class ToolLockRegistry:
    """Locks por tool_id, creados bajo demanda."""

    def __init__(self) -> None:
        self._locks: Dict[int, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _lock_for(self, tool_id: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(tool_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[tool_id] = lock
            return lock

    @contextmanager
    def hold(self, tool_id: int) -> Iterator[None]:
        lock = self._lock_for(int(tool_id))
        with lock:
            yield

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)


# Un registro por proceso: todas las sesiones comparten los mismos locks.
_tool_locks = ToolLockRegistry()


def get_tool_locks() -> ToolLockRegistry:
    return _tool_locks
