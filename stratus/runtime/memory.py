"""In-process table backend used by the simulator and in tests.

Stores are shared per table name within a process, so every client opened
for the same table sees the same rows. Each primitive holds the store lock;
operations spanning several primitives do not.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Dict, Iterable, Mapping, Optional

from .base import Row, TableClient

_STORES: Dict[str, Dict[str, Row]] = {}
_LOCKS: Dict[str, threading.RLock] = {}
_REGISTRY_LOCK = threading.Lock()


def _store_for(table_name: str):
    with _REGISTRY_LOCK:
        if table_name not in _STORES:
            _STORES[table_name] = {}
            _LOCKS[table_name] = threading.RLock()
        return _STORES[table_name], _LOCKS[table_name]


def reset_memory_tables() -> None:
    """Drop every in-memory table (for testing)."""
    with _REGISTRY_LOCK:
        _STORES.clear()
        _LOCKS.clear()


class MemoryTableClient(TableClient):
    """Table client backed by a process-local dictionary."""

    backend = "memory"

    def __init__(
        self,
        table_name: str,
        primary_key: str = "id",
        columns: Optional[Mapping[str, Any]] = None,
        initial_rows: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ):
        super().__init__(table_name, primary_key, columns or {})
        self._rows, self._lock = _store_for(table_name)
        for key, row in (initial_rows or {}).items():
            self.upsert(key, row)

    def _exists(self, key: str) -> bool:
        with self._lock:
            return key in self._rows

    def _read(self, key: str) -> Optional[Row]:
        with self._lock:
            row = self._rows.get(key)
            return copy.deepcopy(row) if row is not None else None

    def _put(self, key: str, row: Row) -> None:
        with self._lock:
            self._rows[key] = copy.deepcopy(row)

    def _merge(self, key: str, row: Row) -> None:
        with self._lock:
            self._rows.setdefault(key, {}).update(copy.deepcopy(row))

    def _remove(self, key: str) -> None:
        with self._lock:
            self._rows.pop(key, None)

    def _scan(self) -> Iterable[Row]:
        with self._lock:
            return [copy.deepcopy(row) for row in self._rows.values()]


__all__ = ["MemoryTableClient", "reset_memory_tables"]
