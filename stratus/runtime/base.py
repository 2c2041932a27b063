"""
Runtime table client contract.

``TableClient`` implements the table operations once, on top of six backend
primitives every implementation provides:

    _exists(key)        -> bool
    _read(key)          -> row or None
    _put(key, row)      -> create or replace a row
    _merge(key, row)    -> write the given fields onto an existing row
    _remove(key)        -> delete a row
    _scan()             -> iterate all rows

Mutating operations probe for existence first and then mutate in a second
call. Two callers racing on the same key may both pass the probe; the later
write wins. Backend failures surface as ``BackendTransportError`` and are
never retried here.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, TypeVar

from stratus.errors import (
    AlreadyExistsError,
    BackendTransportError,
    NotFoundError,
    StratusError,
)
from stratus.resources.table import ColumnType, validate_row, validate_row_key

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
T = TypeVar("T")


def encode_row(row: Mapping[str, Any]) -> Row:
    """Copy ``row`` with dates rendered as ISO-8601 strings, the form every backend stores."""
    return {
        name: value.isoformat() if isinstance(value, (date, datetime)) else value
        for name, value in row.items()
    }


class TableClient(ABC):
    """
    Base class for table clients.

    Args:
        table_name: Physical table name
        primary_key: Name of the key attribute
        columns: Column name to type
    """

    #: Backend identifier used in logs
    backend: str = ""

    def __init__(self, table_name: str, primary_key: str, columns: Mapping[str, Any]):
        self.table_name = table_name
        self.primary_key = primary_key
        self.columns: Dict[str, ColumnType] = {name: ColumnType(kind) for name, kind in columns.items()}

    # ------------------------------------------------------------------
    # Contract
    # ------------------------------------------------------------------

    def insert(self, key: str, row: Mapping[str, Any]) -> None:
        """Create a row. Fails if ``key`` exists."""
        self._validate(key, row, "insert")
        if self._call("insert", key, self._exists, key):
            raise AlreadyExistsError(
                f"Row with key={key} already exists in the table",
                resource=self.table_name,
                operation="insert",
                key=key,
            )
        self._call("insert", key, self._put, key, encode_row(row))

    def update(self, key: str, row: Mapping[str, Any]) -> None:
        """Merge fields into an existing row. Fails if ``key`` is absent."""
        self._validate(key, row, "update")
        self._require(key, "update")
        self._call("update", key, self._merge, key, encode_row(row))

    def upsert(self, key: str, row: Mapping[str, Any]) -> None:
        """Update the row if ``key`` exists, insert it otherwise."""
        self._validate(key, row, "upsert")
        if self._call("upsert", key, self._exists, key):
            self._call("upsert", key, self._merge, key, encode_row(row))
        else:
            self._call("upsert", key, self._put, key, encode_row(row))

    def delete(self, key: str) -> None:
        """Remove a row. Fails if ``key`` is absent."""
        self._require(key, "delete")
        self._call("delete", key, self._remove, key)

    def get(self, key: str) -> Row:
        """Return a row. Fails if ``key`` is absent."""
        self._require(key, "get")
        row = self._call("get", key, self._read, key)
        if row is None:
            raise self._not_found(key, "get")
        return row

    def try_get(self, key: str) -> Optional[Row]:
        """Return a row, or ``None`` when ``key`` is absent."""
        if not self._call("tryGet", key, self._exists, key):
            return None
        return self._call("tryGet", key, self._read, key)

    def list(self) -> List[Row]:
        """Return every row; order is unspecified."""
        return self._call("list", None, lambda: list(self._scan()))

    # ------------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------------

    @abstractmethod
    def _exists(self, key: str) -> bool:
        ...

    @abstractmethod
    def _read(self, key: str) -> Optional[Row]:
        ...

    @abstractmethod
    def _put(self, key: str, row: Row) -> None:
        ...

    @abstractmethod
    def _merge(self, key: str, row: Row) -> None:
        ...

    @abstractmethod
    def _remove(self, key: str) -> None:
        ...

    @abstractmethod
    def _scan(self) -> Iterable[Row]:
        ...

    #: Backend exception types wrapped into BackendTransportError
    transport_errors: tuple = ()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _validate(self, key: str, row: Mapping[str, Any], operation: str) -> None:
        validate_row_key(key, self.primary_key, table=self.table_name, operation=operation)
        validate_row(row, self.columns, table=self.table_name, key=key, operation=operation)

    def _require(self, key: str, operation: str) -> None:
        if not self._call(operation, key, self._exists, key):
            raise self._not_found(key, operation)

    def _not_found(self, key: str, operation: str) -> NotFoundError:
        return NotFoundError(
            f"Row with key={key} does not exist in the table",
            resource=self.table_name,
            operation=operation,
            key=key,
        )

    def _call(self, operation: str, key: Optional[str], fn: Callable[..., T], *args: Any) -> T:
        logger.debug(f"{self.backend} {operation} table={self.table_name} key={key}")
        try:
            return fn(*args)
        except StratusError:
            raise
        except self.transport_errors as exc:
            raise BackendTransportError(
                f"{self.backend} backend failed: {exc}",
                resource=self.table_name,
                operation=operation,
                key=key,
                original_error=exc,
            ) from exc

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.table_name!r})"


__all__ = ["TableClient", "Row", "encode_row"]
