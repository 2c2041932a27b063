"""SQL table backend via SQLAlchemy.

Each logical table maps to a physical SQL table with two columns: the row
key and a JSON document holding the row's fields. Used by the simulator
when a state directory is configured, and usable against any database
SQLAlchemy supports.

Example:
    >>> client = SqlTableClient(
    ...     "users",
    ...     primary_key="id",
    ...     columns={"name": "string"},
    ...     url="sqlite:///state/users.db",
    ... )
    >>> client.insert("u1", {"name": "Ada"})
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional

from sqlalchemy import JSON, Column, MetaData, String, Table, create_engine, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from stratus.errors import BackendTransportError

from .base import Row, TableClient

KEY_LENGTH = 255


class SqlTableClient(TableClient):
    """
    Table client backed by a SQL database.

    Args:
        table_name: Physical table name
        primary_key: Name of the key attribute
        columns: Column name to type
        url: SQLAlchemy connection URL (ignored when ``engine`` is given)
        engine: Existing SQLAlchemy engine
        create_table: Create the physical table if it does not exist
    """

    backend = "sql"
    transport_errors = (SQLAlchemyError,)

    def __init__(
        self,
        table_name: str,
        primary_key: str = "id",
        columns: Optional[Mapping[str, Any]] = None,
        *,
        url: Optional[str] = None,
        engine: Optional[Engine] = None,
        create_table: bool = True,
    ):
        super().__init__(table_name, primary_key, columns or {})
        if engine is None and not url:
            raise ValueError("SqlTableClient requires a connection url or an engine")
        try:
            self._engine = engine or create_engine(url, pool_pre_ping=True, echo=False)
            self._metadata = MetaData()
            self._table = Table(
                table_name,
                self._metadata,
                Column("key", String(KEY_LENGTH), primary_key=True),
                Column("data", JSON, nullable=False),
            )
            if create_table:
                self._metadata.create_all(self._engine)
        except SQLAlchemyError as exc:
            raise BackendTransportError(
                f"Failed to connect to database: {exc}",
                resource=table_name,
                operation="connect",
                original_error=exc,
            ) from exc

    @property
    def engine(self) -> Engine:
        return self._engine

    def _exists(self, key: str) -> bool:
        stmt = select(self._table.c.key).where(self._table.c.key == key)
        with self._engine.connect() as conn:
            return conn.execute(stmt).first() is not None

    def _read(self, key: str) -> Optional[Row]:
        stmt = select(self._table.c.data).where(self._table.c.key == key)
        with self._engine.connect() as conn:
            data = conn.execute(stmt).scalar_one_or_none()
        return dict(data) if data is not None else None

    def _put(self, key: str, row: Row) -> None:
        with self._engine.begin() as conn:
            conn.execute(delete(self._table).where(self._table.c.key == key))
            conn.execute(insert(self._table).values(key=key, data=row))

    def _merge(self, key: str, row: Row) -> None:
        with self._engine.begin() as conn:
            current = conn.execute(
                select(self._table.c.data).where(self._table.c.key == key)
            ).scalar_one_or_none()
            if current is None:
                conn.execute(insert(self._table).values(key=key, data=row))
                return
            merged = dict(current)
            merged.update(row)
            conn.execute(update(self._table).where(self._table.c.key == key).values(data=merged))

    def _remove(self, key: str) -> None:
        with self._engine.begin() as conn:
            conn.execute(delete(self._table).where(self._table.c.key == key))

    def _scan(self) -> Iterable[Row]:
        with self._engine.connect() as conn:
            return [dict(data) for data in conn.execute(select(self._table.c.data)).scalars()]

    def close(self) -> None:
        """Dispose of pooled connections."""
        self._engine.dispose()


__all__ = ["SqlTableClient"]
