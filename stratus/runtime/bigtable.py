"""Google Cloud Bigtable table backend.

Rows are stored under their key with one column family per declared
column; each family holds a single ``value`` cell whose content is the
JSON-encoded field value. The reserved ``_key`` family marks the row as
present even when it has no fields. Reads only look at the newest cell
version.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Iterable, Mapping, Optional

from google.api_core.exceptions import GoogleAPIError
from google.cloud import bigtable
from google.cloud.bigtable import row_filters

from stratus.errors import ConfigurationError
from stratus.resources.table import KEY_FAMILY

from .base import Row, TableClient

logger = logging.getLogger(__name__)

VALUE_QUALIFIER = b"value"


class BigtableTableClient(TableClient):
    """
    Table client backed by a Bigtable table.

    Args:
        table_name: Bigtable table id
        instance_id: Bigtable instance id
        primary_key: Name of the key attribute
        columns: Column name to type
        project_id: Google Cloud project (defaults to ``GOOGLE_PROJECT_ID``)
        table: Pre-built table handle (skips client creation)
        verify: Check that the table exists on construction
    """

    backend = "bigtable"
    transport_errors = (GoogleAPIError,)

    def __init__(
        self,
        table_name: str,
        instance_id: str,
        primary_key: str = "id",
        columns: Optional[Mapping[str, Any]] = None,
        *,
        project_id: Optional[str] = None,
        table: Any = None,
        verify: bool = False,
    ):
        super().__init__(table_name, primary_key, columns or {})
        self.instance_id = instance_id
        if table is None:
            project_id = project_id or os.environ.get("GOOGLE_PROJECT_ID")
            client = bigtable.Client(project=project_id)
            table = client.instance(instance_id).table(table_name)
        self._table = table
        if verify:
            self._verify_table()

    def _verify_table(self) -> None:
        exists = self._call("connect", None, self._table.exists)
        if not exists:
            raise ConfigurationError(
                f"Table with name {self.table_name} does not exist for an instance with id: {self.instance_id}",
                resource=self.table_name,
            )

    @staticmethod
    def _row_key(key: str) -> bytes:
        return key.encode("utf-8")

    @staticmethod
    def _decode(partial_row: Any) -> Row:
        row: Dict[str, Any] = {}
        for family, qualifiers in partial_row.cells.items():
            if family == KEY_FAMILY:
                continue
            cells = qualifiers.get(VALUE_QUALIFIER)
            if cells:
                row[family] = json.loads(cells[0].value.decode("utf-8"))
        return row

    def _exists(self, key: str) -> bool:
        partial_row = self._table.read_row(
            self._row_key(key),
            filter_=row_filters.CellsColumnLimitFilter(1),
        )
        return partial_row is not None

    def _read(self, key: str) -> Optional[Row]:
        partial_row = self._table.read_row(
            self._row_key(key),
            filter_=row_filters.CellsColumnLimitFilter(1),
        )
        return self._decode(partial_row) if partial_row is not None else None

    def _set_cells(self, direct_row: Any, row: Row) -> None:
        for field_name, value in row.items():
            direct_row.set_cell(field_name, VALUE_QUALIFIER, json.dumps(value).encode("utf-8"))

    def _put(self, key: str, row: Row) -> None:
        direct_row = self._table.direct_row(self._row_key(key))
        direct_row.delete()
        direct_row.set_cell(KEY_FAMILY, VALUE_QUALIFIER, self._row_key(key))
        self._set_cells(direct_row, row)
        direct_row.commit()

    def _merge(self, key: str, row: Row) -> None:
        direct_row = self._table.direct_row(self._row_key(key))
        direct_row.set_cell(KEY_FAMILY, VALUE_QUALIFIER, self._row_key(key))
        self._set_cells(direct_row, row)
        direct_row.commit()

    def _remove(self, key: str) -> None:
        direct_row = self._table.direct_row(self._row_key(key))
        direct_row.delete()
        direct_row.commit()

    def _scan(self) -> Iterable[Row]:
        rows = self._table.read_rows(filter_=row_filters.CellsColumnLimitFilter(1))
        return [self._decode(partial_row) for partial_row in rows]


__all__ = ["BigtableTableClient", "VALUE_QUALIFIER"]
