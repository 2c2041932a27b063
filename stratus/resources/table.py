"""Key-value table resource.

A table is a set of rows addressed by a string key. Each row maps declared
column names to values; the column types below are checked on every write
that goes through a table client.
"""

from __future__ import annotations

import json
import re
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from stratus.core.kinds import KindSpec, ResourceKind, register_kind
from stratus.errors import SchemaValidationError

KEY_FAMILY = "_key"
COLUMN_NAME_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


class ColumnType(str, Enum):
    """Column types a table schema may declare."""

    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    JSON = "json"


class TableOperation(str, Enum):
    """Operations a consumer may bind on a table."""

    GET = "get"
    TRY_GET = "tryGet"
    LIST = "list"
    INSERT = "insert"
    UPDATE = "update"
    UPSERT = "upsert"
    DELETE = "delete"


class TableConfig(BaseModel):
    """Logical configuration of a table resource."""

    model_config = ConfigDict(extra="forbid", use_enum_values=False)

    columns: Dict[str, ColumnType] = Field(..., min_length=1, description="Column name to type")
    primary_key: str = Field(default="id", min_length=1, description="Name of the key attribute")
    initial_rows: Dict[str, Dict[str, Any]] = Field(
        default_factory=dict,
        description="Rows provisioned together with the table",
    )

    @field_validator("columns")
    @classmethod
    def _check_column_names(cls, value: Dict[str, ColumnType]) -> Dict[str, ColumnType]:
        for name in value:
            if not COLUMN_NAME_PATTERN.match(name):
                raise ValueError(f"invalid column name {name!r}")
        return value

    @model_validator(mode="after")
    def _check_schema(self) -> "TableConfig":
        if self.primary_key in self.columns:
            raise ValueError(
                f"primary key '{self.primary_key}' must not also be declared as a column"
            )
        for key, row in self.initial_rows.items():
            validate_row_key(key, self.primary_key, operation="initial_rows")
            validate_row(row, self.columns, key=key, operation="initial_rows")
        return self

    def columns_spec(self) -> Dict[str, str]:
        """Columns as plain strings, the form injected into runtime environments."""
        return {name: ColumnType(kind).value for name, kind in self.columns.items()}


def _matches(value: Any, column_type: ColumnType) -> bool:
    if column_type is ColumnType.STRING:
        return isinstance(value, str)
    if column_type is ColumnType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if column_type is ColumnType.BOOLEAN:
        return isinstance(value, bool)
    if column_type is ColumnType.DATE:
        if isinstance(value, (date, datetime)):
            return True
        if isinstance(value, str):
            try:
                datetime.fromisoformat(value)
            except ValueError:
                return False
            return True
        return False
    try:
        json.dumps(value)
    except (TypeError, ValueError):
        return False
    return True


def validate_row_key(
    key: Any,
    primary_key: str,
    *,
    table: Optional[str] = None,
    operation: Optional[str] = None,
) -> None:
    """Raise :class:`SchemaValidationError` unless ``key`` is a non-empty string."""
    if not isinstance(key, str) or not key:
        raise SchemaValidationError(
            "Row key must be a non-empty string",
            field=primary_key,
            resource=table,
            operation=operation,
        )


def validate_row(
    row: Mapping[str, Any],
    columns: Mapping[str, Any],
    *,
    table: Optional[str] = None,
    key: Optional[str] = None,
    operation: Optional[str] = None,
) -> None:
    """
    Validate ``row`` against ``columns``.

    Raises:
        SchemaValidationError: On a non-mapping row, an undeclared field or a
            value whose type does not match its column
    """
    if not isinstance(row, Mapping):
        raise SchemaValidationError(
            f"Row must be a mapping, got {type(row).__name__}",
            resource=table,
            key=key,
            operation=operation,
        )
    for field_name, value in row.items():
        if field_name not in columns:
            raise SchemaValidationError(
                f"Field '{field_name}' is not declared in the table schema",
                field=field_name,
                resource=table,
                key=key,
                operation=operation,
                hint=f"Declared columns: {', '.join(sorted(columns))}",
            )
        column_type = ColumnType(columns[field_name])
        if not _matches(value, column_type):
            raise SchemaValidationError(
                f"Field '{field_name}' expects a {column_type.value} value, got {type(value).__name__}",
                field=field_name,
                resource=table,
                key=key,
                operation=operation,
            )


TABLE_KIND = KindSpec(
    kind=ResourceKind.TABLE,
    config_model=TableConfig,
    operations=frozenset(operation.value for operation in TableOperation),
)

register_kind(TABLE_KIND)


__all__ = [
    "ColumnType",
    "TableOperation",
    "TableConfig",
    "TABLE_KIND",
    "KEY_FAMILY",
    "validate_row",
    "validate_row_key",
]
