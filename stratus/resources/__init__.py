"""Resource kinds: tables and functions."""

from __future__ import annotations

from .function import FUNCTION_KIND, Duration, FunctionConfig, FunctionOperation
from .table import TABLE_KIND, ColumnType, TableConfig, TableOperation, validate_row, validate_row_key

__all__ = [
    "FUNCTION_KIND",
    "Duration",
    "FunctionConfig",
    "FunctionOperation",
    "TABLE_KIND",
    "ColumnType",
    "TableConfig",
    "TableOperation",
    "validate_row",
    "validate_row_key",
]
