"""Runtime table clients used by deployed functions.

The Bigtable client is not imported here; it needs the ``gcp`` extra and is
loaded on demand by the client factory.
"""

from __future__ import annotations

from .base import TableClient, encode_row
from .env import MEMORY_CONNECTION, TARGET_ENV, TableEnv, function_env_name, table_env_name
from .factory import (
    create_table_client,
    get_table_client_builder,
    open_table,
    register_table_client,
    table_client_from_env,
)
from .memory import MemoryTableClient, reset_memory_tables
from .sql import SqlTableClient

__all__ = [
    "TableClient",
    "encode_row",
    "MEMORY_CONNECTION",
    "TARGET_ENV",
    "TableEnv",
    "function_env_name",
    "table_env_name",
    "create_table_client",
    "get_table_client_builder",
    "open_table",
    "register_table_client",
    "table_client_from_env",
    "MemoryTableClient",
    "reset_memory_tables",
    "SqlTableClient",
]
