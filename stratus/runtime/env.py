"""Environment variable contract between synthesized consumers and runtime clients.

A consumer bound to a table receives four opaque string values; runtime
clients read them back by the table's short address.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Dict, Mapping

from stratus.errors import ConfigurationError

TARGET_ENV = "STRATUS_TARGET"
TABLE_ENV_PREFIX = "TABLE_NAME_"
FUNCTION_ENV_PREFIX = "FUNCTION_NAME_"
MEMORY_CONNECTION = "memory"


def table_env_name(short_addr: str) -> str:
    return f"{TABLE_ENV_PREFIX}{short_addr}"


def function_env_name(short_addr: str) -> str:
    return f"{FUNCTION_ENV_PREFIX}{short_addr}"


@dataclass(frozen=True)
class TableEnv:
    """Runtime settings of one table as seen through the environment."""

    table_name: str
    connection: str
    primary_key: str
    columns: Dict[str, str]

    def to_env(self, short_addr: str) -> Dict[str, str]:
        base = table_env_name(short_addr)
        return {
            base: self.table_name,
            f"{base}_CONNECTION": self.connection,
            f"{base}_PRIMARY_KEY": self.primary_key,
            f"{base}_COLUMNS": json.dumps(self.columns, sort_keys=True),
        }

    @classmethod
    def from_env(cls, short_addr: str, environ: Mapping[str, str]) -> "TableEnv":
        base = table_env_name(short_addr)
        try:
            return cls(
                table_name=environ[base],
                connection=environ.get(f"{base}_CONNECTION", ""),
                primary_key=environ.get(f"{base}_PRIMARY_KEY", "id"),
                columns=json.loads(environ.get(f"{base}_COLUMNS") or "{}"),
            )
        except KeyError:
            raise ConfigurationError(
                f"Environment variable {base} is not set",
                hint="Is the table bound to this function?",
            ) from None
        except ValueError as exc:
            raise ConfigurationError(f"Malformed {base}_COLUMNS: {exc}") from exc


__all__ = [
    "TARGET_ENV",
    "TABLE_ENV_PREFIX",
    "FUNCTION_ENV_PREFIX",
    "MEMORY_CONNECTION",
    "TableEnv",
    "table_env_name",
    "function_env_name",
]
