"""Table client factory.

Maps target names to client builders. A deployed function calls
``table_client_from_env`` with the short address of a bound table; the
target recorded in ``STRATUS_TARGET`` selects the backend.

Example:
    >>> from stratus.runtime import table_client_from_env
    >>> users = table_client_from_env("1a2b3c4d")
    >>> users.upsert("u1", {"name": "Ada"})
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Dict, Mapping, Optional, Union

from sqlalchemy.engine import make_url

from stratus.core.kinds import ResourceKind
from stratus.core.node import ResourceNode
from stratus.errors import ConfigurationError, InvalidResourceError, UnknownTargetError

from .base import TableClient
from .env import MEMORY_CONNECTION, TARGET_ENV, TableEnv
from .memory import MemoryTableClient
from .sql import SqlTableClient

if TYPE_CHECKING:
    from stratus.session import SynthesisSession

ClientBuilder = Callable[[TableEnv, Mapping[str, str]], TableClient]

_CLIENT_BUILDERS: Dict[str, ClientBuilder] = {}


def register_table_client(target: str, builder: ClientBuilder) -> None:
    """Register the client builder used for tables of ``target``."""
    _CLIENT_BUILDERS[target.lower()] = builder


def get_table_client_builder(target: str) -> ClientBuilder:
    """
    Get the client builder for a target.

    Raises:
        UnknownTargetError: If no builder is registered for the target
    """
    key = target.lower()
    if key not in _CLIENT_BUILDERS:
        available = ", ".join(sorted(_CLIENT_BUILDERS))
        raise UnknownTargetError(
            f"No table client registered for target '{target}'. Available: {available or 'none'}"
        )
    return _CLIENT_BUILDERS[key]


def create_table_client(
    target: str,
    settings: TableEnv,
    environ: Optional[Mapping[str, str]] = None,
) -> TableClient:
    builder = get_table_client_builder(target)
    return builder(settings, os.environ if environ is None else environ)


def table_client_from_env(short_addr: str, environ: Optional[Mapping[str, str]] = None) -> TableClient:
    """
    Build the client of a bound table from the deployment environment.

    Raises:
        ConfigurationError: Missing or malformed environment values
        UnknownTargetError: ``STRATUS_TARGET`` names no registered backend
    """
    environ = os.environ if environ is None else environ
    target = environ.get(TARGET_ENV)
    if not target:
        raise ConfigurationError(f"Environment variable {TARGET_ENV} is not set")
    return create_table_client(target, TableEnv.from_env(short_addr, environ), environ)


def open_table(session: "SynthesisSession", table: Union[ResourceNode, str]) -> TableClient:
    """Open a client for a table of an already synthesized session."""
    node = table if isinstance(table, ResourceNode) else session.graph.get(table)
    if node.kind is not ResourceKind.TABLE:
        raise InvalidResourceError("open_table requires a table resource", resource=node.path)
    session.synth()
    settings = TableEnv.from_env(node.address.short_addr, session.synthesizer.table_env(node))
    client = create_table_client(session.synthesizer.name, settings)
    for key, row in sorted(node.config.initial_rows.items()):
        if client.try_get(key) is None:
            client.insert(key, row)
    return client


def _build_sim_client(settings: TableEnv, environ: Mapping[str, str]) -> TableClient:
    if not settings.connection or settings.connection == MEMORY_CONNECTION:
        return MemoryTableClient(settings.table_name, settings.primary_key, settings.columns)
    url = make_url(settings.connection)
    if url.get_backend_name() == "sqlite" and url.database:
        # simulator state directories are created on first use
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return SqlTableClient(
        settings.table_name,
        settings.primary_key,
        settings.columns,
        url=settings.connection,
    )


def _build_bigtable_client(settings: TableEnv, environ: Mapping[str, str]) -> TableClient:
    try:
        from .bigtable import BigtableTableClient
    except ImportError as exc:
        raise ConfigurationError(
            "google-cloud-bigtable is required for the tf-gcp table client",
            hint="Install it with: pip install 'stratus[gcp]'",
        ) from exc
    return BigtableTableClient(
        settings.table_name,
        settings.connection,
        settings.primary_key,
        settings.columns,
        project_id=environ.get("GOOGLE_PROJECT_ID"),
    )


register_table_client("sim", _build_sim_client)
register_table_client("tf-gcp", _build_bigtable_client)


__all__ = [
    "register_table_client",
    "get_table_client_builder",
    "create_table_client",
    "table_client_from_env",
    "open_table",
]
