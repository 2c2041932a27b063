"""Local simulator target.

Emits ``simulator.json``, a flat description of every resource and grant
that a local simulator (or the tests) can load. Tables live in process
memory unless ``[sim] state_dir`` is configured, in which case each table is
a SQLite database under that directory.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List

from stratus.core.kinds import ResourceKind
from stratus.core.naming import CaseConvention, NameOptions
from stratus.core.node import ResourceNode
from stratus.permissions.ledger import PermissionGrant
from stratus.resources.table import ColumnType
from stratus.runtime.env import MEMORY_CONNECTION, TableEnv

from .base import BackendSynthesizer, TemplateFragment, TemplateObject
from .factory import register_synthesizer

SIM_NAME_OPTS = NameOptions(
    max_len=63,
    disallowed_regex=r"[^a-z0-9-]+",
    sep="-",
    case=CaseConvention.LOWERCASE,
)

def _jsonable_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value.isoformat() if hasattr(value, "isoformat") else value for key, value in row.items()}


class SimSynthesizer(BackendSynthesizer):
    """Synthesizer for the local simulator."""

    name = "sim"
    template_filename = "simulator.json"
    name_options = {
        ResourceKind.TABLE: SIM_NAME_OPTS,
        ResourceKind.FUNCTION: SIM_NAME_OPTS,
    }

    def supports_binding(self, consumer_kind: ResourceKind, producer_kind: ResourceKind) -> bool:
        return True

    def connection_for(self, table: ResourceNode) -> str:
        state_dir = self.settings.state_dir if self.settings else None
        if state_dir is None:
            return MEMORY_CONNECTION
        return f"sqlite:///{state_dir / (table.physical_name or self.physical_name(table))}.db"

    def table_env(self, table: ResourceNode) -> Dict[str, str]:
        config = table.config
        return TableEnv(
            table_name=table.physical_name or self.physical_name(table),
            connection=self.connection_for(table),
            primary_key=config.primary_key,
            columns=config.columns_spec(),
        ).to_env(table.address.short_addr)

    def synthesize_table(
        self, node: ResourceNode, grants: List[PermissionGrant], fragment: TemplateFragment
    ) -> None:
        config = node.config
        fragment.add(
            TemplateObject(
                type="sim.table",
                logical_id=node.path,
                properties={
                    "name": node.physical_name,
                    "connection": self.connection_for(node),
                    "primaryKey": config.primary_key,
                    "columns": {name: ColumnType(kind).value for name, kind in config.columns.items()},
                    "initialRows": {
                        key: _jsonable_row(row) for key, row in sorted(config.initial_rows.items())
                    },
                },
            )
        )
        self._emit_grants(grants, fragment)

    def synthesize_function(
        self, node: ResourceNode, grants: List[PermissionGrant], fragment: TemplateFragment
    ) -> None:
        config = node.config
        env = dict(config.env)
        env.update(self.consumer_env(node))
        fragment.add(
            TemplateObject(
                type="sim.function",
                logical_id=node.path,
                properties={
                    "name": node.physical_name,
                    "entrypoint": config.entrypoint,
                    "timeoutSeconds": config.timeout.total_seconds,
                    "memoryMb": config.memory_mb,
                    "env": dict(sorted(env.items())),
                },
            )
        )
        self._emit_grants(grants, fragment)

    def _emit_grants(self, grants: List[PermissionGrant], fragment: TemplateFragment) -> None:
        for grant in grants:
            fragment.add(
                TemplateObject(
                    type="sim.grant",
                    logical_id=f"{grant.producer.path}:{grant.principal.path}:{grant.role.value}",
                    properties={
                        "resource": grant.producer.path,
                        "principal": grant.principal.path,
                        "role": grant.role.value,
                    },
                )
            )

    def render(self, fragments: Iterable[TemplateFragment]) -> Dict[str, Any]:
        resources: Dict[str, Any] = {}
        grants: List[Dict[str, Any]] = []
        for fragment in fragments:
            for obj in fragment.objects:
                if obj.type == "sim.grant":
                    grants.append(dict(obj.properties))
                else:
                    resources[obj.logical_id] = {"type": obj.type.split(".", 1)[1], **obj.properties}
        return {"target": self.name, "resources": resources, "grants": grants}


register_synthesizer(SimSynthesizer.name, SimSynthesizer)


__all__ = ["SimSynthesizer", "SIM_NAME_OPTS", "MEMORY_CONNECTION"]
