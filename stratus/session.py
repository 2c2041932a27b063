"""
Synthesis session.

A session owns one resource graph, the bindings declared on it and the
permission ledger they produce. ``synth()`` visits every node in address
order, asks the ledger once for its grants and hands both to the target's
synthesizer. Any error aborts the run before a template is assembled.

Example:
    >>> session = SynthesisSession(target="sim")
    >>> users = session.table("Users", columns={"name": "string"})
    >>> handler = session.function("api/Handler", entrypoint="handler.zip")
    >>> session.bind(handler, users, ["get", "update"])
    >>> template = session.synth()
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from stratus.config import StratusConfig, get_config
from stratus.core.address import Address
from stratus.core.kinds import ResourceKind
from stratus.core.node import ConfigInput, ResourceGraph, ResourceNode
from stratus.errors import (
    AlreadyExistsError,
    ConfigurationError,
    InvalidResourceError,
    NameCollisionError,
)
from stratus.observability import configure_logging, log_synthesis_event
from stratus.permissions.binding import BindingProtocol, OperationInput
from stratus.permissions.ledger import PermissionGrant, PermissionLedger
from stratus.resources.table import validate_row, validate_row_key
from stratus.targets.base import Template, TemplateFragment
from stratus.targets.factory import create_synthesizer

logger = logging.getLogger(__name__)

NodeRef = Union[ResourceNode, str, Sequence[str], Address]

BINDINGS_MANIFEST = "bindings.json"


class SynthesisSession:
    """Defines resources and bindings, then synthesizes them for one target."""

    def __init__(self, target: Optional[str] = None, config: Optional[StratusConfig] = None):
        self.config = config or get_config()
        if self.config.log_level:
            configure_logging(self.config.log_level)
        self.target = target or self.config.target
        self.synthesizer = create_synthesizer(self.target, self.config)
        self.graph = ResourceGraph()
        self.ledger = PermissionLedger()
        self.bindings = BindingProtocol(
            self.graph,
            self.ledger,
            policy=self.synthesizer.supports_binding,
            target=self.synthesizer.name,
        )
        self._template: Optional[Template] = None

    # ------------------------------------------------------------------
    # Graph input
    # ------------------------------------------------------------------

    def define_resource(
        self,
        kind: Union[str, ResourceKind],
        identity: Union[str, Sequence[str], Address],
        config: ConfigInput = None,
    ) -> ResourceNode:
        self._ensure_open()
        return self.graph.define_resource(kind, identity, config)

    def table(
        self,
        identity: Union[str, Sequence[str]],
        columns: Mapping[str, Any],
        primary_key: str = "id",
        initial_rows: Optional[Mapping[str, Mapping[str, Any]]] = None,
    ) -> ResourceNode:
        config: Dict[str, Any] = {"columns": dict(columns), "primary_key": primary_key}
        if initial_rows:
            config["initial_rows"] = {key: dict(row) for key, row in initial_rows.items()}
        return self.define_resource(ResourceKind.TABLE, identity, config)

    def function(self, identity: Union[str, Sequence[str]], entrypoint: str, **options: Any) -> ResourceNode:
        return self.define_resource(ResourceKind.FUNCTION, identity, {"entrypoint": entrypoint, **options})

    def add_row(self, table: NodeRef, key: str, row: Mapping[str, Any]) -> None:
        """
        Add a row provisioned together with ``table``.

        Raises:
            UnsupportedFeatureError: The target cannot provision rows
            SchemaValidationError: The row does not match the columns
            AlreadyExistsError: A row with ``key`` was already added
        """
        self._ensure_open()
        node = self._resolve(table)
        if node.kind is not ResourceKind.TABLE:
            raise InvalidResourceError("add_row requires a table resource", resource=node.path)
        if not self.synthesizer.supports_initial_rows:
            raise self.synthesizer.unsupported(node, "add_row", "rows cannot be provisioned before deployment")
        config = node.config
        validate_row_key(key, config.primary_key, table=node.path, operation="add_row")
        validate_row(row, config.columns, table=node.path, key=key, operation="add_row")
        if key in config.initial_rows:
            raise AlreadyExistsError(
                f"Row with key={key} already exists in the table",
                resource=node.path,
                operation="add_row",
                key=key,
            )
        config.initial_rows[key] = dict(row)

    def bind(self, consumer: NodeRef, producer: NodeRef, operations: OperationInput) -> None:
        self._ensure_open()
        self.bindings.bind(self._resolve(consumer), self._resolve(producer), operations)

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    @property
    def grants(self) -> List[PermissionGrant]:
        return self.ledger.grants()

    def synth(self) -> Template:
        """
        Synthesize every resource for the session's target.

        Returns the same template on repeated calls.

        Raises:
            ConfigurationError: Any synthesis failure; no template is produced
        """
        if self._template is not None:
            return self._template

        grants = self.ledger.snapshot()
        self.synthesizer.prepare(self.bindings)

        fragments: List[TemplateFragment] = []
        physical_names: Dict[str, ResourceNode] = {}
        for node in self.graph.nodes():
            node_grants = [grant for grant in grants if grant.producer is node]
            fragment = self.synthesizer.synthesize(node, node_grants)
            owner = physical_names.setdefault(node.physical_name, node)
            if owner is not node:
                raise NameCollisionError(
                    f"Physical name '{node.physical_name}' is already used by '{owner.path}'",
                    resource=node.path,
                )
            fragments.append(fragment)

        self._check_logical_ids(fragments)
        document = self.synthesizer.render(fragments)
        self._template = Template(
            target=self.synthesizer.name,
            filename=self.synthesizer.template_filename,
            fragments=fragments,
            document=document,
        )
        log_synthesis_event(
            "synthesis_completed",
            f"Synthesized {len(fragments)} resource(s) and {len(grants)} grant(s) for {self.synthesizer.name}",
            target=self.synthesizer.name,
            resources=len(fragments),
            grants=len(grants),
        )
        return self._template

    def write(self, outdir: Optional[Path] = None) -> Path:
        """Synthesize and write the template plus a bindings manifest to ``outdir``."""
        template = self.synth()
        outdir = Path(outdir or self.config.outdir)
        outdir.mkdir(parents=True, exist_ok=True)

        template_path = outdir / template.filename
        template_path.write_text(json.dumps(template.document, indent=2, sort_keys=True), encoding="utf-8")

        manifest = [
            {
                "consumer": declaration.consumer.path,
                "producer": declaration.producer.path,
                "operations": sorted(declaration.operations),
                "role": declaration.role.value,
            }
            for declaration in self.bindings.declarations()
        ]
        (outdir / BINDINGS_MANIFEST).write_text(json.dumps(manifest, indent=2), encoding="utf-8")
        logger.info(f"Wrote {template_path}")
        return template_path

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _resolve(self, ref: NodeRef) -> ResourceNode:
        if isinstance(ref, ResourceNode):
            return ref
        return self.graph.get(ref)

    def _ensure_open(self) -> None:
        if self._template is not None or self.ledger.sealed:
            raise ConfigurationError("The session was already synthesized; the graph is frozen")

    @staticmethod
    def _check_logical_ids(fragments: Iterable[TemplateFragment]) -> None:
        seen: Dict[tuple, str] = {}
        for fragment in fragments:
            for obj in fragment.objects:
                key = (obj.type, obj.logical_id)
                if key in seen:
                    raise NameCollisionError(
                        f"Object {obj.type}.{obj.logical_id} is emitted by both '{seen[key]}' and '{fragment.resource}'",
                        resource=fragment.resource,
                    )
                seen[key] = fragment.resource


__all__ = ["SynthesisSession", "BINDINGS_MANIFEST"]
