"""
Backend synthesizer contract.

A synthesizer turns one resource node plus the grants recorded on it into a
fragment of provider-specific infrastructure objects. Every target
implements the same contract; the session selects one by configuration.

Synthesis is a pure in-memory transformation: no network calls, and
fragments are only assembled into a template once every node synthesized
without error.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence

from stratus.config import StratusConfig
from stratus.core.kinds import ResourceKind
from stratus.core.naming import NameOptions, generate_name
from stratus.core.node import ResourceNode
from stratus.errors import ConfigurationError, UnsupportedFeatureError
from stratus.observability import log_synthesis_event
from stratus.permissions.binding import BindingProtocol
from stratus.permissions.ledger import PermissionGrant
from stratus.runtime.env import TARGET_ENV, function_env_name

logger = logging.getLogger(__name__)

_LOGICAL_ID_DISALLOWED = re.compile(r"[^A-Za-z0-9_]+")


@dataclass(frozen=True)
class TemplateObject:
    """One named infrastructure object, e.g. a storage bucket or an IAM member."""

    type: str
    logical_id: str
    properties: Dict[str, Any]

    def ref(self, attribute: str) -> str:
        """Interpolation reference to an attribute of this object."""
        return f"${{{self.type}.{self.logical_id}.{attribute}}}"


@dataclass
class TemplateFragment:
    """Objects emitted for one resource node."""

    resource: str
    objects: List[TemplateObject] = field(default_factory=list)

    def add(self, obj: TemplateObject) -> TemplateObject:
        self.objects.append(obj)
        return obj


@dataclass
class Template:
    """A complete synthesized template for one target."""

    target: str
    filename: str
    fragments: List[TemplateFragment]
    document: Dict[str, Any]

    def objects(self) -> List[TemplateObject]:
        return [obj for fragment in self.fragments for obj in fragment.objects]

    def of_type(self, type_name: str) -> List[TemplateObject]:
        return [obj for obj in self.objects() if obj.type == type_name]


class BackendSynthesizer(ABC):
    """
    Base class for target synthesizers.

    Subclasses declare per-kind naming constraints in ``name_options`` and
    implement the per-kind emitters, feature checks and binding policy.
    """

    #: Target identifier used in configuration (``STRATUS_TARGET``)
    name: str = ""
    #: File the rendered template is written to
    template_filename: str = "template.json"
    #: Naming constraints of the primary physical object of each kind
    name_options: Dict[ResourceKind, NameOptions] = {}
    #: Whether tables may carry rows provisioned at deployment time
    supports_initial_rows: bool = True

    def __init__(self, config: Optional[StratusConfig] = None) -> None:
        self.config = config or StratusConfig(target=self.name)
        self.bindings: Optional[BindingProtocol] = None

    @property
    def settings(self) -> Any:
        return self.config.settings_for(self.name)

    # ------------------------------------------------------------------
    # Policy
    # ------------------------------------------------------------------

    @abstractmethod
    def supports_binding(self, consumer_kind: ResourceKind, producer_kind: ResourceKind) -> bool:
        """Whether ``consumer_kind`` is a legal principal for ``producer_kind``."""

    def check_features(self, node: ResourceNode) -> None:
        """Raise :class:`UnsupportedFeatureError` for inexpressible configuration."""

    def unsupported(self, node: ResourceNode, feature: str, detail: str = "") -> UnsupportedFeatureError:
        message = f"{feature} is not supported by the {self.name} target"
        if detail:
            message = f"{message}: {detail}"
        return UnsupportedFeatureError(message, resource=node.path, operation=feature)

    # ------------------------------------------------------------------
    # Naming
    # ------------------------------------------------------------------

    def physical_name(self, node: ResourceNode) -> str:
        options = self.name_options.get(node.kind, NameOptions())
        return generate_name(node.address, options)

    @staticmethod
    def logical_id(node: ResourceNode, local: str) -> str:
        """Template-unique identifier of an object emitted for ``node``."""
        readable = _LOGICAL_ID_DISALLOWED.sub("_", "_".join(node.address.segments))
        return f"{readable}_{local}_{node.address.short_addr}"

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def prepare(self, bindings: BindingProtocol) -> None:
        """Give the synthesizer access to the resolved bindings of the session."""
        self.bindings = bindings

    def synthesize(self, node: ResourceNode, grants: Sequence[PermissionGrant]) -> TemplateFragment:
        """
        Emit the objects of ``node`` plus one access policy per grant.

        Raises:
            UnsupportedFeatureError: The node requests an inexpressible capability
            ConfigurationError: A grant does not belong to ``node``
        """
        for grant in grants:
            if grant.producer is not node:
                raise ConfigurationError(
                    f"Grant {grant!r} does not target this resource",
                    resource=node.path,
                )
        self.check_features(node)
        node.bind_physical_name(self.physical_name(node))

        fragment = TemplateFragment(resource=node.path)
        if node.kind is ResourceKind.TABLE:
            self.synthesize_table(node, list(grants), fragment)
        elif node.kind is ResourceKind.FUNCTION:
            self.synthesize_function(node, list(grants), fragment)
        else:  # pragma: no cover - guarded by the kind registry
            raise self.unsupported(node, f"resource kind '{node.kind}'")

        log_synthesis_event(
            "fragment_emitted",
            f"Synthesized {node.kind.value} '{node.path}' for {self.name}",
            level=logging.DEBUG,
            resource=node.path,
            target=self.name,
            objects=len(fragment.objects),
            grants=len(grants),
        )
        return fragment

    @abstractmethod
    def synthesize_table(
        self, node: ResourceNode, grants: List[PermissionGrant], fragment: TemplateFragment
    ) -> None:
        ...

    @abstractmethod
    def synthesize_function(
        self, node: ResourceNode, grants: List[PermissionGrant], fragment: TemplateFragment
    ) -> None:
        ...

    @abstractmethod
    def render(self, fragments: Iterable[TemplateFragment]) -> Dict[str, Any]:
        """Assemble fragments into the target's template document."""

    # ------------------------------------------------------------------
    # Runtime environment
    # ------------------------------------------------------------------

    @abstractmethod
    def table_env(self, table: ResourceNode) -> Dict[str, str]:
        """Environment values a consumer of ``table`` needs at run time."""

    def function_env(self, function: ResourceNode) -> Dict[str, str]:
        return {function_env_name(function.address.short_addr): function.physical_name or ""}

    def consumer_env(self, consumer: ResourceNode) -> Dict[str, str]:
        """Environment of ``consumer``: its own settings plus those of its producers."""
        env: Dict[str, str] = {TARGET_ENV: self.name}
        producers = self.bindings.producers_of(consumer) if self.bindings else []
        for producer in producers:
            if producer.physical_name is None:
                producer.bind_physical_name(self.physical_name(producer))
            if producer.kind is ResourceKind.TABLE:
                env.update(self.table_env(producer))
            elif producer.kind is ResourceKind.FUNCTION:
                env.update(self.function_env(producer))
        return env


__all__ = [
    "TemplateObject",
    "TemplateFragment",
    "Template",
    "BackendSynthesizer",
]
