"""Resource nodes and the resource graph."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Union

from pydantic import BaseModel, ValidationError

from stratus.core.address import Address
from stratus.core.kinds import ResourceKind, get_kind_spec
from stratus.errors import (
    ConfigurationError,
    DuplicateResourceError,
    InvalidResourceError,
    SchemaValidationError,
)

logger = logging.getLogger(__name__)


class ResourceNode:
    """
    A typed unit of the resource graph.

    Identity and configuration are fixed at definition time. The physical
    name is bound once by the synthesizer of the active target and cannot
    change afterwards.
    """

    def __init__(self, address: Address, kind: ResourceKind, config: BaseModel):
        self.address = address
        self.kind = kind
        self.config = config
        self._physical_name: Optional[str] = None

    @property
    def path(self) -> str:
        return self.address.path

    @property
    def physical_name(self) -> Optional[str]:
        return self._physical_name

    def bind_physical_name(self, name: str) -> str:
        """Assign the physical name. Re-assigning the same value is a no-op."""
        if self._physical_name is not None and self._physical_name != name:
            raise ConfigurationError(
                f"Physical name already bound to '{self._physical_name}', refusing '{name}'",
                resource=self.path,
            )
        self._physical_name = name
        return name

    def __repr__(self) -> str:
        return f"ResourceNode({self.kind.value}:{self.path})"


ConfigInput = Union[BaseModel, Mapping[str, Any], None]


class ResourceGraph:
    """The set of resource nodes defined for one synthesis session."""

    def __init__(self) -> None:
        self._nodes: Dict[Address, ResourceNode] = {}

    def define_resource(
        self,
        kind: Union[str, ResourceKind],
        identity: Union[str, Sequence[str], Address],
        config: ConfigInput = None,
    ) -> ResourceNode:
        """
        Define a resource node.

        Args:
            kind: Resource kind (``"table"``, ``"function"``)
            identity: Hierarchical identity (``"api/Handler"``)
            config: Configuration model instance or mapping for the kind

        Returns:
            The new ResourceNode

        Raises:
            InvalidResourceError: Unknown kind, malformed identity or invalid config
            DuplicateResourceError: Identity already defined
        """
        spec = get_kind_spec(kind)
        address = Address.parse(identity)
        if address in self._nodes:
            raise DuplicateResourceError(
                f"Resource '{address.path}' is already defined",
                resource=address.path,
            )

        model = self._validate_config(spec.config_model, config, address)
        node = ResourceNode(address, spec.kind, model)
        self._nodes[address] = node
        logger.debug(f"Defined {spec.kind.value} resource '{address.path}'")
        return node

    @staticmethod
    def _validate_config(model_cls, config: ConfigInput, address: Address) -> BaseModel:
        if isinstance(config, model_cls):
            return config.model_copy(deep=True)
        if isinstance(config, BaseModel):
            raise InvalidResourceError(
                f"Expected {model_cls.__name__}, got {type(config).__name__}",
                resource=address.path,
            )
        try:
            return model_cls.model_validate(dict(config or {}))
        except SchemaValidationError as exc:
            exc.resource = exc.resource or address.path
            raise
        except ValidationError as exc:
            raise InvalidResourceError(
                f"Invalid configuration: {exc}",
                resource=address.path,
            ) from exc
        except ValueError as exc:
            raise InvalidResourceError(str(exc), resource=address.path) from exc

    def get(self, identity: Union[str, Sequence[str], Address]) -> ResourceNode:
        address = Address.parse(identity)
        try:
            return self._nodes[address]
        except KeyError:
            raise InvalidResourceError(
                f"Resource '{address.path}' is not defined",
                resource=address.path,
            ) from None

    def owns(self, node: ResourceNode) -> bool:
        return self._nodes.get(node.address) is node

    def nodes(self) -> List[ResourceNode]:
        """All nodes in deterministic (address) order."""
        return [self._nodes[address] for address in sorted(self._nodes)]

    def __iter__(self) -> Iterator[ResourceNode]:
        return iter(self.nodes())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node: object) -> bool:
        return isinstance(node, ResourceNode) and self.owns(node)


__all__ = ["ResourceNode", "ResourceGraph"]
