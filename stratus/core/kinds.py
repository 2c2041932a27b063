"""Resource kind registry.

Each resource kind declares the pydantic model its configuration must
validate against and the vocabulary of operations a consumer may bind.
Kind modules register themselves on import; the registry loads them lazily
on first lookup.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Type, Union

from pydantic import BaseModel

from stratus.errors import InvalidBindingError, InvalidResourceError, UnknownOperationError


class ResourceKind(str, Enum):
    """Resource kinds understood by every target."""

    TABLE = "table"
    FUNCTION = "function"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class KindSpec:
    """Static description of a resource kind."""

    kind: ResourceKind
    config_model: Type[BaseModel]
    operations: FrozenSet[str]

    def normalize_operations(
        self,
        operations: Union[str, Enum, Iterable[Union[str, Enum]]],
        *,
        resource: str = "",
    ) -> FrozenSet[str]:
        """Return ``operations`` as wire identifiers, rejecting unknown ones.

        A single operation may be passed on its own instead of in a collection.
        """
        if isinstance(operations, (str, Enum)):
            operations = [operations]
        normalized = set()
        for operation in operations:
            name = operation.value if isinstance(operation, Enum) else str(operation)
            if name not in self.operations:
                raise UnknownOperationError(
                    f"Operation '{name}' is not defined for {self.kind} resources",
                    resource=resource or None,
                    operation=name,
                    hint=f"Known operations: {', '.join(sorted(self.operations))}",
                )
            normalized.add(name)
        if not normalized:
            raise InvalidBindingError(
                "A binding must declare at least one operation",
                resource=resource or None,
            )
        return frozenset(normalized)


_KIND_SPECS: Dict[ResourceKind, KindSpec] = {}


def register_kind(spec: KindSpec) -> None:
    """Register a resource kind. Called by kind modules on import."""
    _KIND_SPECS[spec.kind] = spec


def _load_kind_modules() -> None:
    from stratus.resources import function, table  # noqa: F401


def get_kind_spec(kind: Union[str, ResourceKind]) -> KindSpec:
    """
    Look up a resource kind.

    Raises:
        InvalidResourceError: If the kind is unknown
    """
    try:
        resolved = ResourceKind(kind)
    except ValueError:
        known = ", ".join(sorted(k.value for k in ResourceKind))
        raise InvalidResourceError(
            f"Unknown resource kind '{kind}'",
            hint=f"Known kinds: {known}",
        ) from None
    if resolved not in _KIND_SPECS:
        _load_kind_modules()
    return _KIND_SPECS[resolved]


__all__ = ["ResourceKind", "KindSpec", "register_kind", "get_kind_spec"]
