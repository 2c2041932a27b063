"""
Binding protocol.

A binding records that code running inside a consumer resource will call a
set of operations on a producer resource. Declarations between the same pair
accumulate; after every declaration the role is re-inferred from the whole
accumulated set and handed to the permission ledger.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, List, Tuple, Union

from stratus.core.address import Address
from stratus.core.kinds import ResourceKind, get_kind_spec
from stratus.core.node import ResourceGraph, ResourceNode
from stratus.errors import InvalidBindingError, InvalidResourceError, UnsupportedBindingError
from stratus.observability import log_synthesis_event
from stratus.permissions.ledger import PermissionLedger
from stratus.permissions.roles import ROLE_POLICIES, Role

logger = logging.getLogger(__name__)

BindingPolicy = Callable[[ResourceKind, ResourceKind], bool]
OperationInput = Union[str, Enum, Iterable[Union[str, Enum]]]


def allow_all(consumer_kind: ResourceKind, producer_kind: ResourceKind) -> bool:
    return True


@dataclass(frozen=True)
class BindingDeclaration:
    """Accumulated operations ``consumer`` performs on ``producer``."""

    consumer: ResourceNode
    producer: ResourceNode
    operations: FrozenSet[str]

    @property
    def role(self) -> Role:
        return ROLE_POLICIES[self.producer.kind](self.operations)


class BindingProtocol:
    """
    Validates bindings and feeds the permission ledger.

    Args:
        graph: Graph both ends of a binding must belong to
        ledger: Ledger receiving the inferred grants
        policy: Decides whether a consumer kind is a legal principal for a
            producer kind on the active target
        target: Target name, used in error messages
    """

    def __init__(
        self,
        graph: ResourceGraph,
        ledger: PermissionLedger,
        policy: BindingPolicy = allow_all,
        target: str = "",
    ) -> None:
        self.graph = graph
        self.ledger = ledger
        self.policy = policy
        self.target = target
        self._operations: Dict[Tuple[Address, Address], FrozenSet[str]] = {}

    def bind(self, consumer: ResourceNode, producer: ResourceNode, operations: OperationInput) -> None:
        """
        Declare that ``consumer`` performs ``operations`` on ``producer``.

        Raises:
            InvalidResourceError: Either node is not part of the graph
            InvalidBindingError: Empty operation set or self-binding
            UnsupportedBindingError: Consumer kind may not bind producer kind
            UnknownOperationError: Operation outside the producer's vocabulary
        """
        for node in (consumer, producer):
            if node not in self.graph:
                raise InvalidResourceError(
                    "Binding endpoint is not defined in this graph",
                    resource=getattr(node, "path", repr(node)),
                )
        if consumer is producer:
            raise InvalidBindingError("A resource cannot bind itself", resource=producer.path)
        if not self.policy(consumer.kind, producer.kind):
            target = f" on target '{self.target}'" if self.target else ""
            raise UnsupportedBindingError(
                f"A {consumer.kind.value} cannot bind a {producer.kind.value}{target}",
                resource=producer.path,
                hint=f"consumer '{consumer.path}' is not a legal principal",
            )

        spec = get_kind_spec(producer.kind)
        declared = spec.normalize_operations(operations, resource=producer.path)

        pair = (producer.address, consumer.address)
        accumulated = self._operations.get(pair, frozenset()) | declared
        role = ROLE_POLICIES[producer.kind](accumulated)
        result = self.ledger.grant(producer, consumer, role)
        self._operations[pair] = accumulated
        log_synthesis_event(
            "binding_declared",
            f"Bound '{consumer.path}' to '{producer.path}' ({', '.join(sorted(declared))})",
            level=logging.DEBUG,
            consumer=consumer.path,
            producer=producer.path,
            operations=sorted(accumulated),
            role=role.value,
            created=result.created,
        )

    def operations_for(self, consumer: ResourceNode, producer: ResourceNode) -> FrozenSet[str]:
        return self._operations.get((producer.address, consumer.address), frozenset())

    def declarations(self) -> List[BindingDeclaration]:
        """Accumulated declarations in deterministic (producer, consumer) order."""
        return [
            BindingDeclaration(
                consumer=self.graph.get(consumer_address),
                producer=self.graph.get(producer_address),
                operations=operations,
            )
            for (producer_address, consumer_address), operations in sorted(self._operations.items())
        ]

    def producers_of(self, consumer: ResourceNode) -> List[ResourceNode]:
        return [decl.producer for decl in self.declarations() if decl.consumer is consumer]

    def consumers_of(self, producer: ResourceNode) -> List[ResourceNode]:
        return [decl.consumer for decl in self.declarations() if decl.producer is producer]


__all__ = ["BindingDeclaration", "BindingProtocol", "BindingPolicy", "allow_all"]
