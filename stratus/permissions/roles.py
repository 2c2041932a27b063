"""
Role tiers and permission inference.

A role is the minimal privilege a principal needs on a producer to perform
a set of operations. Roles of one producer kind form a chain:

    READ < READWRITE            (tables)
    INVOKE                      (functions)

Inference maps an operation set to exactly one role and never lowers the
role when operations are added.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Dict, FrozenSet, Iterable, Union

from stratus.core.kinds import ResourceKind, get_kind_spec
from stratus.resources.table import TableOperation


class Role(Enum):
    """Privilege tiers a grant may carry."""

    READ = "read"
    READWRITE = "readwrite"
    INVOKE = "invoke"

    @property
    def family(self) -> str:
        return "invoke" if self is Role.INVOKE else "data"

    @property
    def rank(self) -> int:
        return {Role.READ: 0, Role.READWRITE: 1, Role.INVOKE: 0}[self]

    def covers(self, other: "Role") -> bool:
        """True when this role grants everything ``other`` grants."""
        return self.family == other.family and self.rank >= other.rank

    def __lt__(self, other: "Role") -> bool:
        if not isinstance(other, Role):
            return NotImplemented
        return (self.family, self.rank) < (other.family, other.rank)


WRITE_OPERATIONS: FrozenSet[str] = frozenset(
    {
        TableOperation.DELETE.value,
        TableOperation.UPDATE.value,
        TableOperation.UPSERT.value,
    }
)


def infer_table_role(operations: FrozenSet[str]) -> Role:
    if operations & WRITE_OPERATIONS:
        return Role.READWRITE
    return Role.READ


def infer_function_role(operations: FrozenSet[str]) -> Role:
    return Role.INVOKE


RolePolicy = Callable[[FrozenSet[str]], Role]

ROLE_POLICIES: Dict[ResourceKind, RolePolicy] = {
    ResourceKind.TABLE: infer_table_role,
    ResourceKind.FUNCTION: infer_function_role,
}


def infer_role(
    operations: Union[str, Enum, Iterable[Union[str, Enum]]],
    kind: Union[str, ResourceKind] = ResourceKind.TABLE,
) -> Role:
    """
    Map an operation set to the minimal role for a producer kind.

    Pure function. Operations are validated against the kind's vocabulary
    first, so every legal operation set yields exactly one role.

    Raises:
        UnknownOperationError: Operation outside the kind's vocabulary
        InvalidBindingError: Empty operation set
    """
    spec = get_kind_spec(kind)
    normalized = spec.normalize_operations(operations)
    return ROLE_POLICIES[spec.kind](normalized)


__all__ = [
    "Role",
    "WRITE_OPERATIONS",
    "ROLE_POLICIES",
    "infer_role",
    "infer_table_role",
    "infer_function_role",
]
