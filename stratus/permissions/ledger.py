"""
Permission ledger.

The ledger owns every access grant of one synthesis session. Grants are
keyed by typed ``(producer, principal, role)`` triples; at most one grant
exists per triple and per ``(producer, principal)`` only the highest role of
a role family survives.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional, Tuple

from stratus.core.address import Address
from stratus.core.node import ResourceNode
from stratus.errors import ConfigurationError
from stratus.observability import log_synthesis_event
from stratus.permissions.roles import Role

logger = logging.getLogger(__name__)


class GrantKey(NamedTuple):
    producer: Address
    principal: Address
    role: Role


@dataclass(frozen=True, eq=False)
class PermissionGrant:
    """Authorizes ``principal`` to act on ``producer`` at ``role``."""

    producer: ResourceNode
    principal: ResourceNode
    role: Role

    @property
    def key(self) -> GrantKey:
        return GrantKey(self.producer.address, self.principal.address, self.role)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PermissionGrant):
            return NotImplemented
        return self.key == other.key

    def __hash__(self) -> int:
        return hash(self.key)

    def __repr__(self) -> str:
        return f"PermissionGrant({self.producer.path} <- {self.principal.path}: {self.role.value})"


@dataclass(frozen=True)
class GrantResult:
    """Outcome of :meth:`PermissionLedger.grant`."""

    created: bool
    grant: PermissionGrant
    superseded: Optional[PermissionGrant] = None


class PermissionLedger:
    """Deduplicating record of the grants needed by a resource graph."""

    def __init__(self) -> None:
        self._grants: Dict[GrantKey, PermissionGrant] = {}
        self._current: Dict[Tuple[Address, Address, str], GrantKey] = {}
        self._sealed = False

    def grant(self, producer: ResourceNode, principal: ResourceNode, role: Role) -> GrantResult:
        """
        Record a grant of ``role`` on ``producer`` for ``principal``.

        Returns ``created=False`` without emitting anything when an equal or
        stronger grant is already recorded. A weaker grant of the same role
        family is superseded and removed.

        Raises:
            ConfigurationError: The ledger was already snapshotted
        """
        if self._sealed:
            raise ConfigurationError(
                "Permission ledger is sealed; bindings must be declared before synthesis",
                resource=producer.path,
            )

        candidate = PermissionGrant(producer, principal, role)
        pair = (producer.address, principal.address, role.family)
        current_key = self._current.get(pair)
        if current_key is not None:
            current = self._grants[current_key]
            if current.role.covers(role):
                logger.debug(f"Grant {candidate!r} already covered by {current!r}")
                return GrantResult(created=False, grant=current)
            del self._grants[current_key]
            superseded: Optional[PermissionGrant] = current
        else:
            superseded = None

        self._grants[candidate.key] = candidate
        self._current[pair] = candidate.key
        log_synthesis_event(
            "grant_created",
            f"Granted {role.value} on '{producer.path}' to '{principal.path}'",
            producer=producer.path,
            principal=principal.path,
            role=role.value,
            superseded=superseded.role.value if superseded else None,
        )
        return GrantResult(created=True, grant=candidate, superseded=superseded)

    def snapshot(self) -> Tuple[PermissionGrant, ...]:
        """Seal the ledger and return every grant in deterministic order."""
        self._sealed = True
        return tuple(self._grants[key] for key in sorted(self._grants, key=_sort_key))

    def grants_for(self, producer: ResourceNode) -> List[PermissionGrant]:
        return [grant for grant in self.grants() if grant.producer is producer]

    def grants(self) -> List[PermissionGrant]:
        """Current grants in deterministic order, without sealing."""
        return [self._grants[key] for key in sorted(self._grants, key=_sort_key)]

    @property
    def sealed(self) -> bool:
        return self._sealed

    def __len__(self) -> int:
        return len(self._grants)

    def __contains__(self, grant: object) -> bool:
        return isinstance(grant, PermissionGrant) and grant.key in self._grants


def _sort_key(key: GrantKey) -> Tuple[str, str, str]:
    return (key.producer.path, key.principal.path, key.role.value)


__all__ = ["GrantKey", "PermissionGrant", "GrantResult", "PermissionLedger"]
