"""Permission inference, deduplication and the binding protocol."""

from __future__ import annotations

from .binding import BindingDeclaration, BindingPolicy, BindingProtocol, allow_all
from .ledger import GrantKey, GrantResult, PermissionGrant, PermissionLedger
from .roles import Role, infer_role

__all__ = [
    "BindingDeclaration",
    "BindingPolicy",
    "BindingProtocol",
    "allow_all",
    "GrantKey",
    "GrantResult",
    "PermissionGrant",
    "PermissionLedger",
    "Role",
    "infer_role",
]
