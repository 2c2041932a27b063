"""Resource graph primitives: identities, kinds, nodes and naming."""

from __future__ import annotations

from .address import Address
from .kinds import KindSpec, ResourceKind, get_kind_spec, register_kind
from .naming import CaseConvention, NameOptions, generate_name
from .node import ResourceGraph, ResourceNode

__all__ = [
    "Address",
    "KindSpec",
    "ResourceKind",
    "get_kind_spec",
    "register_kind",
    "CaseConvention",
    "NameOptions",
    "generate_name",
    "ResourceGraph",
    "ResourceNode",
]
