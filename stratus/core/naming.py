"""Deterministic physical name generation.

Every target has its own naming constraints (maximum length, legal
characters, case). ``generate_name`` turns a resource address into a name
that satisfies them; the address hash suffix keeps names unique even after
truncation.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stratus.core.address import Address


class CaseConvention(Enum):
    NONE = "none"
    LOWERCASE = "lowercase"
    UPPERCASE = "uppercase"


@dataclass(frozen=True)
class NameOptions:
    """Naming constraints of one physical resource type."""

    max_len: int = 63
    disallowed_regex: str = r"[^a-zA-Z0-9_-]+"
    sep: str = "-"
    case: CaseConvention = CaseConvention.NONE
    include_hash: bool = True
    prefix: str = ""
    suffix: str = ""


def _apply_case(value: str, case: CaseConvention) -> str:
    if case is CaseConvention.LOWERCASE:
        return value.lower()
    if case is CaseConvention.UPPERCASE:
        return value.upper()
    return value


def generate_name(address: Address, options: Optional[NameOptions] = None) -> str:
    """
    Generate a physical name for ``address`` under ``options``.

    The readable part is the address path joined with ``sep``; characters
    matching ``disallowed_regex`` collapse into ``sep``. When ``include_hash``
    is set the last eight characters of the address digest are appended and
    the readable part is truncated so the whole name fits ``max_len``.
    """
    options = options or NameOptions()
    pattern = re.compile(options.disallowed_regex)

    readable = options.sep.join(address.segments)
    readable = _apply_case(readable, options.case)
    readable = pattern.sub(options.sep, readable)
    if options.sep:
        readable = re.sub(f"(?:{re.escape(options.sep)})+", options.sep, readable)
        readable = readable.strip(options.sep)

    fixed = options.prefix + options.suffix
    tail = ""
    if options.include_hash:
        tail = options.sep + _apply_case(address.short_addr, options.case)

    budget = options.max_len - len(fixed) - len(tail)
    if budget < 1:
        raise ValueError(
            f"max_len={options.max_len} leaves no room for a readable name"
        )
    readable = readable[:budget]
    if options.sep:
        readable = readable.rstrip(options.sep)
    readable = readable or "r"

    return f"{options.prefix}{readable}{tail}{options.suffix}"


__all__ = ["CaseConvention", "NameOptions", "generate_name"]
