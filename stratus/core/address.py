"""Hierarchical resource identities."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from typing import Sequence, Tuple, Union

from stratus.errors import InvalidResourceError

SEGMENT_PATTERN = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")
SEPARATOR = "/"


@dataclass(frozen=True, order=True)
class Address:
    """
    Stable hierarchical address of a resource node.

    ``path`` is the ``/``-separated segment list (``"api/Handler"``) and
    ``addr`` a 42-character digest of it. Both are identical across runs for
    the same identity, which keeps synthesized templates reproducible.
    """

    segments: Tuple[str, ...]

    @classmethod
    def parse(cls, identity: Union[str, Sequence[str], "Address"]) -> "Address":
        if isinstance(identity, Address):
            return identity
        if isinstance(identity, str):
            segments = tuple(identity.split(SEPARATOR))
        else:
            segments = tuple(identity)
        if not segments:
            raise InvalidResourceError("Resource identity must not be empty")
        for segment in segments:
            if not isinstance(segment, str) or not SEGMENT_PATTERN.match(segment):
                raise InvalidResourceError(
                    f"Malformed resource identity segment {segment!r}",
                    resource=SEPARATOR.join(str(part) for part in segments),
                    hint="Segments start with a letter and contain letters, digits, '_' or '-'",
                )
        return cls(segments)

    @property
    def path(self) -> str:
        return SEPARATOR.join(self.segments)

    @property
    def id(self) -> str:
        """Last path segment."""
        return self.segments[-1]

    @property
    def addr(self) -> str:
        return "c8" + hashlib.sha1(self.path.encode("utf-8")).hexdigest()

    @property
    def short_addr(self) -> str:
        """Eight-character suffix used in environment variable names."""
        return self.addr[-8:]

    def __str__(self) -> str:
        return self.path
