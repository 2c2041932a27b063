"""Unified error model for stratus.

Three families of errors are surfaced to callers:

* configuration errors, raised while the resource graph is being defined,
  bound or synthesized; they abort the whole synthesis run;
* existence errors, raised by runtime table clients when a key is missing or
  already present;
* transport errors, raised when the physical backend of a table client fails.
"""

from __future__ import annotations

from typing import Any, Optional


class StratusError(Exception):
    """Base class for all errors surfaced to users."""

    code: Optional[str] = None
    hint: Optional[str] = None

    def __init__(
        self,
        message: str,
        *,
        resource: Optional[str] = None,
        operation: Optional[str] = None,
        key: Optional[str] = None,
        code: Optional[str] = None,
        hint: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.resource = resource
        self.operation = operation
        self.key = key
        if code is not None:
            self.code = code
        if hint is not None:
            self.hint = hint

    def format(self) -> str:
        components = [self.message]
        meta_parts = []
        if self.resource:
            meta_parts.append(f"resource={self.resource}")
        if self.operation:
            meta_parts.append(f"operation={self.operation}")
        if self.key is not None:
            meta_parts.append(f"key={self.key}")
        if self.code:
            meta_parts.append(self.code)
        if meta_parts:
            components[-1] = f"{components[-1]} ({'; '.join(meta_parts)})"
        if self.hint:
            components.append(f"Hint: {self.hint}")
        return " ".join(part for part in components if part)

    def __str__(self) -> str:
        return self.format()


# =============================================================================
# Configuration errors (synthesis time)
# =============================================================================


class ConfigurationError(StratusError):
    """Raised when the resource graph or workspace configuration is invalid."""

    code = "STR000"


class InvalidResourceError(ConfigurationError):
    """Raised for unknown resource kinds, malformed identities or bad config."""

    code = "STR001"


class DuplicateResourceError(ConfigurationError):
    """Raised when two resources share the same identity."""

    code = "STR002"


class UnsupportedBindingError(ConfigurationError):
    """Raised when a consumer kind may not bind a producer kind on a target."""

    code = "STR003"


class UnknownOperationError(ConfigurationError):
    """Raised when an operation is outside the producer's vocabulary."""

    code = "STR004"


class InvalidBindingError(ConfigurationError):
    """Raised for empty operation sets and self-referencing bindings."""

    code = "STR008"


class UnsupportedFeatureError(ConfigurationError):
    """Raised when a target cannot express a requested capability."""

    code = "STR005"


class NameCollisionError(ConfigurationError):
    """Raised when two resources map to the same physical name."""

    code = "STR006"


class UnknownTargetError(ConfigurationError):
    """Raised when no synthesizer or table client is registered for a target."""

    code = "STR007"


class SchemaValidationError(StratusError):
    """Raised when a row does not validate against the table's columns."""

    code = "STR010"

    def __init__(self, message: str, *, field: Optional[str] = None, **kwargs: Any) -> None:
        super().__init__(message, **kwargs)
        self.field = field


# =============================================================================
# Runtime errors
# =============================================================================


class ExistenceError(StratusError):
    """Base class for key existence violations in table clients."""


class NotFoundError(ExistenceError):
    """Raised when a row with the given key does not exist."""

    code = "STR020"


class AlreadyExistsError(ExistenceError):
    """Raised when inserting a row whose key already exists."""

    code = "STR021"


class BackendTransportError(StratusError):
    """Raised when the physical backend of a table client fails."""

    code = "STR030"

    def __init__(
        self,
        message: str,
        *,
        original_error: Optional[BaseException] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.original_error = original_error


__all__ = [
    "StratusError",
    "ConfigurationError",
    "InvalidResourceError",
    "DuplicateResourceError",
    "UnsupportedBindingError",
    "UnknownOperationError",
    "InvalidBindingError",
    "UnsupportedFeatureError",
    "NameCollisionError",
    "UnknownTargetError",
    "SchemaValidationError",
    "ExistenceError",
    "NotFoundError",
    "AlreadyExistsError",
    "BackendTransportError",
]
