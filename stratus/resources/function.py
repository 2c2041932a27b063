"""Compute function resource."""

from __future__ import annotations

from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from stratus.core.kinds import KindSpec, ResourceKind, register_kind


class FunctionOperation(str, Enum):
    """Operations a consumer may bind on a function."""

    INVOKE = "invoke"


class Duration(BaseModel):
    """A span of time given as hours, minutes and seconds."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    hours: int = Field(default=0, ge=0)
    minutes: int = Field(default=0, ge=0)
    seconds: int = Field(default=0, ge=0)

    @classmethod
    def of_seconds(cls, seconds: int) -> "Duration":
        return cls(seconds=seconds)

    @property
    def total_seconds(self) -> int:
        return self.hours * 3600 + self.minutes * 60 + self.seconds


class FunctionConfig(BaseModel):
    """Logical configuration of a function resource."""

    model_config = ConfigDict(extra="forbid")

    entrypoint: str = Field(..., min_length=1, description="Path of the bundled handler artefact")
    timeout: Duration = Field(default_factory=lambda: Duration(minutes=1))
    memory_mb: int = Field(default=128, ge=128, le=8192)
    env: Dict[str, str] = Field(default_factory=dict)
    description: Optional[str] = None

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, value: Duration) -> Duration:
        if value.total_seconds <= 0:
            raise ValueError("timeout must be positive")
        return value


FUNCTION_KIND = KindSpec(
    kind=ResourceKind.FUNCTION,
    config_model=FunctionConfig,
    operations=frozenset(operation.value for operation in FunctionOperation),
)

register_kind(FUNCTION_KIND)


__all__ = ["FunctionOperation", "Duration", "FunctionConfig", "FUNCTION_KIND"]
