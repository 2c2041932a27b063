"""Logging helpers shared by synthesis and runtime code."""

from __future__ import annotations

from .logging import configure_logging, get_logger, log_synthesis_event

__all__ = [
    "configure_logging",
    "get_logger",
    "log_synthesis_event",
]
