"""Centralised logging helpers for stratus."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

_LOGGER_CACHE: Dict[str, logging.Logger] = {}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str = "stratus") -> logging.Logger:
    """Return a cached :class:`logging.Logger` instance."""

    if name not in _LOGGER_CACHE:
        _LOGGER_CACHE[name] = logging.getLogger(name)
    return _LOGGER_CACHE[name]


def configure_logging(level: str = "WARNING") -> None:
    """Attach a stream handler to the ``stratus`` logger at the given level."""

    logger = get_logger()
    logger.setLevel(level.upper())
    if not any(getattr(handler, "_stratus_handler", False) for handler in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._stratus_handler = True  # type: ignore[attr-defined]
        logger.addHandler(handler)


def log_synthesis_event(
    event: str,
    message: str,
    *,
    level: int = logging.INFO,
    logger: Optional[logging.Logger] = None,
    **data: Any,
) -> None:
    """Emit a structured synthesis log entry (bindings, grants, fragments)."""

    payload = {key: value for key, value in data.items() if value is not None}
    target_logger = logger or get_logger("stratus.synthesis")
    target_logger.log(
        level,
        message,
        extra={"stratus_event": event, "stratus_data": payload},
    )
