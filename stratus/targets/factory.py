"""Synthesizer factory.

Central registry mapping target names (``sim``, ``tf-gcp``) to synthesizer
classes. Target modules register themselves on import; the registry loads
the built-in ones lazily on first lookup.

Example:
    >>> from stratus.targets.factory import create_synthesizer
    >>> synthesizer = create_synthesizer("tf-gcp", config)
"""

from typing import Dict, List, Optional, Type

from stratus.config import StratusConfig
from stratus.errors import UnknownTargetError

from .base import BackendSynthesizer

_SYNTHESIZER_CLASSES: Dict[str, Type[BackendSynthesizer]] = {}


def register_synthesizer(name: str, synthesizer_class: Type[BackendSynthesizer]) -> None:
    """
    Register a synthesizer class for a target.

    Args:
        name: Target name (e.g. 'tf-gcp')
        synthesizer_class: The BackendSynthesizer subclass
    """
    _SYNTHESIZER_CLASSES[name.lower()] = synthesizer_class


def get_synthesizer_class(target: str) -> Type[BackendSynthesizer]:
    """
    Get a synthesizer class by target name.

    Raises:
        UnknownTargetError: If no synthesizer is registered for the target
    """
    key = target.lower()
    if key not in _SYNTHESIZER_CLASSES:
        _load_target_modules()

    if key not in _SYNTHESIZER_CLASSES:
        available = ", ".join(sorted(_SYNTHESIZER_CLASSES))
        raise UnknownTargetError(
            f"Unknown target '{target}'. Available targets: {available or 'none'}"
        )
    return _SYNTHESIZER_CLASSES[key]


def create_synthesizer(target: str, config: Optional[StratusConfig] = None) -> BackendSynthesizer:
    """Instantiate the synthesizer registered for ``target``."""
    synthesizer_class = get_synthesizer_class(target)
    return synthesizer_class(config)


def list_targets() -> List[str]:
    _load_target_modules()
    return sorted(_SYNTHESIZER_CLASSES)


def _load_target_modules() -> None:
    """Import built-in target modules so they register themselves."""
    from . import sim, tf_gcp  # noqa: F401


__all__ = [
    "register_synthesizer",
    "get_synthesizer_class",
    "create_synthesizer",
    "list_targets",
]
