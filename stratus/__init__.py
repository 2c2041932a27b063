"""
Stratus: define cloud resources once, synthesize them for any target.

Resources (tables and functions) are declared on a :class:`SynthesisSession`,
bound to each other with the operations a consumer needs, and synthesized
into a deployable template for the configured target together with the
least-privilege grants the bindings imply.
"""

from __future__ import annotations

__version__ = "0.1.0"

from .config import StratusConfig, get_config, load_config, reset_config
from .errors import (
    AlreadyExistsError,
    BackendTransportError,
    ConfigurationError,
    NotFoundError,
    SchemaValidationError,
    StratusError,
    UnsupportedFeatureError,
)
from .permissions import Role, infer_role
from .session import SynthesisSession

__all__ = [
    "__version__",
    "StratusConfig",
    "get_config",
    "load_config",
    "reset_config",
    "AlreadyExistsError",
    "BackendTransportError",
    "ConfigurationError",
    "NotFoundError",
    "SchemaValidationError",
    "StratusError",
    "UnsupportedFeatureError",
    "Role",
    "infer_role",
    "SynthesisSession",
]
