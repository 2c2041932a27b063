"""Backend synthesizers, one per target provider."""

from __future__ import annotations

from .base import BackendSynthesizer, Template, TemplateFragment, TemplateObject
from .factory import create_synthesizer, get_synthesizer_class, list_targets, register_synthesizer

__all__ = [
    "BackendSynthesizer",
    "Template",
    "TemplateFragment",
    "TemplateObject",
    "create_synthesizer",
    "get_synthesizer_class",
    "list_targets",
    "register_synthesizer",
]
