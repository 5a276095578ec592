"""Installable infrastructure components.

Usage:
    from foundry.components import default_registry

    registry = default_registry()
    loki = registry.get("loki")
    await loki.install(orchestrator)
"""

from .base import ComponentStatus, HelmComponent, merge_values
from .catalog import BUILTIN_COMPONENTS, default_registry
from .registry import ComponentRegistry

__all__ = [
    "HelmComponent",
    "ComponentStatus",
    "ComponentRegistry",
    "BUILTIN_COMPONENTS",
    "default_registry",
    "merge_values",
]
