"""Engine configuration."""

from .loader import apply_env_overrides, load_settings, parse_settings
from .settings import ComponentOverride, EngineSettings, HelmSettings
from .utils import substitute_env_vars

__all__ = [
    "EngineSettings",
    "HelmSettings",
    "ComponentOverride",
    "load_settings",
    "parse_settings",
    "apply_env_overrides",
    "substitute_env_vars",
]
