"""Engine configuration loading with environment variable substitution."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]
from loguru import logger
from pydantic import ValidationError

from foundry.config.settings import EngineSettings
from foundry.config.utils import substitute_env_vars

CONFIG_PATH = Path("foundry.yaml")
ENV_PREFIX = "FOUNDRY_"

# FOUNDRY_<NAME> -> path inside the ``config:`` section
ENV_OVERRIDES: dict[str, tuple[str, ...]] = {
    "RECOVERY_POLICY": ("recovery_policy",),
    "READINESS_TIMEOUT": ("readiness_timeout",),
    "POLL_INTERVAL": ("poll_interval",),
    "RELEASE_LIST_ATTEMPTS": ("release_list_attempts",),
    "CONFLICT_RETRIES": ("conflict_retries",),
    "HELM_BINARY": ("helm", "binary"),
    "HELM_TIMEOUT": ("helm", "timeout"),
    "KUBECONFIG": ("helm", "kubeconfig"),
    "KUBE_CONTEXT": ("helm", "context"),
}


def apply_env_overrides(
    config_data: dict[str, Any], environ: Mapping[str, str] | None = None
) -> dict[str, Any]:
    """Overlay ``FOUNDRY_*`` environment variables onto raw config data.

    Values are left as strings; pydantic coerces them during validation.
    """
    environ = os.environ if environ is None else environ
    applied = []
    for suffix, path in ENV_OVERRIDES.items():
        value = environ.get(f"{ENV_PREFIX}{suffix}")
        if value is None:
            continue
        section = config_data
        for key in path[:-1]:
            if not isinstance(section.get(key), dict):
                section[key] = {}
            section = section[key]
        section[path[-1]] = value
        applied.append(f"{ENV_PREFIX}{suffix}")

    if applied:
        logger.debug(f"Applied environment overrides: {applied}")
    return config_data


def parse_settings(content: str, *, substitute: bool = True) -> EngineSettings:
    """Parse YAML text with a top-level ``config:`` key into settings.

    Raises:
        ValueError: If a required environment variable is missing, the YAML
            is invalid, the ``config`` key is missing, or validation fails
    """
    if substitute:
        content = substitute_env_vars(content)

    try:
        loaded = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Error parsing YAML: {e}") from e

    if not isinstance(loaded, dict):
        raise ValueError("Failed to parse YAML")
    if "config" not in loaded:
        raise ValueError("Invalid YAML structure: missing 'config' key")

    config_data = loaded["config"] or {}
    if not isinstance(config_data, dict):
        raise ValueError("Invalid YAML structure: 'config' must be a mapping")

    try:
        return EngineSettings(**apply_env_overrides(config_data))
    except ValidationError as e:
        raise ValueError(f"Invalid configuration: {e}") from e


def load_settings(file_path: Path | None = None) -> EngineSettings:
    """
    Load engine settings from a YAML file.

    Args:
        file_path: Path to the YAML file (default: ``FOUNDRY_CONFIG`` or foundry.yaml)

    Returns:
        Validated EngineSettings

    Raises:
        ValueError: If substitution, parsing, or validation fails
        FileNotFoundError: If the YAML file doesn't exist
    """
    if file_path is None:
        file_path = Path(os.getenv(f"{ENV_PREFIX}CONFIG", str(CONFIG_PATH)))

    logger.info(f"Loading engine configuration from {file_path}")
    with open(file_path) as f:
        content = f.read()

    settings = parse_settings(content)
    logger.debug(
        f"Loaded settings: recovery_policy={settings.recovery_policy.value}, "
        f"{len(settings.components)} component override(s)"
    )
    return settings
