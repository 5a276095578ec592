"""Pydantic models for engine configuration.

This module defines the validated shape of the ``config:`` section of an
engine configuration file.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, model_validator

from foundry.infra.constants import DEFAULT_CONSTANTS
from foundry.reconcile.models import RecoveryPolicy

# =============================================================================
# Sections
# =============================================================================


class HelmSettings(BaseModel):
    """How the ``helm`` binary is invoked."""

    binary: str = Field(default="helm", description="Path or name of the helm binary")
    kubeconfig: str | None = Field(
        default=None,
        description="Kubeconfig passed to helm and the cluster client",
    )
    context: str | None = Field(
        default=None,
        description="Kubeconfig context for the cluster client",
    )
    timeout: float = Field(
        default=DEFAULT_CONSTANTS.HELM_TIMEOUT,
        gt=0,
        description="Default seconds helm may wait for install/upgrade",
    )


class ComponentOverride(BaseModel):
    """Per-component overrides applied on top of the catalog entry.

    Example:
        ```yaml
        components:
          loki:
            namespace: logging
            version: "6.6.2"
            values:
              loki:
                auth_enabled: false
        ```
    """

    enabled: bool = Field(default=True, description="Skip the component when false")
    namespace: str | None = Field(default=None, description="Target namespace")
    version: str | None = Field(default=None, description="Chart version")
    values: dict[str, Any] = Field(
        default_factory=dict,
        description="Helm values merged over the catalog defaults",
    )
    readiness_timeout: float | None = Field(
        default=None,
        gt=0,
        description="Seconds to wait for the component's pods",
    )


# =============================================================================
# Root
# =============================================================================


class EngineSettings(BaseModel):
    """Validated engine configuration."""

    recovery_policy: RecoveryPolicy = Field(
        default=RecoveryPolicy.UNINSTALL_REINSTALL,
        description="How releases in a failed state are repaired",
    )
    readiness_timeout: float = Field(
        default=DEFAULT_CONSTANTS.READINESS_TIMEOUT,
        gt=0,
        description="Default seconds to wait for pods to be Running",
    )
    poll_interval: float = Field(
        default=DEFAULT_CONSTANTS.POLL_INTERVAL,
        gt=0,
        description="Seconds between readiness checks",
    )
    release_list_attempts: int = Field(
        default=DEFAULT_CONSTANTS.RELEASE_LIST_ATTEMPTS,
        ge=1,
        description="Attempts at listing releases before the state is unknown",
    )
    conflict_retries: int = Field(
        default=DEFAULT_CONSTANTS.CONFLICT_RETRIES,
        ge=1,
        description="Attempts at a get-modify-write before giving up on conflicts",
    )
    helm: HelmSettings = Field(default_factory=HelmSettings)
    components: dict[str, ComponentOverride] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_interval(self) -> EngineSettings:
        if self.poll_interval >= self.readiness_timeout:
            raise ValueError(
                f"poll_interval ({self.poll_interval}) must be smaller than "
                f"readiness_timeout ({self.readiness_timeout})"
            )
        return self

    def override_for(self, component: str) -> ComponentOverride:
        return self.components.get(component) or ComponentOverride()
