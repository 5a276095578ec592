"""Helm-backed component definitions.

A component is catalog data: where its chart lives, which release and
namespace it installs into, its default values, and which pods must be
Running afterwards. Installing one is a single call into the orchestrator.
"""

from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from typing import Any

from foundry.config.settings import ComponentOverride
from foundry.infra.constants import DEFAULT_CONSTANTS
from foundry.reconcile.models import (
    ChartRepository,
    InstallResult,
    ReadinessSpec,
    Release,
    ReleaseStatus,
)
from foundry.reconcile.orchestrator import InstallOrchestrator
from foundry.reconcile.resolver import ReleaseStateResolver


def merge_values(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``overrides`` into a copy of ``base``.

    Nested mappings are merged; any other value in ``overrides`` replaces
    the one in ``base``.
    """
    merged = copy.deepcopy(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_values(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


@dataclass
class ComponentStatus:
    """Installed/healthy summary of a component's release."""

    installed: bool
    healthy: bool
    version: str = ""
    message: str = ""


@dataclass
class HelmComponent:
    """A component installed from a single Helm chart.

    Attributes:
        name: Component name used in configuration and the registry
        repo: Chart repository registered before installs
        chart: Chart reference, e.g. "grafana/loki"
        namespace: Default target namespace
        release_name: Helm release name (defaults to ``name``)
        version: Pinned chart version (latest if empty)
        values: Default Helm values
        readiness: Pods that must be Running after install
        timeout: Seconds Helm may wait for the install (engine default if None)
        create_namespace: Create the namespace on install
        dependencies: Names of components this one expects to be present
    """

    name: str
    repo: ChartRepository
    chart: str
    namespace: str
    release_name: str = ""
    version: str = ""
    values: dict[str, Any] = field(default_factory=dict)
    readiness: ReadinessSpec | None = None
    timeout: float | None = None
    create_namespace: bool = True
    dependencies: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if not self.release_name:
            self.release_name = self.name

    def release(
        self,
        override: ComponentOverride | None = None,
        *,
        default_timeout: float = DEFAULT_CONSTANTS.HELM_TIMEOUT,
    ) -> Release:
        """Build the desired release, applying configuration overrides."""
        override = override or ComponentOverride()
        return Release(
            name=self.release_name,
            namespace=override.namespace or self.namespace,
            chart=self.chart,
            version=override.version or self.version,
            values=merge_values(self.values, override.values),
            timeout=self.timeout or default_timeout,
            repo=self.repo,
            create_namespace=self.create_namespace,
        )

    def readiness_for(
        self, override: ComponentOverride | None = None
    ) -> ReadinessSpec | None:
        if self.readiness is None:
            return None
        if override is None or override.readiness_timeout is None:
            return self.readiness
        return ReadinessSpec(
            name_contains=self.readiness.name_contains,
            timeout=override.readiness_timeout,
            interval=self.readiness.interval,
            namespace=self.readiness.namespace,
        )

    async def install(
        self,
        orchestrator: InstallOrchestrator,
        override: ComponentOverride | None = None,
        *,
        default_timeout: float = DEFAULT_CONSTANTS.HELM_TIMEOUT,
        cancel: asyncio.Event | None = None,
    ) -> InstallResult:
        return await orchestrator.install(
            self.release(override, default_timeout=default_timeout),
            self.readiness_for(override),
            cancel=cancel,
        )

    async def status(
        self,
        resolver: ReleaseStateResolver,
        override: ComponentOverride | None = None,
    ) -> ComponentStatus:
        """Report whether the component's release exists and is deployed."""
        release = self.release(override)
        detail = await resolver.resolve(release.namespace, release.name)

        if detail.status is ReleaseStatus.UNKNOWN:
            return ComponentStatus(
                installed=False,
                healthy=False,
                message=f"failed to list releases: {detail.message}",
            )
        if detail.status is ReleaseStatus.ABSENT:
            return ComponentStatus(
                installed=False,
                healthy=False,
                message=f"{release.name} release not found",
            )
        return ComponentStatus(
            installed=True,
            healthy=detail.status is ReleaseStatus.DEPLOYED,
            version=detail.app_version,
            message=f"release status: {detail.raw_status}",
        )
