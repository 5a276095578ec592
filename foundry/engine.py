"""Engine wiring: settings to clients to orchestrator, applier and poller."""

from __future__ import annotations

import asyncio
from dataclasses import replace

from loguru import logger

from foundry.components.base import ComponentStatus, HelmComponent
from foundry.components.catalog import default_registry
from foundry.components.registry import ComponentRegistry
from foundry.config.settings import EngineSettings
from foundry.infra.helm.commands import HelmCommands
from foundry.infra.helm.runner import CommandRunner
from foundry.infra.k8s.helpers import get_k8s_controller
from foundry.reconcile.clients import ClusterClient, InstallerClient
from foundry.reconcile.errors import ClientUnavailable
from foundry.reconcile.events import ProgressSink
from foundry.reconcile.manifest import ManifestApplier
from foundry.reconcile.models import InstallResult, ManifestDocument, PollTarget
from foundry.reconcile.orchestrator import InstallOrchestrator
from foundry.reconcile.poller import ReadinessPoller
from foundry.reconcile.resolver import ReleaseStateResolver


class Engine:
    """One configured set of engine services sharing the same clients."""

    def __init__(
        self,
        settings: EngineSettings,
        installer: InstallerClient | None,
        cluster: ClusterClient | None,
        *,
        registry: ComponentRegistry | None = None,
        sink: ProgressSink | None = None,
    ) -> None:
        self.settings = settings
        self.registry = registry or default_registry()
        self.resolver = (
            ReleaseStateResolver(
                installer, list_attempts=settings.release_list_attempts
            )
            if installer is not None
            else None
        )
        self.poller = ReadinessPoller(cluster) if cluster is not None else None
        self.orchestrator = InstallOrchestrator(
            installer,
            cluster,
            recovery_policy=settings.recovery_policy,
            sink=sink,
            resolver=self.resolver,
            poller=self.poller,
        )
        self.applier = ManifestApplier(
            cluster, conflict_retries=settings.conflict_retries
        )

    @classmethod
    def from_settings(
        cls,
        settings: EngineSettings,
        *,
        sink: ProgressSink | None = None,
    ) -> Engine:
        """Build an engine backed by the helm CLI and a kr8s cluster client."""
        helm = HelmCommands(
            CommandRunner(),
            binary=settings.helm.binary,
            kubeconfig=settings.helm.kubeconfig,
        )
        cluster = get_k8s_controller(settings.helm.kubeconfig, settings.helm.context)
        logger.debug(
            f"Engine using helm={settings.helm.binary}, "
            f"kubeconfig={settings.helm.kubeconfig or 'default'}"
        )
        return cls(settings, helm, cluster, sink=sink)

    def component(self, name: str) -> HelmComponent:
        component = self.registry.get(name)
        if component is None:
            raise KeyError(f"unknown component: {name}")
        return component

    async def install_component(
        self, name: str, *, cancel: asyncio.Event | None = None
    ) -> InstallResult | None:
        """Install a catalog component with its configured overrides.

        Returns None when the component is disabled in configuration.
        """
        component = self.component(name)
        override = self.settings.override_for(name)
        if not override.enabled:
            logger.info(f"Skipping disabled component {name}")
            return None

        readiness = component.readiness_for(override)
        interval = self.settings.poll_interval
        if (
            readiness is not None
            and interval != readiness.interval
            and interval < readiness.timeout
        ):
            readiness = replace(readiness, interval=interval)

        return await self.orchestrator.install(
            component.release(override, default_timeout=self.settings.helm.timeout),
            readiness,
            cancel=cancel,
        )

    async def component_status(self, name: str) -> ComponentStatus:
        if self.resolver is None:
            return ComponentStatus(
                installed=False, healthy=False, message="helm client not initialized"
            )
        return await self.component(name).status(
            self.resolver, self.settings.override_for(name)
        )

    async def apply_manifests(
        self, yaml_text: str, *, cancel: asyncio.Event | None = None
    ) -> list[ManifestDocument]:
        return await self.applier.apply(yaml_text, cancel=cancel)

    async def wait_for_pods(
        self,
        namespace: str,
        *name_contains: str,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Wait for pods using the configured readiness timeout and interval."""
        if self.poller is None:
            raise ClientUnavailable("kubernetes client is not configured")
        target = PollTarget(
            namespace=namespace,
            name_contains=name_contains,
            timeout=self.settings.readiness_timeout,
            interval=self.settings.poll_interval,
        )
        await self.poller.wait(target, cancel=cancel)
