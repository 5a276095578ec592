"""Idempotent Helm install state machine.

Every component install goes through ``InstallOrchestrator.install``::

    Start ─▶ Checked ─┬─ DEPLOYED ──────────────────────────▶ Verifying ─▶ Done
                      ├─ ABSENT / UNKNOWN ─▶ Installing ───▶ Verifying
                      └─ FAILED ─▶ Recovering ─▶ Installing ▶ Verifying

Any failing step ends in Failed by raising. Installs are not transactional:
a release that installed but failed verification stays installed.
"""

from __future__ import annotations

import asyncio

from loguru import logger

from foundry.infra.helm.types import CommandResult

from .cancel import raise_if_cancelled
from .clients import InstallerClient, PodLister
from .errors import ClientUnavailable, RemoteOperationError, VerificationTimeout
from .events import ProgressSink, coalesce_sink
from .models import (
    InstallOutcome,
    InstallResult,
    InstallState,
    ReadinessSpec,
    RecoveryPolicy,
    Release,
    ReleaseStatus,
    ReleaseStatusDetail,
)
from .poller import ReadinessPoller
from .resolver import ReleaseStateResolver


class InstallRun:
    """State of a single ``install`` call."""

    def __init__(self, release: Release) -> None:
        self.release = release
        self.path: list[InstallState] = [InstallState.START]

    @property
    def state(self) -> InstallState:
        return self.path[-1]

    def advance(self, state: InstallState) -> None:
        logger.debug(
            f"{self.release.namespace}/{self.release.name}: "
            f"{self.state.value} -> {state.value}"
        )
        self.path.append(state)


class InstallOrchestrator:
    """Drive one release from its observed state to installed and Running.

    The recovery policy is fixed for the lifetime of the orchestrator, so
    every component installed through one instance is repaired the same way.
    Each ``install`` call keeps its own state, so one orchestrator can serve
    concurrent installs of different releases.

    Attributes:
        recovery_policy: How FAILED releases are repaired
    """

    def __init__(
        self,
        installer: InstallerClient | None,
        cluster: PodLister | None = None,
        *,
        recovery_policy: RecoveryPolicy = RecoveryPolicy.UNINSTALL_REINSTALL,
        sink: ProgressSink | None = None,
        resolver: ReleaseStateResolver | None = None,
        poller: ReadinessPoller | None = None,
    ) -> None:
        """Initialize the orchestrator.

        Args:
            installer: Helm client (required)
            cluster: Pod lister used for readiness verification
            recovery_policy: Repair strategy for FAILED releases
            sink: Progress notifications (defaults to loguru)
            resolver: Custom release state resolver
            poller: Custom readiness poller
        """
        self.installer = installer
        self.cluster = cluster
        self.recovery_policy = recovery_policy
        self.sink = coalesce_sink(sink)
        self.resolver = resolver or (
            ReleaseStateResolver(installer) if installer is not None else None
        )
        self.poller = poller or (
            ReadinessPoller(cluster) if cluster is not None else None
        )

    def _require_installer(self) -> tuple[InstallerClient, ReleaseStateResolver]:
        if self.installer is None or self.resolver is None:
            raise ClientUnavailable("helm client is not configured")
        return self.installer, self.resolver

    def _require_poller(self) -> ReadinessPoller:
        if self.poller is None:
            raise ClientUnavailable(
                "kubernetes client is not configured",
                details="A readiness check was requested but no cluster client is available.",
            )
        return self.poller

    async def install(
        self,
        release: Release,
        readiness: ReadinessSpec | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> InstallResult:
        """Install ``release`` if needed and verify its pods.

        Args:
            release: Desired release
            readiness: Pods to wait for after install (verification skipped if None)
            cancel: Optional event; setting it stops at the next checkpoint

        Returns:
            InstallResult describing which path was taken

        Raises:
            ClientUnavailable: A required client is missing (nothing was called)
            RemoteOperationError: repo add / install / upgrade / uninstall failed
            VerificationTimeout: Installed, but pods were not Running in time
            OperationCancelled: ``cancel`` was set
        """
        installer, resolver = self._require_installer()
        poller = self._require_poller() if readiness is not None else None
        run = InstallRun(release)
        where = f"{release.namespace}/{release.name}"

        try:
            raise_if_cancelled(cancel, f"install of {where}")
            self.sink.info(f"Installing {release.name}...")
            await self._register_repo(installer, release)

            previous = await resolver.resolve(
                release.namespace, release.name, cancel=cancel
            )
            run.advance(InstallState.CHECKED)
            outcome = await self._converge(installer, run, previous, cancel)

            if readiness is not None and poller is not None:
                run.advance(InstallState.VERIFYING)
                await self._verify(poller, release, readiness, cancel)
        except BaseException:
            run.advance(InstallState.FAILED)
            raise

        run.advance(InstallState.DONE)
        if outcome is InstallOutcome.ALREADY_DEPLOYED:
            self.sink.ok(f"{release.name} already installed")
        else:
            self.sink.ok(f"{release.name} installed successfully")
        return InstallResult(
            release=release, outcome=outcome, previous=previous, path=tuple(run.path)
        )

    async def _converge(
        self,
        installer: InstallerClient,
        run: InstallRun,
        previous: ReleaseStatusDetail,
        cancel: asyncio.Event | None,
    ) -> InstallOutcome:
        """Run the mutating part of the state machine for ``previous``."""
        release = run.release
        if previous.status is ReleaseStatus.DEPLOYED:
            return InstallOutcome.ALREADY_DEPLOYED

        if previous.status is ReleaseStatus.UNKNOWN:
            self.sink.warn(
                f"Could not determine state of {release.name}, attempting a fresh install"
            )

        if previous.status is ReleaseStatus.FAILED:
            run.advance(InstallState.RECOVERING)
            raise_if_cancelled(cancel, f"recovery of {release.name}")
            if self.recovery_policy is RecoveryPolicy.UPGRADE_IN_PLACE:
                self.sink.warn(
                    f"Upgrading {release.name} in place "
                    f"(status: {previous.raw_status})..."
                )
                run.advance(InstallState.INSTALLING)
                await self._upgrade(installer, release)
                return InstallOutcome.REPAIRED

            self.sink.warn(
                f"Removing failed release {release.name} "
                f"(status: {previous.raw_status})..."
            )
            await self._uninstall(installer, release)

        run.advance(InstallState.INSTALLING)
        raise_if_cancelled(cancel, f"install of {release.name}")
        await self._install(installer, release)
        if previous.status is ReleaseStatus.FAILED:
            return InstallOutcome.REPAIRED
        return InstallOutcome.INSTALLED

    # =========================================================================
    # Installer calls
    # =========================================================================

    def _stream(self, release: Release):  # type: ignore[no-untyped-def]
        def on_output(line: str) -> None:
            logger.debug(f"[helm {release.name}] {line.strip()}")

        return on_output

    @staticmethod
    def _check(result: CommandResult, operation: str, release: Release) -> None:
        if not result.success:
            raise RemoteOperationError(
                operation, release.name, release.namespace, result.error_text
            )

    async def _register_repo(self, installer: InstallerClient, release: Release) -> None:
        if release.repo is None:
            return
        result = await asyncio.to_thread(
            installer.add_repo,
            release.repo.name,
            release.repo.url,
            force_update=True,
        )
        self._check(result, f"helm repo add {release.repo.name}", release)

    async def _install(self, installer: InstallerClient, release: Release) -> None:
        result = await asyncio.to_thread(
            installer.install,
            release.name,
            release.chart,
            release.namespace,
            version=release.version,
            values=release.values,
            create_namespace=release.create_namespace,
            wait=release.wait,
            timeout=release.timeout,
            on_output=self._stream(release),
        )
        self._check(result, "helm install", release)

    async def _upgrade(self, installer: InstallerClient, release: Release) -> None:
        result = await asyncio.to_thread(
            installer.upgrade,
            release.name,
            release.chart,
            release.namespace,
            version=release.version,
            values=release.values,
            wait=release.wait,
            timeout=release.timeout,
            on_output=self._stream(release),
        )
        self._check(result, "helm upgrade", release)

    async def _uninstall(self, installer: InstallerClient, release: Release) -> None:
        result = await asyncio.to_thread(
            installer.uninstall, release.name, release.namespace
        )
        self._check(result, "helm uninstall", release)

    # =========================================================================
    # Verification
    # =========================================================================

    async def _verify(
        self,
        poller: ReadinessPoller,
        release: Release,
        readiness: ReadinessSpec,
        cancel: asyncio.Event | None,
    ) -> None:
        target = readiness.target_for(release)
        self.sink.info(f"Waiting for {release.name} pods to be Running...")
        try:
            await poller.wait(target, cancel=cancel)
        except VerificationTimeout as e:
            self.sink.error(
                f"{release.name} was installed but its pods are not Running: {e.message}"
            )
            raise e.for_release(release.name) from e
