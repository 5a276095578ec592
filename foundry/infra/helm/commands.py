"""Helm command abstractions.

This module provides commands for chart repository registration and Helm
release management: install, upgrade, uninstall, and release listing.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml  # type: ignore[import-untyped]

from .types import CommandResult, HelmCommandError, HelmRelease

if TYPE_CHECKING:
    from .runner import CommandRunner


def format_timeout(seconds: float) -> str:
    """Format a timeout in seconds as a Helm duration (e.g. "600s")."""
    return f"{max(1, int(seconds))}s"


@contextmanager
def values_file(values: dict[str, Any] | None) -> Iterator[Path | None]:
    """Write Helm values to a temporary YAML file for the duration of a command.

    Yields None when there are no values to pass.
    """
    if not values:
        yield None
        return

    fd, name = tempfile.mkstemp(suffix=".yaml", prefix="foundry-values-")
    path = Path(name)
    try:
        with os.fdopen(fd, "w") as f:
            yaml.safe_dump(values, f, default_flow_style=False)
        yield path
    finally:
        path.unlink(missing_ok=True)


class HelmCommands:
    """Helm-related shell commands.

    Provides operations for:
    - Repository registration (repo add)
    - Release management (install, upgrade, uninstall)
    - Status queries (list releases)
    """

    def __init__(
        self,
        runner: CommandRunner,
        *,
        binary: str = "helm",
        kubeconfig: str | None = None,
    ) -> None:
        """Initialize Helm commands.

        Args:
            runner: Command runner for executing shell commands
            binary: Helm executable name or path
            kubeconfig: Optional kubeconfig path passed to every command
        """
        self._runner = runner
        self._binary = binary
        self._kubeconfig = kubeconfig

    def _base(self) -> list[str]:
        cmd = [self._binary]
        if self._kubeconfig:
            cmd.extend(["--kubeconfig", self._kubeconfig])
        return cmd

    def _execute(
        self,
        cmd: list[str],
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        # Use streaming if callback provided, otherwise capture output
        if on_output:
            return self._runner.run_streaming(cmd, on_output=on_output)
        return self._runner.run(cmd, capture_output=True)

    # =========================================================================
    # Repositories
    # =========================================================================

    def add_repo(
        self,
        name: str,
        url: str,
        *,
        force_update: bool = True,
        username: str | None = None,
        password: str | None = None,
    ) -> CommandResult:
        """Register a chart repository.

        With ``force_update`` an existing entry of the same name is replaced,
        which makes the call safe to repeat.

        Args:
            name: Repository alias (e.g., "grafana")
            url: Repository URL
            force_update: Replace an existing repository with the same name
            username: Optional basic-auth username
            password: Optional basic-auth password

        Returns:
            CommandResult with registration status
        """
        if not name:
            return CommandResult(
                success=False, stderr="repository name cannot be empty", returncode=1
            )
        if not url:
            return CommandResult(
                success=False, stderr="repository URL cannot be empty", returncode=1
            )

        cmd = [*self._base(), "repo", "add", name, url]
        if force_update:
            cmd.append("--force-update")
        if username:
            cmd.extend(["--username", username])
        if password:
            cmd.extend(["--password", password])
        return self._runner.run(cmd)

    # =========================================================================
    # Release Management
    # =========================================================================

    def _release_command(
        self,
        action: str,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        version: str,
        values_path: Path | None,
        wait: bool,
        timeout: float,
    ) -> list[str]:
        cmd = [*self._base(), action, release_name, chart, "--namespace", namespace]
        if version:
            cmd.extend(["--version", version])
        if wait:
            cmd.append("--wait")
        cmd.extend(["--timeout", format_timeout(timeout)])
        if values_path is not None:
            cmd.extend(["-f", str(values_path)])
        return cmd

    def install(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        version: str = "",
        values: dict[str, Any] | None = None,
        create_namespace: bool = True,
        wait: bool = True,
        timeout: float = 600.0,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Install a chart as a new release.

        Args:
            release_name: Name for the Helm release (e.g., "loki")
            chart: Chart reference (e.g., "grafana/loki")
            namespace: Kubernetes namespace for deployment
            version: Chart version constraint (latest if empty)
            values: Helm values, written to a temporary values file
            create_namespace: Whether to create namespace if it doesn't exist
            wait: Whether to wait for resources to be ready
            timeout: Maximum time in seconds Helm waits
            on_output: Optional callback for real-time output streaming

        Returns:
            CommandResult with install status

        Example:
            >>> helm.install("loki", "grafana/loki", "loki", values={"test": {"enabled": False}})
        """
        with values_file(values) as path:
            cmd = self._release_command(
                "install",
                release_name,
                chart,
                namespace,
                version=version,
                values_path=path,
                wait=wait,
                timeout=timeout,
            )
            if create_namespace:
                cmd.append("--create-namespace")
            return self._execute(cmd, on_output)

    def upgrade(
        self,
        release_name: str,
        chart: str,
        namespace: str,
        *,
        version: str = "",
        values: dict[str, Any] | None = None,
        install: bool = False,
        wait: bool = True,
        timeout: float = 600.0,
        on_output: Callable[[str], None] | None = None,
    ) -> CommandResult:
        """Upgrade an existing release in place.

        Args:
            release_name: Name of the release to upgrade
            chart: Chart reference
            namespace: Kubernetes namespace
            version: Chart version constraint (latest if empty)
            values: Helm values, written to a temporary values file
            install: Install the release if it does not exist
            wait: Whether to wait for resources to be ready
            timeout: Maximum time in seconds Helm waits
            on_output: Optional callback for real-time output streaming

        Returns:
            CommandResult with upgrade status
        """
        with values_file(values) as path:
            cmd = self._release_command(
                "upgrade",
                release_name,
                chart,
                namespace,
                version=version,
                values_path=path,
                wait=wait,
                timeout=timeout,
            )
            if install:
                cmd.append("--install")
            return self._execute(cmd, on_output)

    def uninstall(
        self,
        release_name: str,
        namespace: str,
        *,
        wait: bool = True,
        timeout: float | None = None,
    ) -> CommandResult:
        """Uninstall a Helm release.

        Args:
            release_name: Name of the release to uninstall
            namespace: Kubernetes namespace
            wait: Whether to wait for resources to be deleted
            timeout: Optional maximum time in seconds Helm waits

        Returns:
            CommandResult with uninstall status
        """
        cmd = [*self._base(), "uninstall", release_name, "--namespace", namespace]
        if wait:
            cmd.append("--wait")
        if timeout is not None:
            cmd.extend(["--timeout", format_timeout(timeout)])
        return self._runner.run(cmd)

    # =========================================================================
    # Status Queries
    # =========================================================================

    def list_releases(self, namespace: str) -> list[HelmRelease]:
        """List all Helm releases in a namespace, whatever their status.

        Args:
            namespace: Kubernetes namespace to query

        Returns:
            List of HelmRelease objects

        Raises:
            HelmCommandError: If helm fails or prints something that is not JSON
        """
        cmd = [*self._base(), "list", "--namespace", namespace, "--all", "-o", "json"]

        result = self._runner.run(cmd)
        if not result.success:
            raise HelmCommandError(
                f"helm list failed in namespace {namespace}: {result.error_text}",
                result,
            )
        if not result.stdout.strip():
            return []

        try:
            releases_data = json.loads(result.stdout)
        except json.JSONDecodeError as e:
            raise HelmCommandError(
                f"helm list returned invalid JSON: {e}", result
            ) from e

        return [
            HelmRelease(
                name=r.get("name", ""),
                namespace=r.get("namespace", namespace),
                status=r.get("status", ""),
                revision=str(r.get("revision", "")),
                app_version=r.get("app_version", ""),
                chart=r.get("chart", ""),
            )
            for r in releases_data or []
        ]
