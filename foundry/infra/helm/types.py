"""Data types for Helm command results."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CommandResult",
    "HelmCommandError",
    "HelmRelease",
]


@dataclass
class CommandResult:
    """Result of a command execution."""

    success: bool
    stdout: str = ""
    stderr: str = ""
    returncode: int = 0

    @property
    def error_text(self) -> str:
        """Best available description of a failure."""
        return (self.stderr or self.stdout).strip() or f"exit code {self.returncode}"


class HelmCommandError(Exception):
    """Raised when a Helm query cannot produce a usable answer."""

    def __init__(self, message: str, result: CommandResult | None = None):
        self.message = message
        self.result = result
        super().__init__(message)


@dataclass
class HelmRelease:
    """Information about a Helm release.

    Attributes:
        name: Release name
        namespace: Kubernetes namespace
        status: Release status (deployed, failed, pending-install, uninstalling, ...)
        revision: Release revision number
        app_version: Application version reported by the chart
        chart: Chart name and version (e.g., "loki-6.6.2")
    """

    name: str
    namespace: str
    status: str
    revision: str = ""
    app_version: str = ""
    chart: str = ""
