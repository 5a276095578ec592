"""Helm installer client.

Wraps the ``helm`` CLI: repository registration, install, upgrade,
uninstall, and release listing.

Usage:
    from foundry.infra.helm import CommandRunner, HelmCommands

    helm = HelmCommands(CommandRunner(), kubeconfig="~/.kube/config")
    releases = helm.list_releases("loki")
"""

from .commands import HelmCommands, format_timeout, values_file
from .runner import CommandRunner
from .types import CommandResult, HelmCommandError, HelmRelease

__all__ = [
    "HelmCommands",
    "CommandRunner",
    "CommandResult",
    "HelmCommandError",
    "HelmRelease",
    "format_timeout",
    "values_file",
]
