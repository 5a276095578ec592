"""Collaborator interfaces the engine depends on.

``HelmCommands`` satisfies ``InstallerClient`` and ``KubernetesController``
satisfies ``ClusterClient``; tests substitute mocks.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol

from foundry.infra.helm.types import CommandResult, HelmRelease
from foundry.infra.k8s.controller import PodInfo, ResourceRequest


class InstallerClient(Protocol):
    """Chart installer. Mutating calls report failure through CommandResult."""

    def add_repo(
        self, name: str, url: str, *, force_update: bool = True
    ) -> CommandResult: ...

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
    ) -> CommandResult: ...

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
    ) -> CommandResult: ...

    def uninstall(
        self, release_name: str, namespace: str, *, wait: bool = True
    ) -> CommandResult: ...

    def list_releases(self, namespace: str) -> list[HelmRelease]:
        """Raises HelmCommandError when the listing fails."""
        ...


class PodLister(Protocol):
    async def list_pods(self, namespace: str) -> list[PodInfo]: ...


class ClusterClient(PodLister, Protocol):
    """Cluster API primitives addressed by group/version/resource."""

    async def create_resource(
        self, request: ResourceRequest, body: dict[str, Any]
    ) -> dict[str, Any]: ...

    async def get_resource(self, request: ResourceRequest) -> dict[str, Any]: ...

    async def replace_resource(
        self, request: ResourceRequest, body: dict[str, Any]
    ) -> dict[str, Any]: ...
