"""Abstract Kubernetes controller interface.

Defines the contract for the cluster operations the reconciliation engine
needs. Resources are addressed by group/version/resource rather than through
a discovery client, so any backend only has to speak the REST paths.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from foundry.infra.constants import DEFAULT_CONSTANTS

from .errors import ResourceNotFound

# =============================================================================
# Data Types
# =============================================================================


@dataclass
class PodInfo:
    """Information about a Kubernetes pod."""

    name: str
    namespace: str
    status: str
    restarts: int = 0
    ready: bool = False
    ip: str = ""
    node: str = ""

    @property
    def is_running(self) -> bool:
        return self.status == DEFAULT_CONSTANTS.RUNNING_PHASE


@dataclass(frozen=True)
class ResourceRequest:
    """Address of a resource collection (and optionally one object in it).

    Attributes:
        group: API group, empty for the core group
        version: API version within the group (e.g., "v1")
        resource: Plural resource name (e.g., "deployments")
        namespace: Target namespace, or None for cluster-scoped resources
        name: Object name for get/replace requests
    """

    group: str
    version: str
    resource: str
    namespace: str | None = None
    name: str = ""

    @property
    def api_version(self) -> str:
        """The apiVersion string, e.g. "v1" or "apps/v1"."""
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def path(self) -> str:
        """Human-readable path used in log and error messages."""
        parts = [self.api_version]
        if self.namespace is not None:
            parts.extend(["namespaces", self.namespace])
        parts.append(self.resource)
        if self.name:
            parts.append(self.name)
        return "/".join(parts)

    def named(self, name: str) -> ResourceRequest:
        """Return a copy of this request addressing a single object."""
        return ResourceRequest(
            group=self.group,
            version=self.version,
            resource=self.resource,
            namespace=self.namespace,
            name=name,
        )


CRD_REQUEST = ResourceRequest(
    group="apiextensions.k8s.io",
    version="v1",
    resource="customresourcedefinitions",
)
SERVICE_MONITOR_CRD = "servicemonitors.monitoring.coreos.com"


# =============================================================================
# Abstract Controller
# =============================================================================


class KubernetesController(ABC):
    """Abstract base class for Kubernetes operations.

    All methods are async. Failures are raised as the typed errors in
    ``foundry.infra.k8s.errors``.
    """

    # =========================================================================
    # Cluster Context
    # =========================================================================

    @abstractmethod
    async def get_current_context(self) -> str:
        """Get the current kubeconfig context name.

        Returns:
            Context name, or "unknown" if detection fails
        """
        ...

    # =========================================================================
    # Pod Operations
    # =========================================================================

    @abstractmethod
    async def list_pods(self, namespace: str) -> list[PodInfo]:
        """List all pods in a namespace with their status.

        Args:
            namespace: Kubernetes namespace

        Returns:
            List of PodInfo objects

        Raises:
            ClusterRequestError: If the list call fails
        """
        ...

    # =========================================================================
    # Generic Resource Operations
    # =========================================================================

    @abstractmethod
    async def create_resource(
        self, request: ResourceRequest, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Create an object in the collection addressed by ``request``.

        Args:
            request: Collection address (``name`` is ignored)
            body: Full object manifest

        Returns:
            The object as stored by the API server

        Raises:
            ResourceConflict: With reason ``AlreadyExists`` if the object exists
            ClusterRequestError: For any other failure
        """
        ...

    @abstractmethod
    async def get_resource(self, request: ResourceRequest) -> dict[str, Any]:
        """Fetch the object addressed by ``request``.

        Raises:
            ResourceNotFound: If the object does not exist
            ClusterRequestError: For any other failure
        """
        ...

    @abstractmethod
    async def replace_resource(
        self, request: ResourceRequest, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace the object addressed by ``request`` with ``body``.

        ``body`` should carry ``metadata.resourceVersion``; the API server
        then rejects the write if the object changed in between.

        Raises:
            ResourceConflict: With reason ``Conflict`` on a stale resourceVersion
            ClusterRequestError: For any other failure
        """
        ...

    # =========================================================================
    # CRD Checks
    # =========================================================================

    async def crd_exists(self, crd_name: str) -> bool:
        """Check whether a CustomResourceDefinition is installed.

        Args:
            crd_name: Full CRD name (e.g., "servicemonitors.monitoring.coreos.com")

        Returns:
            True if the CRD exists, False if the API server reports 404
        """
        try:
            await self.get_resource(CRD_REQUEST.named(crd_name))
        except ResourceNotFound:
            return False
        return True

    async def service_monitor_crd_exists(self) -> bool:
        """Check if the Prometheus Operator ServiceMonitor CRD is installed."""
        return await self.crd_exists(SERVICE_MONITOR_CRD)
