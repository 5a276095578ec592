"""Kr8s-based implementation of KubernetesController.

Uses the kr8s library for native async Kubernetes operations. Generic
resources are driven through ``Api.call_api`` against the REST path built
from the group/version/resource, so no discovery round-trip is needed.
"""

from __future__ import annotations

import json
from typing import Any

import kr8s
from kr8s.asyncio.objects import Pod
from loguru import logger

from .controller import KubernetesController, PodInfo, ResourceRequest
from .errors import ClusterRequestError, ResourceConflict, ResourceNotFound


def classify_server_error(exc: kr8s.ServerError, action: str) -> ClusterRequestError:
    """Convert a kr8s ServerError into a typed controller error.

    Uses the HTTP status code and the ``reason`` field of the returned
    Status object.

    Args:
        exc: The error raised by kr8s
        action: Short description of the request, used in the message

    Returns:
        ResourceNotFound for 404, ResourceConflict for 409, otherwise
        a plain ClusterRequestError
    """
    response = getattr(exc, "response", None)
    status_code = getattr(response, "status_code", None)
    status = getattr(exc, "status", None)
    reason = status.get("reason", "") if isinstance(status, dict) else ""
    message = f"{action} failed: {exc}"

    if status_code == 404 or reason == "NotFound":
        return ResourceNotFound(message, status_code=404, reason=reason or "NotFound")
    if status_code == 409:
        return ResourceConflict(message, status_code=409, reason=reason)
    return ClusterRequestError(message, status_code=status_code, reason=reason)


class Kr8sController(KubernetesController):
    """Kubernetes controller using kr8s library.

    Note: The kr8s API client is NOT cached because it's tied to the event loop
    that was running when created. A fresh client is requested per call; kr8s
    reuses its own connection pool underneath.
    """

    def __init__(
        self,
        kubeconfig: str | None = None,
        context: str | None = None,
    ) -> None:
        """Initialize the kr8s controller.

        Args:
            kubeconfig: Optional path to a kubeconfig file
            context: Optional kubeconfig context to use
        """
        self._kubeconfig = kubeconfig
        self._context = context

    async def _get_api(self) -> Any:  # Returns kr8s._api.Api
        """Create the kr8s API client for the configured kubeconfig."""
        kwargs: dict[str, Any] = {}
        if self._kubeconfig:
            kwargs["kubeconfig"] = self._kubeconfig
        if self._context:
            kwargs["context"] = self._context
        return await kr8s.asyncio.api(**kwargs)

    # =========================================================================
    # Cluster Context
    # =========================================================================

    async def get_current_context(self) -> str:
        """Get the current kubeconfig context name."""
        try:
            api = await self._get_api()
            return api.auth.active_context or "unknown"
        except Exception:
            return "unknown"

    # =========================================================================
    # Pod Operations
    # =========================================================================

    async def list_pods(self, namespace: str) -> list[PodInfo]:
        """List all pods in a namespace with their status.

        The reported status is the pod phase, overridden by a container's
        waiting reason (e.g. CrashLoopBackOff) or a terminated Error.
        """
        try:
            api = await self._get_api()
            result = []

            async for pod in Pod.list(namespace=namespace, api=api):
                metadata = pod.metadata
                spec = pod.spec
                status = pod.status

                phase = status.get("phase", "Unknown")
                pod_status = phase
                restarts = 0

                for cs in status.get("containerStatuses", []):
                    restarts += cs.get("restartCount", 0)
                    state = cs.get("state", {})
                    if "waiting" in state:
                        reason = state["waiting"].get("reason", "")
                        if reason:
                            pod_status = reason
                    elif "terminated" in state:
                        if state["terminated"].get("reason", "") == "Error":
                            pod_status = "Error"

                ready = any(
                    c.get("type") == "Ready" and c.get("status") == "True"
                    for c in status.get("conditions", [])
                )

                result.append(
                    PodInfo(
                        name=metadata.get("name", ""),
                        namespace=metadata.get("namespace", namespace),
                        status=pod_status,
                        restarts=restarts,
                        ready=ready,
                        ip=status.get("podIP", ""),
                        node=spec.get("nodeName", ""),
                    )
                )

            return result
        except kr8s.ServerError as e:
            raise classify_server_error(e, f"list pods in {namespace}") from e
        except Exception as e:
            raise ClusterRequestError(f"list pods in {namespace} failed: {e}") from e

    # =========================================================================
    # Generic Resource Operations
    # =========================================================================

    async def create_resource(
        self, request: ResourceRequest, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Create an object with POST on the collection path."""
        return await self._request("POST", request, url=request.resource, body=body)

    async def get_resource(self, request: ResourceRequest) -> dict[str, Any]:
        """Fetch a single object with GET."""
        return await self._request(
            "GET", request, url=f"{request.resource}/{request.name}"
        )

    async def replace_resource(
        self, request: ResourceRequest, body: dict[str, Any]
    ) -> dict[str, Any]:
        """Replace a single object with PUT."""
        return await self._request(
            "PUT", request, url=f"{request.resource}/{request.name}", body=body
        )

    async def _request(
        self,
        method: str,
        request: ResourceRequest,
        *,
        url: str,
        body: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Issue one REST call and decode the JSON response."""
        action = f"{method} {request.path}"
        kwargs: dict[str, Any] = {}
        if body is not None:
            kwargs["data"] = json.dumps(body)

        logger.debug(f"Kubernetes request: {action}")
        try:
            api = await self._get_api()
            async with api.call_api(
                method,
                version=request.api_version,
                base="/apis" if request.group else "/api",
                namespace=request.namespace,
                url=url,
                **kwargs,
            ) as response:
                data: dict[str, Any] = response.json()
                return data
        except kr8s.ServerError as e:
            raise classify_server_error(e, action) from e
        except Exception as e:
            raise ClusterRequestError(f"{action} failed: {e}") from e
