"""Get-modify-write helpers guarded by resourceVersion preconditions.

Each helper re-reads the object on every attempt and writes it back with the
resourceVersion it read, so a concurrent writer causes a 409 Conflict that
``retry_on_conflict`` absorbs instead of silently losing an update.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from .controller import KubernetesController, ResourceRequest
from .labels import is_system_label
from .retry import DEFAULT_CONFLICT_RETRIES, retry_on_conflict

NODE_REQUEST = ResourceRequest(group="", version="v1", resource="nodes")


def deployment_request(namespace: str, name: str) -> ResourceRequest:
    return ResourceRequest(
        group="apps",
        version="v1",
        resource="deployments",
        namespace=namespace,
        name=name,
    )


async def set_node_labels(
    controller: KubernetesController,
    node_name: str,
    labels: dict[str, str],
    *,
    attempts: int = DEFAULT_CONFLICT_RETRIES,
) -> None:
    """Set labels on a node. A label with an empty value is removed.

    Args:
        controller: Kubernetes controller
        node_name: Node to update
        labels: Labels to set (empty value means remove)
        attempts: Maximum attempts on resourceVersion conflicts

    Raises:
        ValueError: If any key is a system-managed label
    """
    if not labels:
        return
    for key in labels:
        if is_system_label(key):
            raise ValueError(f"cannot modify system label: {key}")

    request = NODE_REQUEST.named(node_name)

    async def _update() -> None:
        node = await controller.get_resource(request)
        current: dict[str, str] = node.setdefault("metadata", {}).setdefault(
            "labels", {}
        ) or {}
        for key, value in labels.items():
            if value == "":
                current.pop(key, None)
            else:
                current[key] = value
        node["metadata"]["labels"] = current
        await controller.replace_resource(request, node)

    await retry_on_conflict(
        _update, attempts=attempts, description=f"labels on node {node_name}"
    )
    logger.info(f"Updated labels on node {node_name}")


async def remove_node_label(
    controller: KubernetesController,
    node_name: str,
    key: str,
    *,
    attempts: int = DEFAULT_CONFLICT_RETRIES,
) -> bool:
    """Remove one label from a node.

    Returns:
        True if the label was present and removed, False if it was absent

    Raises:
        ValueError: If the key is empty or a system-managed label
    """
    if not key:
        raise ValueError("label key cannot be empty")
    if is_system_label(key):
        raise ValueError(f"cannot remove system label: {key}")

    request = NODE_REQUEST.named(node_name)

    async def _update() -> bool:
        node = await controller.get_resource(request)
        current = node.get("metadata", {}).get("labels") or {}
        if key not in current:
            return False
        del current[key]
        await controller.replace_resource(request, node)
        return True

    return await retry_on_conflict(
        _update, attempts=attempts, description=f"label {key} on node {node_name}"
    )


def _replace_args(args: list[str], old_arg: str, new_arg: str) -> list[str] | None:
    """Return the new argument list, or None if nothing matched ``old_arg``."""
    found = False
    result: list[str] = []
    for arg in args:
        if arg.startswith(old_arg):
            found = True
            if new_arg:
                result.append(new_arg)
        else:
            result.append(arg)
    return result if found else None


async def patch_deployment_args(
    controller: KubernetesController,
    namespace: str,
    name: str,
    old_arg: str,
    new_arg: str,
    *,
    attempts: int = DEFAULT_CONFLICT_RETRIES,
) -> bool:
    """Replace an argument of the first container in a deployment.

    Every argument starting with ``old_arg`` is replaced by ``new_arg``, or
    dropped when ``new_arg`` is empty.

    Returns:
        True if the deployment was updated, False if no argument matched

    Raises:
        ValueError: If the deployment has no containers
    """
    request = deployment_request(namespace, name)

    async def _update() -> bool:
        deployment: dict[str, Any] = await controller.get_resource(request)
        containers = (
            deployment.get("spec", {})
            .get("template", {})
            .get("spec", {})
            .get("containers", [])
        )
        if not containers:
            raise ValueError(f"deployment {namespace}/{name} has no containers")

        new_args = _replace_args(containers[0].get("args", []), old_arg, new_arg)
        if new_args is None:
            return False
        containers[0]["args"] = new_args
        await controller.replace_resource(request, deployment)
        return True

    updated = await retry_on_conflict(
        _update, attempts=attempts, description=f"args of {namespace}/{name}"
    )
    if updated:
        logger.info(f"Patched argument {old_arg!r} on deployment {namespace}/{name}")
    return updated
