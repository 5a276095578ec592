"""Kubernetes infrastructure abstraction layer.

Provides the cluster client used by the reconciliation engine: pod listing
and create/get/replace primitives addressed by group/version/resource.

Example:
    from foundry.infra.k8s import get_k8s_controller

    controller = get_k8s_controller()
    pods = await controller.list_pods("loki")
"""

from .controller import (
    CRD_REQUEST,
    KubernetesController,
    PodInfo,
    ResourceRequest,
)
from .errors import ClusterRequestError, ResourceConflict, ResourceNotFound
from .helpers import get_k8s_controller
from .labels import filter_system_labels, filter_user_labels, is_system_label
from .mutations import patch_deployment_args, remove_node_label, set_node_labels
from .retry import retry_on_conflict

__all__ = [
    # Controller classes
    "KubernetesController",
    "get_k8s_controller",
    # Data classes
    "PodInfo",
    "ResourceRequest",
    "CRD_REQUEST",
    # Errors
    "ClusterRequestError",
    "ResourceConflict",
    "ResourceNotFound",
    # Get-modify-write helpers
    "retry_on_conflict",
    "set_node_labels",
    "remove_node_label",
    "patch_deployment_args",
    # Labels
    "is_system_label",
    "filter_user_labels",
    "filter_system_labels",
]
