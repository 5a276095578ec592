from __future__ import annotations

from cachetools.func import lru_cache  # type: ignore

from foundry.infra.k8s.controller import KubernetesController


@lru_cache(maxsize=4)
def get_k8s_controller(
    kubeconfig: str | None = None, context: str | None = None
) -> KubernetesController:
    """Get a shared KubernetesController for a kubeconfig/context pair.

    Returns:
        An instance of KubernetesController
    """
    from foundry.infra.k8s.kr8s_controller import Kr8sController

    return Kr8sController(kubeconfig=kubeconfig, context=context)
