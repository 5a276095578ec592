"""Node label classification helpers."""

from __future__ import annotations

# Label prefixes managed by Kubernetes itself; users should not edit them.
SYSTEM_LABEL_PREFIXES: tuple[str, ...] = (
    "kubernetes.io/",
    "k8s.io/",
    "node-role.kubernetes.io/",
    "node.kubernetes.io/",
)


def is_system_label(key: str) -> bool:
    """Return True if the label key is system-managed."""
    return key.startswith(SYSTEM_LABEL_PREFIXES)


def filter_user_labels(labels: dict[str, str]) -> dict[str, str]:
    """Return only user-manageable labels."""
    return {k: v for k, v in labels.items() if not is_system_label(k)}


def filter_system_labels(labels: dict[str, str]) -> dict[str, str]:
    """Return only system-managed labels."""
    return {k: v for k, v in labels.items() if is_system_label(k)}
