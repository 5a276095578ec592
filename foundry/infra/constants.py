"""Engine constants and defaults.

This module centralizes the magic strings and default values used by the
reconciliation engine and the component catalog.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConstants:
    """Constants for Helm/Kubernetes reconciliation.

    All attributes are class-level and immutable.
    """

    # Kubernetes identifiers
    DEFAULT_NAMESPACE: str = "default"
    RUNNING_PHASE: str = "Running"

    # Helm release statuses
    HELM_STATUS_DEPLOYED: str = "deployed"

    # Timeouts (seconds)
    HELM_TIMEOUT: float = 600.0
    READINESS_TIMEOUT: float = 180.0
    POLL_INTERVAL: float = 5.0

    # Retry budgets
    RELEASE_LIST_ATTEMPTS: int = 3
    CONFLICT_RETRIES: int = 5


DEFAULT_CONSTANTS = EngineConstants()
