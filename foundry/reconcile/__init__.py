"""Reconciliation engine.

Resolves release state, installs or repairs Helm releases, applies raw
manifests, and waits for pods to become Running.

Example:
    from foundry.reconcile import InstallOrchestrator, ReadinessSpec, Release

    orchestrator = InstallOrchestrator(helm, controller)
    await orchestrator.install(
        Release(name="loki", namespace="loki", chart="grafana/loki"),
        ReadinessSpec(name_contains=("loki",)),
    )
"""

from .errors import (
    ClientUnavailable,
    EngineError,
    ManifestParseError,
    OperationCancelled,
    RemoteOperationError,
    VerificationTimeout,
)
from .events import (
    LoguruProgressSink,
    ProgressSink,
    RecordingProgressSink,
    RichProgressSink,
)
from .manifest import ManifestApplier, parse_manifests, pluralize_kind
from .models import (
    ChartRepository,
    InstallOutcome,
    InstallResult,
    InstallState,
    ManifestDocument,
    PollTarget,
    ReadinessSpec,
    RecoveryPolicy,
    Release,
    ReleaseStatus,
    ReleaseStatusDetail,
)
from .orchestrator import InstallOrchestrator
from .poller import ReadinessPoller
from .resolver import ReleaseStateResolver

__all__ = [
    # Engine
    "InstallOrchestrator",
    "ManifestApplier",
    "ReadinessPoller",
    "ReleaseStateResolver",
    "parse_manifests",
    "pluralize_kind",
    # Models
    "ChartRepository",
    "InstallOutcome",
    "InstallResult",
    "InstallState",
    "ManifestDocument",
    "PollTarget",
    "ReadinessSpec",
    "RecoveryPolicy",
    "Release",
    "ReleaseStatus",
    "ReleaseStatusDetail",
    # Progress
    "ProgressSink",
    "LoguruProgressSink",
    "RichProgressSink",
    "RecordingProgressSink",
    # Errors
    "EngineError",
    "ClientUnavailable",
    "RemoteOperationError",
    "ManifestParseError",
    "VerificationTimeout",
    "OperationCancelled",
]
