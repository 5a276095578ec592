"""Data model of the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from foundry.infra.constants import DEFAULT_CONSTANTS
from foundry.infra.k8s.controller import ResourceRequest


class ReleaseStatus(str, Enum):
    """Observed state of a Helm release."""

    ABSENT = "absent"
    DEPLOYED = "deployed"
    FAILED = "failed"
    UNKNOWN = "unknown"  # the release listing itself failed

    @property
    def needs_install(self) -> bool:
        """ABSENT and UNKNOWN both lead to a fresh install."""
        return self in (ReleaseStatus.ABSENT, ReleaseStatus.UNKNOWN)


@dataclass
class ReleaseStatusDetail:
    """Resolved status plus what Helm reported about the release."""

    status: ReleaseStatus
    raw_status: str = ""
    revision: str = ""
    app_version: str = ""
    message: str = ""


class RecoveryPolicy(str, Enum):
    """How a release in a failed state is repaired."""

    UNINSTALL_REINSTALL = "uninstall-reinstall"
    UPGRADE_IN_PLACE = "upgrade-in-place"


class InstallOutcome(str, Enum):
    ALREADY_DEPLOYED = "already-deployed"
    INSTALLED = "installed"
    REPAIRED = "repaired"


class InstallState(str, Enum):
    """Steps of one install, in the order they can be reached."""

    START = "start"
    CHECKED = "checked"
    RECOVERING = "recovering"
    INSTALLING = "installing"
    VERIFYING = "verifying"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ChartRepository:
    """A chart repository registered before installs."""

    name: str
    url: str


@dataclass
class Release:
    """A desired Helm release. Identity is (name, namespace).

    Attributes:
        name: Release name
        namespace: Target namespace
        chart: Chart reference (e.g., "grafana/loki")
        version: Chart version (latest if empty)
        values: Helm values
        timeout: Seconds Helm may wait for install/upgrade
        repo: Repository registered before every install attempt
        create_namespace: Create the namespace on install
        wait: Let Helm wait for resources to become ready
    """

    name: str
    namespace: str
    chart: str
    version: str = ""
    values: dict[str, Any] = field(default_factory=dict)
    timeout: float = DEFAULT_CONSTANTS.HELM_TIMEOUT
    repo: ChartRepository | None = None
    create_namespace: bool = True
    wait: bool = True

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("release name cannot be empty")
        if not self.chart:
            raise ValueError("chart cannot be empty")
        if not self.namespace:
            self.namespace = DEFAULT_CONSTANTS.DEFAULT_NAMESPACE

    @property
    def identity(self) -> tuple[str, str]:
        return (self.name, self.namespace)


def _as_patterns(value: str | tuple[str, ...] | list[str]) -> tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    return tuple(value)


@dataclass(frozen=True)
class PollTarget:
    """What the readiness poller waits for.

    Pods whose name contains any of ``name_contains`` are matched; the
    target is reached once at least one matches and all matches are Running.
    """

    namespace: str
    name_contains: tuple[str, ...]
    timeout: float = DEFAULT_CONSTANTS.READINESS_TIMEOUT
    interval: float = DEFAULT_CONSTANTS.POLL_INTERVAL

    def __post_init__(self) -> None:
        object.__setattr__(self, "name_contains", _as_patterns(self.name_contains))
        if not self.namespace:
            raise ValueError("poll target namespace cannot be empty")
        if not self.name_contains or not all(self.name_contains):
            raise ValueError("poll target needs at least one non-empty name pattern")
        if self.timeout <= 0:
            raise ValueError(f"poll timeout must be positive, got {self.timeout}")
        if not 0 < self.interval < self.timeout:
            raise ValueError(
                f"poll interval must be between 0 and the timeout "
                f"({self.timeout}), got {self.interval}"
            )

    def matches(self, pod_name: str) -> bool:
        return any(pattern in pod_name for pattern in self.name_contains)


@dataclass(frozen=True)
class ReadinessSpec:
    """Component-supplied readiness check, resolved against a release."""

    name_contains: tuple[str, ...]
    timeout: float = DEFAULT_CONSTANTS.READINESS_TIMEOUT
    interval: float = DEFAULT_CONSTANTS.POLL_INTERVAL
    namespace: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "name_contains", _as_patterns(self.name_contains))

    def target_for(self, release: Release) -> PollTarget:
        return PollTarget(
            namespace=self.namespace or release.namespace,
            name_contains=self.name_contains,
            timeout=self.timeout,
            interval=self.interval,
        )


@dataclass
class ManifestDocument:
    """One decoded manifest document and the request it resolves to."""

    group: str
    version: str
    kind: str
    name: str
    namespace: str | None
    cluster_scoped: bool
    resource: str
    body: dict[str, Any] = field(repr=False, default_factory=dict)

    def __post_init__(self) -> None:
        if self.cluster_scoped and self.namespace:
            raise ValueError(
                f"cluster-scoped {self.kind} {self.name} cannot have a namespace"
            )

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    @property
    def request(self) -> ResourceRequest:
        return ResourceRequest(
            group=self.group,
            version=self.version,
            resource=self.resource,
            namespace=self.namespace,
        )


@dataclass
class InstallResult:
    """Terminal value of a successful install.

    ``path`` lists the states this install passed through, from START to DONE.
    """

    release: Release
    outcome: InstallOutcome
    previous: ReleaseStatusDetail
    path: tuple[InstallState, ...] = ()
