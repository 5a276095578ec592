"""Errors raised by the reconciliation engine.

Every error carries a short ``message`` and optional multi-line ``details``
so callers can print a one-line summary and a details panel.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import PollTarget


class EngineError(Exception):
    """Base class for reconciliation failures."""

    def __init__(self, message: str, details: str | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ClientUnavailable(EngineError):
    """A required collaborator client was not configured.

    Raised before any mutating call is made.
    """


class RemoteOperationError(EngineError):
    """An installer or cluster operation failed.

    Not retried by the engine; the caller decides whether to re-invoke.
    """

    def __init__(
        self,
        operation: str,
        name: str,
        namespace: str | None,
        reason: str,
    ):
        self.operation = operation
        self.name = name
        self.namespace = namespace
        self.reason = reason
        where = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{operation} failed for {where}", details=reason)


class ManifestParseError(EngineError):
    """A manifest document could not be decoded or has no kind.

    Raised before the cluster is contacted.
    """

    def __init__(self, message: str, document_index: int | None = None):
        self.document_index = document_index
        prefix = f"document {document_index}: " if document_index is not None else ""
        super().__init__(f"{prefix}{message}")


class VerificationTimeout(EngineError):
    """The readiness condition was not met before the deadline.

    Distinct from RemoteOperationError: when raised from an install, the
    release itself was installed and is left in place.
    """

    def __init__(
        self,
        target: PollTarget,
        last_observation: str = "",
        release: str | None = None,
    ):
        self.target = target
        self.last_observation = last_observation
        self.release = release
        patterns = ", ".join(repr(p) for p in target.name_contains)
        subject = f"release {release}" if release else f"pods matching {patterns}"
        super().__init__(
            f"timed out after {target.timeout:g}s waiting for {subject} "
            f"in namespace {target.namespace} to be Running",
            details=last_observation or None,
        )

    def for_release(self, release: str) -> VerificationTimeout:
        """Return a copy of this error attributed to a release."""
        return VerificationTimeout(self.target, self.last_observation, release)


class OperationCancelled(EngineError):
    """The caller cancelled the operation."""
