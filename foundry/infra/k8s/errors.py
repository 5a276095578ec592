"""Typed errors raised by Kubernetes controllers.

Callers branch on these classes (and on ``ResourceConflict.reason``), never on
the wording of the API server's message.
"""

from __future__ import annotations

ALREADY_EXISTS = "AlreadyExists"
CONFLICT = "Conflict"


class ClusterRequestError(Exception):
    """A request to the Kubernetes API failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        reason: str = "",
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.reason = reason
        super().__init__(message)


class ResourceNotFound(ClusterRequestError):
    """The requested object does not exist (HTTP 404)."""


class ResourceConflict(ClusterRequestError):
    """The API server rejected a write with HTTP 409.

    ``reason`` is ``AlreadyExists`` when a create hit an existing object and
    ``Conflict`` when an update carried a stale ``resourceVersion``.
    """

    @property
    def already_exists(self) -> bool:
        return self.reason == ALREADY_EXISTS

    @property
    def stale_version(self) -> bool:
        return self.reason == CONFLICT
