"""Release state resolution from the installer's release list."""

from __future__ import annotations

import asyncio

from loguru import logger

from foundry.infra.constants import DEFAULT_CONSTANTS
from foundry.infra.helm.types import HelmCommandError, HelmRelease

from .cancel import raise_if_cancelled, sleep_unless_cancelled
from .clients import InstallerClient
from .models import ReleaseStatus, ReleaseStatusDetail


def status_from_release(release: HelmRelease) -> ReleaseStatusDetail:
    """Map one listed release to DEPLOYED or FAILED.

    Anything other than "deployed" (failed, pending-install,
    pending-upgrade, uninstalling, superseded, ...) counts as FAILED.
    """
    status = (
        ReleaseStatus.DEPLOYED
        if release.status == DEFAULT_CONSTANTS.HELM_STATUS_DEPLOYED
        else ReleaseStatus.FAILED
    )
    return ReleaseStatusDetail(
        status=status,
        raw_status=release.status,
        revision=release.revision,
        app_version=release.app_version,
    )


class ReleaseStateResolver:
    """Decide whether a release is absent, deployed, or failed.

    A failing list call is retried up to ``list_attempts`` times. If it keeps
    failing the result is UNKNOWN, which callers handle like ABSENT: the
    engine keeps making progress while the management API is flaky.
    """

    def __init__(
        self,
        installer: InstallerClient,
        *,
        list_attempts: int = DEFAULT_CONSTANTS.RELEASE_LIST_ATTEMPTS,
        retry_delay: float = 1.0,
    ) -> None:
        self._installer = installer
        self._list_attempts = max(1, list_attempts)
        self._retry_delay = retry_delay

    async def resolve(
        self,
        namespace: str,
        release_name: str,
        *,
        cancel: asyncio.Event | None = None,
    ) -> ReleaseStatusDetail:
        """Resolve the current status of ``release_name`` in ``namespace``.

        Raises:
            OperationCancelled: If ``cancel`` is set between attempts
        """
        last_error = ""
        for attempt in range(1, self._list_attempts + 1):
            raise_if_cancelled(cancel, f"resolving release {release_name}")
            try:
                releases = await asyncio.to_thread(
                    self._installer.list_releases, namespace
                )
            except HelmCommandError as e:
                last_error = e.message
                logger.debug(
                    f"Listing releases in {namespace} failed "
                    f"(attempt {attempt}/{self._list_attempts}): {e.message}"
                )
                if attempt < self._list_attempts:
                    await sleep_unless_cancelled(cancel, self._retry_delay)
                continue

            for release in releases:
                if release.name == release_name:
                    return status_from_release(release)
            return ReleaseStatusDetail(status=ReleaseStatus.ABSENT)

        logger.warning(
            f"Could not list releases in {namespace}, treating "
            f"{release_name} as unknown: {last_error}"
        )
        return ReleaseStatusDetail(status=ReleaseStatus.UNKNOWN, message=last_error)
