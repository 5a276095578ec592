from unittest.mock import AsyncMock, MagicMock

import pytest

from foundry.reconcile.events import RecordingProgressSink
from tests.helpers import ok


@pytest.fixture
def sink() -> RecordingProgressSink:
    """Collect progress messages in memory."""
    return RecordingProgressSink()


@pytest.fixture
def installer() -> MagicMock:
    """Installer whose mutating calls all succeed and which lists no releases."""
    mock = MagicMock()
    mock.add_repo.return_value = ok()
    mock.install.return_value = ok()
    mock.upgrade.return_value = ok()
    mock.uninstall.return_value = ok()
    mock.list_releases.return_value = []
    return mock


@pytest.fixture
def cluster() -> MagicMock:
    """Cluster client with async primitives and no pods."""
    mock = MagicMock()
    mock.list_pods = AsyncMock(return_value=[])
    mock.create_resource = AsyncMock(return_value={})
    mock.get_resource = AsyncMock(return_value={})
    mock.replace_resource = AsyncMock(return_value={})
    return mock
