"""Tests for engine wiring."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from foundry.config.settings import ComponentOverride, EngineSettings, HelmSettings
from foundry.engine import Engine
from foundry.infra.helm.commands import HelmCommands
from foundry.reconcile.errors import ClientUnavailable
from foundry.reconcile.models import InstallOutcome, RecoveryPolicy
from tests.helpers import pod, release


class TestEngine:
    """Tests for Engine."""

    @pytest.fixture
    def settings(self) -> EngineSettings:
        """Settings with one disabled and one customised component."""
        return EngineSettings(
            recovery_policy=RecoveryPolicy.UPGRADE_IN_PLACE,
            poll_interval=0.01,
            release_list_attempts=2,
            helm=HelmSettings(timeout=900.0),
            components={
                "velero": ComponentOverride(enabled=False),
                "minio": ComponentOverride(namespace="storage", readiness_timeout=1.0),
            },
        )

    def test_settings_reach_services(
        self, settings: EngineSettings, installer: MagicMock, cluster: MagicMock
    ) -> None:
        """Recovery policy and retry budgets come from settings."""
        engine = Engine(settings, installer, cluster)

        assert engine.orchestrator.recovery_policy is RecoveryPolicy.UPGRADE_IN_PLACE
        assert engine.orchestrator.resolver is engine.resolver
        assert engine.orchestrator.poller is engine.poller

    @pytest.mark.asyncio
    async def test_install_component_applies_overrides(
        self, settings: EngineSettings, installer: MagicMock, cluster: MagicMock
    ) -> None:
        """Configured namespace, Helm timeout and poll interval are used."""
        cluster.list_pods.return_value = [pod("minio-0", namespace="storage")]
        engine = Engine(settings, installer, cluster)

        result = await engine.install_component("minio")

        assert result is not None
        assert result.outcome is InstallOutcome.INSTALLED
        args, kwargs = installer.install.call_args
        assert args == ("minio", "minio/minio", "storage")
        assert kwargs["timeout"] == 900.0
        cluster.list_pods.assert_awaited_with("storage")

    @pytest.mark.asyncio
    async def test_disabled_component_is_skipped(
        self, settings: EngineSettings, installer: MagicMock, cluster: MagicMock
    ) -> None:
        """A component disabled in configuration is not touched."""
        engine = Engine(settings, installer, cluster)

        assert await engine.install_component("velero") is None
        installer.add_repo.assert_not_called()
        installer.install.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_component(
        self, settings: EngineSettings, installer: MagicMock, cluster: MagicMock
    ) -> None:
        """Unknown component names raise KeyError."""
        engine = Engine(settings, installer, cluster)

        with pytest.raises(KeyError):
            await engine.install_component("nope")

    @pytest.mark.asyncio
    async def test_component_status(
        self, settings: EngineSettings, installer: MagicMock, cluster: MagicMock
    ) -> None:
        """Status looks up the release in the overridden namespace."""
        installer.list_releases.return_value = [release("minio", "deployed", "storage")]
        engine = Engine(settings, installer, cluster)

        status = await engine.component_status("minio")

        assert status.installed
        assert status.healthy
        installer.list_releases.assert_called_with("storage")

    @pytest.mark.asyncio
    async def test_component_status_without_installer(
        self, settings: EngineSettings, cluster: MagicMock
    ) -> None:
        """Without a Helm client the status explains why."""
        status = await Engine(settings, None, cluster).component_status("minio")

        assert not status.installed
        assert "not initialized" in status.message

    @pytest.mark.asyncio
    async def test_apply_manifests_uses_cluster(
        self, settings: EngineSettings, installer: MagicMock, cluster: MagicMock
    ) -> None:
        """Manifests go through the configured cluster client."""
        engine = Engine(settings, installer, cluster)

        docs = await engine.apply_manifests(
            "apiVersion: v1\nkind: Namespace\nmetadata:\n  name: storage\n"
        )

        assert [d.kind for d in docs] == ["Namespace"]
        cluster.create_resource.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_wait_for_pods(
        self, settings: EngineSettings, installer: MagicMock, cluster: MagicMock
    ) -> None:
        """Ad-hoc waits use the configured interval and timeout."""
        cluster.list_pods.return_value = [pod("zot-0", namespace="zot")]

        await Engine(settings, installer, cluster).wait_for_pods("zot", "zot")

        cluster.list_pods.assert_awaited_with("zot")

    @pytest.mark.asyncio
    async def test_wait_for_pods_without_cluster(
        self, settings: EngineSettings, installer: MagicMock
    ) -> None:
        """Waiting needs a cluster client."""
        with pytest.raises(ClientUnavailable):
            await Engine(settings, installer, None).wait_for_pods("zot", "zot")


def test_from_settings_builds_clients() -> None:
    """The default engine uses the helm CLI and a cached cluster controller."""
    settings = EngineSettings(
        helm=HelmSettings(binary="helm3", kubeconfig="/tmp/kc", context="lab")
    )
    controller = MagicMock(list_pods=AsyncMock(return_value=[]))

    with patch("foundry.engine.get_k8s_controller", return_value=controller) as factory:
        engine = Engine.from_settings(settings)

    factory.assert_called_once_with("/tmp/kc", "lab")
    assert isinstance(engine.orchestrator.installer, HelmCommands)
    assert engine.orchestrator.cluster is controller
