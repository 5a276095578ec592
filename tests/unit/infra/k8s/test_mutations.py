"""Tests for conflict retries and get-modify-write helpers."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from foundry.infra.k8s.errors import ResourceConflict, ResourceNotFound
from foundry.infra.k8s.mutations import (
    patch_deployment_args,
    remove_node_label,
    set_node_labels,
)
from foundry.infra.k8s.retry import retry_on_conflict


def _stale() -> ResourceConflict:
    return ResourceConflict("stale", status_code=409, reason="Conflict")


class TestRetryOnConflict:
    """Tests for retry_on_conflict."""

    @pytest.mark.asyncio
    async def test_returns_first_success(self) -> None:
        """A successful operation runs once."""
        operation = AsyncMock(return_value="done")

        assert await retry_on_conflict(operation, backoff=0) == "done"
        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_retries_stale_version(self) -> None:
        """Stale-version conflicts are retried until success."""
        operation = AsyncMock(side_effect=[_stale(), _stale(), "done"])

        assert await retry_on_conflict(operation, attempts=5, backoff=0) == "done"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_attempts(self) -> None:
        """The last conflict is raised once attempts are exhausted."""
        operation = AsyncMock(side_effect=_stale())

        with pytest.raises(ResourceConflict):
            await retry_on_conflict(operation, attempts=3, backoff=0)

        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_already_exists_is_not_retried(self) -> None:
        """Only stale-version conflicts are retried."""
        operation = AsyncMock(
            side_effect=ResourceConflict("exists", status_code=409, reason="AlreadyExists")
        )

        with pytest.raises(ResourceConflict):
            await retry_on_conflict(operation, attempts=3, backoff=0)

        operation.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self) -> None:
        """Non-conflict errors are never retried."""
        operation = AsyncMock(side_effect=ResourceNotFound("gone", status_code=404))

        with pytest.raises(ResourceNotFound):
            await retry_on_conflict(operation, attempts=3, backoff=0)

        operation.assert_awaited_once()


class TestNodeLabels:
    """Tests for node label helpers."""

    @pytest.fixture
    def controller(self) -> MagicMock:
        """Controller returning a labelled node."""
        controller = MagicMock()
        controller.get_resource = AsyncMock(
            side_effect=lambda request: {
                "metadata": {
                    "name": "node-1",
                    "resourceVersion": "7",
                    "labels": {
                        "kubernetes.io/hostname": "node-1",
                        "storage": "fast",
                    },
                }
            }
        )
        controller.replace_resource = AsyncMock(return_value={})
        return controller

    @pytest.mark.asyncio
    async def test_set_and_remove_labels(self, controller: MagicMock) -> None:
        """New values are set and empty values remove the label."""
        await set_node_labels(controller, "node-1", {"zone": "a", "storage": ""})

        request, node = controller.replace_resource.await_args.args
        assert request.resource == "nodes"
        assert request.name == "node-1"
        assert request.namespace is None
        labels = node["metadata"]["labels"]
        assert labels["zone"] == "a"
        assert "storage" not in labels
        assert labels["kubernetes.io/hostname"] == "node-1"
        assert node["metadata"]["resourceVersion"] == "7"

    @pytest.mark.asyncio
    async def test_system_labels_are_refused(self, controller: MagicMock) -> None:
        """System-managed keys raise before any request."""
        with pytest.raises(ValueError, match="system label"):
            await set_node_labels(controller, "node-1", {"node-role.kubernetes.io/worker": "true"})

        controller.get_resource.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_label_update_retries_on_conflict(self, controller: MagicMock) -> None:
        """A stale write re-reads the node and writes again."""
        controller.replace_resource.side_effect = [_stale(), {}]

        await set_node_labels(controller, "node-1", {"zone": "a"})

        assert controller.get_resource.await_count == 2
        assert controller.replace_resource.await_count == 2

    @pytest.mark.asyncio
    async def test_remove_node_label(self, controller: MagicMock) -> None:
        """Removing an existing label writes the node; a missing one does not."""
        assert await remove_node_label(controller, "node-1", "storage")
        assert "storage" not in controller.replace_resource.await_args.args[1]["metadata"]["labels"]

        controller.replace_resource.reset_mock()
        assert not await remove_node_label(controller, "node-1", "absent")
        controller.replace_resource.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_remove_node_label_validates_key(self, controller: MagicMock) -> None:
        """Empty and system keys are rejected."""
        with pytest.raises(ValueError):
            await remove_node_label(controller, "node-1", "")
        with pytest.raises(ValueError):
            await remove_node_label(controller, "node-1", "kubernetes.io/arch")


class TestPatchDeploymentArgs:
    """Tests for patch_deployment_args."""

    @pytest.fixture
    def controller(self) -> MagicMock:
        """Controller returning a deployment with container args."""
        controller = MagicMock()
        controller.get_resource = AsyncMock(
            side_effect=lambda request: {
                "metadata": {"name": "external-dns", "resourceVersion": "3"},
                "spec": {
                    "template": {
                        "spec": {
                            "containers": [
                                {
                                    "name": "external-dns",
                                    "args": [
                                        "--source=service",
                                        "--domain-filter=old.example.com",
                                        "--policy=sync",
                                    ],
                                }
                            ]
                        }
                    }
                },
            }
        )
        controller.replace_resource = AsyncMock(return_value={})
        return controller

    @staticmethod
    def _written_args(controller: MagicMock) -> list[str]:
        deployment = controller.replace_resource.await_args.args[1]
        return deployment["spec"]["template"]["spec"]["containers"][0]["args"]

    @pytest.mark.asyncio
    async def test_replaces_matching_argument(self, controller: MagicMock) -> None:
        """Arguments starting with the prefix are replaced in place."""
        updated = await patch_deployment_args(
            controller,
            "external-dns",
            "external-dns",
            "--domain-filter=",
            "--domain-filter=new.example.com",
        )

        assert updated
        request = controller.replace_resource.await_args.args[0]
        assert request.group == "apps"
        assert request.namespace == "external-dns"
        assert self._written_args(controller) == [
            "--source=service",
            "--domain-filter=new.example.com",
            "--policy=sync",
        ]

    @pytest.mark.asyncio
    async def test_empty_replacement_drops_argument(self, controller: MagicMock) -> None:
        """An empty new argument removes the match."""
        await patch_deployment_args(
            controller, "external-dns", "external-dns", "--policy=", ""
        )

        assert self._written_args(controller) == [
            "--source=service",
            "--domain-filter=old.example.com",
        ]

    @pytest.mark.asyncio
    async def test_no_match_writes_nothing(self, controller: MagicMock) -> None:
        """Without a matching argument the deployment is left alone."""
        updated = await patch_deployment_args(
            controller, "external-dns", "external-dns", "--txt-owner-id=", "--txt-owner-id=x"
        )

        assert not updated
        controller.replace_resource.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_containers_raises(self) -> None:
        """A deployment without containers cannot be patched."""
        controller = MagicMock()
        controller.get_resource = AsyncMock(return_value={"spec": {}})

        with pytest.raises(ValueError, match="no containers"):
            await patch_deployment_args(controller, "ns", "d", "--a", "--b")
