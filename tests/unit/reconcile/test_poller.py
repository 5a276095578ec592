"""Tests for bounded readiness polling."""

import asyncio
import time
from unittest.mock import MagicMock

import pytest

from foundry.infra.k8s.errors import ClusterRequestError
from foundry.reconcile.errors import OperationCancelled, VerificationTimeout
from foundry.reconcile.models import PollTarget
from foundry.reconcile.poller import ReadinessPoller, summarize_pods
from tests.helpers import pod


def _target(*patterns: str, timeout: float = 1.0, interval: float = 0.01) -> PollTarget:
    return PollTarget(
        namespace="loki", name_contains=patterns, timeout=timeout, interval=interval
    )


class TestReadinessPoller:
    """Tests for ReadinessPoller.wait."""

    @pytest.mark.asyncio
    async def test_waits_through_empty_and_pending_observations(
        self, cluster: MagicMock
    ) -> None:
        """Empty list, then Pending, then Running: returns on the third tick."""
        cluster.list_pods.side_effect = [
            [],
            [pod("loki-0", "Pending", "loki")],
            [pod("loki-0", "Running", "loki")],
        ]

        await ReadinessPoller(cluster).wait(_target("loki"))

        assert cluster.list_pods.await_count == 3

    @pytest.mark.asyncio
    async def test_all_matching_pods_must_be_running(self, cluster: MagicMock) -> None:
        """One Running pod is not enough while another match is still starting."""
        cluster.list_pods.side_effect = [
            [pod("loki-0", "Running", "loki"), pod("loki-1", "ContainerCreating", "loki")],
            [pod("loki-0", "Running", "loki"), pod("loki-1", "Running", "loki")],
        ]

        await ReadinessPoller(cluster).wait(_target("loki"))

        assert cluster.list_pods.await_count == 2

    @pytest.mark.asyncio
    async def test_non_matching_pods_are_ignored(self, cluster: MagicMock) -> None:
        """Pods not matching any pattern do not block readiness."""
        cluster.list_pods.return_value = [
            pod("loki-0", "Running", "loki"),
            pod("canary-abc", "CrashLoopBackOff", "loki"),
        ]

        await ReadinessPoller(cluster).wait(_target("loki"))

    @pytest.mark.asyncio
    async def test_any_pattern_matches(self, cluster: MagicMock) -> None:
        """A pod matching the second pattern satisfies the target."""
        cluster.list_pods.return_value = [
            pod("prometheus-prometheus-0", "Running", "monitoring")
        ]
        target = PollTarget(
            namespace="monitoring",
            name_contains=(
                "prometheus-kube-prometheus-stack-prometheus",
                "prometheus-prometheus",
            ),
            timeout=1.0,
            interval=0.01,
        )

        await ReadinessPoller(cluster).wait(target)

    @pytest.mark.asyncio
    async def test_list_errors_are_transient(self, cluster: MagicMock) -> None:
        """A failing list call is retried on the next tick."""
        cluster.list_pods.side_effect = [
            ClusterRequestError("connection refused"),
            [pod("loki-0", "Running", "loki")],
        ]

        await ReadinessPoller(cluster).wait(_target("loki"))

        assert cluster.list_pods.await_count == 2

    @pytest.mark.asyncio
    async def test_times_out_with_last_observation(self, cluster: MagicMock) -> None:
        """Pods stuck in Pending produce a timeout carrying their status."""
        cluster.list_pods.return_value = [pod("loki-0", "Pending", "loki")]

        with pytest.raises(VerificationTimeout) as exc_info:
            await ReadinessPoller(cluster).wait(
                _target("loki", timeout=0.1, interval=0.02)
            )

        assert exc_info.value.last_observation == "loki-0=Pending"
        assert exc_info.value.details == "loki-0=Pending"
        assert "loki" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_no_matching_pods_times_out(self, cluster: MagicMock) -> None:
        """A namespace without matching pods never satisfies the target."""
        cluster.list_pods.return_value = [pod("other-0", "Running", "loki")]

        with pytest.raises(VerificationTimeout) as exc_info:
            await ReadinessPoller(cluster).wait(
                _target("loki", timeout=0.1, interval=0.02)
            )

        assert exc_info.value.last_observation == "no matching pods"

    @pytest.mark.asyncio
    async def test_hanging_list_call_is_bounded_by_deadline(
        self, cluster: MagicMock
    ) -> None:
        """A list call that never returns cannot outlive the timeout."""

        async def hang(namespace: str) -> list:
            await asyncio.sleep(30)
            return []

        cluster.list_pods.side_effect = hang
        started = time.monotonic()

        with pytest.raises(VerificationTimeout):
            await ReadinessPoller(cluster).wait(
                _target("loki", timeout=0.2, interval=0.05)
            )

        assert time.monotonic() - started < 2.0

    @pytest.mark.asyncio
    async def test_cancel_interrupts_hanging_list_call(
        self, cluster: MagicMock
    ) -> None:
        """Setting cancel while a list call hangs stops the wait promptly."""
        listing_cancelled = asyncio.Event()

        async def hang(namespace: str) -> list:
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                listing_cancelled.set()
                raise
            return []

        cluster.list_pods.side_effect = hang
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.2, cancel.set)
        started = time.monotonic()

        with pytest.raises(OperationCancelled):
            await ReadinessPoller(cluster).wait(
                _target("loki", timeout=4.0, interval=0.05), cancel=cancel
            )

        assert time.monotonic() - started < 1.0
        assert listing_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, cluster: MagicMock) -> None:
        """A set cancel event stops the wait without listing pods."""
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(OperationCancelled):
            await ReadinessPoller(cluster).wait(_target("loki"), cancel=cancel)

        cluster.list_pods.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cancel_interrupts_sleep(self, cluster: MagicMock) -> None:
        """Setting cancel during a long interval stops the wait promptly."""
        cluster.list_pods.return_value = [pod("loki-0", "Pending", "loki")]
        cancel = asyncio.Event()
        asyncio.get_running_loop().call_later(0.05, cancel.set)
        started = time.monotonic()

        with pytest.raises(OperationCancelled):
            await ReadinessPoller(cluster).wait(
                _target("loki", timeout=60.0, interval=10.0), cancel=cancel
            )

        assert time.monotonic() - started < 2.0

    @pytest.mark.asyncio
    async def test_deadline_uses_injected_clock(self, cluster: MagicMock) -> None:
        """An already-expired clock times out on the first check."""
        ticks = iter([0.0, 100.0])
        poller = ReadinessPoller(cluster, clock=lambda: next(ticks))

        with pytest.raises(VerificationTimeout):
            await poller.wait(_target("loki"))

        cluster.list_pods.assert_not_awaited()


class TestPollTarget:
    """Tests for PollTarget validation."""

    def test_string_pattern_becomes_tuple(self) -> None:
        """A single string is accepted as one pattern."""
        target = PollTarget(namespace="loki", name_contains="loki")  # type: ignore[arg-type]

        assert target.name_contains == ("loki",)
        assert target.matches("loki-backend-0")
        assert not target.matches("grafana-0")

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"timeout": 0},
            {"timeout": -1},
            {"interval": 0},
            {"interval": 5.0, "timeout": 5.0},
            {"name_contains": ()},
            {"name_contains": ("",)},
            {"namespace": ""},
        ],
    )
    def test_invalid_targets_rejected(self, kwargs: dict) -> None:
        """Timeouts, intervals, patterns and namespace are validated."""
        params = {
            "namespace": "loki",
            "name_contains": ("loki",),
            "timeout": 10.0,
            "interval": 1.0,
        }
        params.update(kwargs)

        with pytest.raises(ValueError):
            PollTarget(**params)


def test_summarize_pods() -> None:
    """Pods are summarized as name=status pairs."""
    assert summarize_pods([pod("a", "Running"), pod("b", "Pending")]) == "a=Running, b=Pending"
    assert summarize_pods([]) == "no matching pods"
