"""Bounded readiness polling.

``ReadinessPoller.wait`` lists pods on a fixed interval until every pod whose
name matches the target is Running, the deadline passes, or the caller
cancels.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable

from loguru import logger

from foundry.infra.k8s.controller import PodInfo
from foundry.infra.k8s.errors import ClusterRequestError

from .cancel import raise_if_cancelled, run_unless_cancelled, sleep_unless_cancelled
from .clients import PodLister
from .errors import VerificationTimeout
from .models import PollTarget


def summarize_pods(pods: list[PodInfo]) -> str:
    """One-line ``name=status`` summary used in timeout details."""
    return ", ".join(f"{p.name}={p.status}" for p in pods) or "no matching pods"


class ReadinessPoller:
    """Wait for pods to reach Running within a bounded time.

    List failures are treated as transient: they are logged and the loop
    keeps waiting. The sleep and the list call are both bounded by the
    remaining time and both end as soon as ``cancel`` is set, so the loop
    never outlives the deadline or a cancellation by more than one
    scheduling step.
    """

    def __init__(
        self,
        cluster: PodLister,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._cluster = cluster
        self._clock = clock

    async def wait(
        self,
        target: PollTarget,
        *,
        cancel: asyncio.Event | None = None,
    ) -> None:
        """Block until the target's matching pods are all Running.

        Args:
            target: Namespace, name patterns, timeout and interval
            cancel: Optional event; setting it stops the wait

        Raises:
            VerificationTimeout: If the condition does not hold before the deadline
            OperationCancelled: If ``cancel`` is set
        """
        deadline = self._clock() + target.timeout
        last_observation = ""
        tick = 0

        while True:
            raise_if_cancelled(cancel, f"waiting for pods in {target.namespace}")
            remaining = deadline - self._clock()
            if remaining <= 0:
                raise VerificationTimeout(target, last_observation)

            await sleep_unless_cancelled(cancel, min(target.interval, remaining))
            raise_if_cancelled(cancel, f"waiting for pods in {target.namespace}")
            tick += 1

            remaining = deadline - self._clock()
            if remaining <= 0:
                raise VerificationTimeout(target, last_observation)

            try:
                pods = await run_unless_cancelled(
                    cancel,
                    self._cluster.list_pods(target.namespace),
                    remaining,
                    f"waiting for pods in {target.namespace}",
                )
            except TimeoutError:
                logger.debug(f"Tick {tick}: pod listing in {target.namespace} timed out")
                last_observation = "pod listing timed out"
                continue
            except ClusterRequestError as e:
                logger.debug(f"Tick {tick}: transient pod listing error: {e}")
                last_observation = f"pod listing failed: {e.message}"
                continue

            if not pods:
                logger.debug(f"Tick {tick}: no pods in {target.namespace} yet")
                last_observation = "no pods in namespace"
                continue

            matching = [p for p in pods if target.matches(p.name)]
            if not matching:
                last_observation = "no matching pods"
                continue

            if all(p.is_running for p in matching):
                logger.debug(
                    f"Tick {tick}: {len(matching)} matching pod(s) Running "
                    f"in {target.namespace}"
                )
                return

            last_observation = summarize_pods(matching)
            logger.debug(f"Tick {tick}: waiting on {last_observation}")
