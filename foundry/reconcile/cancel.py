"""Cooperative cancellation helpers.

Engine operations accept an optional ``asyncio.Event``; setting it makes the
operation stop at its next check with ``OperationCancelled``. Cancelling the
task itself still raises ``asyncio.CancelledError`` as usual.
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable
from typing import TypeVar

from .errors import OperationCancelled

T = TypeVar("T")


def raise_if_cancelled(cancel: asyncio.Event | None, what: str) -> None:
    if cancel is not None and cancel.is_set():
        raise OperationCancelled(f"{what} cancelled")


async def sleep_unless_cancelled(cancel: asyncio.Event | None, seconds: float) -> None:
    """Sleep for ``seconds``, returning early if ``cancel`` is set."""
    if seconds <= 0:
        return
    if cancel is None:
        await asyncio.sleep(seconds)
        return
    with contextlib.suppress(TimeoutError):
        await asyncio.wait_for(cancel.wait(), timeout=seconds)


async def run_unless_cancelled(
    cancel: asyncio.Event | None,
    aw: Awaitable[T],
    timeout: float,
    what: str,
) -> T:
    """Await ``aw`` for at most ``timeout`` seconds, stopping early on ``cancel``.

    Raises:
        OperationCancelled: If ``cancel`` is set before ``aw`` completes
        TimeoutError: If ``timeout`` elapses first
    """
    if cancel is None:
        return await asyncio.wait_for(aw, timeout=timeout)

    work = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait(
            {work, waiter}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
        )
    finally:
        for task in (work, waiter):
            if not task.done():
                task.cancel()
    await asyncio.gather(work, waiter, return_exceptions=True)

    if work in done:
        return work.result()
    raise_if_cancelled(cancel, what)
    raise TimeoutError(f"{what} timed out after {timeout:g}s")
