"""Optimistic-concurrency retry for get-modify-write sequences."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

from loguru import logger

from .errors import ResourceConflict

T = TypeVar("T")

DEFAULT_CONFLICT_RETRIES = 5
DEFAULT_CONFLICT_BACKOFF = 0.1


async def retry_on_conflict(
    operation: Callable[[], Awaitable[T]],
    *,
    attempts: int = DEFAULT_CONFLICT_RETRIES,
    backoff: float = DEFAULT_CONFLICT_BACKOFF,
    description: str = "update",
) -> T:
    """Run ``operation`` again while it fails on a stale resourceVersion.

    ``operation`` must re-read the object on every call so that each attempt
    writes against the latest resourceVersion.

    Args:
        operation: Zero-argument coroutine factory performing get-modify-write
        attempts: Maximum number of attempts (at least 1)
        backoff: Base delay in seconds, doubled after each conflict
        description: What is being updated, for log messages

    Returns:
        Whatever ``operation`` returns on success

    Raises:
        ResourceConflict: If the last attempt still conflicts, or the conflict
            is not a stale-version conflict
    """
    attempts = max(1, attempts)
    delay = backoff
    for attempt in range(1, attempts + 1):
        try:
            return await operation()
        except ResourceConflict as e:
            if not e.stale_version or attempt == attempts:
                raise
            logger.debug(
                f"Conflict while applying {description} "
                f"(attempt {attempt}/{attempts}), retrying in {delay:.2f}s"
            )
            await asyncio.sleep(delay)
            delay *= 2
    raise AssertionError("unreachable")
