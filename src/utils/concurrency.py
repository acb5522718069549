"""Bounded-concurrency helpers for catalog maintenance jobs.

Embedding backfills and hash regeneration touch every lesson in the
catalog.  The embedding provider rate-limits, so fan-out is throttled
through a semaphore.

Two patterns are exposed:

1. **throttled_gather** -- A drop-in replacement for ``asyncio.gather`` that
   wraps each awaitable in a semaphore acquire/release.

2. **process_batch** -- The fan-out-then-tally pattern used by the
   maintenance jobs: run ``fn(item)`` for every item, log failures, and
   return which items succeeded and which failed.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence, TypeVar

import structlog

from src.utils.logging import get_logger

_T = TypeVar("_T")
_I = TypeVar("_I")

# Default fan-out for embedding calls; OpenAI's tier-1 embedding limits
# comfortably absorb this many in-flight requests.
DEFAULT_CONCURRENCY = 5

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  Defaults to a fresh
        semaphore of ``DEFAULT_CONCURRENCY`` slots.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        semaphore = asyncio.Semaphore(DEFAULT_CONCURRENCY)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def process_batch(
    fn: Callable[[_I], Awaitable[Any]],
    items: Sequence[_I],
    concurrency: int = DEFAULT_CONCURRENCY,
    logger: structlog.BoundLogger | None = None,
    error_msg: str = "batch_item_failed",
) -> tuple[list[_I], list[_I]]:
    """Apply ``fn`` to every item with bounded concurrency.

    Returns
    -------
    tuple[list, list]
        ``(succeeded, failed)`` items, each in input order.
    """
    if logger is None:
        logger = _logger

    semaphore = asyncio.Semaphore(max(1, concurrency))
    results = await throttled_gather(
        [fn(item) for item in items], semaphore=semaphore, return_exceptions=True
    )

    succeeded: list[_I] = []
    failed: list[_I] = []
    for item, result in zip(items, results):
        if isinstance(result, BaseException):
            logger.warning(error_msg, item=str(item), error=str(result))
            failed.append(item)
        else:
            succeeded.append(item)
    return succeeded, failed
