"""Bounded-concurrency helpers for the ingestion worker pool.

Two patterns are exposed:

1. **throttled_gather** -- a drop-in replacement for ``asyncio.gather``
   that wraps each awaitable in a semaphore acquire/release.
2. **batched** -- fixed-size slicing of a work list.  The coordinator
   waits for a whole batch before launching the next, which bounds peak
   concurrency to the batch width.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Iterator, Sequence, TypeVar

_T = TypeVar("_T")


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore | None = None,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently with optional semaphore throttling.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Optional semaphore for concurrency control.  ``None`` runs all
        awaitables at once.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """
    if semaphore is None:
        return await asyncio.gather(*coros, return_exceptions=return_exceptions)

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


def batched(items: Sequence[_T], size: int) -> Iterator[list[_T]]:
    """Yield consecutive slices of *items* of at most *size* elements."""
    step = max(1, size)
    for start in range(0, len(items), step):
        yield list(items[start : start + step])
