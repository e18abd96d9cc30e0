"""Bounded retry with backoff for external-call sites.

One wrapper is applied uniformly to every unreliable collaborator call
(embedding batches, rasterization, OCR) instead of hand-written nested
``try`` blocks at each site.  The policy controls how many attempts are
made and how long to wait between them; the caller decides which
exception types are worth retrying.

Example::

    policy = RetryPolicy(max_attempts=2, base_delay=1.0)
    vectors = await retry_async(
        provider.embed, batch, policy=policy, operation="embed_batch",
    )
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, TypeVar

import structlog

_T = TypeVar("_T")

logger = structlog.get_logger(logger_name=__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to try a call and how long to wait in between.

    ``max_attempts`` counts the first call, so ``max_attempts=2`` means
    "retry exactly once".  The wait before attempt *n* (n >= 2) is
    ``base_delay * multiplier ** (n - 2)``, capped at ``max_delay``.
    """

    max_attempts: int = 1
    base_delay: float = 0.0
    multiplier: float = 2.0
    max_delay: float = 30.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0:
            raise ValueError("base_delay must be >= 0")

    def delay_before(self, attempt: int) -> float:
        """Return the wait in seconds before 1-based *attempt*."""
        if attempt <= 1:
            return 0.0
        return min(self.max_delay, self.base_delay * self.multiplier ** (attempt - 2))


NO_RETRY = RetryPolicy(max_attempts=1)


async def retry_async(
    fn: Callable[..., Awaitable[_T]],
    *args: Any,
    policy: RetryPolicy = NO_RETRY,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    operation: str = "",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **kwargs: Any,
) -> _T:
    """Await ``fn(*args, **kwargs)`` up to ``policy.max_attempts`` times.

    Parameters
    ----------
    fn:
        Async callable to invoke.
    policy:
        Attempt count and backoff schedule.
    retry_on:
        Exception types that trigger another attempt.  Anything else
        propagates immediately.
    operation:
        Label for log lines.
    sleep:
        Injected for tests; defaults to :func:`asyncio.sleep`.

    Returns
    -------
    The first successful result.

    Raises
    ------
    The last exception raised by *fn* once attempts are exhausted.
    """
    last_exc: BaseException | None = None
    for attempt in range(1, policy.max_attempts + 1):
        delay = policy.delay_before(attempt)
        if delay > 0:
            await sleep(delay)
        try:
            return await fn(*args, **kwargs)
        except retry_on as exc:
            last_exc = exc
            if attempt < policy.max_attempts:
                logger.warning(
                    "retrying_external_call",
                    operation=operation or getattr(fn, "__name__", "call"),
                    attempt=attempt,
                    max_attempts=policy.max_attempts,
                    backoff_s=policy.delay_before(attempt + 1),
                    error=str(exc),
                )

    assert last_exc is not None
    raise last_exc
