"""Batched, rate-paced embedding with per-batch degradation.

The client partitions a document's chunks into fixed-size batches, calls
the provider once per batch (with one retry), and pauses briefly between
batches.  A batch that still fails after the retry yields an empty vector
for each of its chunks instead of failing the document, so those chunks
can still be persisted as keyword-searchable text.
"""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable

import structlog

from docportal.interfaces.embedding_provider import IEmbeddingProvider
from docportal.utils.concurrency import batched
from docportal.utils.errors import DocPortalError
from docportal.utils.retry import RetryPolicy, retry_async

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_RETRY = RetryPolicy(max_attempts=2, base_delay=1.0)


class EmbeddingClient:
    """Embeds an ordered list of texts, degrading per batch on failure.

    Parameters
    ----------
    provider:
        The embedding backend.
    batch_size:
        Texts per provider call.
    batch_delay:
        Seconds to wait between consecutive batches.
    retry_policy:
        Attempt schedule per batch.  The default retries exactly once
        after a one-second pause.
    sleep:
        Injected for tests; defaults to :func:`asyncio.sleep`.
    """

    def __init__(
        self,
        provider: IEmbeddingProvider,
        batch_size: int = 20,
        batch_delay: float = 0.05,
        retry_policy: RetryPolicy = _DEFAULT_RETRY,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._provider = provider
        self._batch_size = batch_size
        self._batch_delay = batch_delay
        self._retry_policy = retry_policy
        self._sleep = sleep

    @property
    def provider(self) -> IEmbeddingProvider:
        return self._provider

    @property
    def batch_size(self) -> int:
        return self._batch_size

    async def embed_all(self, texts: list[str]) -> list[list[float]]:
        """Return one vector per text, in order.

        A failed batch contributes ``[]`` for each of its texts; the
        result length always equals ``len(texts)``.
        """
        vectors: list[list[float]] = []
        batches = list(batched(texts, self._batch_size))

        for i, batch in enumerate(batches):
            if i > 0 and self._batch_delay > 0:
                await self._sleep(self._batch_delay)
            vectors.extend(await self._embed_batch(batch, i))

        return vectors

    async def _embed_batch(self, batch: list[str], batch_index: int) -> list[list[float]]:
        try:
            result = await retry_async(
                self._provider.embed,
                batch,
                policy=self._retry_policy,
                retry_on=(DocPortalError,),
                operation="embed_batch",
                sleep=self._sleep,
            )
        except DocPortalError as exc:
            logger.warning(
                "embedding_batch_failed",
                provider=self._provider.get_provider_name(),
                batch_index=batch_index,
                batch_size=len(batch),
                error=str(exc),
            )
            return [[] for _ in batch]

        if len(result) != len(batch):
            logger.warning(
                "embedding_batch_size_mismatch",
                provider=self._provider.get_provider_name(),
                batch_index=batch_index,
                expected=len(batch),
                received=len(result),
            )
            return [[] for _ in batch]
        return result
