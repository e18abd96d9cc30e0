"""OpenAI-compatible embedding provider adapter.

Wraps the ``openai`` async client to implement :class:`IEmbeddingProvider`.
Supports both real OpenAI and OpenAI-compatible providers via custom
``base_url`` and model name settings.

One call to :meth:`OpenAIEmbeddingProvider.embed` is one API request:
batching, retry and inter-batch pacing belong to
:class:`~docportal.services.ingestion.embedding_client.EmbeddingClient`.
"""

from __future__ import annotations

import openai
import structlog

from docportal.config.settings import Settings
from docportal.interfaces.embedding_provider import IEmbeddingProvider
from docportal.utils.errors import EmbeddingError, ProviderUnavailableError, RateLimitError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}


class OpenAIEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by an OpenAI-compatible embeddings API.

    Uses ``text-embedding-3-small`` (1536 dims) by default.  When
    ``openai_base_url`` is configured, the client points at that URL and
    uses ``openai_embedding_model`` if set.
    """

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key

        client_kwargs: dict = {"api_key": self._api_key or "unset"}
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        # The SDK's own retries would stack with ours; the embedding client
        # owns the retry policy.
        self._client = openai.AsyncOpenAI(max_retries=0, **client_kwargs)
        self._model = settings.openai_embedding_model or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model, 1536)
        self._provider_label = (
            "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
        )

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed one batch of texts with a single API request."""
        if not texts:
            return []

        try:
            response = await self._client.embeddings.create(
                input=texts,
                model=self._model,
            )
        except openai.RateLimitError as exc:
            raise RateLimitError(
                message=f"{self._provider_label} rate limited: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIConnectionError as exc:
            raise ProviderUnavailableError(
                message=f"{self._provider_label} unreachable: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._provider_label} API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        vectors = [item.embedding for item in response.data]
        if len(vectors) != len(texts):
            raise EmbeddingError(
                message=f"expected {len(texts)} embeddings, got {len(vectors)}",
                provider_name=self.get_provider_name(),
            )

        logger.debug(
            "openai_embedding_batch",
            model=self._model,
            provider=self._provider_label,
            batch_size=len(texts),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        return vectors

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._provider_label

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
