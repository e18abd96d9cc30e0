"""Abstract base class for text-embedding service providers.

Defines the contract for generating embedding vectors from text.  The
ingestion core never calls a provider SDK directly; it goes through
:class:`~docportal.services.ingestion.embedding_client.EmbeddingClient`,
which owns batching, retry and degradation.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OpenAIEmbeddingProvider (providers/embedding/)
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by the ingestion pipeline."""

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for one batch of texts.

        Parameters
        ----------
        texts:
            The batch to embed.  Batch size and pacing are controlled by
            the caller.

        Returns
        -------
        list[list[float]]
            Embedding vectors corresponding positionally to *texts*.

        Raises
        ------
        docportal.utils.errors.EmbeddingError
            If the embedding API call fails.
        docportal.utils.errors.RateLimitError
            If the provider rejected the call for rate-limit reasons.
        """

    @abstractmethod
    def get_dimension(self) -> int:
        """Return the dimensionality of the embedding vectors."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this embedding provider."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if credentials are configured."""
