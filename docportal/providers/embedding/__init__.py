"""Embedding provider implementations.

Embeddings convert chunk text into numeric vectors for similarity search.

    OpenAIEmbeddingProvider -- text-embedding-3-small (1536 dims) or any
    OpenAI-compatible endpoint via OPENAI_BASE_URL.
"""

from docportal.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider"]
