"""Abstract base class for the document store.

The store is the only shared mutable resource across ingestion workers.
It owns durability and indexing; the ingestion core only needs record
creation, existence checks and the filename checkpoint.  Similarity and
aggregation queries are exposed for the search side of the portal.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from docportal.models.corpus import (
    Chunk,
    ChunkCreate,
    CorpusStats,
    Document,
    DocumentCreate,
    Mention,
    MentionCount,
    MentionMatch,
    ScoredChunk,
)


# Concrete implementation: SQLiteDocumentStore (providers/document_store/)
class IDocumentStore(ABC):
    """Contract for persisting documents, chunks and mentions."""

    @abstractmethod
    async def initialize(self) -> None:
        """Open connections and create the schema if needed."""

    @abstractmethod
    async def close(self) -> None:
        """Release connections.  Safe to call more than once."""

    @abstractmethod
    async def create_document(self, fields: DocumentCreate) -> Document:
        """Insert a new document.

        Raises
        ------
        docportal.utils.errors.DuplicateDocumentError
            If a document with the same filename already exists.
        docportal.utils.errors.StorageError
            On any other persistence failure.
        """

    @abstractmethod
    async def create_document_with_records(
        self,
        fields: DocumentCreate,
        chunks: list[ChunkCreate],
        mentions: list[MentionMatch],
    ) -> Document:
        """Insert a document together with its chunks and mentions.

        All three are written in one transaction: on any failure nothing
        is stored, so the filename stays out of the checkpoint and the
        file is retried on the next run.

        Raises
        ------
        docportal.utils.errors.DuplicateDocumentError
            If a document with the same filename already exists.
        docportal.utils.errors.StorageError
            On any other persistence failure.
        """

    @abstractmethod
    async def document_exists_by_filename(self, filename: str) -> bool:
        """Return ``True`` if a document with *filename* is stored."""

    @abstractmethod
    async def create_chunks(self, chunks: list[Chunk]) -> int:
        """Insert chunks (with or without embeddings).  Returns the count stored."""

    @abstractmethod
    async def create_mentions(self, mentions: list[Mention]) -> int:
        """Insert mentions.  Returns the count stored."""

    @abstractmethod
    async def list_all_filenames(self) -> set[str]:
        """Return every stored filename -- the resumability checkpoint."""

    @abstractmethod
    async def get_stats(self) -> CorpusStats:
        """Return aggregate record counts."""

    @abstractmethod
    async def top_mentions(self, limit: int = 20) -> list[MentionCount]:
        """Return mention counts grouped by normalized name, most frequent first."""

    @abstractmethod
    async def similar_chunks(self, vector: list[float], limit: int = 10) -> list[ScoredChunk]:
        """Return the chunks most similar to *vector* by cosine similarity.

        Chunks stored without an embedding are never returned.
        """

    @abstractmethod
    async def delete_document(self, filename: str) -> bool:
        """Delete a document and, by cascade, its chunks and mentions."""
