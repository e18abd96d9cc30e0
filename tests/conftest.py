"""Shared pytest fixtures for the docportal test suite."""

from __future__ import annotations

import hashlib
import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog

from docportal.interfaces.document_store import IDocumentStore
from docportal.interfaces.embedding_provider import IEmbeddingProvider
from docportal.interfaces.ocr_provider import IOCRProvider, IRasterizer
from docportal.interfaces.pdf_extractor import IPDFTextExtractor, PDFText
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
from docportal.utils.errors import (
    DuplicateDocumentError,
    EmbeddingError,
    ExtractionError,
    StorageError,
)

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True, scope="session")
def _structlog_to_current_stderr():
    """Configure structlog once, resolving sys.stderr on every call.

    pytest swaps sys.stderr per test; a logger pinned to one test's stream
    would write to a closed file in the next.
    """
    structlog.configure(
        processors=[structlog.processors.add_log_level, structlog.dev.ConsoleRenderer(colors=False)],
        logger_factory=lambda *args: structlog.PrintLogger(sys.stderr),
        cache_logger_on_first_use=False,
    )
    yield
    structlog.reset_defaults()


# ---------------------------------------------------------------------------
# Sample text
# ---------------------------------------------------------------------------

READABLE_TEXT = (
    "The witness said that she had been to the house on the island with him. "
    "She was not sure of the date, but it was after the first trip and before "
    "the second one. When they asked her about the flight logs she said that "
    "she could not remember who was on the plane that day. "
)

GARBAGE_TEXT = "asdf1234 %%%"


@pytest.fixture
def readable_text() -> str:
    """A short paragraph of ordinary English prose that passes the gate."""
    return READABLE_TEXT


@pytest.fixture
def garbage_text() -> str:
    return GARBAGE_TEXT


@pytest.fixture
def long_text() -> str:
    """~1200 characters of short, distinct sentences."""
    sentences = [
        f"Sentence number {i} describes what the witness saw at the hearing on day {i}."
        for i in range(1, 17)
    ]
    return " ".join(sentences)


# ---------------------------------------------------------------------------
# In-memory collaborators
# ---------------------------------------------------------------------------


class InMemoryDocumentStore(IDocumentStore):
    """Dict-backed IDocumentStore for unit and coordinator tests.

    ``race_filenames`` simulates another process inserting the same
    filename between the existence check and the insert: the existence
    check reports ``False`` but ``create_document`` raises a duplicate
    error.
    """

    def __init__(self) -> None:
        self.documents: dict[str, Document] = {}
        self.chunks: list[Chunk] = []
        self.mentions: list[Mention] = []
        self.race_filenames: set[str] = set()
        self.fail_chunk_inserts = False
        self.initialized = False
        self.closed = False
        self._next_id = 1

    async def initialize(self) -> None:
        self.initialized = True

    async def close(self) -> None:
        self.closed = True

    async def __aenter__(self) -> InMemoryDocumentStore:
        await self.initialize()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    async def create_document(self, fields: DocumentCreate) -> Document:
        if fields.filename in self.documents or fields.filename in self.race_filenames:
            raise DuplicateDocumentError(
                f"Document {fields.filename!r} already exists",
                provider_name="memory",
                filename=fields.filename,
            )
        doc = Document(
            id=self._next_id,
            created_at=datetime.now(timezone.utc),
            **fields.model_dump(),
        )
        self._next_id += 1
        self.documents[fields.filename] = doc
        return doc

    async def create_document_with_records(
        self,
        fields: DocumentCreate,
        chunks: list[ChunkCreate],
        mentions: list[MentionMatch],
    ) -> Document:
        # All checks run before any mutation so a failure stores nothing.
        if fields.filename in self.documents or fields.filename in self.race_filenames:
            raise DuplicateDocumentError(
                f"Document {fields.filename!r} already exists",
                provider_name="memory",
                filename=fields.filename,
            )
        if self.fail_chunk_inserts and chunks:
            raise StorageError("chunk insert failed", provider_name="memory")
        doc = await self.create_document(fields)
        self.chunks.extend(c.to_chunk(doc.id) for c in chunks)
        self.mentions.extend(m.to_mention(doc.id) for m in mentions)
        return doc

    async def document_exists_by_filename(self, filename: str) -> bool:
        return filename in self.documents

    async def create_chunks(self, chunks: list[Chunk]) -> int:
        if self.fail_chunk_inserts:
            raise StorageError("chunk insert failed", provider_name="memory")
        self.chunks.extend(chunks)
        return len(chunks)

    async def create_mentions(self, mentions: list[Mention]) -> int:
        self.mentions.extend(mentions)
        return len(mentions)

    async def list_all_filenames(self) -> set[str]:
        return set(self.documents)

    async def get_stats(self) -> CorpusStats:
        return CorpusStats(
            documents=len(self.documents),
            chunks=len(self.chunks),
            embedded_chunks=sum(1 for c in self.chunks if c.has_embedding),
            mentions=len(self.mentions),
            distinct_names=len({m.normalized_name for m in self.mentions}),
        )

    async def top_mentions(self, limit: int = 20) -> list[MentionCount]:
        return []

    async def similar_chunks(self, vector: list[float], limit: int = 10) -> list[ScoredChunk]:
        return []

    async def delete_document(self, filename: str) -> bool:
        doc = self.documents.pop(filename, None)
        if doc is None:
            return False
        self.chunks = [c for c in self.chunks if c.document_id != doc.id]
        self.mentions = [m for m in self.mentions if m.document_id != doc.id]
        return True


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic hash-based vectors; can be told to fail.

    ``fail_times`` makes the next N calls raise :class:`EmbeddingError`.
    ``always_fail`` makes every call raise.
    """

    def __init__(self, dimension: int = 8, available: bool = True) -> None:
        self.dimension = dimension
        self.available = available
        self.calls: list[list[str]] = []
        self.fail_times = 0
        self.always_fail = False

    async def embed(self, texts: list[str]) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.always_fail or self.fail_times > 0:
            self.fail_times = max(0, self.fail_times - 1)
            raise EmbeddingError("boom", provider_name="fake")
        return [self._vector(t) for t in texts]

    def _vector(self, text: str) -> list[float]:
        digest = hashlib.sha256(text.encode("utf-8")).digest()
        return [b / 255.0 for b in digest[: self.dimension]]

    def get_dimension(self) -> int:
        return self.dimension

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return self.available


class TextFilePDFExtractor(IPDFTextExtractor):
    """Treats the file's bytes as its text layer.

    Files starting with ``%CORRUPT`` raise :class:`ExtractionError`.
    """

    def extract(self, data: bytes) -> PDFText:
        if data.startswith(b"%CORRUPT"):
            raise ExtractionError("Cannot open PDF", provider_name="text")
        return PDFText(text=data.decode("utf-8", errors="replace"), page_count=1)

    def get_provider_name(self) -> str:
        return "text"


@pytest.fixture
def memory_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def fake_embedding_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def text_pdf_extractor() -> TextFilePDFExtractor:
    return TextFilePDFExtractor()


@pytest.fixture
def mock_rasterizer() -> IRasterizer:
    """Mock IRasterizer that writes a placeholder PNG next to the prefix."""

    async def _rasterize(pdf_path: Path, output_prefix: Path, dpi: int, timeout: float) -> Path:
        output_prefix.parent.mkdir(parents=True, exist_ok=True)
        image = output_prefix.with_name(f"{output_prefix.name}-1.png")
        image.write_bytes(b"\x89PNG fake")
        return image

    mock = MagicMock(spec=IRasterizer)
    mock.get_provider_name.return_value = "mock-raster"
    mock.is_available.return_value = True
    mock.rasterize = AsyncMock(side_effect=_rasterize)
    return mock


@pytest.fixture
def mock_ocr() -> IOCRProvider:
    """Mock IOCRProvider returning readable prose by default."""
    mock = MagicMock(spec=IOCRProvider)
    mock.get_provider_name.return_value = "mock-ocr"
    mock.is_available.return_value = True
    mock.recognize_text = AsyncMock(return_value=READABLE_TEXT)
    return mock


# ---------------------------------------------------------------------------
# Corpus on disk
# ---------------------------------------------------------------------------


@pytest.fixture
def corpus_root(tmp_path: Path) -> Path:
    """A corpus root with two matching source folders and one decoy.

    Layout::

        DataSet 1/a.pdf, DataSet 1/nested/deep/b.pdf
        VOL00002/c.PDF, VOL00002/notes.txt
        Photos/d.pdf        (not a source folder)
    """
    root = tmp_path / "corpus"
    (root / "DataSet 1" / "nested" / "deep").mkdir(parents=True)
    (root / "VOL00002").mkdir(parents=True)
    (root / "Photos").mkdir(parents=True)

    (root / "DataSet 1" / "a.pdf").write_text(READABLE_TEXT)
    (root / "DataSet 1" / "nested" / "deep" / "b.pdf").write_text(READABLE_TEXT * 2)
    (root / "VOL00002" / "c.PDF").write_text(READABLE_TEXT + " Bill Gates was there.")
    (root / "VOL00002" / "notes.txt").write_text("not a pdf")
    (root / "Photos" / "d.pdf").write_text(READABLE_TEXT)
    return root
