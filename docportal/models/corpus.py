"""Corpus data models: documents, chunks, mentions and ingestion bookkeeping.

Defines Pydantic v2 models for the three persisted record types and the
transient values that flow between ingestion stages.  Persisted records
are frozen: the ingestion core creates them once and never mutates them.

Ownership:
    A :class:`Document` exclusively owns its :class:`Chunk` and
    :class:`Mention` records; deleting the document cascades to both.

    :class:`IngestionStats` is the only mutable model.  It belongs to one
    coordinator run and is discarded when the run ends.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Persisted records
# ---------------------------------------------------------------------------
class DocumentCreate(BaseModel):
    """Fields supplied when creating a :class:`Document`."""

    model_config = ConfigDict(frozen=True)

    # Unique key within the corpus -- the resumability checkpoint.
    filename: str = Field(min_length=1, description="Source file basename (unique).")
    title: str = Field(description="Filename without its extension.")
    content: str = Field(description="Extracted text, capped at max_content_chars.")
    page_count: int | None = Field(default=None, ge=0, description="Page count from the PDF.")
    file_size: int = Field(default=0, ge=0, description="Source file size in bytes.")
    source_path: str = Field(default="", description="Originating file path.")


class Document(DocumentCreate):
    """One persisted record per successfully ingested source file."""

    id: int = Field(description="Store-assigned identifier.")
    created_at: datetime = Field(description="Creation timestamp (UTC).")


class Chunk(BaseModel):
    """A contiguous token-budgeted slice of a document's text.

    ``embedding`` is empty when the embedding call for this chunk's batch
    failed.  Such chunks are still persisted so keyword search can reach
    the text even though similarity search cannot.
    """

    model_config = ConfigDict(frozen=True)

    document_id: int
    chunk_index: int = Field(ge=0, description="0-based, contiguous per document.")
    content: str
    # Scanned pages are not tracked individually, so this stays at 1.
    page_number: int = 1
    embedding: list[float] = Field(default_factory=list)

    @property
    def chunk_id(self) -> str:
        return f"chunk_{self.document_id}_{self.chunk_index}"

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)


class ChunkCreate(BaseModel):
    """A chunk prepared before its document has an id."""

    model_config = ConfigDict(frozen=True)

    chunk_index: int = Field(ge=0)
    content: str
    page_number: int = 1
    embedding: list[float] = Field(default_factory=list)

    @property
    def has_embedding(self) -> bool:
        return bool(self.embedding)

    def to_chunk(self, document_id: int) -> Chunk:
        return Chunk(document_id=document_id, **self.model_dump())


class Mention(BaseModel):
    """One occurrence of a notable name inside a document.

    Repeated occurrences produce repeated records; counts are derived by
    aggregation at query time (see :class:`MentionCount`).
    """

    model_config = ConfigDict(frozen=True)

    document_id: int
    name: str = Field(description="Canonical display name from the catalog.")
    normalized_name: str = Field(description="Lower-cased name used for grouping.")
    context: str = Field(description="Text window surrounding the occurrence.")
    page_number: int | None = None


# ---------------------------------------------------------------------------
# Values passed between ingestion stages
# ---------------------------------------------------------------------------
class MentionMatch(BaseModel):
    """A mention found in text, before it is bound to a document."""

    model_config = ConfigDict(frozen=True)

    name: str
    normalized_name: str
    context: str
    position: int = Field(ge=0, description="Character offset of the match start.")

    def to_mention(self, document_id: int) -> Mention:
        return Mention(
            document_id=document_id,
            name=self.name,
            normalized_name=self.normalized_name,
            context=self.context,
        )


class ExtractionOutcome(str, Enum):
    """How the extraction adapter classified a file."""

    ACCEPTED_DIRECT = "accepted_direct"
    ACCEPTED_OCR = "accepted_ocr"
    # Direct text unusable and OCR unavailable/disabled or rasterization failed.
    NEEDS_OCR = "needs_ocr"
    # OCR ran but its output also failed the readability gate.
    UNREADABLE = "unreadable"
    EXTRACTION_ERROR = "extraction_error"


class ExtractionResult(BaseModel):
    """Output of :class:`~docportal.services.ingestion.extraction.ExtractionAdapter`."""

    model_config = ConfigDict(frozen=True)

    outcome: ExtractionOutcome
    text: str = ""
    page_count: int | None = None
    file_size: int = 0
    error: str | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome in (ExtractionOutcome.ACCEPTED_DIRECT, ExtractionOutcome.ACCEPTED_OCR)

    @property
    def used_ocr(self) -> bool:
        return self.outcome is ExtractionOutcome.ACCEPTED_OCR


class DocumentOutcome(str, Enum):
    """Terminal state of one document in the coordinator's state machine."""

    PERSISTED = "persisted"
    ALREADY_INGESTED = "already_ingested"
    NEEDS_OCR = "needs_ocr"
    UNREADABLE = "unreadable"
    EXTRACTION_FAILED = "extraction_failed"
    PERSIST_ERROR = "persist_error"


class DocumentReport(BaseModel):
    """What happened to one document, as returned by the coordinator."""

    model_config = ConfigDict(frozen=True)

    filename: str
    outcome: DocumentOutcome
    used_ocr: bool = False
    chunks: int = 0
    embeddings: int = 0
    mentions: int = 0
    error: str | None = None


# ---------------------------------------------------------------------------
# Run bookkeeping
# ---------------------------------------------------------------------------
class IngestionStats(BaseModel):
    """Aggregate counters for one ingestion run."""

    discovered: int = 0
    already_ingested: int = 0
    attempted: int = 0
    processed: int = 0
    skipped: int = 0
    needs_ocr: int = 0
    unreadable: int = 0
    ocr_used: int = 0
    extraction_errors: int = 0
    persist_errors: int = 0
    chunks_created: int = 0
    embeddings_created: int = 0
    mentions_extracted: int = 0
    cancelled: bool = False

    @property
    def errors(self) -> int:
        return self.extraction_errors + self.persist_errors

    @property
    def counted_toward_cap(self) -> int:
        """Attempts charged to the per-run cap; files already stored are free."""
        return self.attempted - self.skipped

    def record(self, report: DocumentReport) -> None:
        """Fold one finished document into the counters."""
        self.attempted += 1
        self.chunks_created += report.chunks
        self.embeddings_created += report.embeddings
        self.mentions_extracted += report.mentions
        if report.used_ocr:
            self.ocr_used += 1

        outcome = report.outcome
        if outcome is DocumentOutcome.PERSISTED:
            self.processed += 1
        elif outcome is DocumentOutcome.ALREADY_INGESTED:
            self.skipped += 1
        elif outcome is DocumentOutcome.NEEDS_OCR:
            self.needs_ocr += 1
        elif outcome is DocumentOutcome.UNREADABLE:
            self.unreadable += 1
        elif outcome is DocumentOutcome.EXTRACTION_FAILED:
            self.extraction_errors += 1
        elif outcome is DocumentOutcome.PERSIST_ERROR:
            self.persist_errors += 1


class CorpusStats(BaseModel):
    """Aggregate counts over the whole document store."""

    model_config = ConfigDict(frozen=True)

    documents: int = 0
    chunks: int = 0
    embedded_chunks: int = 0
    mentions: int = 0
    distinct_names: int = 0


class MentionCount(BaseModel):
    """Mention occurrences grouped by normalized name."""

    model_config = ConfigDict(frozen=True)

    name: str
    normalized_name: str
    count: int = Field(ge=0)
    document_count: int = Field(ge=0)


class ScoredChunk(BaseModel):
    """A chunk returned by a similarity query with its cosine score."""

    model_config = ConfigDict(frozen=True)

    chunk: Chunk
    filename: str
    score: float
