"""Data models for docportal."""

from docportal.models.corpus import (
    Chunk,
    ChunkCreate,
    CorpusStats,
    Document,
    DocumentCreate,
    DocumentOutcome,
    DocumentReport,
    ExtractionOutcome,
    ExtractionResult,
    IngestionStats,
    Mention,
    MentionCount,
    MentionMatch,
    ScoredChunk,
)
from docportal.models.profile import BUILTIN_PROFILES, IngestionProfile

__all__ = [
    "BUILTIN_PROFILES",
    "Chunk",
    "ChunkCreate",
    "CorpusStats",
    "Document",
    "DocumentCreate",
    "DocumentOutcome",
    "DocumentReport",
    "ExtractionOutcome",
    "ExtractionResult",
    "IngestionProfile",
    "IngestionStats",
    "Mention",
    "MentionCount",
    "MentionMatch",
    "ScoredChunk",
]
