"""Ingestion profiles: one coordinator, several tunable parameter sets.

The corpus used to be ingested by several near-identical scripts that
differed only in OCR on/off, worker count, rasterization resolution and
how much of the corpus they touched.  Each of those is now a named
:class:`IngestionProfile`; the coordinator is parameterized by a profile
instead of being copied per variant.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class IngestionProfile(BaseModel):
    """Tunable parameters for one ingestion run.

    ``max_documents`` of ``None`` means unbounded.  An empty ``folders``
    list means every discovered source folder.
    """

    model_config = ConfigDict(frozen=True)

    name: str = "default"
    ocr_enabled: bool = True
    worker_count: int = Field(default=3, ge=1)
    dpi: int = Field(default=300, ge=50, le=1200)
    max_documents: int | None = Field(default=None, ge=1)
    resume: bool = True
    embedding_batch_size: int = Field(default=20, ge=1)
    folders: list[str] = Field(default_factory=list)
    continuous: bool = False


# Text-only extraction is cheap, so it runs wide; OCR is CPU/IO heavy and
# runs narrow.
BUILTIN_PROFILES: dict[str, IngestionProfile] = {
    "fast": IngestionProfile(
        name="fast",
        ocr_enabled=False,
        worker_count=10,
        embedding_batch_size=50,
    ),
    "ocr": IngestionProfile(
        name="ocr",
        ocr_enabled=True,
        worker_count=3,
        dpi=300,
        embedding_batch_size=20,
    ),
    "limited": IngestionProfile(
        name="limited",
        ocr_enabled=True,
        worker_count=3,
        dpi=300,
        max_documents=1000,
        embedding_batch_size=20,
    ),
    "continuous": IngestionProfile(
        name="continuous",
        ocr_enabled=True,
        worker_count=3,
        dpi=300,
        embedding_batch_size=20,
        continuous=True,
    ),
}
