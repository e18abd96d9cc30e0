"""Application settings loaded from environment variables via pydantic-settings.

Configuration is read from two sources (in priority order):

  1. **Environment variables** -- e.g. ``OPENAI_API_KEY=sk-abc123``
  2. **.env file** -- key=value lines in the project root ``.env`` file

Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``; list fields
such as ``source_folder_patterns`` are given as JSON arrays.  Defaults
are used when neither source provides a value.

Readability thresholds are exposed rather than fixed because the source
scripts disagree on them (50 vs 100 characters, 0.2 vs 0.3 word ratio).
"""

import tempfile
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_FOLDER_PATTERNS: list[str] = [
    r"^DataSet \d+$",
    r"(?i)^VOL\d+$",
    r"(?i)^dataset\d+",
]


class Settings(BaseSettings):
    """docportal ingestion settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # === Embedding provider ===
    # Empty string = "not configured"; preflight refuses to run without it.
    openai_api_key: str = ""
    openai_base_url: str = ""  # OpenAI-compatible endpoint override
    openai_embedding_model: str = ""  # Defaults to text-embedding-3-small

    # === Corpus / storage ===
    corpus_root: str = Field(default_factory=lambda: str(Path.home() / "Downloads"))
    source_folder_patterns: list[str] = Field(
        default_factory=lambda: list(DEFAULT_FOLDER_PATTERNS)
    )
    database_path: str = "data/docportal.db"
    config_path: str = "config/config.yaml"
    notable_names_path: str = ""

    # === OCR fallback ===
    ocr_enabled: bool = True
    ocr_dpi: int = 300
    ocr_language: str = "eng"
    ocr_timeout_seconds: float = 60.0
    ocr_temp_dir: str = Field(
        default_factory=lambda: str(Path(tempfile.gettempdir()) / "docportal-ocr")
    )

    # === Worker pool ===
    worker_count: int = 3
    max_documents_per_run: int = 0  # 0 = unbounded
    progress_interval: int = 10
    rescan_interval_seconds: float = 300.0

    # === Chunking ===
    chunk_size: int = 500
    chunk_overlap: int = 50
    min_chunk_chars: int = 50

    # === Readability gate ===
    min_text_length: int = 50
    min_word_ratio: float = 0.2
    min_alnum_ratio: float = 0.4

    # === Embedding client ===
    embedding_batch_size: int = 20
    embedding_batch_delay_seconds: float = 0.05
    embedding_retry_delay_seconds: float = 1.0

    # === Persistence caps ===
    max_content_chars: int = 100_000
    max_mentions_per_document: int = 50

    # === App config ===
    app_env: str = "development"
    log_level: str = "INFO"
