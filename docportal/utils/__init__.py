"""Utility modules for docportal.

- **errors** -- Domain exception hierarchy rooted at DocPortalError; each
  ingestion stage raises its own subclass so callers can handle failures
  granularly.
- **logging** -- structlog setup with a dual-renderer pattern: coloured
  console output in development, structured JSON in production.
- **retry** -- Bounded retry-with-backoff wrapper applied to every
  external-call site.
- **concurrency** -- asyncio gather/batching helpers that bound the
  number of in-flight documents.
"""

from docportal.utils.concurrency import batched, throttled_gather
from docportal.utils.errors import (
    ConfigurationError,
    DocPortalError,
    DuplicateDocumentError,
    EmbeddingError,
    ExtractionError,
    OCRExtractionError,
    ProviderUnavailableError,
    RateLimitError,
    StorageError,
)
from docportal.utils.logging import configure_logging, get_logger
from docportal.utils.retry import NO_RETRY, RetryPolicy, retry_async

__all__ = [
    "ConfigurationError",
    "DocPortalError",
    "DuplicateDocumentError",
    "EmbeddingError",
    "ExtractionError",
    "NO_RETRY",
    "OCRExtractionError",
    "ProviderUnavailableError",
    "RateLimitError",
    "RetryPolicy",
    "StorageError",
    "batched",
    "configure_logging",
    "get_logger",
    "retry_async",
    "throttled_gather",
]
