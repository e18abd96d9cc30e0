"""Custom exception hierarchy for docportal.

All application exceptions inherit from :class:`DocPortalError`, which
carries an optional ``provider_name`` so error handlers can identify which
external collaborator (e.g. "openai", "tesseract", "pdftoppm", "sqlite")
caused the failure.

The hierarchy is organized by ingestion stage:

    DocPortalError  (base -- catch-all for any docportal error)
    +-- ConfigurationError       (startup / missing config or binaries)
    +-- ExtractionError          (direct PDF text extraction)
    +-- OCRExtractionError       (rasterization or OCR recognition)
    +-- EmbeddingError           (embedding API call failure)
    +-- RateLimitError           (provider rate-limit exceeded)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- StorageError             (document store failure)
        +-- DuplicateDocumentError (unique filename violated)

Per-document errors are recovered inside the ingestion coordinator; only
:class:`ConfigurationError` is surfaced to the operator as a hard stop.
"""


class DocPortalError(Exception):
    """Base exception for all docportal errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which external service triggered the
    error.  ``__str__`` prefixes the provider name in brackets for log
    output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Startup errors
# ---------------------------------------------------------------------------

class ConfigurationError(DocPortalError):
    """Raised when configuration is invalid or a required tool is missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Extraction errors
# ---------------------------------------------------------------------------

class ExtractionError(DocPortalError):
    """Raised when structural PDF text extraction fails (corrupt, encrypted, unsupported)."""

    def __init__(
        self,
        message: str = "PDF text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class OCRExtractionError(DocPortalError):
    """Raised when rasterization or OCR recognition fails or times out."""

    def __init__(
        self,
        message: str = "OCR text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# External service / provider errors
# ---------------------------------------------------------------------------

class EmbeddingError(DocPortalError):
    """Raised when an embedding API call fails."""

    def __init__(
        self,
        message: str = "Embedding API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class RateLimitError(DocPortalError):
    """Raised when an API rate limit is exceeded.

    Retryable: :func:`docportal.utils.retry.retry_async` backs off and
    tries again when this is caught.
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(DocPortalError):
    """Raised when an external service or binary is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Storage errors
# ---------------------------------------------------------------------------

class StorageError(DocPortalError):
    """Raised when a document store operation fails."""

    def __init__(
        self,
        message: str = "Document store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DuplicateDocumentError(StorageError):
    """Raised when a Document with the same filename already exists.

    The coordinator treats this as a benign skip: another ingestion
    process won the race for the same file.
    """

    def __init__(
        self,
        message: str = "Document already exists",
        provider_name: str | None = None,
        filename: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._filename = filename

    @property
    def filename(self) -> str | None:
        return self._filename
