"""Abstract base class for direct (structural) PDF text extraction."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import NamedTuple


class PDFText(NamedTuple):
    """Text pulled from a PDF's text layer."""

    text: str
    page_count: int | None


# Concrete implementation: PyMuPDFTextExtractor (providers/pdf/)
class IPDFTextExtractor(ABC):
    """Contract for reading the embedded text layer of a PDF."""

    @abstractmethod
    def extract(self, data: bytes) -> PDFText:
        """Extract text from the raw bytes of a PDF.

        This is synchronous and CPU-bound; callers run it in a worker
        thread.

        Raises
        ------
        docportal.utils.errors.ExtractionError
            If the file is corrupt, encrypted or otherwise unreadable.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"pymupdf"``."""
