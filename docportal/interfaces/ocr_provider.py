"""Abstract base classes for the OCR fallback tools.

Two external tools cooperate on the OCR path:

* an :class:`IRasterizer` turns page 1 of a PDF into an image file, and
* an :class:`IOCRProvider` recognizes text in that image.

Both are treated as black boxes with bounded timeouts.  The extraction
adapter owns the temporary image files and deletes them on every exit
path.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


# Concrete implementation: PdftoppmRasterizer (providers/rasterizer/)
class IRasterizer(ABC):
    """Contract for PDF-to-image conversion."""

    @abstractmethod
    async def rasterize(
        self,
        pdf_path: Path,
        output_prefix: Path,
        dpi: int,
        timeout: float,
    ) -> Path | None:
        """Render page 1 of *pdf_path* to an image.

        Parameters
        ----------
        pdf_path:
            The source PDF.
        output_prefix:
            Path prefix for the generated file(s).  Implementations may
            append suffixes (``-1.png``) but must stay within the prefix's
            namespace so callers can clean up by prefix.
        dpi:
            Render resolution.
        timeout:
            Seconds before the conversion is abandoned.

        Returns
        -------
        Path | None
            The image path, or ``None`` if conversion failed or timed out.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"pdftoppm"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the conversion binary is installed."""


# Concrete implementation: TesseractOCRProvider (providers/ocr/)
class IOCRProvider(ABC):
    """Contract for OCR engines that read text from an image file."""

    @abstractmethod
    async def recognize_text(self, image_path: Path, language: str, timeout: float) -> str:
        """Run OCR on *image_path* and return the recognized text.

        Returns an empty string when recognition fails; only timeouts and
        engine crashes are logged, never raised.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"tesseract"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the OCR engine binary is installed."""
