"""PDF text extraction with an OCR fallback.

For each file the adapter first reads the PDF's embedded text layer.  If
that text fails the readability gate (scanned pages usually have no text
layer, or a garbage one), page 1 is rasterized and run through OCR, and
the OCR output is gated again.

Every failure here is local: the adapter never raises for a bad file.  It
classifies the file into one :class:`ExtractionOutcome` and the
coordinator moves on.  Rasterized images live in a shared temp directory
under a per-file prefix and are deleted on every exit path.
"""

from __future__ import annotations

import asyncio
import hashlib
import re
import time
from pathlib import Path

import structlog

from docportal.interfaces.ocr_provider import IOCRProvider, IRasterizer
from docportal.interfaces.pdf_extractor import IPDFTextExtractor, PDFText
from docportal.models.corpus import ExtractionOutcome, ExtractionResult
from docportal.services.ingestion.readability import ReadabilityClassifier
from docportal.utils.errors import OCRExtractionError
from docportal.utils.retry import NO_RETRY, RetryPolicy, retry_async

logger = structlog.get_logger(logger_name=__name__)

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9]")
_MAX_PREFIX_STEM = 50


def temp_prefix_for(pdf_path: Path) -> str:
    """Build the temp-file namespace for *pdf_path*.

    The sanitized filename keeps the prefix recognizable; the path hash
    separates same-named files from different folders and keeps
    ``doc_1`` from being a prefix of ``doc_10``.
    """
    stem = _UNSAFE_CHARS_RE.sub("_", pdf_path.name)[:_MAX_PREFIX_STEM]
    digest = hashlib.sha1(str(pdf_path).encode("utf-8")).hexdigest()[:8]
    return f"{stem}_{digest}"


class ExtractionAdapter:
    """Turns a PDF path into gated text plus metadata.

    Parameters
    ----------
    pdf_extractor:
        Reads the embedded text layer.
    readability:
        Gate applied to both the direct and the OCR text.
    rasterizer, ocr:
        OCR fallback tools.  Either may be ``None``, in which case
        unreadable files are classified ``NEEDS_OCR``.
    temp_dir:
        Directory for rasterized page images.
    ocr_enabled:
        Master switch for the fallback.
    dpi, language, timeout:
        Rasterization resolution, Tesseract language and the per-call
        timeout for each external tool.
    rasterize_retry, ocr_retry:
        Retry policies for the two external calls (one attempt each by
        default).
    """

    def __init__(
        self,
        pdf_extractor: IPDFTextExtractor,
        readability: ReadabilityClassifier,
        rasterizer: IRasterizer | None = None,
        ocr: IOCRProvider | None = None,
        *,
        temp_dir: str | Path,
        ocr_enabled: bool = True,
        dpi: int = 300,
        language: str = "eng",
        timeout: float = 60.0,
        rasterize_retry: RetryPolicy = NO_RETRY,
        ocr_retry: RetryPolicy = NO_RETRY,
    ) -> None:
        self._pdf_extractor = pdf_extractor
        self._readability = readability
        self._rasterizer = rasterizer
        self._ocr = ocr
        self._temp_dir = Path(temp_dir)
        self._ocr_enabled = ocr_enabled
        self._dpi = dpi
        self._language = language
        self._timeout = timeout
        self._rasterize_retry = rasterize_retry
        self._ocr_retry = ocr_retry

    @property
    def ocr_available(self) -> bool:
        return self._ocr_enabled and self._rasterizer is not None and self._ocr is not None

    def missing_tools(self) -> list[str]:
        """Names of OCR tools that are configured but not installed."""
        if not self._ocr_enabled:
            return []
        missing: list[str] = []
        if self._rasterizer is None or not self._rasterizer.is_available():
            missing.append(self._rasterizer.get_provider_name() if self._rasterizer else "rasterizer")
        if self._ocr is None or not self._ocr.is_available():
            missing.append(self._ocr.get_provider_name() if self._ocr else "ocr")
        return missing

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def extract(self, pdf_path: Path) -> ExtractionResult:
        """Extract and gate the text of *pdf_path*."""
        filename = pdf_path.name
        try:
            data = await asyncio.to_thread(pdf_path.read_bytes)
        except OSError as exc:
            logger.error("pdf_read_failed", filename=filename, error=str(exc))
            return ExtractionResult(outcome=ExtractionOutcome.EXTRACTION_ERROR, error=str(exc))

        file_size = len(data)
        direct = await self._extract_direct(filename, data)

        if self._readability.is_readable(direct.text):
            return ExtractionResult(
                outcome=ExtractionOutcome.ACCEPTED_DIRECT,
                text=direct.text,
                page_count=direct.page_count,
                file_size=file_size,
            )

        if not self.ocr_available:
            logger.debug("direct_text_rejected_no_ocr", filename=filename)
            return ExtractionResult(
                outcome=ExtractionOutcome.NEEDS_OCR,
                page_count=direct.page_count,
                file_size=file_size,
            )

        logger.debug("ocr_fallback", filename=filename, direct_chars=len(direct.text))
        ocr_text = await self._ocr_first_page(pdf_path)

        if ocr_text is None:
            return ExtractionResult(
                outcome=ExtractionOutcome.NEEDS_OCR,
                page_count=direct.page_count,
                file_size=file_size,
            )

        if not self._readability.is_readable(ocr_text):
            logger.debug("ocr_text_rejected", filename=filename, ocr_chars=len(ocr_text))
            return ExtractionResult(
                outcome=ExtractionOutcome.UNREADABLE,
                page_count=direct.page_count,
                file_size=file_size,
            )

        return ExtractionResult(
            outcome=ExtractionOutcome.ACCEPTED_OCR,
            text=ocr_text,
            page_count=direct.page_count,
            file_size=file_size,
        )

    # ------------------------------------------------------------------
    # Direct extraction
    # ------------------------------------------------------------------

    async def _extract_direct(self, filename: str, data: bytes) -> PDFText:
        """Read the text layer; any failure yields empty text."""
        try:
            return await asyncio.to_thread(self._pdf_extractor.extract, data)
        except Exception as exc:
            logger.debug("direct_extraction_failed", filename=filename, error=str(exc))
            return PDFText(text="", page_count=None)

    # ------------------------------------------------------------------
    # OCR fallback
    # ------------------------------------------------------------------

    async def _ocr_first_page(self, pdf_path: Path) -> str | None:
        """Rasterize and OCR page 1.

        Returns ``None`` when no image could be produced and the OCR text
        (possibly empty) otherwise.  Temp images are removed before
        returning, whatever happened.
        """
        prefix = self._temp_dir / temp_prefix_for(pdf_path)
        start = time.perf_counter()
        try:
            try:
                image_path = await retry_async(
                    self._rasterize_once,
                    pdf_path,
                    prefix,
                    policy=self._rasterize_retry,
                    retry_on=(OCRExtractionError,),
                    operation="rasterize",
                )
            except OCRExtractionError as exc:
                logger.warning("rasterize_gave_up", filename=pdf_path.name, error=str(exc))
                return None

            try:
                text = await retry_async(
                    self._recognize_once,
                    image_path,
                    policy=self._ocr_retry,
                    retry_on=(OCRExtractionError,),
                    operation="ocr",
                )
            except OCRExtractionError:
                text = ""

            logger.debug(
                "ocr_complete",
                filename=pdf_path.name,
                chars=len(text),
                processing_time=round(time.perf_counter() - start, 3),
            )
            return text
        finally:
            self._cleanup(prefix)

    async def _rasterize_once(self, pdf_path: Path, prefix: Path) -> Path:
        assert self._rasterizer is not None
        image_path = await self._rasterizer.rasterize(pdf_path, prefix, self._dpi, self._timeout)
        if image_path is None:
            raise OCRExtractionError(
                f"Could not rasterize {pdf_path.name}",
                provider_name=self._rasterizer.get_provider_name(),
            )
        return image_path

    async def _recognize_once(self, image_path: Path) -> str:
        assert self._ocr is not None
        text = await self._ocr.recognize_text(image_path, self._language, self._timeout)
        if not text.strip():
            raise OCRExtractionError(
                f"No text recognized in {image_path.name}",
                provider_name=self._ocr.get_provider_name(),
            )
        return text

    def _cleanup(self, prefix: Path) -> None:
        """Delete ``<prefix>.png`` and ``<prefix>-*.png`` left by the rasterizer."""
        if not prefix.parent.is_dir():
            return
        for path in prefix.parent.glob(f"{prefix.name}*"):
            rest = path.name[len(prefix.name) :]
            if not (rest.startswith("-") or rest.startswith(".")):
                continue
            try:
                path.unlink(missing_ok=True)
            except OSError as exc:
                logger.warning("temp_cleanup_failed", path=str(path), error=str(exc))
