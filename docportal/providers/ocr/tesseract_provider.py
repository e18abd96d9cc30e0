"""Tesseract OCR provider for scanned document pages.

Wraps pytesseract, which shells out to the ``tesseract`` binary.  The
call is blocking, so it runs in a worker thread; the binary itself runs
as a separate OS process bounded by pytesseract's ``timeout``.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path

import pytesseract
from PIL import Image

from docportal.interfaces.ocr_provider import IOCRProvider
from docportal.utils.logging import get_logger


class TesseractOCRProvider(IOCRProvider):
    """OCR provider backed by Google Tesseract via pytesseract.

    Scanned court filings are dense single-column typewritten pages, so a
    single default-layout pass is used.  Failures and timeouts return an
    empty string; the readability gate downstream then rejects the page.
    """

    def __init__(self, config: str = "") -> None:
        self._config = config
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IOCRProvider interface
    # ------------------------------------------------------------------

    async def recognize_text(self, image_path: Path, language: str, timeout: float) -> str:
        start = time.perf_counter()
        try:
            text = await asyncio.to_thread(self._run_tesseract, image_path, language, timeout)
        except (RuntimeError, OSError, pytesseract.TesseractError) as exc:
            # pytesseract signals a timeout with a bare RuntimeError.
            self._logger.warning(
                "ocr_recognition_failed",
                provider="tesseract",
                image=image_path.name,
                error=str(exc),
                processing_time=round(time.perf_counter() - start, 3),
            )
            return ""

        self._logger.debug(
            "ocr_recognition_complete",
            provider="tesseract",
            image=image_path.name,
            chars=len(text),
            processing_time=round(time.perf_counter() - start, 3),
        )
        return text

    def get_provider_name(self) -> str:
        return "tesseract"

    def is_available(self) -> bool:
        """Check that the Tesseract binary can be found."""
        try:
            pytesseract.get_tesseract_version()
            return True
        except (pytesseract.TesseractNotFoundError, OSError):
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run_tesseract(self, image_path: Path, language: str, timeout: float) -> str:
        with Image.open(image_path) as image:
            text = pytesseract.image_to_string(
                image,
                lang=language,
                config=self._config,
                timeout=timeout,
            )
        return text or ""
