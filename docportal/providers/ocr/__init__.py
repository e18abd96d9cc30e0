"""OCR provider implementations.

    TesseractOCRProvider -- Google Tesseract via pytesseract.  Used only on
    the fallback path, when a PDF's text layer fails the readability gate.
"""

from docportal.providers.ocr.tesseract_provider import TesseractOCRProvider

__all__ = ["TesseractOCRProvider"]
