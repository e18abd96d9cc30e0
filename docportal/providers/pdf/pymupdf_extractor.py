"""Direct PDF text extraction using PyMuPDF (fitz).

Reads the embedded text layer page by page.  Scanned PDFs usually have
no text layer (or a garbage one), which the readability gate catches
downstream; this adapter only reports what the file contains.
"""

from __future__ import annotations

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention

from docportal.interfaces.pdf_extractor import IPDFTextExtractor, PDFText
from docportal.utils.errors import ExtractionError


class PyMuPDFTextExtractor(IPDFTextExtractor):
    """Extracts the text layer of a PDF held in memory."""

    def extract(self, data: bytes) -> PDFText:
        try:
            doc = fitz.open(stream=data, filetype="pdf")
        except Exception as exc:
            # fitz raises several unrelated types for corrupt input.
            raise ExtractionError(
                f"Cannot open PDF: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        try:
            if doc.needs_pass:
                raise ExtractionError(
                    "PDF is encrypted",
                    provider_name=self.get_provider_name(),
                )
            pages: list[str] = []
            for page in doc:
                pages.append(page.get_text("text"))
            return PDFText(text="\n".join(pages), page_count=doc.page_count)
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError(
                f"Text extraction failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            doc.close()

    def get_provider_name(self) -> str:
        return "pymupdf"
