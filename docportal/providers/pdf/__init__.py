"""Direct PDF text-layer extraction."""

from docportal.providers.pdf.pymupdf_extractor import PyMuPDFTextExtractor

__all__ = ["PyMuPDFTextExtractor"]
