"""PDF-to-image rasterizers feeding the OCR fallback."""

from docportal.providers.rasterizer.pdftoppm_rasterizer import PdftoppmRasterizer

__all__ = ["PdftoppmRasterizer"]
