"""Public interface definitions for all external collaborators.

Every unreliable external dependency of the ingestion core is accessed
through the abstract base classes in this package.  Concrete adapters
live in ``docportal/providers/`` and are constructed once at process
start by the CLI, then passed explicitly into the coordinator.

CONCRETE PROVIDER MAP:
    Interface            →  Concrete implementation (in docportal/providers/)
    ─────────────────────────────────────────────────────────────────
    IDocumentStore       →  SQLiteDocumentStore
    IEmbeddingProvider   →  OpenAIEmbeddingProvider
    IOCRProvider         →  TesseractOCRProvider
    IRasterizer          →  PdftoppmRasterizer
    IPDFTextExtractor    →  PyMuPDFTextExtractor
"""

from docportal.interfaces.document_store import IDocumentStore
from docportal.interfaces.embedding_provider import IEmbeddingProvider
from docportal.interfaces.ocr_provider import IOCRProvider, IRasterizer
from docportal.interfaces.pdf_extractor import IPDFTextExtractor, PDFText

__all__ = [
    "IDocumentStore",
    "IEmbeddingProvider",
    "IOCRProvider",
    "IPDFTextExtractor",
    "IRasterizer",
    "PDFText",
]
