"""Document store implementations.

    SQLiteDocumentStore -- aiosqlite persistence with numpy cosine
    similarity over float32 embedding blobs.
"""

from docportal.providers.document_store.sqlite_document_store import SQLiteDocumentStore

__all__ = ["SQLiteDocumentStore"]
