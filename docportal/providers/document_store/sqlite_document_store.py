"""SQLite-backed document store.

Persists documents, chunks and mentions to a local SQLite database at
``data/docportal.db``.  Uses ``aiosqlite`` for async I/O over a single
long-lived connection that is opened by :meth:`initialize` and released
by :meth:`close`.  Embedding vectors are stored as float32 blobs and
compared with numpy for similarity queries.

A document is written together with its chunks and mentions in one
transaction, so a failed insert never leaves a document without its
chunks behind in the checkpoint.

Concurrent workers share the connection.  Writes are serialized behind
an ``asyncio.Lock`` so one worker's commit never sweeps up another
worker's half-finished statement.
"""

from __future__ import annotations

import asyncio
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from types import TracebackType

import aiosqlite
import numpy as np
import structlog

from docportal.interfaces.document_store import IDocumentStore
from docportal.models.corpus import (
    Chunk,
    ChunkCreate,
    CorpusStats,
    Document,
    DocumentCreate,
    Mention,
    MentionCount,
    MentionMatch,
    ScoredChunk,
)
from docportal.utils.errors import DuplicateDocumentError, StorageError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/docportal.db")

_CREATE_DOCUMENTS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS documents (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    filename    TEXT    NOT NULL UNIQUE,
    title       TEXT    NOT NULL,
    content     TEXT    NOT NULL,
    page_count  INTEGER,
    file_size   INTEGER NOT NULL DEFAULT 0,
    source_path TEXT    NOT NULL DEFAULT '',
    created_at  TEXT    NOT NULL
);
"""

_CREATE_CHUNKS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS chunks (
    id          TEXT    PRIMARY KEY,
    document_id INTEGER NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    chunk_index INTEGER NOT NULL,
    content     TEXT    NOT NULL,
    page_number INTEGER NOT NULL DEFAULT 1,
    embedding   BLOB,
    created_at  TEXT    NOT NULL,
    UNIQUE (document_id, chunk_index)
);
"""

_CREATE_MENTIONS_TABLE_SQL = """\
CREATE TABLE IF NOT EXISTS mentions (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    document_id     INTEGER NOT NULL REFERENCES documents(id) ON DELETE CASCADE,
    name            TEXT    NOT NULL,
    normalized_name TEXT    NOT NULL,
    context         TEXT    NOT NULL,
    page_number     INTEGER
);
"""

_CREATE_INDICES_SQL = [
    "CREATE INDEX IF NOT EXISTS idx_chunks_document ON chunks(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_mentions_document ON mentions(document_id);",
    "CREATE INDEX IF NOT EXISTS idx_mentions_normalized ON mentions(normalized_name);",
]

_INSERT_DOCUMENT_SQL = """\
INSERT INTO documents (filename, title, content, page_count, file_size, source_path, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_CHUNK_SQL = """\
INSERT INTO chunks (id, document_id, chunk_index, content, page_number, embedding, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_MENTION_SQL = """\
INSERT INTO mentions (document_id, name, normalized_name, context, page_number)
VALUES (?, ?, ?, ?, ?);
"""

_TOP_MENTIONS_SQL = """\
SELECT
    MIN(name)                   AS name,
    normalized_name,
    COUNT(*)                    AS count,
    COUNT(DISTINCT document_id) AS document_count
FROM mentions
GROUP BY normalized_name
ORDER BY count DESC, normalized_name ASC
LIMIT ?;
"""

_EMBEDDED_CHUNKS_SQL = """\
SELECT c.document_id, c.chunk_index, c.content, c.page_number, c.embedding, d.filename
FROM chunks c
JOIN documents d ON d.id = c.document_id
WHERE c.embedding IS NOT NULL;
"""


class SQLiteDocumentStore(IDocumentStore):
    """SQLite persistence for the document corpus."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)
        self._db: aiosqlite.Connection | None = None
        self._write_lock = asyncio.Lock()

    async def __aenter__(self) -> SQLiteDocumentStore:
        await self.initialize()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> None:
        """Open the connection and create tables and indices if they don't exist."""
        if self._db is not None:
            return
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        try:
            self._db = await aiosqlite.connect(str(self._db_path))
            self._db.row_factory = aiosqlite.Row
            await self._db.execute("PRAGMA foreign_keys = ON;")
            await self._db.execute("PRAGMA journal_mode = WAL;")
            await self._db.execute(_CREATE_DOCUMENTS_TABLE_SQL)
            await self._db.execute(_CREATE_CHUNKS_TABLE_SQL)
            await self._db.execute(_CREATE_MENTIONS_TABLE_SQL)
            for idx_sql in _CREATE_INDICES_SQL:
                await self._db.execute(idx_sql)
            await self._db.commit()
        except sqlite3.Error as exc:
            raise StorageError(
                f"Cannot open database {self._db_path}: {exc}",
                provider_name="sqlite",
            ) from exc
        logger.info("document_store_initialized", path=str(self._db_path))

    async def close(self) -> None:
        if self._db is None:
            return
        db, self._db = self._db, None
        await db.close()
        logger.info("document_store_closed", path=str(self._db_path))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_document(self, fields: DocumentCreate) -> Document:
        return await self.create_document_with_records(fields, [], [])

    async def create_document_with_records(
        self,
        fields: DocumentCreate,
        chunks: list[ChunkCreate],
        mentions: list[MentionMatch],
    ) -> Document:
        """Insert the document, its chunks and its mentions in one transaction."""
        db = self._require_db()
        created_at = datetime.now(timezone.utc)
        async with self._write_lock:
            try:
                cursor = await db.execute(_INSERT_DOCUMENT_SQL, _document_row(fields, created_at))
                document_id = cursor.lastrowid
                if chunks:
                    await db.executemany(
                        _INSERT_CHUNK_SQL,
                        _chunk_rows([c.to_chunk(document_id) for c in chunks], created_at),
                    )
                if mentions:
                    await db.executemany(
                        _INSERT_MENTION_SQL,
                        _mention_rows([m.to_mention(document_id) for m in mentions]),
                    )
                await db.commit()
            except sqlite3.IntegrityError as exc:
                await db.rollback()
                if "documents.filename" in str(exc):
                    raise DuplicateDocumentError(
                        f"Document {fields.filename!r} already exists",
                        provider_name="sqlite",
                        filename=fields.filename,
                    ) from exc
                raise StorageError(
                    f"Insert of {fields.filename!r} failed: {exc}", provider_name="sqlite"
                ) from exc
            except sqlite3.Error as exc:
                await db.rollback()
                raise StorageError(
                    f"Insert of {fields.filename!r} failed: {exc}", provider_name="sqlite"
                ) from exc

        return Document(id=document_id, created_at=created_at, **fields.model_dump())

    async def create_chunks(self, chunks: list[Chunk]) -> int:
        if not chunks:
            return 0
        db = self._require_db()
        rows = _chunk_rows(chunks, datetime.now(timezone.utc))
        async with self._write_lock:
            try:
                await db.executemany(_INSERT_CHUNK_SQL, rows)
                await db.commit()
            except sqlite3.Error as exc:
                await db.rollback()
                raise StorageError(f"Chunk insert failed: {exc}", provider_name="sqlite") from exc
        return len(rows)

    async def create_mentions(self, mentions: list[Mention]) -> int:
        if not mentions:
            return 0
        db = self._require_db()
        rows = _mention_rows(mentions)
        async with self._write_lock:
            try:
                await db.executemany(_INSERT_MENTION_SQL, rows)
                await db.commit()
            except sqlite3.Error as exc:
                await db.rollback()
                raise StorageError(f"Mention insert failed: {exc}", provider_name="sqlite") from exc
        return len(rows)

    async def delete_document(self, filename: str) -> bool:
        db = self._require_db()
        async with self._write_lock:
            cursor = await db.execute("DELETE FROM documents WHERE filename = ?;", (filename,))
            await db.commit()
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("document_deleted", filename=filename)
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def document_exists_by_filename(self, filename: str) -> bool:
        db = self._require_db()
        cursor = await db.execute(
            "SELECT 1 FROM documents WHERE filename = ? LIMIT 1;", (filename,)
        )
        return await cursor.fetchone() is not None

    async def list_all_filenames(self) -> set[str]:
        db = self._require_db()
        cursor = await db.execute("SELECT filename FROM documents;")
        rows = await cursor.fetchall()
        return {row["filename"] for row in rows}

    async def get_stats(self) -> CorpusStats:
        db = self._require_db()
        cursor = await db.execute(
            """\
            SELECT
                (SELECT COUNT(*) FROM documents)                              AS documents,
                (SELECT COUNT(*) FROM chunks)                                 AS chunks,
                (SELECT COUNT(*) FROM chunks WHERE embedding IS NOT NULL)     AS embedded_chunks,
                (SELECT COUNT(*) FROM mentions)                               AS mentions,
                (SELECT COUNT(DISTINCT normalized_name) FROM mentions)        AS distinct_names;
            """
        )
        row = await cursor.fetchone()
        return CorpusStats(**dict(row))

    async def top_mentions(self, limit: int = 20) -> list[MentionCount]:
        db = self._require_db()
        cursor = await db.execute(_TOP_MENTIONS_SQL, (limit,))
        rows = await cursor.fetchall()
        return [MentionCount(**dict(row)) for row in rows]

    async def similar_chunks(self, vector: list[float], limit: int = 10) -> list[ScoredChunk]:
        db = self._require_db()
        query = np.asarray(vector, dtype=np.float32)
        query_norm = float(np.linalg.norm(query))
        if query.size == 0 or query_norm == 0.0:
            return []

        cursor = await db.execute(_EMBEDDED_CHUNKS_SQL)
        rows = await cursor.fetchall()

        candidates = []
        vectors = []
        for row in rows:
            stored = _decode_vector(row["embedding"])
            if stored.shape != query.shape:
                continue
            candidates.append(row)
            vectors.append(stored)
        if not vectors:
            return []

        matrix = np.vstack(vectors)
        norms = np.linalg.norm(matrix, axis=1)
        norms[norms == 0.0] = 1.0
        scores = (matrix @ query) / (norms * query_norm)
        order = np.argsort(-scores)[:limit]

        return [
            ScoredChunk(
                chunk=Chunk(
                    document_id=candidates[i]["document_id"],
                    chunk_index=candidates[i]["chunk_index"],
                    content=candidates[i]["content"],
                    page_number=candidates[i]["page_number"],
                    embedding=vectors[i].tolist(),
                ),
                filename=candidates[i]["filename"],
                score=float(scores[i]),
            )
            for i in order
        ]

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_db(self) -> aiosqlite.Connection:
        if self._db is None:
            raise StorageError("Document store is not initialized", provider_name="sqlite")
        return self._db


def _encode_vector(vector: list[float]) -> bytes | None:
    """Pack a vector as float32 bytes; empty vectors are stored as NULL."""
    if not vector:
        return None
    return np.asarray(vector, dtype=np.float32).tobytes()


def _decode_vector(blob: bytes) -> np.ndarray:
    return np.frombuffer(blob, dtype=np.float32)


def _document_row(fields: DocumentCreate, created_at: datetime) -> tuple:
    return (
        fields.filename,
        fields.title,
        fields.content,
        fields.page_count,
        fields.file_size,
        fields.source_path,
        created_at.isoformat(),
    )


def _chunk_rows(chunks: list[Chunk], created_at: datetime) -> list[tuple]:
    stamp = created_at.isoformat()
    return [
        (
            chunk.chunk_id,
            chunk.document_id,
            chunk.chunk_index,
            chunk.content,
            chunk.page_number,
            _encode_vector(chunk.embedding),
            stamp,
        )
        for chunk in chunks
    ]


def _mention_rows(mentions: list[Mention]) -> list[tuple]:
    return [(m.document_id, m.name, m.normalized_name, m.context, m.page_number) for m in mentions]
