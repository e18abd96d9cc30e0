"""Orchestrator for resumable corpus ingestion.

Pipeline per document: **extract -> chunk -> embed -> find mentions ->
persist**.  The document, its chunks and its mentions are written in one
store transaction, so a failed write leaves no partial record behind.

The :class:`IngestionCoordinator` owns no external resources itself.
Every collaborator (document store, extraction adapter, embedding client,
chunker, mention extractor, scanner) is constructed once by the caller
and injected, so one set of handles is shared by all workers of a run.

Resumability:
    At the start of each pass the coordinator loads the set of filenames
    already stored.  Those files are never reprocessed, so repeated runs
    over an unchanged corpus create nothing new.  Each worker also checks
    existence right before inserting, and a duplicate-key error from the
    store is treated as "already ingested" rather than as a failure.

Concurrency:
    The work list is processed in fixed-size batches.  All documents in a
    batch run concurrently; the next batch starts only when the whole
    batch is done.  :meth:`request_stop` prevents new batches from
    starting and lets the current one finish.  A file is attempted at most
    once per run; in continuous mode a pass that attempts nothing new ends
    the run.  Files already stored do not count toward the per-run cap.
"""

from __future__ import annotations

import asyncio
import time
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from docportal.models.corpus import (
    ChunkCreate,
    DocumentCreate,
    DocumentOutcome,
    DocumentReport,
    ExtractionOutcome,
    ExtractionResult,
    IngestionStats,
)
from docportal.models.profile import IngestionProfile
from docportal.services.ingestion.progress import ProgressTracker, format_duration
from docportal.utils.concurrency import throttled_gather
from docportal.utils.errors import ConfigurationError, DuplicateDocumentError

if TYPE_CHECKING:
    from docportal.interfaces.document_store import IDocumentStore
    from docportal.services.ingestion.chunker import TextChunker
    from docportal.services.ingestion.corpus_scanner import CorpusScanner
    from docportal.services.ingestion.embedding_client import EmbeddingClient
    from docportal.services.ingestion.extraction import ExtractionAdapter
    from docportal.services.ingestion.mention_extractor import MentionExtractor

logger = structlog.get_logger(logger_name=__name__)

_SUMMARY_EVERY = 500

_EXTRACTION_OUTCOMES: dict[ExtractionOutcome, DocumentOutcome] = {
    ExtractionOutcome.NEEDS_OCR: DocumentOutcome.NEEDS_OCR,
    ExtractionOutcome.UNREADABLE: DocumentOutcome.UNREADABLE,
    ExtractionOutcome.EXTRACTION_ERROR: DocumentOutcome.EXTRACTION_FAILED,
}


class IngestionCoordinator:
    """Runs the ingestion state machine over a whole corpus.

    Parameters
    ----------
    store:
        Persistence for documents, chunks and mentions.
    scanner:
        Finds source folders and PDFs.
    extractor:
        Produces gated text for one PDF.
    chunker:
        Splits accepted text into embedding-sized chunks.
    embedding_client:
        Batches, retries and degrades embedding calls.
    mention_extractor:
        Finds notable-name occurrences.
    profile:
        Worker count, per-run cap, folder filter, resume and continuous
        settings for this run.
    max_content_chars:
        Cap on the text stored on the document record.  Chunking and
        mention extraction still see the full text.
    max_mentions:
        Mentions persisted per document.
    progress_interval:
        Log a progress line every this many batches.
    rescan_interval:
        Seconds between passes in continuous mode.
    """

    def __init__(
        self,
        store: IDocumentStore,
        scanner: CorpusScanner,
        extractor: ExtractionAdapter,
        chunker: TextChunker,
        embedding_client: EmbeddingClient,
        mention_extractor: MentionExtractor,
        profile: IngestionProfile | None = None,
        *,
        max_content_chars: int = 100_000,
        max_mentions: int = 50,
        progress_interval: int = 10,
        rescan_interval: float = 300.0,
    ) -> None:
        self._store = store
        self._scanner = scanner
        self._extractor = extractor
        self._chunker = chunker
        self._embedding_client = embedding_client
        self._mention_extractor = mention_extractor
        self._profile = profile or IngestionProfile()
        self._max_content_chars = max_content_chars
        self._max_mentions = max_mentions
        self._progress_interval = max(1, progress_interval)
        self._rescan_interval = rescan_interval
        self._stop = asyncio.Event()
        self._attempted: set[str] = set()

    @property
    def profile(self) -> IngestionProfile:
        return self._profile

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    def preflight(self) -> None:
        """Detect conditions under which no progress is possible.

        Raises
        ------
        ConfigurationError
            If the corpus root is unreadable, the embedding provider has
            no credentials, or OCR is enabled but a tool is missing.
        """
        self._scanner.check_root()

        provider = self._embedding_client.provider
        if not provider.is_available():
            raise ConfigurationError(
                "Embedding provider is not configured (set OPENAI_API_KEY)",
                provider_name=provider.get_provider_name(),
            )

        if self._profile.ocr_enabled:
            missing = self._extractor.missing_tools()
            if missing:
                raise ConfigurationError(
                    f"OCR is enabled but required tools are missing: {', '.join(missing)} "
                    "(install poppler-utils and tesseract, or run with OCR disabled)"
                )

        logger.info(
            "preflight_ok",
            profile=self._profile.name,
            root=str(self._scanner.root),
            ocr_enabled=self._profile.ocr_enabled,
            embedding_provider=provider.get_provider_name(),
        )

    def request_stop(self) -> None:
        """Stop launching new batches; the in-flight batch completes."""
        if not self._stop.is_set():
            logger.info("ingestion_stop_requested")
        self._stop.set()

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self) -> IngestionStats:
        """Ingest the corpus and return aggregate counters.

        In continuous mode, passes repeat every ``rescan_interval``
        seconds until a pass finds no new work or a stop is requested.
        A file is attempted at most once per run, whatever its outcome.
        """
        stats = IngestionStats()
        start = time.monotonic()
        passes = 0
        self._attempted = set()

        while True:
            passes += 1
            attempted_before = stats.attempted
            await self._run_pass(stats)
            new_work = stats.attempted - attempted_before

            if not self._profile.continuous or self._stop.is_set() or self._cap_reached(stats):
                break
            if new_work == 0:
                logger.info("continuous_ingestion_idle", passes=passes)
                break

            logger.info("rescan_scheduled", in_s=self._rescan_interval, passes=passes)
            if await self._wait_for_stop(self._rescan_interval):
                break

        stats.cancelled = self._stop.is_set()
        logger.info(
            "ingestion_complete",
            profile=self._profile.name,
            passes=passes,
            elapsed=format_duration(time.monotonic() - start),
            cancelled=stats.cancelled,
            **stats.model_dump(exclude={"cancelled"}),
        )
        return stats

    async def _run_pass(self, stats: IngestionStats) -> None:
        work = await self._build_work_list(stats)
        if not work:
            logger.info("no_new_documents", already_ingested=stats.already_ingested)
            return

        budget = self._remaining_budget(stats)
        tracker = ProgressTracker(len(work) if budget is None else min(len(work), budget))
        logger.info(
            "ingestion_pass_started",
            documents=len(work),
            workers=self._profile.worker_count,
            ocr_enabled=self._profile.ocr_enabled,
            cap=self._profile.max_documents,
        )

        batch_no = 0
        while work:
            if self._stop.is_set():
                logger.info("ingestion_stopping", remaining=len(work))
                break

            # Skips of already-stored files do not consume the cap, so the
            # batch width is recomputed from what is left of it each time.
            size = self._profile.worker_count
            budget = self._remaining_budget(stats)
            if budget is not None:
                if budget == 0:
                    logger.info(
                        "document_cap_reached",
                        cap=self._profile.max_documents,
                        pending=len(work),
                    )
                    break
                size = min(size, budget)

            batch, work = work[:size], work[size:]
            batch_no += 1
            self._attempted.update(p.name for p in batch)

            before = stats.attempted
            results = await throttled_gather([self.process_document(p) for p in batch])
            for path, result in zip(batch, results):
                if isinstance(result, BaseException):
                    logger.error("document_failed", filename=path.name, error=str(result))
                    result = DocumentReport(
                        filename=path.name,
                        outcome=DocumentOutcome.EXTRACTION_FAILED,
                        error=str(result),
                    )
                stats.record(result)
            tracker.advance(len(batch))

            if batch_no % self._progress_interval == 0:
                logger.info(
                    "ingestion_progress",
                    processed=stats.processed,
                    skipped=stats.skipped,
                    needs_ocr=stats.needs_ocr,
                    errors=stats.errors,
                    **tracker.snapshot(),
                )
            if stats.attempted // _SUMMARY_EVERY > before // _SUMMARY_EVERY:
                logger.info(
                    "ingestion_summary",
                    docs=stats.processed,
                    chunks=stats.chunks_created,
                    embeddings=stats.embeddings_created,
                    mentions=stats.mentions_extracted,
                    ocr_used=stats.ocr_used,
                    unreadable=stats.unreadable,
                    errors=stats.errors,
                )

    async def _build_work_list(self, stats: IngestionStats) -> list[Path]:
        """Scan the corpus and subtract the checkpoint and this run's attempts."""
        checkpoint: set[str] = set()
        if self._profile.resume:
            checkpoint = await self._store.list_all_filenames()
            logger.info("checkpoint_loaded", documents=len(checkpoint))

        folders = await asyncio.to_thread(self._scanner.scan, self._profile.folders)
        queued: set[str] = set()
        work: list[Path] = []
        for folder, pdfs in folders.items():
            stored = [p for p in pdfs if p.name in checkpoint]
            pending = []
            for path in pdfs:
                if path.name in checkpoint or path.name in self._attempted or path.name in queued:
                    continue
                queued.add(path.name)
                pending.append(path)
            stats.discovered += len(pdfs)
            stats.already_ingested += len(stored)
            logger.debug("folder_scanned", folder=folder, pdfs=len(pdfs), pending=len(pending))
            work.extend(pending)
        return work

    def _remaining_budget(self, stats: IngestionStats) -> int | None:
        """Documents left under the per-run cap, or ``None`` when unbounded."""
        cap = self._profile.max_documents
        if cap is None:
            return None
        return max(0, cap - stats.counted_toward_cap)

    def _cap_reached(self, stats: IngestionStats) -> bool:
        return self._remaining_budget(stats) == 0

    async def _wait_for_stop(self, timeout: float) -> bool:
        """Sleep up to *timeout* seconds; return ``True`` if a stop arrived."""
        try:
            await asyncio.wait_for(self._stop.wait(), timeout=timeout)
        except asyncio.TimeoutError:
            return False
        return True

    # ------------------------------------------------------------------
    # Per-document state machine
    # ------------------------------------------------------------------

    async def process_document(self, path: Path) -> DocumentReport:
        """Take one file from "discovered" to a terminal outcome.

        Never raises: every failure is logged with the filename and
        reported as an outcome.
        """
        filename = path.name
        try:
            if await self._store.document_exists_by_filename(filename):
                return DocumentReport(filename=filename, outcome=DocumentOutcome.ALREADY_INGESTED)
            extraction = await self._extractor.extract(path)
        except Exception as exc:
            logger.error("extraction_failed", filename=filename, error=str(exc))
            return DocumentReport(
                filename=filename, outcome=DocumentOutcome.EXTRACTION_FAILED, error=str(exc)
            )

        if not extraction.accepted:
            outcome = _EXTRACTION_OUTCOMES[extraction.outcome]
            logger.debug("document_not_ingested", filename=filename, outcome=outcome.value)
            return DocumentReport(filename=filename, outcome=outcome, error=extraction.error)

        try:
            return await self._persist(path, extraction)
        except DuplicateDocumentError:
            logger.info("document_already_ingested", filename=filename)
            return DocumentReport(filename=filename, outcome=DocumentOutcome.ALREADY_INGESTED)
        except Exception as exc:
            logger.error("document_persist_failed", filename=filename, error=str(exc))
            return DocumentReport(
                filename=filename,
                outcome=DocumentOutcome.PERSIST_ERROR,
                used_ocr=extraction.used_ocr,
                error=str(exc),
            )

    async def _persist(self, path: Path, extraction: ExtractionResult) -> DocumentReport:
        """Chunk, embed and find mentions, then store everything in one write."""
        text = extraction.text
        pieces = self._chunker.chunk(text)
        vectors = await self._embedding_client.embed_all(pieces) if pieces else []
        chunks = [
            ChunkCreate(chunk_index=i, content=piece, embedding=vector)
            for i, (piece, vector) in enumerate(zip(pieces, vectors))
        ]
        embedded = sum(1 for c in chunks if c.has_embedding)
        mentions = self._mention_extractor.extract(text)[: self._max_mentions]

        document = await self._store.create_document_with_records(
            DocumentCreate(
                filename=path.name,
                title=path.stem,
                content=text[: self._max_content_chars],
                page_count=extraction.page_count,
                file_size=extraction.file_size,
                source_path=str(path),
            ),
            chunks,
            mentions,
        )

        logger.info(
            "document_ingested",
            filename=path.name,
            document_id=document.id,
            via_ocr=extraction.used_ocr,
            chunks=len(chunks),
            embeddings=embedded,
            mentions=len(mentions),
        )
        return DocumentReport(
            filename=path.name,
            outcome=DocumentOutcome.PERSISTED,
            used_ocr=extraction.used_ocr,
            chunks=len(chunks),
            embeddings=embedded,
            mentions=len(mentions),
        )
