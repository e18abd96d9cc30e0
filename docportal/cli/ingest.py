"""CLI for ingesting the PDF corpus into the document store.

Usage::

    python -m docportal.cli run
    python -m docportal.cli run --profile fast
    python -m docportal.cli run --profile limited --folder "DataSet 3" --limit 200
    python -m docportal.cli run --no-ocr --workers 8 --root /mnt/corpus
    python -m docportal.cli run --profile continuous

    python -m docportal.cli stats --top 25

    python -m docportal.cli scan --root ~/Downloads

Exit codes: 0 success, 1 runtime failure, 2 configuration error,
130 interrupted.
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from docportal.config.loader import load_config, load_notable_names, load_profile
from docportal.config.settings import Settings
from docportal.models.profile import IngestionProfile
from docportal.utils.errors import ConfigurationError, DocPortalError
from docportal.utils.logging import configure_logging, get_logger

if TYPE_CHECKING:
    from docportal.models.corpus import IngestionStats
    from docportal.providers.document_store.sqlite_document_store import SQLiteDocumentStore
    from docportal.services.ingestion.coordinator import IngestionCoordinator

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG = 2
EXIT_INTERRUPTED = 130

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Profile resolution
# ---------------------------------------------------------------------------


def apply_overrides(profile: IngestionProfile, args: argparse.Namespace) -> IngestionProfile:
    """Layer CLI flags on top of *profile*.

    Only flags the operator actually passed are applied.
    """
    updates: dict[str, Any] = {}
    if args.no_ocr:
        updates["ocr_enabled"] = False
    if args.workers is not None:
        updates["worker_count"] = args.workers
    if args.dpi is not None:
        updates["dpi"] = args.dpi
    if args.limit is not None:
        updates["max_documents"] = args.limit or None
    if args.folders:
        updates["folders"] = list(args.folders)
    if args.continuous:
        updates["continuous"] = True
    if args.no_resume:
        updates["resume"] = False
    if not updates:
        return profile

    try:
        return IngestionProfile(**{**profile.model_dump(), **updates})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid command-line override: {exc}") from exc


# ---------------------------------------------------------------------------
# Wiring
# ---------------------------------------------------------------------------


def build_coordinator(
    app_settings: Settings,
    profile: IngestionProfile,
    config: dict[str, Any],
    root: str | None = None,
) -> tuple[SQLiteDocumentStore, IngestionCoordinator]:
    """Construct every provider once and inject them into the coordinator.

    Imports are deferred so ``scan`` does not load openai, fitz or
    pytesseract.
    """
    from docportal.providers.document_store.sqlite_document_store import SQLiteDocumentStore
    from docportal.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
    from docportal.providers.ocr.tesseract_provider import TesseractOCRProvider
    from docportal.providers.pdf.pymupdf_extractor import PyMuPDFTextExtractor
    from docportal.providers.rasterizer.pdftoppm_rasterizer import PdftoppmRasterizer
    from docportal.services.ingestion.chunker import TextChunker
    from docportal.services.ingestion.coordinator import IngestionCoordinator
    from docportal.services.ingestion.corpus_scanner import CorpusScanner
    from docportal.services.ingestion.embedding_client import EmbeddingClient
    from docportal.services.ingestion.extraction import ExtractionAdapter
    from docportal.services.ingestion.mention_extractor import MentionExtractor
    from docportal.services.ingestion.readability import ReadabilityClassifier
    from docportal.utils.retry import RetryPolicy

    readability = ReadabilityClassifier(
        min_text_length=app_settings.min_text_length,
        min_word_ratio=app_settings.min_word_ratio,
        min_alnum_ratio=app_settings.min_alnum_ratio,
    )
    extractor = ExtractionAdapter(
        PyMuPDFTextExtractor(),
        readability,
        PdftoppmRasterizer(),
        TesseractOCRProvider(),
        temp_dir=app_settings.ocr_temp_dir,
        ocr_enabled=profile.ocr_enabled,
        dpi=profile.dpi,
        language=app_settings.ocr_language,
        timeout=app_settings.ocr_timeout_seconds,
    )
    embedding_client = EmbeddingClient(
        OpenAIEmbeddingProvider(settings=app_settings),
        batch_size=profile.embedding_batch_size,
        batch_delay=app_settings.embedding_batch_delay_seconds,
        retry_policy=RetryPolicy(
            max_attempts=2, base_delay=app_settings.embedding_retry_delay_seconds
        ),
    )
    names_path = app_settings.notable_names_path or config.get("notable_names_path")
    store = SQLiteDocumentStore(app_settings.database_path)

    coordinator = IngestionCoordinator(
        store=store,
        scanner=CorpusScanner(root or app_settings.corpus_root, app_settings.source_folder_patterns),
        extractor=extractor,
        chunker=TextChunker(
            chunk_size=app_settings.chunk_size,
            overlap=app_settings.chunk_overlap,
            min_chunk_chars=app_settings.min_chunk_chars,
        ),
        embedding_client=embedding_client,
        mention_extractor=MentionExtractor(load_notable_names(names_path)),
        profile=profile,
        max_content_chars=app_settings.max_content_chars,
        max_mentions=app_settings.max_mentions_per_document,
        progress_interval=app_settings.progress_interval,
        rescan_interval=app_settings.rescan_interval_seconds,
    )
    return store, coordinator


def _install_signal_handlers(coordinator: IngestionCoordinator) -> None:
    """Route SIGINT/SIGTERM to a graceful stop."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, coordinator.request_stop)
        except (NotImplementedError, RuntimeError):
            # Signal handlers are unavailable on Windows event loops.
            logger.debug("signal_handler_unavailable", signal=sig.name)


# ---------------------------------------------------------------------------
# Subcommand handlers
# ---------------------------------------------------------------------------


def _print_summary(stats: IngestionStats) -> None:
    print("\nIngestion summary")
    print("=" * 40)
    print(f"  Discovered:        {stats.discovered}")
    print(f"  Already ingested:  {stats.already_ingested}")
    print(f"  Processed:         {stats.processed}")
    print(f"  Skipped:           {stats.skipped}")
    print(f"  Via OCR:           {stats.ocr_used}")
    print(f"  Needs OCR:         {stats.needs_ocr}")
    print(f"  Unreadable:        {stats.unreadable}")
    print(f"  Errors:            {stats.errors}")
    print(f"  Chunks created:    {stats.chunks_created}")
    print(f"  Embeddings:        {stats.embeddings_created}")
    print(f"  Mentions:          {stats.mentions_extracted}")
    if stats.cancelled:
        print("\n  Run was interrupted; rerun to resume.")


async def _handle_run(args: argparse.Namespace, app_settings: Settings) -> int:
    config = load_config(app_settings.config_path)
    profile = apply_overrides(load_profile(args.profile, app_settings, config), args)
    store, coordinator = build_coordinator(app_settings, profile, config, root=args.root)

    coordinator.preflight()

    print(
        f"Profile: {profile.name} | workers: {profile.worker_count} | "
        f"OCR: {'on' if profile.ocr_enabled else 'off'} | DPI: {profile.dpi}"
    )
    _install_signal_handlers(coordinator)

    async with store:
        stats = await coordinator.run()

    _print_summary(stats)
    return EXIT_INTERRUPTED if stats.cancelled else EXIT_OK


async def _handle_stats(args: argparse.Namespace, app_settings: Settings) -> int:
    from docportal.providers.document_store.sqlite_document_store import SQLiteDocumentStore

    async with SQLiteDocumentStore(app_settings.database_path) as store:
        stats = await store.get_stats()
        top = await store.top_mentions(limit=args.top)

    print("Corpus Statistics")
    print("=" * 40)
    print(f"  Documents:        {stats.documents}")
    print(f"  Chunks:           {stats.chunks}")
    print(f"  Embedded chunks:  {stats.embedded_chunks}")
    print(f"  Mentions:         {stats.mentions}")
    print(f"  Distinct names:   {stats.distinct_names}")

    if top:
        print("\n  Top mentions:")
        for row in top:
            print(f"    {row.name:<28} {row.count:>6}  ({row.document_count} docs)")
    return EXIT_OK


def _handle_scan(args: argparse.Namespace, app_settings: Settings) -> int:
    from docportal.services.ingestion.corpus_scanner import CorpusScanner

    scanner = CorpusScanner(args.root or app_settings.corpus_root, app_settings.source_folder_patterns)
    scanner.check_root()
    folders = scanner.scan()

    print(f"Corpus root: {scanner.root}")
    if not folders:
        print("  No source folders found.")
        return EXIT_OK
    for name, pdfs in folders.items():
        print(f"  {name:<30} {len(pdfs):>7} PDFs")
    print(f"  {'Total':<30} {sum(len(p) for p in folders.values()):>7} PDFs")
    return EXIT_OK


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the ingestion CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m docportal.cli",
        description="Ingest the PDF corpus into the docportal document store.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # -- run --
    run_parser = subparsers.add_parser("run", help="Ingest every pending PDF")
    run_parser.add_argument(
        "--profile",
        default=None,
        help="Ingestion profile: fast, ocr, limited, continuous (default: from settings)",
    )
    run_parser.add_argument(
        "--no-ocr", action="store_true", dest="no_ocr", help="Disable the OCR fallback"
    )
    run_parser.add_argument("--workers", type=int, default=None, help="Documents per batch")
    run_parser.add_argument("--dpi", type=int, default=None, help="Rasterization resolution")
    run_parser.add_argument(
        "--limit", type=int, default=None, help="Maximum documents this run (0 = unbounded)"
    )
    run_parser.add_argument(
        "--folder",
        action="append",
        dest="folders",
        default=None,
        help="Restrict to this source folder (repeatable)",
    )
    run_parser.add_argument("--root", default=None, help="Corpus root directory")
    run_parser.add_argument(
        "--continuous", action="store_true", help="Rescan periodically for new files"
    )
    run_parser.add_argument(
        "--no-resume",
        action="store_true",
        dest="no_resume",
        help="Do not pre-load the checkpoint (per-file existence checks still apply)",
    )

    # -- stats --
    stats_parser = subparsers.add_parser("stats", help="Show document store statistics")
    stats_parser.add_argument("--top", type=int, default=20, help="Top mentioned names to list")

    # -- scan --
    scan_parser = subparsers.add_parser("scan", help="List source folders and PDF counts")
    scan_parser.add_argument("--root", default=None, help="Corpus root directory")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> int:
    """CLI entry point.  Returns the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return EXIT_FAILURE

    try:
        app_settings = Settings()
    except ValidationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG

    configure_logging(
        log_level=app_settings.log_level,
        json_output=app_settings.app_env == "production",
    )

    try:
        if args.command == "run":
            return asyncio.run(_handle_run(args, app_settings))
        if args.command == "stats":
            return asyncio.run(_handle_stats(args, app_settings))
        if args.command == "scan":
            return _handle_scan(args, app_settings)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return EXIT_CONFIG
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except DocPortalError as exc:
        logger.error("command_failed", command=args.command, error=str(exc))
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    parser.print_help()
    return EXIT_FAILURE
