"""Unit tests for IngestionCoordinator against in-memory collaborators."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from docportal.config.settings import DEFAULT_FOLDER_PATTERNS
from docportal.models.corpus import DocumentOutcome
from docportal.models.profile import IngestionProfile
from docportal.services.ingestion.chunker import TextChunker
from docportal.services.ingestion.coordinator import IngestionCoordinator
from docportal.services.ingestion.corpus_scanner import CorpusScanner
from docportal.services.ingestion.embedding_client import EmbeddingClient
from docportal.services.ingestion.extraction import ExtractionAdapter
from docportal.services.ingestion.mention_extractor import MentionExtractor
from docportal.services.ingestion.readability import ReadabilityClassifier
from docportal.utils.errors import ConfigurationError

NAMES = ["Bill Gates", "Jeffrey Epstein"]


@pytest.fixture
def build(memory_store, fake_embedding_provider, text_pdf_extractor, mock_rasterizer, mock_ocr, tmp_path):
    """Factory wiring a coordinator over *root* with fakes for every provider."""

    def _build(root: Path, profile: IngestionProfile | None = None, **kwargs) -> IngestionCoordinator:
        profile = profile or IngestionProfile(worker_count=2)
        extractor = ExtractionAdapter(
            text_pdf_extractor,
            ReadabilityClassifier(),
            mock_rasterizer,
            mock_ocr,
            temp_dir=tmp_path / "ocr",
            ocr_enabled=profile.ocr_enabled,
        )
        client = EmbeddingClient(
            fake_embedding_provider,
            batch_size=profile.embedding_batch_size,
            batch_delay=0,
            sleep=AsyncMock(),
        )
        return IngestionCoordinator(
            memory_store,
            CorpusScanner(root, DEFAULT_FOLDER_PATTERNS),
            extractor,
            TextChunker(),
            client,
            MentionExtractor(NAMES),
            profile,
            **kwargs,
        )

    return _build


def _single_folder_corpus(tmp_path: Path, files: dict[str, str]) -> Path:
    root = tmp_path / "single"
    folder = root / "DataSet 9"
    folder.mkdir(parents=True)
    for name, text in files.items():
        (folder / name).write_text(text)
    return root


# ---------------------------------------------------------------------------
# Preflight
# ---------------------------------------------------------------------------


class TestPreflight:
    def test_ok(self, build, corpus_root: Path) -> None:
        build(corpus_root).preflight()

    def test_missing_root(self, build, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="not a directory"):
            build(tmp_path / "nope").preflight()

    def test_unconfigured_embedding_provider(self, build, corpus_root: Path, fake_embedding_provider) -> None:
        fake_embedding_provider.available = False
        with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
            build(corpus_root).preflight()

    def test_missing_ocr_tool(self, build, corpus_root: Path, mock_rasterizer) -> None:
        mock_rasterizer.is_available.return_value = False
        with pytest.raises(ConfigurationError, match="mock-raster"):
            build(corpus_root).preflight()

    def test_missing_ocr_tool_ignored_when_ocr_disabled(self, build, corpus_root: Path, mock_ocr) -> None:
        mock_ocr.is_available.return_value = False
        build(corpus_root, IngestionProfile(ocr_enabled=False)).preflight()


# ---------------------------------------------------------------------------
# Full runs
# ---------------------------------------------------------------------------


class TestRun:
    @pytest.mark.asyncio
    async def test_ingests_matching_folders_only(self, build, corpus_root: Path, memory_store) -> None:
        stats = await build(corpus_root).run()

        assert stats.discovered == 3
        assert stats.processed == 3
        assert stats.attempted == 3
        assert stats.errors == 0
        assert set(memory_store.documents) == {"a.pdf", "b.pdf", "c.PDF"}
        assert stats.chunks_created == len(memory_store.chunks)
        assert stats.embeddings_created == stats.chunks_created

    @pytest.mark.asyncio
    async def test_document_fields(self, build, corpus_root: Path, memory_store) -> None:
        await build(corpus_root).run()

        doc = memory_store.documents["c.PDF"]
        assert doc.title == "c"
        assert doc.source_path == str(corpus_root / "VOL00002" / "c.PDF")
        assert doc.page_count == 1
        assert doc.file_size == (corpus_root / "VOL00002" / "c.PDF").stat().st_size

    @pytest.mark.asyncio
    async def test_mentions_are_stored(self, build, corpus_root: Path, memory_store) -> None:
        stats = await build(corpus_root).run()

        assert stats.mentions_extracted == 1
        [mention] = memory_store.mentions
        assert mention.name == "Bill Gates"
        assert mention.document_id == memory_store.documents["c.PDF"].id

    @pytest.mark.asyncio
    async def test_second_run_creates_nothing(self, build, corpus_root: Path, memory_store) -> None:
        await build(corpus_root).run()
        chunks_after_first = len(memory_store.chunks)

        stats = await build(corpus_root).run()

        assert stats.discovered == 3
        assert stats.already_ingested == 3
        assert stats.attempted == 0
        assert len(memory_store.documents) == 3
        assert len(memory_store.chunks) == chunks_after_first

    @pytest.mark.asyncio
    async def test_without_resume_existing_files_are_skipped(self, build, corpus_root: Path, memory_store) -> None:
        await build(corpus_root).run()

        stats = await build(corpus_root, IngestionProfile(resume=False)).run()

        assert stats.already_ingested == 0
        assert stats.skipped == 3
        assert stats.processed == 0
        assert len(memory_store.documents) == 3

    @pytest.mark.asyncio
    async def test_folder_filter(self, build, corpus_root: Path, memory_store) -> None:
        stats = await build(corpus_root, IngestionProfile(folders=["VOL00002"])).run()

        assert stats.discovered == 1
        assert set(memory_store.documents) == {"c.PDF"}

    @pytest.mark.asyncio
    async def test_document_cap(self, build, corpus_root: Path, memory_store) -> None:
        stats = await build(corpus_root, IngestionProfile(max_documents=2, worker_count=1)).run()

        assert stats.attempted == 2
        assert len(memory_store.documents) == 2

    @pytest.mark.asyncio
    async def test_document_cap_ignores_already_stored_files(
        self, build, tmp_path: Path, memory_store, readable_text: str
    ) -> None:
        root = _single_folder_corpus(tmp_path, {f"d{i}.pdf": readable_text for i in range(4)})
        await build(root, IngestionProfile(max_documents=2, worker_count=1)).run()
        assert set(memory_store.documents) == {"d0.pdf", "d1.pdf"}

        stats = await build(root, IngestionProfile(max_documents=2, resume=False)).run()

        assert stats.skipped == 2
        assert stats.processed == 2
        assert set(memory_store.documents) == {"d0.pdf", "d1.pdf", "d2.pdf", "d3.pdf"}

    @pytest.mark.asyncio
    async def test_stop_before_run_processes_nothing(self, build, corpus_root: Path, memory_store) -> None:
        coordinator = build(corpus_root)
        coordinator.request_stop()

        stats = await coordinator.run()

        assert coordinator.stop_requested
        assert stats.cancelled is True
        assert stats.attempted == 0
        assert memory_store.documents == {}

    @pytest.mark.asyncio
    async def test_continuous_mode_stops_when_idle(self, build, corpus_root: Path, memory_store) -> None:
        coordinator = build(corpus_root, IngestionProfile(continuous=True), rescan_interval=0.01)

        stats = await coordinator.run()

        assert stats.processed == 3
        assert stats.cancelled is False

    @pytest.mark.asyncio
    async def test_continuous_mode_does_not_retry_rejected_files(
        self, build, tmp_path: Path, memory_store, mock_ocr, readable_text: str, garbage_text: str
    ) -> None:
        mock_ocr.recognize_text.return_value = garbage_text
        root = _single_folder_corpus(tmp_path, {"ok.pdf": readable_text, "scan.pdf": garbage_text})
        coordinator = build(root, IngestionProfile(continuous=True), rescan_interval=0.01)

        stats = await asyncio.wait_for(coordinator.run(), timeout=5)

        assert stats.processed == 1
        assert stats.unreadable == 1
        assert stats.attempted == 2
        assert mock_ocr.recognize_text.await_count == 1
        assert set(memory_store.documents) == {"ok.pdf"}

    @pytest.mark.asyncio
    async def test_continuous_mode_without_resume_stops_after_one_pass_of_skips(
        self, build, corpus_root: Path, memory_store
    ) -> None:
        await build(corpus_root).run()
        coordinator = build(
            corpus_root, IngestionProfile(continuous=True, resume=False), rescan_interval=0.01
        )

        stats = await asyncio.wait_for(coordinator.run(), timeout=5)

        assert stats.skipped == 3
        assert stats.attempted == 3
        assert stats.processed == 0
        assert len(memory_store.documents) == 3


# ---------------------------------------------------------------------------
# Per-document outcomes
# ---------------------------------------------------------------------------


class TestOutcomes:
    @pytest.mark.asyncio
    async def test_garbage_without_ocr_needs_ocr(
        self, build, tmp_path: Path, memory_store, readable_text: str, garbage_text: str
    ) -> None:
        root = _single_folder_corpus(tmp_path, {"scan.pdf": garbage_text, "ok.pdf": readable_text})

        stats = await build(root, IngestionProfile(ocr_enabled=False)).run()

        assert stats.needs_ocr == 1
        assert stats.processed == 1
        assert stats.errors == 0
        assert set(memory_store.documents) == {"ok.pdf"}

    @pytest.mark.asyncio
    async def test_garbage_with_ocr_uses_ocr_text(
        self, build, tmp_path: Path, memory_store, readable_text: str, garbage_text: str
    ) -> None:
        root = _single_folder_corpus(tmp_path, {"scan.pdf": garbage_text})

        stats = await build(root).run()

        assert stats.ocr_used == 1
        assert stats.processed == 1
        assert memory_store.documents["scan.pdf"].content == readable_text

    @pytest.mark.asyncio
    async def test_unreadable_ocr_output(
        self, build, tmp_path: Path, memory_store, mock_ocr, garbage_text: str
    ) -> None:
        mock_ocr.recognize_text.return_value = garbage_text
        root = _single_folder_corpus(tmp_path, {"scan.pdf": garbage_text})

        stats = await build(root).run()

        assert stats.unreadable == 1
        assert stats.errors == 0
        assert memory_store.documents == {}

    @pytest.mark.asyncio
    async def test_extractor_exception_is_contained(self, build, corpus_root: Path) -> None:
        coordinator = build(corpus_root)
        coordinator._extractor = MagicMock(spec=ExtractionAdapter)
        coordinator._extractor.extract = AsyncMock(side_effect=RuntimeError("kaboom"))

        report = await coordinator.process_document(corpus_root / "DataSet 1" / "a.pdf")

        assert report.outcome is DocumentOutcome.EXTRACTION_FAILED
        assert "kaboom" in report.error

    @pytest.mark.asyncio
    async def test_duplicate_race_counts_as_skipped(self, build, corpus_root: Path, memory_store) -> None:
        memory_store.race_filenames.add("a.pdf")

        stats = await build(corpus_root).run()

        assert stats.skipped == 1
        assert stats.processed == 2
        assert stats.errors == 0

    @pytest.mark.asyncio
    async def test_chunk_insert_failure_is_persist_error(self, build, corpus_root: Path, memory_store) -> None:
        memory_store.fail_chunk_inserts = True

        stats = await build(corpus_root).run()

        assert stats.persist_errors == 3
        assert stats.processed == 0
        assert memory_store.documents == {}
        assert memory_store.chunks == []
        assert memory_store.mentions == []

    @pytest.mark.asyncio
    async def test_failed_write_is_retried_on_next_run(self, build, corpus_root: Path, memory_store) -> None:
        memory_store.fail_chunk_inserts = True
        await build(corpus_root).run()
        memory_store.fail_chunk_inserts = False

        stats = await build(corpus_root).run()

        assert stats.processed == 3
        assert stats.already_ingested == 0
        for doc in memory_store.documents.values():
            assert any(c.document_id == doc.id for c in memory_store.chunks)
        [mention] = memory_store.mentions
        assert mention.document_id == memory_store.documents["c.PDF"].id

    @pytest.mark.asyncio
    async def test_failed_embeddings_still_persist_chunks(
        self, build, corpus_root: Path, memory_store, fake_embedding_provider
    ) -> None:
        fake_embedding_provider.always_fail = True

        stats = await build(corpus_root).run()

        assert stats.processed == 3
        assert stats.chunks_created == len(memory_store.chunks) > 0
        assert stats.embeddings_created == 0
        assert all(not c.has_embedding for c in memory_store.chunks)


# ---------------------------------------------------------------------------
# Persistence caps
# ---------------------------------------------------------------------------


class TestCaps:
    @pytest.mark.asyncio
    async def test_mentions_capped_per_document(
        self, build, tmp_path: Path, memory_store, readable_text: str
    ) -> None:
        text = readable_text + " Bill Gates was there with him." * 60
        root = _single_folder_corpus(tmp_path, {"many.pdf": text})

        stats = await build(root).run()

        assert stats.mentions_extracted == 50
        assert len(memory_store.mentions) == 50

    @pytest.mark.asyncio
    async def test_content_capped_but_chunks_see_full_text(
        self, build, tmp_path: Path, memory_store, readable_text: str
    ) -> None:
        text = readable_text + " Jeffrey Epstein was named near the end."
        root = _single_folder_corpus(tmp_path, {"long.pdf": text})

        await build(root, max_content_chars=100).run()

        doc = memory_store.documents["long.pdf"]
        assert doc.content == text[:100]
        assert "Jeffrey Epstein" in " ".join(c.content for c in memory_store.chunks)
        assert [m.name for m in memory_store.mentions] == ["Jeffrey Epstein"]
