"""Unit tests for the pdftoppm rasterizer and the Tesseract OCR provider."""

from __future__ import annotations

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import pytesseract
from PIL import Image

from docportal.providers.ocr.tesseract_provider import TesseractOCRProvider
from docportal.providers.rasterizer.pdftoppm_rasterizer import PdftoppmRasterizer

_SPAWN_PATH = "docportal.providers.rasterizer.pdftoppm_rasterizer.asyncio.create_subprocess_exec"
_TESSERACT_PATH = "docportal.providers.ocr.tesseract_provider.pytesseract"


def _process(returncode: int = 0, stderr: bytes = b"") -> MagicMock:
    proc = MagicMock()
    proc.returncode = returncode
    proc.communicate = AsyncMock(return_value=(b"", stderr))
    proc.kill = MagicMock()
    proc.wait = AsyncMock(return_value=returncode)
    return proc


# ======================================================================
# pdftoppm rasterizer
# ======================================================================


class TestPdftoppmRasterizer:
    @pytest.mark.asyncio
    async def test_renders_first_page(self, tmp_path: Path) -> None:
        prefix = tmp_path / "ocr" / "scan_pdf_abcd1234"
        prefix.parent.mkdir()
        expected = prefix.with_name(f"{prefix.name}-1.png")
        expected.write_bytes(b"png")

        spawn = AsyncMock(return_value=_process())
        with patch(_SPAWN_PATH, spawn):
            result = await PdftoppmRasterizer().rasterize(tmp_path / "scan.pdf", prefix, 300, 60.0)

        assert result == expected
        args = spawn.await_args.args
        assert args[0] == "pdftoppm"
        assert list(args[1:9]) == ["-png", "-f", "1", "-l", "1", "-r", "300", str(tmp_path / "scan.pdf")]
        assert args[9] == str(prefix)

    @pytest.mark.asyncio
    async def test_zero_padded_and_bare_outputs(self, tmp_path: Path) -> None:
        padded = tmp_path / "p-001.png"
        padded.write_bytes(b"png")
        with patch(_SPAWN_PATH, AsyncMock(return_value=_process())):
            assert await PdftoppmRasterizer().rasterize(tmp_path / "x.pdf", tmp_path / "p", 150, 5) == padded

        bare = tmp_path / "q.png"
        bare.write_bytes(b"png")
        with patch(_SPAWN_PATH, AsyncMock(return_value=_process())):
            assert await PdftoppmRasterizer().rasterize(tmp_path / "x.pdf", tmp_path / "q", 150, 5) == bare

    @pytest.mark.asyncio
    async def test_nonzero_exit_returns_none(self, tmp_path: Path) -> None:
        with patch(_SPAWN_PATH, AsyncMock(return_value=_process(returncode=1, stderr=b"Syntax Error"))):
            assert await PdftoppmRasterizer().rasterize(tmp_path / "x.pdf", tmp_path / "p", 300, 5) is None

    @pytest.mark.asyncio
    async def test_missing_output_returns_none(self, tmp_path: Path) -> None:
        with patch(_SPAWN_PATH, AsyncMock(return_value=_process())):
            assert await PdftoppmRasterizer().rasterize(tmp_path / "x.pdf", tmp_path / "p", 300, 5) is None

    @pytest.mark.asyncio
    async def test_timeout_kills_process(self, tmp_path: Path) -> None:
        proc = _process()
        proc.communicate = AsyncMock(side_effect=asyncio.TimeoutError)
        with patch(_SPAWN_PATH, AsyncMock(return_value=proc)):
            result = await PdftoppmRasterizer().rasterize(tmp_path / "x.pdf", tmp_path / "p", 300, 0.01)

        assert result is None
        proc.kill.assert_called_once()
        proc.wait.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_missing_binary_returns_none(self, tmp_path: Path) -> None:
        with patch(_SPAWN_PATH, AsyncMock(side_effect=FileNotFoundError("pdftoppm"))):
            assert await PdftoppmRasterizer().rasterize(tmp_path / "x.pdf", tmp_path / "p", 300, 5) is None

    def test_is_available(self) -> None:
        with patch("docportal.providers.rasterizer.pdftoppm_rasterizer.shutil.which", return_value=None):
            assert PdftoppmRasterizer().is_available() is False
        with patch(
            "docportal.providers.rasterizer.pdftoppm_rasterizer.shutil.which",
            return_value="/usr/bin/pdftoppm",
        ):
            assert PdftoppmRasterizer().is_available() is True


# ======================================================================
# Tesseract OCR provider
# ======================================================================


@pytest.fixture
def page_image(tmp_path: Path) -> Path:
    path = tmp_path / "page-1.png"
    Image.new("RGB", (20, 20), "white").save(path)
    return path


class TestTesseractOCRProvider:
    @pytest.mark.asyncio
    async def test_recognize_text(self, page_image: Path) -> None:
        with patch(f"{_TESSERACT_PATH}.image_to_string", return_value="Hello world") as ocr:
            text = await TesseractOCRProvider().recognize_text(page_image, "eng", 5.0)

        assert text == "Hello world"
        assert ocr.call_args.kwargs["lang"] == "eng"
        assert ocr.call_args.kwargs["timeout"] == 5.0

    @pytest.mark.asyncio
    async def test_timeout_returns_empty_string(self, page_image: Path) -> None:
        with patch(
            f"{_TESSERACT_PATH}.image_to_string",
            side_effect=RuntimeError("Tesseract process timeout"),
        ):
            assert await TesseractOCRProvider().recognize_text(page_image, "eng", 0.1) == ""

    @pytest.mark.asyncio
    async def test_missing_image_returns_empty_string(self, tmp_path: Path) -> None:
        assert await TesseractOCRProvider().recognize_text(tmp_path / "none.png", "eng", 5.0) == ""

    def test_is_available(self) -> None:
        with patch(
            f"{_TESSERACT_PATH}.get_tesseract_version",
            side_effect=pytesseract.TesseractNotFoundError(),
        ):
            assert TesseractOCRProvider().is_available() is False
        with patch(f"{_TESSERACT_PATH}.get_tesseract_version", return_value="5.3.0"):
            assert TesseractOCRProvider().is_available() is True
