"""Poppler ``pdftoppm`` rasterizer.

Renders page 1 of a PDF to PNG by running ``pdftoppm`` as an asyncio
subprocess, so other workers keep making progress while it runs.  A
conversion that exceeds its timeout is killed and reported as a failure.
"""

from __future__ import annotations

import asyncio
import shutil
from pathlib import Path

import structlog

from docportal.interfaces.ocr_provider import IRasterizer

logger = structlog.get_logger(logger_name=__name__)


class PdftoppmRasterizer(IRasterizer):
    """Rasterizer backed by the poppler-utils ``pdftoppm`` binary."""

    def __init__(self, binary: str = "pdftoppm") -> None:
        self._binary = binary

    async def rasterize(
        self,
        pdf_path: Path,
        output_prefix: Path,
        dpi: int,
        timeout: float,
    ) -> Path | None:
        output_prefix.parent.mkdir(parents=True, exist_ok=True)
        args = [
            "-png",
            "-f", "1",
            "-l", "1",
            "-r", str(dpi),
            str(pdf_path),
            str(output_prefix),
        ]

        try:
            proc = await asyncio.create_subprocess_exec(
                self._binary,
                *args,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.warning("rasterize_spawn_failed", binary=self._binary, error=str(exc))
            return None

        try:
            _, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            proc.kill()
            await proc.wait()
            logger.warning(
                "rasterize_timeout",
                pdf=pdf_path.name,
                timeout_s=timeout,
            )
            return None

        if proc.returncode != 0:
            logger.warning(
                "rasterize_failed",
                pdf=pdf_path.name,
                returncode=proc.returncode,
                stderr=(stderr or b"").decode(errors="replace")[:200],
            )
            return None

        return self._find_output(output_prefix)

    def get_provider_name(self) -> str:
        return "pdftoppm"

    def is_available(self) -> bool:
        return shutil.which(self._binary) is not None

    @staticmethod
    def _find_output(output_prefix: Path) -> Path | None:
        """Locate the rendered page.

        ``pdftoppm`` zero-pads the page suffix to the width of the page
        count (``-1``, ``-01``, ``-001``), so any ``<prefix>-<digits>.png``
        is accepted, as is a bare ``<prefix>.png``.
        """
        for candidate in sorted(output_prefix.parent.glob(f"{output_prefix.name}-*.png")):
            suffix = candidate.stem[len(output_prefix.name) + 1 :]
            if suffix.isdigit():
                return candidate
        bare = output_prefix.with_name(f"{output_prefix.name}.png")
        if bare.exists():
            return bare
        return None
