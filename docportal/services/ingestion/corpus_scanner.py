"""Source-folder and PDF discovery under the corpus root.

Source folders are the root's immediate children whose names match one
of the configured patterns (``DataSet 1``, ``VOL00012``, ``dataset9-part2``).
PDFs are found at any depth beneath a source folder with an explicit
stack, so very deep trees cannot exhaust the call stack.  Unreadable
directories are skipped.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Iterable

import structlog

from docportal.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)


class CorpusScanner:
    """Discovers source folders and the PDFs inside them.

    Parameters
    ----------
    root:
        Directory whose immediate children are candidate source folders.
    patterns:
        Regular expressions matched (``re.search``) against folder names.
        Inline flags such as ``(?i)`` are honoured.
    """

    def __init__(self, root: str | Path, patterns: Iterable[str]) -> None:
        self._root = Path(root).expanduser()
        try:
            self._patterns = [re.compile(p) for p in patterns]
        except re.error as exc:
            raise ConfigurationError(f"Invalid source folder pattern: {exc}") from exc

    @property
    def root(self) -> Path:
        return self._root

    def check_root(self) -> None:
        """Raise :class:`ConfigurationError` if the root cannot be listed."""
        if not self._root.is_dir():
            raise ConfigurationError(f"Corpus root {self._root} is not a directory")
        try:
            with os.scandir(self._root):
                pass
        except OSError as exc:
            raise ConfigurationError(f"Corpus root {self._root} is not readable: {exc}") from exc

    def matches(self, name: str) -> bool:
        return any(p.search(name) for p in self._patterns)

    def find_source_folders(self) -> list[Path]:
        """Return matching immediate subdirectories of the root, sorted by name."""
        try:
            with os.scandir(self._root) as entries:
                folders = [
                    Path(entry.path)
                    for entry in entries
                    if entry.is_dir() and self.matches(entry.name)
                ]
        except OSError as exc:
            logger.warning("corpus_root_unreadable", root=str(self._root), error=str(exc))
            return []
        return sorted(folders, key=lambda p: p.name)

    def find_pdfs(self, folder: Path) -> list[Path]:
        """Return every ``.pdf`` file beneath *folder*, at any depth, sorted by path."""
        pdfs: list[Path] = []
        stack = [folder]
        while stack:
            current = stack.pop()
            try:
                with os.scandir(current) as entries:
                    for entry in entries:
                        if entry.is_dir(follow_symlinks=False):
                            stack.append(Path(entry.path))
                        elif entry.is_file() and entry.name.lower().endswith(".pdf"):
                            pdfs.append(Path(entry.path))
            except OSError as exc:
                logger.debug("directory_skipped", path=str(current), error=str(exc))
        return sorted(pdfs)

    def scan(self, folder_names: Iterable[str] | None = None) -> dict[str, list[Path]]:
        """Map each source folder name to its PDFs.

        Parameters
        ----------
        folder_names:
            Restrict the scan to these folder names.  ``None`` or empty
            means every source folder.
        """
        wanted = set(folder_names or ())
        result: dict[str, list[Path]] = {}
        for folder in self.find_source_folders():
            if wanted and folder.name not in wanted:
                continue
            result[folder.name] = self.find_pdfs(folder)
        logger.info(
            "corpus_scanned",
            root=str(self._root),
            folders=len(result),
            pdfs=sum(len(v) for v in result.values()),
        )
        return result
