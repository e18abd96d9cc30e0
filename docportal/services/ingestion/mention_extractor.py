"""Notable-name mention extraction.

Scans a document's text for every name in a fixed catalog and records
each occurrence with a window of surrounding context.  Matching is a
plain case-insensitive substring search: no tokenization, no fuzzy
matching, no entity disambiguation.
"""

from __future__ import annotations

from typing import Iterable

import structlog

from docportal.models.corpus import MentionMatch

logger = structlog.get_logger(logger_name=__name__)


class MentionExtractor:
    """Finds occurrences of catalog names in text.

    Parameters
    ----------
    names:
        Display names to search for.  Blank entries are ignored.
    window:
        Characters of context captured on each side of a match.
    """

    def __init__(self, names: Iterable[str], window: int = 100) -> None:
        self._names = [n.strip() for n in names if n and n.strip()]
        self._window = window

    @property
    def names(self) -> list[str]:
        return list(self._names)

    def extract(self, text: str) -> list[MentionMatch]:
        """Return every occurrence of every catalog name in *text*.

        Results are grouped by catalog order, then by position.  The
        search restarts one character past each match start, so
        overlapping occurrences are all reported.  The caller applies any
        per-document cap.
        """
        if not text:
            return []

        lowered = text.lower()
        matches: list[MentionMatch] = []

        for name in self._names:
            needle = name.lower()
            idx = lowered.find(needle)
            while idx != -1:
                start = max(0, idx - self._window)
                end = min(len(text), idx + len(needle) + self._window)
                matches.append(
                    MentionMatch(
                        name=name,
                        normalized_name=needle,
                        context=text[start:end].strip(),
                        position=idx,
                    )
                )
                idx = lowered.find(needle, idx + 1)

        if matches:
            logger.debug(
                "mentions_found",
                total=len(matches),
                distinct=len({m.normalized_name for m in matches}),
            )
        return matches
