"""Heuristic readability gate for extracted text.

Decides whether text pulled from a PDF (directly or via OCR) is usable
prose or noise.  OCR garbage, binary junk and non-English scans produce
either very few common English function words or a low density of
alphanumeric characters; both are cheap to measure.

This is a tunable filter, not a language model.  It will reject some
terse but legitimate pages (tables, exhibit lists) and accept some noise.
The verdict is a pure function of the text and the thresholds.
"""

from __future__ import annotations

import re

# The ~100 most frequent English words plus common auxiliaries.  "a" and
# "i" are listed for completeness but never match: tokens are >= 2 letters.
COMMON_WORDS: frozenset[str] = frozenset(
    {
        "the", "be", "to", "of", "and", "a", "in", "that", "have", "i",
        "it", "for", "not", "on", "with", "he", "as", "you", "do", "at",
        "this", "but", "his", "by", "from", "they", "we", "say", "her", "she",
        "or", "an", "will", "my", "one", "all", "would", "there", "their", "what",
        "so", "up", "out", "if", "about", "who", "get", "which", "go", "me",
        "when", "make", "can", "like", "time", "no", "just", "him", "know", "take",
        "people", "into", "year", "your", "good", "some", "could", "them", "see", "other",
        "than", "then", "now", "look", "only", "come", "its", "over", "think", "also",
        "back", "after", "use", "two", "how", "our", "work", "first", "well", "way",
        "even", "new", "want", "because", "any", "these", "give", "day", "most", "us",
        "is", "was", "are", "been", "has", "had", "were", "said", "did", "made",
    }
)

_WORD_RE = re.compile(r"[a-z]{2,}")
_ALNUM_RE = re.compile(r"[a-zA-Z0-9]")

_MIN_WORDS = 5


class ReadabilityClassifier:
    """Accepts text only if it is long enough, wordy enough and clean enough.

    Parameters
    ----------
    min_text_length:
        Minimum character count.
    min_word_ratio:
        Minimum fraction of word tokens that are common English words.
    min_alnum_ratio:
        Minimum fraction of all characters that are ASCII letters or digits.
    """

    def __init__(
        self,
        min_text_length: int = 50,
        min_word_ratio: float = 0.2,
        min_alnum_ratio: float = 0.4,
    ) -> None:
        self._min_text_length = min_text_length
        self._min_word_ratio = min_word_ratio
        self._min_alnum_ratio = min_alnum_ratio

    def is_readable(self, text: str | None) -> bool:
        """Return ``True`` if *text* passes every threshold."""
        if not text or len(text) < self._min_text_length:
            return False

        words = _WORD_RE.findall(text.lower())
        if len(words) < _MIN_WORDS:
            return False

        return (
            self.common_word_ratio(words) >= self._min_word_ratio
            and self.alnum_ratio(text) >= self._min_alnum_ratio
        )

    @staticmethod
    def common_word_ratio(words: list[str]) -> float:
        if not words:
            return 0.0
        common = sum(1 for w in words if w in COMMON_WORDS)
        return common / len(words)

    @staticmethod
    def alnum_ratio(text: str) -> float:
        if not text:
            return 0.0
        return len(_ALNUM_RE.findall(text)) / len(text)
