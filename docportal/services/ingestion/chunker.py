"""Sentence-preserving text chunking with overlapping windows.

Splits a document's text into chunks sized for embedding models
(~500 estimated tokens each) with a short word-level overlap between
consecutive chunks.

The chunking strategy has two goals:

1. **Sentence-preserving** -- Chunk boundaries always fall between
   sentences, never inside one.  A sentence that alone exceeds the
   budget becomes its own oversized chunk rather than being cut or
   dropped.

2. **Overlapping windows** -- Each chunk after the first starts with the
   trailing words of the previous chunk, so a name or phrase that
   straddles a boundary is still fully contained in at least one chunk.

Tokens are estimated as ``ceil(characters / 4)``; no tokenizer is loaded.
"""

from __future__ import annotations

import math
import re

import structlog

logger = structlog.get_logger(logger_name=__name__)

# Common abbreviations that should NOT trigger a sentence split.
# "Mr. Epstein" or "Little St. James" stays one sentence.
_ABBREVIATIONS = (
    "Dr", "Mr", "Mrs", "Ms", "Prof", "Jr", "Sr", "St", "Ave", "Blvd",
    "Vol", "No", "vs", "etc", "approx", "dept", "est", "govt", "inc", "ltd",
    "Co", "Inc", "Ltd", "Corp", "Gov", "Sen", "Rep", "Hon", "Esq",
)
_ABBREVIATION_RE = re.compile(r"\b(" + "|".join(_ABBREVIATIONS) + r")\.")
_SENTENCE_END_RE = re.compile(r"[.!?](?:\s|$)")
_MASK = "\x00"


def estimate_tokens(text: str) -> int:
    """Approximate token count: one token per four characters, rounded up."""
    return math.ceil(len(text) / 4)


class TextChunker:
    """Splits text into overlapping chunks that never split a sentence.

    The algorithm works in two phases:
    1. Split text into sentences on ``.``, ``!`` or ``?`` followed by
       whitespace (abbreviation-aware).
    2. Greedily accumulate sentences until the next one would push the
       chunk over ``chunk_size`` tokens, then close the chunk and seed the
       next one with the previous chunk's trailing words.

    Parameters
    ----------
    chunk_size:
        Maximum estimated token count per chunk (default 500).
    overlap:
        Overlap budget in tokens (default 50).  Half of it, rounded up,
        is carried over as whole words.
    min_chunk_chars:
        Chunks of this many characters or fewer are discarded as noise
        (default 50).
    """

    def __init__(self, chunk_size: int = 500, overlap: int = 50, min_chunk_chars: int = 50) -> None:
        if chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")
        if overlap < 0:
            raise ValueError("overlap must be >= 0")
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._min_chunk_chars = min_chunk_chars

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap_words(self) -> int:
        return math.ceil(self._overlap / 2)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str) -> list[str]:
        """Split *text* into ordered chunk strings.

        Empty or whitespace-only input returns an empty list, as does text
        whose every chunk is shorter than ``min_chunk_chars``.
        """
        if not text or not text.strip():
            return []

        sentences = self.split_sentences(text)
        raw_chunks = self._accumulate_chunks(sentences)
        chunks = [c for c in raw_chunks if len(c) > self._min_chunk_chars]

        logger.debug(
            "chunking_complete",
            sentences=len(sentences),
            num_chunks=len(chunks),
            dropped=len(raw_chunks) - len(chunks),
        )
        return chunks

    # ------------------------------------------------------------------
    # Sentence splitting
    # ------------------------------------------------------------------

    @staticmethod
    def split_sentences(text: str) -> list[str]:
        """Split *text* at sentence boundaries while respecting abbreviations.

        Periods after known abbreviations are masked with a same-length
        placeholder so match indices stay aligned with the original text.
        """
        masked = _ABBREVIATION_RE.sub(lambda m: m.group(1) + _MASK, text)

        sentences: list[str] = []
        last = 0
        for match in _SENTENCE_END_RE.finditer(masked):
            end = match.end()
            sentence = text[last:end].strip()
            if sentence:
                sentences.append(sentence)
            last = end

        remainder = text[last:].strip()
        if remainder:
            sentences.append(remainder)

        return sentences

    # ------------------------------------------------------------------
    # Chunk accumulation
    # ------------------------------------------------------------------

    def _accumulate_chunks(self, sentences: list[str]) -> list[str]:
        """Greedily pack sentences into chunks of at most ``chunk_size`` tokens."""
        chunks: list[str] = []
        current = ""

        for sentence in sentences:
            candidate = f"{current} {sentence}" if current else sentence
            if current and estimate_tokens(candidate) > self._chunk_size:
                chunks.append(current)
                current = self._seed_with_overlap(current, sentence)
            else:
                current = candidate

        if current:
            chunks.append(current)
        return chunks

    def _seed_with_overlap(self, previous: str, sentence: str) -> str:
        """Start a new chunk with the tail words of *previous* followed by *sentence*.

        The carried-over tail shrinks from the front when the full tail
        would push the new chunk over budget; a sentence that fills the
        budget on its own starts with no overlap at all.
        """
        tail = previous.split()[-self.overlap_words :] if self.overlap_words else []
        while tail:
            seeded = " ".join(tail) + " " + sentence
            if estimate_tokens(seeded) <= self._chunk_size:
                return seeded
            tail = tail[1:]
        return sentence
