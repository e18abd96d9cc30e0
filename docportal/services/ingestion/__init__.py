"""Document ingestion pipeline for the docportal research corpus.

Pipeline stages per document: **extract -> gate -> chunk -> embed -> store**.

1. **Scan** (corpus_scanner.py / CorpusScanner) -- Finds source folders
   under the corpus root and every PDF beneath them.

2. **Extract** (extraction.py / ExtractionAdapter) -- Reads the PDF text
   layer and falls back to rasterize + OCR when the text is unusable.

3. **Gate** (readability.py / ReadabilityClassifier) -- Heuristic check
   that rejects OCR garbage and binary noise.

4. **Chunk** (chunker.py / TextChunker) -- Splits accepted text into
   ~500-token overlapping windows that never split a sentence.

5. **Embed** (embedding_client.py / EmbeddingClient) -- Batched provider
   calls with one retry; failed batches degrade to empty vectors.

6. **Mentions** (mention_extractor.py / MentionExtractor) -- Notable-name
   occurrences with surrounding context.

The IngestionCoordinator (coordinator.py) runs all stages over the whole
corpus, resumably and with a bounded worker pool.
"""

from docportal.services.ingestion.chunker import TextChunker, estimate_tokens
from docportal.services.ingestion.coordinator import IngestionCoordinator
from docportal.services.ingestion.corpus_scanner import CorpusScanner
from docportal.services.ingestion.embedding_client import EmbeddingClient
from docportal.services.ingestion.extraction import ExtractionAdapter, temp_prefix_for
from docportal.services.ingestion.mention_extractor import MentionExtractor
from docportal.services.ingestion.progress import ProgressTracker, format_duration
from docportal.services.ingestion.readability import COMMON_WORDS, ReadabilityClassifier

__all__ = [
    "COMMON_WORDS",
    "CorpusScanner",
    "EmbeddingClient",
    "ExtractionAdapter",
    "IngestionCoordinator",
    "MentionExtractor",
    "ProgressTracker",
    "ReadabilityClassifier",
    "TextChunker",
    "estimate_tokens",
    "format_duration",
    "temp_prefix_for",
]
