"""codesearch ingest pipeline: discovery, chunking, batched storage."""

from codesearch.ingest.base import BaseChunker
from codesearch.ingest.batch import BatchIngestor, chunk_id
from codesearch.ingest.chunker import StreamingChunker
from codesearch.ingest.discovery import discover_files
from codesearch.ingest.patterns import (
    DEFAULT_EXCLUDE_PATTERNS,
    DEFAULT_INCLUDE_PATTERNS,
    matches_pattern,
)

__all__ = [
    "BaseChunker",
    "BatchIngestor",
    "DEFAULT_EXCLUDE_PATTERNS",
    "DEFAULT_INCLUDE_PATTERNS",
    "StreamingChunker",
    "chunk_id",
    "discover_files",
    "matches_pattern",
]
