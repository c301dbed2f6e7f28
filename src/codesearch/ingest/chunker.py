"""Streaming line-based chunker.

Lines are accumulated into a buffer until the next line would push it past
``max_chunk_size``; the buffer is then emitted and restarted with that line.
A line is never split, so a single line longer than ``max_chunk_size`` becomes
its own chunk. Lines longer than ``max_line_length`` (minified bundles, data
blobs) are dropped entirely.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

from codesearch.db.models import Chunk
from codesearch.ingest.base import BaseChunker
from codesearch.logging import get_logger


class StreamingChunker(BaseChunker):
    """Chunk a file lazily, one line at a time.

    Each call to ``chunk()`` re-reads the file from the start. Files are
    decoded as UTF-8 with undecodable bytes replaced. Read errors propagate
    out of the iterator.
    """

    def __init__(
        self,
        max_chunk_size: int = 1500,
        max_line_length: int = 10_000,
        logger: Any = None,
    ) -> None:
        super().__init__(max_chunk_size=max_chunk_size)
        if max_line_length < 1:
            raise ValueError("max_line_length must be >= 1")
        self.max_line_length = max_line_length
        self._log = logger or get_logger("ingest.chunker")

    def chunk(self, file_path: str, relative_path: str, file_type: str) -> Iterator[Chunk]:
        buffer = ""
        chunk_index = 0
        line_count = 0

        with open(file_path, encoding="utf-8", errors="replace") as fh:
            for raw in fh:
                line_count += 1
                line = raw.rstrip("\n")

                if len(line) > self.max_line_length:
                    self._log.info(
                        "line_skipped",
                        file_path=relative_path,
                        line_number=line_count,
                        length=len(line),
                    )
                    continue

                sep = "\n" if buffer else ""
                if buffer and len(buffer) + len(sep) + len(line) > self.max_chunk_size:
                    # A whitespace-only buffer is discarded without using an index.
                    if buffer.strip():
                        yield Chunk(
                            content=buffer.strip(),
                            file_path=relative_path,
                            file_type=file_type,
                            chunk_index=chunk_index,
                        )
                        chunk_index += 1
                    buffer = line
                else:
                    buffer += sep + line

        if buffer.strip():
            yield Chunk(
                content=buffer.strip(),
                file_path=relative_path,
                file_type=file_type,
                chunk_index=chunk_index,
            )
            chunk_index += 1

        self._log.debug("file_chunked", file_path=relative_path, lines=line_count, chunks=chunk_index)
