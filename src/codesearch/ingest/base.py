"""Base chunker interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator

from codesearch.db.models import Chunk


class BaseChunker(ABC):
    """Abstract base for file chunkers.

    Subclasses implement ``chunk()`` as a generator so a file is never held
    in memory as a whole.
    """

    def __init__(self, max_chunk_size: int = 1500) -> None:
        if max_chunk_size < 1:
            raise ValueError("max_chunk_size must be >= 1")
        self.max_chunk_size = max_chunk_size

    @abstractmethod
    def chunk(self, file_path: str, relative_path: str, file_type: str) -> Iterator[Chunk]:
        """Yield Chunk objects for the file at *file_path*.

        Args:
            file_path: Absolute path to read.
            relative_path: Path relative to the project root, stored on each chunk.
            file_type: Extension without the dot, stored on each chunk.

        Yields:
            Chunks with sequential ``chunk_index`` starting at 0.
        """

    @staticmethod
    def file_type_for(path: str) -> str:
        """Extension of *path* without the dot; ``"txt"`` when there is none."""
        name = path.replace("\\", "/").rsplit("/", 1)[-1]
        stem, dot, ext = name.rpartition(".")
        if not dot or not stem or not ext:
            return "txt"
        return ext
