"""Batched writes of tagged chunks into a collection."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import Any

from codesearch.db.models import Chunk
from codesearch.db.store import Collection
from codesearch.errors import BatchWriteError
from codesearch.logging import get_logger


def chunk_id(project_id: str, sequence: int) -> str:
    """Store id of the chunk at position *sequence* in an indexing run."""
    return f"{project_id}_chunk_{sequence}"


class BatchIngestor:
    """Write chunks to a collection in contiguous, sequential batches.

    Ids are ``{project_id}_chunk_{n}`` where *n* is the chunk's position in
    the whole run, so re-indexing a project overwrites its records by id.
    Records past the end of a shorter re-run are left in place.

    Args:
        batch_size: Chunks per ``Collection.add()`` call.
        logger: structlog logger; defaults to the ``ingest.batch`` logger.
    """

    def __init__(self, batch_size: int = 100, logger: Any = None) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.batch_size = batch_size
        self._log = logger or get_logger("ingest.batch")

    def ingest(
        self,
        collection: Collection,
        chunks: Sequence[Chunk],
        project_id: str,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> int:
        """Store *chunks* and return the number of records written.

        Args:
            collection: Target collection; embeds documents on ``add()``.
            chunks: Chunks already tagged with project metadata.
            project_id: Prefix for the generated ids.
            on_batch: Called with ``(batch_number, total_batches)`` after each
                batch is stored.

        Raises:
            BatchWriteError: On the first failing batch. Earlier batches stay
                persisted; later ones are not attempted.
        """
        total = math.ceil(len(chunks) / self.batch_size)
        if total == 0:
            return 0

        self._log.info("ingest_started", project_id=project_id, chunks=len(chunks), batches=total)
        written = 0
        for offset in range(0, len(chunks), self.batch_size):
            batch = chunks[offset : offset + self.batch_size]
            batch_number = offset // self.batch_size + 1
            ids = [chunk_id(project_id, offset + i) for i in range(len(batch))]
            try:
                collection.add(
                    ids=ids,
                    documents=[c.content for c in batch],
                    metadatas=[c.metadata() for c in batch],
                )
            except Exception as exc:
                self._log.error(
                    "batch_store_failed",
                    project_id=project_id,
                    batch=batch_number,
                    total=total,
                    error=str(exc),
                )
                raise BatchWriteError(batch_number, total, exc) from exc

            written += len(batch)
            self._log.info("batch_stored", project_id=project_id, batch=batch_number, total=total)
            if on_batch is not None:
                on_batch(batch_number, total)
        return written
