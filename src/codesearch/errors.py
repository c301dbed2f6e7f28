"""Exception hierarchy for the indexing and retrieval pipeline."""

from __future__ import annotations


class CodeSearchError(Exception):
    """Base class for operation-level failures rendered back to the caller."""


class PathAccessError(CodeSearchError):
    """Raised when a project path is missing, relative, or not a directory.

    Raised before any chunking begins, so no partial state is written.
    """


class UnknownToolError(CodeSearchError):
    """Raised when a transport asks for an operation that does not exist."""


class BatchWriteError(CodeSearchError):
    """Raised when a batch cannot be written to the vector store.

    Batches written before the failing one stay persisted; there is no
    compensating delete.

    Attributes:
        batch_number: 1-based number of the failing batch.
        total_batches: Number of batches planned for the run.
    """

    def __init__(self, batch_number: int, total_batches: int, cause: BaseException) -> None:
        self.batch_number = batch_number
        self.total_batches = total_batches
        super().__init__(
            f"Failed to store batch {batch_number}/{total_batches}: {cause}"
        )
