"""Query engine: semantic search and file reconstruction over a collection.

Ranking is whatever the store returns; nothing here re-sorts hits.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from codesearch.db.models import ChunkMetadata
from codesearch.db.store import Collection
from codesearch.logging import get_logger


@dataclass
class SearchHit:
    """One ranked match.

    ``similarity`` is ``1 - distance`` and is not clamped, so it can be
    negative for distant matches.
    """

    document: str
    metadata: ChunkMetadata
    distance: float

    @property
    def similarity(self) -> float:
        return 1.0 - self.distance

    @property
    def similarity_text(self) -> str:
        return format_similarity(self.distance)


@dataclass
class SearchResults:
    query: str
    hits: list[SearchHit] = field(default_factory=list)
    file_type: str | None = None

    def __len__(self) -> int:
        return len(self.hits)


@dataclass
class FileContent:
    """A file rebuilt from its stored chunks, in ``chunk_index`` order."""

    file_path: str
    content: str
    chunk_count: int
    project_name: str | None
    file_type: str


def format_similarity(distance: float | None) -> str:
    """Similarity for display: ``1 - distance`` to three decimals.

    A missing distance counts as 0.
    """
    return f"{1.0 - (distance or 0.0):.3f}"


def normalize_file_type(file_type: str) -> str:
    """Strip one leading dot, so ``.py`` and ``py`` select the same records."""
    return file_type[1:] if file_type.startswith(".") else file_type


class QueryEngine:
    """Read side of the pipeline over one collection.

    Args:
        collection: Collection to query.
        logger: structlog logger; defaults to the ``search.query`` logger.
    """

    def __init__(self, collection: Collection, logger: Any = None) -> None:
        self._collection = collection
        self._log = logger or get_logger("search.query")

    def search(self, query: str, limit: int = 10, project_filter: str | None = None) -> SearchResults:
        where = {"project_id": project_filter} if project_filter else None
        hits = self._query(query, limit, where)
        self._log.info("search_completed", query=query, limit=limit, project=project_filter, hits=len(hits))
        return SearchResults(query=query, hits=hits)

    def search_by_file_type(
        self, file_type: str, query: str | None = None, limit: int = 10
    ) -> SearchResults:
        """Search records of one file type; the query text defaults to the type."""
        file_type = normalize_file_type(file_type)
        text = query or file_type
        hits = self._query(text, limit, {"file_type": file_type})
        self._log.info("search_completed", query=text, limit=limit, file_type=file_type, hits=len(hits))
        return SearchResults(query=text, hits=hits, file_type=file_type)

    def get_file_content(self, file_path: str) -> FileContent | None:
        """Rebuild *file_path* from all records stored under that exact path.

        Records from every project sharing the path are included. Returns None
        when nothing is stored for it.
        """
        result = self._collection.get(where={"file_path": file_path})
        if not result.ids:
            return None

        documents = result.documents or []
        metadatas = result.metadatas or []
        ordered = sorted(zip(documents, metadatas), key=lambda pair: pair[1].chunk_index or 0)
        first = ordered[0][1]
        return FileContent(
            file_path=file_path,
            content="\n".join(doc for doc, _ in ordered),
            chunk_count=len(ordered),
            project_name=first.project_name,
            file_type=first.file_type,
        )

    def _query(self, text: str, limit: int, where: dict[str, Any] | None) -> list[SearchHit]:
        if limit < 1:
            raise ValueError(f"limit must be >= 1, got {limit}")
        raw = self._collection.query(query_texts=[text], n_results=limit, where=where)
        if not raw.documents or not raw.documents[0]:
            return []
        distances = raw.distances[0] if raw.distances else []
        return [
            SearchHit(
                document=doc,
                metadata=meta,
                distance=(distances[i] if i < len(distances) and distances[i] is not None else 0.0),
            )
            for i, (doc, meta) in enumerate(zip(raw.documents[0], raw.metadatas[0]))
        ]
