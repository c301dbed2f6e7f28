"""Domain models for chunks, stored-record metadata, and store results."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any


@dataclass
class Chunk:
    """A bounded slice of one file's text, the unit that gets indexed.

    ``chunk_index`` is per file; the store id is assigned later from the
    chunk's position in the whole indexing run.
    """

    content: str
    file_path: str
    file_type: str
    chunk_index: int
    project_id: str | None = None
    project_name: str | None = None
    project_path: str | None = None
    source_type: str | None = None
    indexed_at: str | None = None

    def with_project(
        self,
        project_id: str,
        project_name: str,
        project_path: str,
        indexed_at: str,
        source_type: str = "local",
    ) -> Chunk:
        """Return a copy tagged with run-constant project metadata."""
        return replace(
            self,
            project_id=project_id,
            project_name=project_name,
            project_path=project_path,
            source_type=source_type,
            indexed_at=indexed_at,
        )

    def metadata(self) -> ChunkMetadata:
        """Every field except ``content``, as a store-ready record."""
        return ChunkMetadata(
            file_path=self.file_path,
            file_type=self.file_type,
            chunk_index=self.chunk_index,
            project_id=self.project_id,
            project_name=self.project_name,
            project_path=self.project_path,
            source_type=self.source_type,
            indexed_at=self.indexed_at,
        )


_REQUIRED_STR = ("file_path", "file_type")
_OPTIONAL_STR = ("project_id", "project_name", "project_path", "source_type", "indexed_at")


@dataclass(frozen=True)
class ChunkMetadata:
    """Metadata persisted next to each stored document.

    ``file_path``, ``file_type`` and ``chunk_index`` are required; the project
    fields are optional so records written without a project are still
    representable (the project listing skips them).
    """

    file_path: str
    file_type: str
    chunk_index: int
    project_id: str | None = None
    project_name: str | None = None
    project_path: str | None = None
    source_type: str | None = None
    indexed_at: str | None = None

    def __post_init__(self) -> None:
        for name in _REQUIRED_STR:
            if not isinstance(getattr(self, name), str):
                raise ValueError(f"metadata field '{name}' must be a string")
        if isinstance(self.chunk_index, bool) or not isinstance(self.chunk_index, int):
            raise ValueError("metadata field 'chunk_index' must be an integer")
        for name in _OPTIONAL_STR:
            value = getattr(self, name)
            if value is not None and not isinstance(value, str):
                raise ValueError(f"metadata field '{name}' must be a string or None")

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChunkMetadata:
        """Build metadata from a mapping, rejecting unknown or missing keys.

        Raises:
            ValueError: On unknown keys, missing required keys, or wrong types.
        """
        known = set(cls.field_names())
        unknown = sorted(set(data) - known)
        if unknown:
            raise ValueError(f"Unknown metadata keys: {', '.join(unknown)}")
        missing = [k for k in ("file_path", "file_type", "chunk_index") if k not in data]
        if missing:
            raise ValueError(f"Missing required metadata keys: {', '.join(missing)}")
        return cls(**dict(data))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class GetResult:
    """Records returned by ``Collection.get()``, in store order.

    ``documents`` / ``metadatas`` are None when not requested via *include*.
    """

    ids: list[str] = field(default_factory=list)
    documents: list[str] | None = None
    metadatas: list[ChunkMetadata] | None = None


@dataclass
class QueryResult:
    """Nearest neighbours per query text, closest first.

    Each attribute holds one list per query text, like
    ``ids[query_number][rank]``.
    """

    ids: list[list[str]] = field(default_factory=list)
    documents: list[list[str]] = field(default_factory=list)
    metadatas: list[list[ChunkMetadata]] = field(default_factory=list)
    distances: list[list[float]] = field(default_factory=list)
