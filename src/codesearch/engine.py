"""Transport-agnostic operation table for indexing and searching code.

Adapters (CLI, MCP server) hold a ``CodeSearchEngine`` and call its
operations directly or through ``call_tool()``, which never raises.
"""

from __future__ import annotations

import os
import re
import sqlite3
import threading
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from codesearch.config import CodeSearchConfig, IndexingCfg, SearchCfg
from codesearch.db.connection import Database
from codesearch.db.migrations import run_migrations
from codesearch.db.models import Chunk
from codesearch.db.store import Collection, VectorStore
from codesearch.embeddings import EmbeddingProvider, create_provider
from codesearch.errors import CodeSearchError, PathAccessError, UnknownToolError
from codesearch.ingest.base import BaseChunker
from codesearch.ingest.batch import BatchIngestor
from codesearch.ingest.chunker import StreamingChunker
from codesearch.ingest.discovery import discover_files
from codesearch.ingest.patterns import DEFAULT_EXCLUDE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from codesearch.logging import get_logger
from codesearch.search import formatting
from codesearch.search.query import QueryEngine
from codesearch.search.registry import ProjectRegistry

# ---------------------------------------------------------------------------
# Results and tool definitions
# ---------------------------------------------------------------------------


@dataclass
class ToolResult:
    """Text payload of one operation, flagged when it reports a failure."""

    text: str
    is_error: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"content": [{"type": "text", "text": self.text}], "isError": self.is_error}


@dataclass
class IndexReport:
    """Outcome of one ``index_local_project`` run."""

    project_id: str
    project_name: str
    project_path: str
    files_processed: int = 0
    files_skipped: int = 0
    chunks_created: int = 0
    failed_files: list[str] = field(default_factory=list)


_LIMIT_SCHEMA = {
    "type": "number",
    "description": "Number of results to return (default: 10)",
    "default": 10,
}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "name": "index_local_project",
        "description": "Index a local project directory into the vector database",
        "inputSchema": {
            "type": "object",
            "properties": {
                "project_path": {
                    "type": "string",
                    "description": "Absolute path to the local project directory",
                },
                "project_name": {
                    "type": "string",
                    "description": "Name for the project (used as identifier)",
                },
                "include_patterns": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "File patterns to include (optional)",
                },
                "exclude_patterns": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "File patterns to exclude (optional)",
                },
            },
            "required": ["project_path", "project_name"],
        },
    },
    {
        "name": "search_codebase",
        "description": "Search indexed code using semantic similarity",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query to find relevant code"},
                "limit": _LIMIT_SCHEMA,
                "project_filter": {
                    "type": "string",
                    "description": "Only return results from this project ID (optional)",
                },
            },
            "required": ["query"],
        },
    },
    {
        "name": "search_code",
        "description": "Search for code using semantic similarity",
        "inputSchema": {
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The search query to find relevant code"},
                "n_results": _LIMIT_SCHEMA,
            },
            "required": ["query"],
        },
    },
    {
        "name": "search_by_file_type",
        "description": "Search for code by file type/extension",
        "inputSchema": {
            "type": "object",
            "properties": {
                "file_type": {
                    "type": "string",
                    "description": "File extension to search for (e.g., .js, .py, .php)",
                },
                "query": {
                    "type": "string",
                    "description": "Optional text query to search within files of this type",
                },
                "n_results": _LIMIT_SCHEMA,
            },
            "required": ["file_type"],
        },
    },
    {
        "name": "get_file_content",
        "description": "Retrieve the full content of a specific file",
        "inputSchema": {
            "type": "object",
            "properties": {
                "file_path": {"type": "string", "description": "Path to the file to retrieve"},
            },
            "required": ["file_path"],
        },
    },
    {
        "name": "list_indexed_projects",
        "description": "List all indexed projects in the knowledge base",
        "inputSchema": {"type": "object", "properties": {}},
    },
    {
        "name": "get_embedding_provider_info",
        "description": "Get information about the current embedding provider",
        "inputSchema": {"type": "object", "properties": {}},
    },
]


def sanitize_project_id(project_name: str) -> str:
    """Derive a project id: lowercase, every char outside ``[a-z0-9]`` → ``_``.

    Distinct names can map to the same id; collisions are not detected.
    """
    return re.sub(r"[^a-z0-9]", "_", project_name.lower())


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class CodeSearchEngine:
    """Indexing and retrieval operations over one shared collection.

    Args:
        collection: Open collection; its embedding provider is used for both
            indexing and queries.
        provider: The collection's embedding provider (reported by
            ``get_embedding_provider_info``).
        indexing: Chunking and batching limits.
        search: Query defaults and the project scan cap.
        logger: structlog logger passed to every pipeline component.
        conn: Connection to close on ``close()``, when the engine owns it.
    """

    def __init__(
        self,
        collection: Collection,
        provider: EmbeddingProvider,
        *,
        indexing: IndexingCfg | None = None,
        search: SearchCfg | None = None,
        logger: Any = None,
        conn: sqlite3.Connection | None = None,
    ) -> None:
        indexing = indexing or IndexingCfg()
        self._search_cfg = search or SearchCfg()
        self.collection = collection
        self.provider = provider
        self._log = logger or get_logger("engine")
        self._conn = conn

        self._chunker: BaseChunker = StreamingChunker(
            max_chunk_size=indexing.max_chunk_size,
            max_line_length=indexing.max_line_length,
            logger=logger,
        )
        self._ingestor = BatchIngestor(batch_size=indexing.batch_size, logger=logger)
        self._query = QueryEngine(collection, logger=logger)
        self._registry = ProjectRegistry(scan_cap=self._search_cfg.project_scan_cap, logger=logger)

        self._project_locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @classmethod
    def from_config(
        cls,
        cfg: CodeSearchConfig,
        db_path: str | Path | None = None,
        logger: Any = None,
    ) -> CodeSearchEngine:
        """Build the provider, open the store, and return a ready engine.

        Raises:
            ConfigError: If the embedding provider cannot be built.
            ValueError: If the collection exists with a different vector size.
        """
        provider = create_provider(cfg.embedding, logger=logger)
        conn = Database(db_path or cfg.store.path).connect()
        try:
            run_migrations(conn)
            collection = VectorStore(conn).get_or_create_collection(cfg.store.collection, provider)
        except Exception:
            conn.close()
            raise
        return cls(
            collection,
            provider,
            indexing=cfg.indexing,
            search=cfg.search,
            logger=logger,
            conn=conn,
        )

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> CodeSearchEngine:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Indexing
    # ------------------------------------------------------------------

    def index_local_project(
        self,
        project_path: str,
        project_name: str,
        include_patterns: Sequence[str] | None = None,
        exclude_patterns: Sequence[str] | None = None,
        on_file: Callable[[str], None] | None = None,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> ToolResult:
        """Index every matching file under *project_path* as *project_name*.

        Omitted pattern lists fall back to the defaults; an explicit empty
        include list includes every file.

        Raises:
            PathAccessError: If *project_path* is relative, missing, or not a
                directory. Nothing is written in that case.
            BatchWriteError: If a batch cannot be stored. Earlier batches stay.
        """
        report = self.index_project(
            project_path,
            project_name,
            include_patterns=include_patterns,
            exclude_patterns=exclude_patterns,
            on_file=on_file,
            on_batch=on_batch,
        )
        return ToolResult(
            formatting.render_index_summary(
                project_name=report.project_name,
                project_id=report.project_id,
                project_path=report.project_path,
                files_processed=report.files_processed,
                chunks_created=report.chunks_created,
                provider_name=self.provider.name,
                files_skipped=report.files_skipped,
            )
        )

    def index_project(
        self,
        project_path: str,
        project_name: str,
        include_patterns: Sequence[str] | None = None,
        exclude_patterns: Sequence[str] | None = None,
        on_file: Callable[[str], None] | None = None,
        on_batch: Callable[[int, int], None] | None = None,
    ) -> IndexReport:
        """Run the indexing pipeline and return its counts."""
        _check_project_path(project_path)
        if not project_name:
            raise CodeSearchError("project_name must not be empty")

        include = DEFAULT_INCLUDE_PATTERNS if include_patterns is None else tuple(include_patterns)
        exclude = DEFAULT_EXCLUDE_PATTERNS if exclude_patterns is None else tuple(exclude_patterns)
        project_id = sanitize_project_id(project_name)
        report = IndexReport(project_id=project_id, project_name=project_name, project_path=project_path)

        with self._project_lock(project_id):
            files = discover_files(project_path, include, exclude, logger=self._log)
            self._log.info("index_started", project_id=project_id, path=project_path, files=len(files))

            indexed_at = _utc_timestamp()
            chunks: list[Chunk] = []
            for file_path in files:
                relative = os.path.relpath(file_path, project_path).replace(os.sep, "/")
                if on_file is not None:
                    on_file(relative)
                try:
                    size_mb = os.path.getsize(file_path) / (1024 * 1024)
                    file_chunks = [
                        c.with_project(project_id, project_name, project_path, indexed_at)
                        for c in self._chunker.chunk(
                            file_path, relative, BaseChunker.file_type_for(relative)
                        )
                    ]
                except OSError as exc:
                    self._log.warning("file_failed", file_path=relative, error=str(exc))
                    report.files_skipped += 1
                    report.failed_files.append(relative)
                    continue

                chunks.extend(file_chunks)
                report.files_processed += 1
                self._log.debug(
                    "file_indexed",
                    file_path=relative,
                    size_mb=round(size_mb, 2),
                    chunks=len(file_chunks),
                )

            if chunks:
                self._ingestor.ingest(self.collection, chunks, project_id, on_batch=on_batch)
            report.chunks_created = len(chunks)

        self._log.info(
            "index_completed",
            project_id=project_id,
            files_processed=report.files_processed,
            files_skipped=report.files_skipped,
            chunks=report.chunks_created,
        )
        return report

    def _project_lock(self, project_id: str) -> threading.Lock:
        with self._locks_guard:
            return self._project_locks.setdefault(project_id, threading.Lock())

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def search_codebase(
        self, query: str, limit: int | None = None, project_filter: str | None = None
    ) -> ToolResult:
        limit = self._search_cfg.default_limit if limit is None else limit
        results = self._query.search(query, limit=limit, project_filter=project_filter)
        return ToolResult(formatting.render_search(results))

    def search_code(self, query: str, n_results: int | None = None) -> ToolResult:
        """Alias of ``search_codebase`` without a project filter."""
        return self.search_codebase(query, limit=n_results)

    def search_by_file_type(
        self, file_type: str, query: str | None = None, n_results: int | None = None
    ) -> ToolResult:
        limit = self._search_cfg.default_limit if n_results is None else n_results
        results = self._query.search_by_file_type(file_type, query=query, limit=limit)
        return ToolResult(formatting.render_file_type_search(results))

    def get_file_content(self, file_path: str) -> ToolResult:
        return ToolResult(
            formatting.render_file_content(file_path, self._query.get_file_content(file_path))
        )

    def list_indexed_projects(self) -> ToolResult:
        return ToolResult(formatting.render_projects(self._registry.list_projects(self.collection)))

    def get_embedding_provider_info(self) -> ToolResult:
        return ToolResult(
            formatting.render_provider_info(self.provider.name, self.provider.describe())
        )

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def call_tool(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        """Run operation *name*; any failure becomes an ``Error: ...`` result."""
        args = dict(arguments or {})
        try:
            handler = self._handlers().get(name)
            if handler is None:
                raise UnknownToolError(f"Unknown tool: {name}")
            return handler(args)
        except Exception as exc:
            self._log.error("tool_failed", tool=name, error=str(exc), error_type=type(exc).__name__)
            return ToolResult(f"Error: {exc}", is_error=True)

    def _handlers(self) -> dict[str, Callable[[dict[str, Any]], ToolResult]]:
        return {
            "index_local_project": lambda a: self.index_local_project(
                _required(a, "project_path"),
                _required(a, "project_name"),
                include_patterns=_optional_list(a, "include_patterns"),
                exclude_patterns=_optional_list(a, "exclude_patterns"),
            ),
            "search_codebase": lambda a: self.search_codebase(
                _required(a, "query"),
                limit=_optional_int(a, "limit"),
                project_filter=a.get("project_filter") or None,
            ),
            "search_code": lambda a: self.search_code(
                _required(a, "query"), n_results=_optional_int(a, "n_results")
            ),
            "search_by_file_type": lambda a: self.search_by_file_type(
                _required(a, "file_type"),
                query=a.get("query") or None,
                n_results=_optional_int(a, "n_results"),
            ),
            "get_file_content": lambda a: self.get_file_content(_required(a, "file_path")),
            "list_indexed_projects": lambda a: self.list_indexed_projects(),
            "get_embedding_provider_info": lambda a: self.get_embedding_provider_info(),
        }


# ---------------------------------------------------------------------------
# Argument helpers
# ---------------------------------------------------------------------------


def _check_project_path(project_path: str) -> None:
    if not project_path or not os.path.isabs(project_path):
        raise PathAccessError(f"Project path must be absolute: {project_path}")
    if not os.path.exists(project_path):
        raise PathAccessError(f"Cannot access project path: {project_path}")
    if not os.path.isdir(project_path):
        raise PathAccessError(f"Path is not a directory: {project_path}")


def _required(args: Mapping[str, Any], key: str) -> str:
    value = args.get(key)
    if value is None or value == "":
        raise CodeSearchError(f"Missing required argument: {key}")
    if not isinstance(value, str):
        raise CodeSearchError(f"Argument '{key}' must be a string")
    return value


def _optional_int(args: Mapping[str, Any], key: str) -> int | None:
    value = args.get(key)
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise CodeSearchError(f"Argument '{key}' must be a number")
    return int(value)


def _optional_list(args: Mapping[str, Any], key: str) -> list[str] | None:
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise CodeSearchError(f"Argument '{key}' must be a list of strings")
    return value
