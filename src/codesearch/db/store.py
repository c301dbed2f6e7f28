"""sqlite-vec backed vector store: named collections of (id, document, metadata).

A collection owns an embedding provider. ``add()`` embeds documents through it
and upserts by id; ``query()`` embeds the query text and ranks records by L2
distance. Ranking is delegated to sqlite-vec's ``vec_distance_l2``.

Each collection keeps its vectors in its own ``vec_records_{slug}`` vec0
table whose rowid is the ``records.seq`` of the owning record.
"""

from __future__ import annotations

import json
import re
import sqlite3
import threading
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from codesearch.db.models import ChunkMetadata, GetResult, QueryResult

if TYPE_CHECKING:
    from codesearch.embeddings.base import EmbeddingProvider

_METADATA_COLUMNS: tuple[str, ...] = ChunkMetadata.field_names()
_INCLUDE_CHOICES = frozenset(["documents", "metadatas"])

_UPSERT_SQL = f"""
INSERT INTO records (collection, id, document, {", ".join(_METADATA_COLUMNS)})
VALUES (?, ?, ?, {", ".join("?" for _ in _METADATA_COLUMNS)})
ON CONFLICT (collection, id) DO UPDATE SET
    document = excluded.document,
    {", ".join(f"{c} = excluded.{c}" for c in _METADATA_COLUMNS)}
"""


def collection_to_slug(name: str) -> str:
    """Convert a collection name to a valid table name suffix.

    Examples:
        "codebase"                  -> "codebase"
        "company_codebase_384d-new" -> "company_codebase_384d_new"
    """
    return re.sub(r"[^a-z0-9]", "_", name.lower())


def vec_table_name(slug: str) -> str:
    """Return the vec table name for a collection slug."""
    return f"vec_records_{slug}"


def ensure_vec_table(conn: sqlite3.Connection, slug: str, dimensions: int) -> str:
    """Create the vec0 table for *slug* if missing and return its name."""
    if not re.fullmatch(r"[a-z0-9_]+", slug):
        raise ValueError(f"Invalid collection slug '{slug}'; use collection_to_slug().")
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")

    table = vec_table_name(slug)
    conn.execute(
        f"CREATE VIRTUAL TABLE IF NOT EXISTS {table} USING vec0(embedding float[{dimensions}])"
    )
    conn.commit()
    return table


class VectorStore:
    """Entry point to the store: opens collections on a shared connection.

    The connection is owned by the caller and must be closed after use.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open connection (sqlite-vec loaded, migrations run)."""
        self._conn = conn
        self._lock = threading.RLock()

    def get_or_create_collection(
        self, name: str, embedding_function: EmbeddingProvider
    ) -> Collection:
        """Open collection *name*, creating it for *embedding_function* if new.

        Raises:
            ValueError: If the collection exists with a different vector size
                than *embedding_function* produces.
        """
        if not name:
            raise ValueError("Collection name must not be empty")

        with self._lock:
            row = self._conn.execute(
                "SELECT embedding_model, dimensions FROM collections WHERE name = ?",
                (name,),
            ).fetchone()
            if row is None:
                self._conn.execute(
                    "INSERT INTO collections (name, embedding_model, dimensions) VALUES (?, ?, ?)",
                    (name, embedding_function.model, embedding_function.dimensions),
                )
                self._conn.commit()
                dimensions = embedding_function.dimensions
            else:
                dimensions = row["dimensions"]
                if dimensions != embedding_function.dimensions:
                    raise ValueError(
                        f"Collection '{name}' stores {dimensions}-dimensional vectors "
                        f"(model '{row['embedding_model']}') but the current provider "
                        f"produces {embedding_function.dimensions}. "
                        "Use a matching embedding model or a different collection name."
                    )
            table = ensure_vec_table(self._conn, collection_to_slug(name), dimensions)

        return Collection(self._conn, self._lock, name, table, dimensions, embedding_function)

    def list_collections(self) -> list[str]:
        with self._lock:
            rows = self._conn.execute("SELECT name FROM collections ORDER BY name").fetchall()
        return [r["name"] for r in rows]


class Collection:
    """One named collection. Obtain via ``VectorStore.get_or_create_collection``."""

    def __init__(
        self,
        conn: sqlite3.Connection,
        lock: threading.RLock,
        name: str,
        vec_table: str,
        dimensions: int,
        embedding_function: EmbeddingProvider,
    ) -> None:
        self._conn = conn
        self._lock = lock
        self.name = name
        self.vec_table = vec_table
        self.dimensions = dimensions
        self.embedding_function = embedding_function

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add(
        self,
        ids: Sequence[str],
        documents: Sequence[str],
        metadatas: Sequence[ChunkMetadata | Mapping[str, Any]],
    ) -> None:
        """Embed *documents* and upsert them under *ids* in one transaction.

        An existing record with the same id is overwritten; nothing else is
        touched. On any failure the whole call is rolled back.

        Raises:
            ValueError: On length mismatches, malformed metadata, or vectors
                of the wrong size.
        """
        if not (len(ids) == len(documents) == len(metadatas)):
            raise ValueError(
                f"ids, documents and metadatas must have equal length "
                f"({len(ids)}, {len(documents)}, {len(metadatas)})"
            )
        if not ids:
            return
        if len(set(ids)) != len(ids):
            raise ValueError("ids must be unique within one add() call")

        records = [_coerce_metadata(m) for m in metadatas]
        embeddings = self.embedding_function.embed(list(documents))
        if len(embeddings) != len(documents):
            raise ValueError(
                f"Embedding provider returned {len(embeddings)} vectors for "
                f"{len(documents)} documents"
            )
        for vector in embeddings:
            if len(vector) != self.dimensions:
                raise ValueError(
                    f"Embedding has {len(vector)} dimensions; collection "
                    f"'{self.name}' expects {self.dimensions}"
                )

        with self._lock:
            try:
                for record_id, document, meta, vector in zip(ids, documents, records, embeddings):
                    self._upsert(record_id, document, meta, vector)
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

    def _upsert(
        self, record_id: str, document: str, meta: ChunkMetadata, vector: Sequence[float]
    ) -> None:
        values = [getattr(meta, c) for c in _METADATA_COLUMNS]
        self._conn.execute(_UPSERT_SQL, (self.name, record_id, document, *values))
        seq = self._conn.execute(
            "SELECT seq FROM records WHERE collection = ? AND id = ?",
            (self.name, record_id),
        ).fetchone()["seq"]
        self._conn.execute(f"DELETE FROM {self.vec_table} WHERE rowid = ?", (seq,))
        self._conn.execute(
            f"INSERT INTO {self.vec_table}(rowid, embedding) VALUES (?, ?)",
            (seq, json.dumps(list(vector))),
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(
        self,
        where: Mapping[str, Any] | None = None,
        limit: int | None = None,
        include: Iterable[str] = ("documents", "metadatas"),
    ) -> GetResult:
        """Return records matching the equality filter *where*, in store order."""
        wanted = set(include)
        unknown = wanted - _INCLUDE_CHOICES
        if unknown:
            raise ValueError(f"Unsupported include values: {', '.join(sorted(unknown))}")

        clause, params = _where_clause(where)
        sql = f"SELECT * FROM records WHERE collection = ?{clause} ORDER BY seq"
        if limit is not None:
            sql += " LIMIT ?"
            params.append(int(limit))

        with self._lock:
            rows = self._conn.execute(sql, (self.name, *params)).fetchall()

        return GetResult(
            ids=[r["id"] for r in rows],
            documents=[r["document"] for r in rows] if "documents" in wanted else None,
            metadatas=[_row_to_metadata(r) for r in rows] if "metadatas" in wanted else None,
        )

    def query(
        self,
        query_texts: Sequence[str],
        n_results: int = 10,
        where: Mapping[str, Any] | None = None,
    ) -> QueryResult:
        """Nearest-neighbour search, one ranked list per query text."""
        if n_results < 1:
            raise ValueError(f"n_results must be >= 1, got {n_results}")

        clause, params = _where_clause(where, alias="r.")
        result = QueryResult()
        if not query_texts:
            return result

        query_vectors = self.embedding_function.embed(list(query_texts))
        sql = (
            f"SELECT r.*, vec_distance_l2(v.embedding, ?) AS distance "
            f"FROM records r JOIN {self.vec_table} v ON v.rowid = r.seq "
            f"WHERE r.collection = ?{clause} "
            f"ORDER BY distance LIMIT ?"
        )
        for vector in query_vectors:
            with self._lock:
                rows = self._conn.execute(
                    sql, (json.dumps(list(vector)), self.name, *params, n_results)
                ).fetchall()
            result.ids.append([r["id"] for r in rows])
            result.documents.append([r["document"] for r in rows])
            result.metadatas.append([_row_to_metadata(r) for r in rows])
            result.distances.append([r["distance"] for r in rows])
        return result

    def count(self) -> int:
        with self._lock:
            return self._conn.execute(
                "SELECT COUNT(*) FROM records WHERE collection = ?", (self.name,)
            ).fetchone()[0]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _coerce_metadata(meta: ChunkMetadata | Mapping[str, Any]) -> ChunkMetadata:
    if isinstance(meta, ChunkMetadata):
        return meta
    if isinstance(meta, Mapping):
        return ChunkMetadata.from_dict(meta)
    raise ValueError(f"Unsupported metadata type: {type(meta).__name__}")


def _where_clause(
    where: Mapping[str, Any] | None, alias: str = ""
) -> tuple[str, list[Any]]:
    """Translate an equality filter into an ``AND col = ?`` SQL fragment."""
    if not where:
        return "", []
    parts: list[str] = []
    params: list[Any] = []
    for key, value in where.items():
        if key not in _METADATA_COLUMNS:
            raise ValueError(f"Cannot filter on unknown metadata field '{key}'")
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            raise ValueError(f"Filter value for '{key}' must be a string or integer")
        parts.append(f" AND {alias}{key} = ?")
        params.append(value)
    return "".join(parts), params


def _row_to_metadata(row: sqlite3.Row) -> ChunkMetadata:
    return ChunkMetadata(**{c: row[c] for c in _METADATA_COLUMNS})
