"""codesearch storage layer: sqlite-vec record store."""

from codesearch.db.connection import Database
from codesearch.db.migrations import MIGRATIONS, run_migrations
from codesearch.db.models import Chunk, ChunkMetadata, GetResult, QueryResult
from codesearch.db.store import Collection, VectorStore, collection_to_slug, vec_table_name

__all__ = [
    "Chunk",
    "ChunkMetadata",
    "Collection",
    "Database",
    "GetResult",
    "MIGRATIONS",
    "QueryResult",
    "VectorStore",
    "collection_to_slug",
    "run_migrations",
    "vec_table_name",
]
