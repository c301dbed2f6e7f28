"""Forward-only migration runner for the record store schema.

Per-collection vec tables (vec_records_*) are NOT migration-managed; the
store creates them on demand when a collection is first opened.
"""

from __future__ import annotations

import sqlite3

# schema_version is the bootstrap table, created before migrations run.
_CREATE_SCHEMA_VERSION = """
CREATE TABLE IF NOT EXISTS schema_version (
    version     INTEGER NOT NULL,
    applied_at  DATETIME NOT NULL DEFAULT (datetime('now'))
)
"""

# records.seq doubles as the rowid of the collection's vec table row.
_V1_SQL = """
CREATE TABLE IF NOT EXISTS collections (
    name            TEXT PRIMARY KEY,
    embedding_model TEXT NOT NULL,
    dimensions      INTEGER NOT NULL,
    created_at      DATETIME NOT NULL DEFAULT (datetime('now'))
);

CREATE TABLE IF NOT EXISTS records (
    seq             INTEGER PRIMARY KEY,
    collection      TEXT NOT NULL REFERENCES collections(name) ON DELETE CASCADE,
    id              TEXT NOT NULL,
    document        TEXT NOT NULL,
    file_path       TEXT NOT NULL,
    file_type       TEXT NOT NULL,
    chunk_index     INTEGER NOT NULL,
    project_id      TEXT,
    project_name    TEXT,
    project_path    TEXT,
    source_type     TEXT,
    indexed_at      TEXT,
    UNIQUE (collection, id)
);

CREATE INDEX IF NOT EXISTS idx_records_project ON records (collection, project_id);
CREATE INDEX IF NOT EXISTS idx_records_file_path ON records (collection, file_path);
CREATE INDEX IF NOT EXISTS idx_records_file_type ON records (collection, file_type);
"""

# Append-only. Each entry: (version: int, sql: str).
# executescript() issues an implicit COMMIT before running.
MIGRATIONS: list[tuple[int, str]] = [
    (1, _V1_SQL),
]


def run_migrations(conn: sqlite3.Connection) -> None:
    """Apply all pending migrations in ascending version order.

    Idempotent: safe to call on a database at any version.
    """
    conn.execute(_CREATE_SCHEMA_VERSION)
    conn.commit()

    row = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()
    current = row[0] if row[0] is not None else 0

    for version, sql in MIGRATIONS:
        if version > current:
            conn.executescript(sql)
            conn.execute(
                "INSERT INTO schema_version (version) VALUES (?)", (version,)
            )
            conn.commit()
