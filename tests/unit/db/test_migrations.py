"""Tests for the forward-only migration runner."""

from __future__ import annotations

import sqlite3

import pytest

from codesearch.db.connection import Database
from codesearch.db.migrations import MIGRATIONS, run_migrations


def _fresh_conn(tmp_path):
    """Open a new connection without running migrations."""
    return Database(tmp_path / "test.db").connect()


def _table_exists(conn, name: str) -> bool:
    return conn.execute(
        "SELECT name FROM sqlite_master WHERE type = 'table' AND name = ?", (name,)
    ).fetchone() is not None


def _index_names(conn) -> set[str]:
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'").fetchall()
    return {r["name"] for r in rows}


# --- Bootstrap ---

def test_run_migrations_records_version(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    version = conn.execute("SELECT MAX(version) FROM schema_version").fetchone()[0]
    assert version == MIGRATIONS[-1][0]
    conn.close()


def test_run_migrations_idempotent(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    run_migrations(conn)
    count = conn.execute("SELECT COUNT(*) FROM schema_version").fetchone()[0]
    assert count == len(MIGRATIONS)
    conn.close()


# --- Tables ---

@pytest.mark.parametrize("table", ["schema_version", "collections", "records"])
def test_run_migrations_creates_tables(tmp_path, table):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    assert _table_exists(conn, table)
    conn.close()


def test_records_have_filter_indexes(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    indexes = " ".join(_index_names(conn))
    for column in ("project", "file_path", "file_type"):
        assert column in indexes
    conn.close()


def test_record_id_unique_per_collection(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    conn.execute("INSERT INTO collections (name, embedding_model, dimensions) VALUES ('c', 'm', 4)")
    insert = (
        "INSERT INTO records (collection, id, document, file_path, file_type, chunk_index) "
        "VALUES ('c', 'p_chunk_0', 'x', 'a.py', 'py', 0)"
    )
    conn.execute(insert)
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(insert)
    conn.close()


def test_records_require_existing_collection(tmp_path):
    conn = _fresh_conn(tmp_path)
    run_migrations(conn)
    with pytest.raises(sqlite3.IntegrityError):
        conn.execute(
            "INSERT INTO records (collection, id, document, file_path, file_type, chunk_index) "
            "VALUES ('missing', 'x', 'x', 'a.py', 'py', 0)"
        )
    conn.close()
