"""Tests for CodeSearchEngine: indexing pipeline and tool dispatch."""

from __future__ import annotations

import re
import threading
from pathlib import Path
from unittest.mock import patch

import pytest

from codesearch.config import CodeSearchConfig, IndexingCfg, SearchCfg
from codesearch.engine import TOOL_DEFINITIONS, CodeSearchEngine, sanitize_project_id
from codesearch.errors import BatchWriteError, PathAccessError


@pytest.fixture
def project(tmp_path: Path) -> Path:
    root = tmp_path / "proj"
    (root / "src").mkdir(parents=True)
    (root / "src" / "a.py").write_text(
        "def authenticate_user(name, password):\n    return check_password(name, password)\n",
        encoding="utf-8",
    )
    (root / "b.md").write_text("# Notes\n\nThe billing service sends invoices.\n", encoding="utf-8")
    (root / "node_modules" / "lib").mkdir(parents=True)
    (root / "node_modules" / "lib" / "x.js").write_text("module.exports = 1\n", encoding="utf-8")
    return root


def _counts(text: str) -> tuple[int, int]:
    files = int(re.search(r"Files processed: (\d+)", text).group(1))
    chunks = int(re.search(r"Chunks created: (\d+)", text).group(1))
    return files, chunks


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    ("name", "expected"),
    [("My App", "my_app"), ("api-v2", "api_v2"), ("Ünïcode", "_n_code"), ("abc123", "abc123")],
)
def test_sanitize_project_id(name, expected):
    assert sanitize_project_id(name) == expected


def test_tool_definitions_cover_every_handler(engine):
    assert {t["name"] for t in TOOL_DEFINITIONS} == set(engine._handlers())


# ------------------------------------------------------------------
# Indexing
# ------------------------------------------------------------------


def test_index_small_project(engine, project):
    result = engine.index_local_project(str(project), "My App")

    assert not result.is_error
    assert result.text.startswith("Successfully indexed local project: My App\nProject ID: my_app\n")
    files, chunks = _counts(result.text)
    assert files == 2
    assert chunks >= 2
    assert result.text.rstrip().endswith("Embedding provider: fake")

    ids = engine.collection.get().ids
    assert ids[0] == "my_app_chunk_0"
    assert all(i.startswith("my_app_chunk_") for i in ids)


def test_index_tags_records_with_project_metadata(engine, project):
    engine.index_local_project(str(project), "My App")
    metas = engine.collection.get().metadatas

    assert {m.file_path for m in metas} == {"src/a.py", "b.md"}
    assert all(m.project_path == str(project) for m in metas)
    assert all(m.source_type == "local" for m in metas)
    assert len({m.indexed_at for m in metas}) == 1
    assert metas[0].indexed_at.endswith("Z")


def test_index_with_explicit_patterns(engine, project):
    result = engine.index_local_project(str(project), "p", include_patterns=["*.md"])
    assert _counts(result.text)[0] == 1

    result = engine.index_local_project(str(project), "q", include_patterns=[], exclude_patterns=[])
    assert _counts(result.text)[0] == 3  # node_modules no longer excluded


def test_index_reports_progress(engine, project):
    files, batches = [], []
    engine.index_local_project(str(project), "p", on_file=files.append, on_batch=lambda n, t: batches.append((n, t)))

    assert sorted(files) == ["b.md", "src/a.py"]
    assert batches == [(1, 1)]


def test_index_counts_empty_files_as_processed(engine, tmp_path):
    root = tmp_path / "empty"
    root.mkdir()
    (root / "empty.py").write_text("", encoding="utf-8")
    result = engine.index_local_project(str(root), "empty")
    assert _counts(result.text) == (1, 0)
    assert engine.collection.count() == 0


@pytest.mark.parametrize(
    ("path_factory", "message"),
    [
        (lambda tmp: "relative/dir", "must be absolute"),
        (lambda tmp: str(tmp / "missing"), "Cannot access"),
        (lambda tmp: str(tmp / "file.txt"), "not a directory"),
    ],
)
def test_index_rejects_bad_paths(engine, tmp_path, path_factory, message):
    (tmp_path / "file.txt").write_text("x", encoding="utf-8")
    with pytest.raises(PathAccessError, match=message):
        engine.index_local_project(path_factory(tmp_path), "p")
    assert engine.collection.count() == 0


def test_reindex_overwrites_by_id_and_keeps_orphans(engine, tmp_path):
    root = tmp_path / "p"
    root.mkdir()
    (root / "a.py").write_text("alpha = 1\n", encoding="utf-8")
    (root / "b.py").write_text("beta = 2\n", encoding="utf-8")
    engine.index_local_project(str(root), "p")
    assert engine.collection.count() == 2

    (root / "b.py").unlink()
    (root / "a.py").write_text("gamma = 3\n", encoding="utf-8")
    engine.index_local_project(str(root), "p")

    got = engine.collection.get()
    assert sorted(got.ids) == ["p_chunk_0", "p_chunk_1"]
    assert "gamma = 3" in got.documents
    # The second record of the first run is stale but survives.
    assert len({"alpha = 1", "beta = 2"} & set(got.documents)) == 1


def test_unreadable_file_is_skipped(engine, project, monkeypatch):
    real_chunk = engine._chunker.chunk

    def flaky(file_path, relative_path, file_type):
        if relative_path == "b.md":
            raise PermissionError("denied")
        return real_chunk(file_path, relative_path, file_type)

    monkeypatch.setattr(engine._chunker, "chunk", flaky)
    result = engine.index_local_project(str(project), "p")

    assert _counts(result.text)[0] == 1
    assert result.text.endswith("Files skipped: 1")


def test_batch_failure_raises_and_keeps_earlier_batches(collection, fake_provider, tmp_path):
    root = tmp_path / "three"
    root.mkdir()
    for i in range(3):
        (root / f"f{i}.py").write_text(f"value_{i} = {i}\n", encoding="utf-8")
    engine = CodeSearchEngine(collection, fake_provider, indexing=IndexingCfg(batch_size=1))

    real_add = collection.add
    calls = []

    def failing_add(**kwargs):
        calls.append(kwargs["ids"])
        if len(calls) == 2:
            raise RuntimeError("disk full")
        return real_add(**kwargs)

    with patch.object(collection, "add", side_effect=failing_add):
        with pytest.raises(BatchWriteError, match="Failed to store batch 2/3: disk full"):
            engine.index_local_project(str(root), "p")

    assert collection.count() == 1
    assert len(calls) == 2


def test_same_project_runs_are_serialized(engine, project, monkeypatch):
    active = 0
    peak = 0
    guard = threading.Lock()
    real_ingest = engine._ingestor.ingest

    def slow_ingest(*args, **kwargs):
        nonlocal active, peak
        with guard:
            active += 1
            peak = max(peak, active)
        threading.Event().wait(0.05)
        with guard:
            active -= 1
        return real_ingest(*args, **kwargs)

    monkeypatch.setattr(engine._ingestor, "ingest", slow_ingest)
    threads = [
        threading.Thread(target=engine.index_local_project, args=(str(project), "same")) for _ in range(3)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert peak == 1


# ------------------------------------------------------------------
# Queries
# ------------------------------------------------------------------


def test_search_after_index(engine, project):
    engine.index_local_project(str(project), "My App")
    result = engine.search_codebase("authenticate user", limit=5)

    assert result.text.startswith('Found ')
    assert 'results for: "authenticate user"' in result.text
    first_block = result.text.split("\n---\n\n")[0]
    assert "**File:** src/a.py" in first_block
    assert re.search(r"Similarity: -?\d+\.\d{3}\)", first_block)


def test_search_project_filter_and_alias(engine, project):
    engine.index_local_project(str(project), "one")
    engine.index_local_project(str(project), "two")

    filtered = engine.search_codebase("billing invoices", limit=10, project_filter="two")
    assert "**Project:** two" in filtered.text
    assert "**Project:** one" not in filtered.text

    assert engine.search_code("billing invoices", n_results=1).text.startswith('Found 1 results for:')


def test_search_uses_configured_default_limit(collection, fake_provider, project):
    engine = CodeSearchEngine(collection, fake_provider, search=SearchCfg(default_limit=1))
    engine.index_local_project(str(project), "p")
    assert engine.search_codebase("anything").text.startswith("Found 1 results")


def test_search_empty_store(engine):
    assert engine.search_codebase("anything").text == "No results found for your query."


def test_search_by_file_type_with_leading_dot(engine, project):
    engine.index_local_project(str(project), "p")
    text = engine.search_by_file_type(".md").text

    assert text.startswith('Found 1 results for file type "md":')
    assert "**Type:** md" in text


def test_get_file_content_orders_chunks(engine):
    engine.collection.add(
        ids=["p_chunk_2", "p_chunk_1", "p_chunk_0"],
        documents=["third", "second", "first"],
        metadatas=[
            {"file_path": "src/x.py", "file_type": "py", "chunk_index": i, "project_id": "p", "project_name": "P"}
            for i in (2, 1, 0)
        ],
    )
    text = engine.get_file_content("src/x.py").text
    assert "```py\nfirst\nsecond\nthird\n```" in text
    assert "**Chunks:** 3" in text


def test_get_file_content_missing(engine):
    assert engine.get_file_content("nope.py").text == "File not found: nope.py"


def test_list_projects(engine, project):
    assert engine.list_indexed_projects().text == "No projects indexed yet."

    engine.index_local_project(str(project), "My App")
    text = engine.list_indexed_projects().text
    assert text.startswith("# Indexed Projects (1)\n\n## My App\n")
    assert "- **ID:** my_app" in text
    assert "- **Source:** local" in text


def test_provider_info(engine):
    text = engine.get_embedding_provider_info().text
    assert "**Current Provider:** fake" in text
    assert "## Fake Configuration" in text


# ------------------------------------------------------------------
# call_tool()
# ------------------------------------------------------------------


def test_call_tool_dispatches(engine, project):
    result = engine.call_tool(
        "index_local_project", {"project_path": str(project), "project_name": "p", "include_patterns": ["*.py"]}
    )
    assert not result.is_error
    assert _counts(result.text)[0] == 1
    assert engine.call_tool("search_code", {"query": "password", "n_results": 1.0}).text.startswith("Found 1")


def test_call_tool_unknown(engine):
    result = engine.call_tool("drop_everything", {})
    assert result.is_error
    assert result.text == "Error: Unknown tool: drop_everything"


@pytest.mark.parametrize(
    ("name", "arguments", "message"),
    [
        ("search_codebase", {}, "Missing required argument: query"),
        ("search_codebase", {"query": "x", "limit": "ten"}, "must be a number"),
        ("search_codebase", {"query": "x", "limit": 0}, "limit must be >= 1"),
        ("get_file_content", {"file_path": 3}, "must be a string"),
        ("index_local_project", {"project_path": "rel", "project_name": "p"}, "must be absolute"),
        ("index_local_project", {"project_path": "/", "project_name": "p", "include_patterns": "*.py"}, "list of strings"),
    ],
)
def test_call_tool_errors_become_results(engine, name, arguments, message):
    result = engine.call_tool(name, arguments)
    assert result.is_error
    assert result.text.startswith("Error: ")
    assert message in result.text
    assert result.to_dict() == {"content": [{"type": "text", "text": result.text}], "isError": True}


# ------------------------------------------------------------------
# from_config()
# ------------------------------------------------------------------


def test_from_config_opens_store(tmp_path, fake_provider):
    cfg = CodeSearchConfig()
    db_path = tmp_path / "index.db"
    with patch("codesearch.engine.create_provider", return_value=fake_provider):
        with CodeSearchEngine.from_config(cfg, db_path=db_path) as engine:
            assert engine.collection.name == "codebase"
            assert engine.provider is fake_provider
    assert db_path.exists()


def test_from_config_closes_connection_on_mismatch(tmp_path, make_provider):
    cfg = CodeSearchConfig()
    db_path = tmp_path / "index.db"
    with patch("codesearch.engine.create_provider", return_value=make_provider(dimensions=64)):
        CodeSearchEngine.from_config(cfg, db_path=db_path).close()

    with patch("codesearch.engine.create_provider", return_value=make_provider(dimensions=8)):
        with pytest.raises(ValueError, match="dimensional"):
            CodeSearchEngine.from_config(cfg, db_path=db_path)
