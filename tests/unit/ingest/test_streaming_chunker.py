"""Tests for StreamingChunker."""

from __future__ import annotations

import types

import pytest
from structlog.testing import capture_logs

from codesearch.db.models import Chunk
from codesearch.ingest.base import BaseChunker
from codesearch.ingest.chunker import StreamingChunker


def _write(tmp_path, text: str, name: str = "a.py"):
    path = tmp_path / name
    path.write_text(text, encoding="utf-8", newline="")
    return str(path)


def _chunks(path: str, **kwargs) -> list[Chunk]:
    return list(StreamingChunker(**kwargs).chunk(path, "src/a.py", "py"))


def _numbered_lines(count: int, width: int = 40) -> list[str]:
    return [f"line {i:04d} ".ljust(width, "x") for i in range(count)]


# ------------------------------------------------------------------
# Settings
# ------------------------------------------------------------------


def test_default_settings():
    chunker = StreamingChunker()
    assert chunker.max_chunk_size == 1500
    assert chunker.max_line_length == 10_000


@pytest.mark.parametrize("kwargs", [{"max_chunk_size": 0}, {"max_line_length": 0}])
def test_rejects_non_positive_limits(kwargs):
    with pytest.raises(ValueError):
        StreamingChunker(**kwargs)


# ------------------------------------------------------------------
# Basic output
# ------------------------------------------------------------------


def test_is_lazy(tmp_path):
    result = StreamingChunker().chunk(_write(tmp_path, "x = 1\n"), "a.py", "py")
    assert isinstance(result, types.GeneratorType)


def test_small_file_single_chunk(tmp_path):
    chunks = _chunks(_write(tmp_path, "import os\n\nprint(os.getcwd())\n"))
    assert len(chunks) == 1
    assert chunks[0].content == "import os\n\nprint(os.getcwd())"
    assert chunks[0].file_path == "src/a.py"
    assert chunks[0].file_type == "py"
    assert chunks[0].chunk_index == 0
    assert chunks[0].project_id is None


@pytest.mark.parametrize("text", ["", "\n\n", "   \n\t\n  "])
def test_empty_or_blank_file_yields_nothing(tmp_path, text):
    assert _chunks(_write(tmp_path, text)) == []


def test_each_call_rereads_the_file(tmp_path):
    path = _write(tmp_path, "first\n")
    chunker = StreamingChunker()
    assert [c.content for c in chunker.chunk(path, "a.py", "py")] == ["first"]

    _write(tmp_path, "second\n")
    assert [c.content for c in chunker.chunk(path, "a.py", "py")] == ["second"]


def test_crlf_line_endings_normalised(tmp_path):
    chunks = _chunks(_write(tmp_path, "a = 1\r\nb = 2\r\n"))
    assert chunks[0].content == "a = 1\nb = 2"


def test_invalid_utf8_is_replaced(tmp_path):
    path = tmp_path / "bin.txt"
    path.write_bytes(b"ok \xff\xfe here\n")
    chunks = list(StreamingChunker().chunk(str(path), "bin.txt", "txt"))
    assert chunks[0].content.startswith("ok ")
    assert "�" in chunks[0].content


def test_missing_file_raises_on_iteration(tmp_path):
    gen = StreamingChunker().chunk(str(tmp_path / "gone.py"), "gone.py", "py")
    with pytest.raises(OSError):
        next(gen)


# ------------------------------------------------------------------
# Chunking properties
# ------------------------------------------------------------------


def test_chunk_indices_contiguous(tmp_path):
    chunks = _chunks(_write(tmp_path, "\n".join(_numbered_lines(200)) + "\n"), max_chunk_size=300)
    assert len(chunks) > 1
    assert [c.chunk_index for c in chunks] == list(range(len(chunks)))


def test_reconstruction_law(tmp_path):
    lines = _numbered_lines(120, width=57)
    original = "\n".join(lines)
    chunks = _chunks(_write(tmp_path, original + "\n"), max_chunk_size=500)

    ordered = sorted(chunks, key=lambda c: c.chunk_index)
    assert "\n".join(c.content for c in ordered) == original


def test_chunk_size_bound(tmp_path):
    lines = _numbered_lines(300, width=33)
    chunks = _chunks(_write(tmp_path, "\n".join(lines)), max_chunk_size=200)
    assert all(len(c.content) <= 200 for c in chunks)


def test_exact_fit_includes_separator(tmp_path):
    # 10 + 1 + 9 = 20 fits; a further line does not.
    chunks = _chunks(_write(tmp_path, "a" * 10 + "\n" + "b" * 9 + "\n" + "c"), max_chunk_size=20)
    assert [c.content for c in chunks] == ["a" * 10 + "\n" + "b" * 9, "c"]


def test_long_line_is_never_split(tmp_path):
    long_line = "y" * 450
    chunks = _chunks(_write(tmp_path, f"short\n{long_line}\nafter\n"), max_chunk_size=100)

    assert [c.content for c in chunks] == ["short", long_line, "after"]


def test_oversized_line_dropped_and_logged(tmp_path):
    huge = "z" * 10_001
    path = _write(tmp_path, f"keep one\n{huge}\nkeep two\n")

    with capture_logs() as logs:
        chunks = _chunks(path)

    assert "z" * 100 not in "".join(c.content for c in chunks)
    assert chunks[0].content == "keep one\nkeep two"
    skipped = [e for e in logs if e["event"] == "line_skipped"]
    assert len(skipped) == 1
    assert skipped[0]["log_level"] == "info"
    assert skipped[0]["file_path"] == "src/a.py"
    assert skipped[0]["line_number"] == 2
    assert skipped[0]["length"] == 10_001


def test_line_at_ceiling_is_kept(tmp_path):
    edge = "w" * 10_000
    chunks = _chunks(_write(tmp_path, edge + "\n"))
    assert chunks[0].content == edge


def test_whitespace_only_buffer_is_not_emitted(tmp_path):
    chunks = _chunks(_write(tmp_path, "   \n" + "q" * 50 + "\n"), max_chunk_size=10)
    assert [c.content for c in chunks] == ["q" * 50]
    assert chunks[0].chunk_index == 0


# ------------------------------------------------------------------
# File type detection
# ------------------------------------------------------------------


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("src/app.py", "py"),
        ("web/index.test.tsx", "tsx"),
        ("Makefile", "txt"),
        (".bashrc", "txt"),
        ("notes.", "txt"),
        ("dir.d/README", "txt"),
    ],
)
def test_file_type_for(path, expected):
    assert BaseChunker.file_type_for(path) == expected
