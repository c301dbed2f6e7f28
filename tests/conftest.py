"""Shared pytest fixtures."""

from __future__ import annotations

import logging
import math
import re
import zlib

import pytest
import structlog

from codesearch.db.connection import Database
from codesearch.db.migrations import run_migrations
from codesearch.db.store import VectorStore
from codesearch.embeddings.base import EmbeddingProvider, ProviderInfo
from codesearch.engine import CodeSearchEngine

_ENV_VARS = (
    "EMBEDDING_PROVIDER",
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OLLAMA_HOST",
    "OLLAMA_MODEL",
    "COLLECTION_NAME",
    "CODESEARCH_DB",
    "SERVER_HOST",
    "SERVER_PORT",
    "CODESEARCH_LOG_LEVEL",
)


class FakeEmbeddingProvider(EmbeddingProvider):
    """Deterministic bag-of-words embeddings: shared words → nearby vectors."""

    name = "fake"

    def __init__(self, dimensions: int = 64) -> None:
        super().__init__(model="fake-embed", dimensions=dimensions)
        self.calls: list[list[str]] = []

    def embed(self, texts):
        self.calls.append(list(texts))
        return [self._vector(t) for t in texts]

    def _vector(self, text: str) -> list[float]:
        vec = [0.0] * self.dimensions
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            vec[zlib.crc32(token.encode()) % self.dimensions] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        return [v / norm for v in vec] if norm else vec

    def describe(self) -> ProviderInfo:
        return ProviderInfo(title="Fake Configuration", fields=[("Model", self.model)])


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path):
    """Keep the developer's env vars and ~/.codesearch out of every test."""
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr("codesearch.config._GLOBAL_CONFIG_PATH", tmp_path / "no-global" / "config.yaml")


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo configure_logging() so handlers never outlive a CliRunner stream."""
    yield
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


@pytest.fixture
def tmp_conn(tmp_path):
    """File-based store in tmp_path with migrations applied, closed after test."""
    conn = Database(tmp_path / "codesearch.db").connect()
    run_migrations(conn)
    yield conn
    conn.close()


@pytest.fixture
def fake_provider() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def collection(tmp_conn, fake_provider):
    return VectorStore(tmp_conn).get_or_create_collection("codebase", fake_provider)


@pytest.fixture
def engine(collection, fake_provider) -> CodeSearchEngine:
    return CodeSearchEngine(collection, fake_provider)


@pytest.fixture
def make_provider():
    """Factory for fake providers of a chosen vector size."""
    return FakeEmbeddingProvider
