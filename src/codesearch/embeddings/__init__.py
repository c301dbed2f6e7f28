"""Embedding providers: hosted API (LiteLLM) and local HTTP endpoint."""

from __future__ import annotations

import os
from typing import Any

from codesearch.config import ConfigError, EmbeddingCfg
from codesearch.embeddings.base import EmbeddingProvider, ProviderInfo
from codesearch.embeddings.hosted import HostedEmbeddingProvider
from codesearch.embeddings.local import LocalEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "HostedEmbeddingProvider",
    "LocalEmbeddingProvider",
    "ProviderInfo",
    "create_provider",
]


def create_provider(cfg: EmbeddingCfg, logger: Any = None) -> EmbeddingProvider:
    """Build the provider selected by ``cfg.provider``.

    The hosted provider reads its credential from ``OPENAI_API_KEY``.

    Raises:
        ConfigError: For an unknown provider or a missing hosted credential.
    """
    if cfg.provider == "openai":
        return HostedEmbeddingProvider(
            model=cfg.hosted_model,
            api_key=os.environ.get("OPENAI_API_KEY"),
            dimensions=cfg.hosted_dimensions,
            logger=logger,
        )
    if cfg.provider == "ollama":
        return LocalEmbeddingProvider(
            host=cfg.ollama_host,
            model=cfg.ollama_model,
            dimensions=cfg.ollama_dimensions,
            timeout=cfg.request_timeout,
            logger=logger,
        )
    raise ConfigError(f"Unknown embedding provider '{cfg.provider}'. Supported: ollama, openai")
