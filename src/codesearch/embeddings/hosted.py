"""Hosted embedding provider via LiteLLM.

One ``litellm.embedding()`` call per batch, with LiteLLM's built-in retry and
exponential backoff. The API key is checked when the provider is built so a
misconfigured server refuses to start instead of failing mid-ingest.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import litellm

from codesearch.config import ConfigError
from codesearch.embeddings.base import EmbeddingProvider, ProviderInfo
from codesearch.logging import get_logger

# Disable LiteLLM verbose logging unless explicitly enabled
litellm.suppress_debug_info = True


class HostedEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a hosted API (OpenAI by default).

    Args:
        model: LiteLLM model string in 'provider/model' format.
        api_key: Credential for the hosted API. Required.
        dimensions: Vector size produced by *model*.
        num_retries: Retries on transient API errors.
        logger: structlog logger; defaults to the ``embeddings.hosted`` logger.

    Raises:
        ConfigError: If *api_key* is missing or empty.
    """

    name = "openai"

    def __init__(
        self,
        model: str,
        api_key: str | None,
        dimensions: int = 1536,
        num_retries: int = 3,
        logger: Any = None,
    ) -> None:
        if not api_key:
            raise ConfigError(
                "OpenAI API key required when using hosted embeddings.\n"
                "  Set:  export OPENAI_API_KEY=sk-..."
            )
        super().__init__(model=model, dimensions=dimensions)
        self._api_key = api_key
        self._num_retries = num_retries
        self._log = logger or get_logger("embeddings.hosted")

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        if not texts:
            return []
        try:
            response = litellm.embedding(
                model=self.model,
                input=list(texts),
                api_key=self._api_key,
                num_retries=self._num_retries,
            )
        except Exception as exc:
            self._log.error("embedding_request_failed", model=self.model, count=len(texts), error=str(exc))
            raise
        return [list(item["embedding"]) for item in response.data]

    def describe(self) -> ProviderInfo:
        return ProviderInfo(
            title="OpenAI Configuration",
            fields=[
                ("Model", self.model),
                ("API Key", "Configured ✓" if self._api_key else "Not configured ✗"),
            ],
        )
