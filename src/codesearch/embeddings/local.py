"""Local embedding provider for an Ollama-compatible HTTP endpoint.

Protocol:
  POST {host}/api/embeddings  {"model": ..., "prompt": ...}  →  {"embedding": [...]}
  GET  {host}/api/tags                                        →  {"models": [{"name": ...}]}

Texts are embedded one request at a time, in order. A failed request never
aborts the batch: the text gets a zero vector and the failure is logged.
"""

from __future__ import annotations

import http.client
import json
import urllib.error
import urllib.request
from collections.abc import Sequence
from typing import Any

from codesearch.embeddings.base import EmbeddingProvider, ProviderInfo
from codesearch.logging import get_logger

_DEFAULT_DIMENSIONS = 384


class LocalEmbeddingProvider(EmbeddingProvider):
    """Embeddings from a local HTTP endpoint, with zero-vector fallback.

    Args:
        host: Base URL, e.g. ``http://localhost:11434``.
        model: Model name sent with every request.
        dimensions: Vector size of *model* and of the fallback zero vector.
        timeout: Per-request timeout in seconds.
        logger: structlog logger; defaults to the ``embeddings.local`` logger.
    """

    name = "ollama"

    def __init__(
        self,
        host: str,
        model: str,
        dimensions: int = _DEFAULT_DIMENSIONS,
        timeout: float = 30.0,
        logger: Any = None,
    ) -> None:
        super().__init__(model=model, dimensions=dimensions)
        self.host = host.rstrip("/")
        self.timeout = timeout
        self._log = logger or get_logger("embeddings.local")

    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for text in texts:
            try:
                vectors.append(self._embed_one(text))
            except (OSError, http.client.HTTPException, ValueError, KeyError, TypeError) as exc:
                # URLError, HTTPError and socket timeouts are OSError; truncated
                # bodies and bad status lines are HTTPException.
                self._log.warning(
                    "embedding_failed",
                    host=self.host,
                    model=self.model,
                    text_preview=text[:50],
                    error=str(exc),
                )
                vectors.append(self.zero_vector())
        return vectors

    def _embed_one(self, text: str) -> list[float]:
        payload = json.dumps({"model": self.model, "prompt": text}).encode("utf-8")
        request = urllib.request.Request(
            f"{self.host}/api/embeddings",
            data=payload,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        with urllib.request.urlopen(request, timeout=self.timeout) as response:
            body = json.loads(response.read().decode("utf-8"))

        embedding = body["embedding"]
        if not isinstance(embedding, list) or not embedding:
            raise ValueError("response has no embedding vector")
        return [float(x) for x in embedding]

    def list_models(self) -> list[str]:
        """Return model names served by the endpoint (``GET /api/tags``).

        Raises:
            urllib.error.URLError: If the endpoint is unreachable or errors.
        """
        with urllib.request.urlopen(f"{self.host}/api/tags", timeout=self.timeout) as response:
            body = json.loads(response.read().decode("utf-8"))
        return [m["name"] for m in body.get("models") or [] if isinstance(m, dict) and "name" in m]

    def describe(self) -> ProviderInfo:
        fields = [("Host", self.host), ("Model", self.model)]
        try:
            models = self.list_models()
        except urllib.error.HTTPError:
            fields.append(("Connection", "✗ Failed to connect"))
        except (OSError, http.client.HTTPException, ValueError) as exc:
            self._log.info("provider_probe_failed", host=self.host, error=str(exc))
            fields.append(("Connection", "✗ Error connecting"))
        else:
            fields.append(("Connection", "✓ Connected"))
            fields.append(("Available Models", ", ".join(models) or "None"))
        return ProviderInfo(title="Ollama Configuration", fields=fields)
