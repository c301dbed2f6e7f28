"""Embedding provider interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass, field


@dataclass
class ProviderInfo:
    """What ``get_embedding_provider_info`` reports about a provider.

    Attributes:
        title: Section heading, e.g. "Ollama Configuration".
        fields: Ordered (label, value) pairs rendered as a bullet list.
    """

    title: str
    fields: list[tuple[str, str]] = field(default_factory=list)


class EmbeddingProvider(ABC):
    """Computes fixed-size embedding vectors for text.

    Subclasses set ``name`` (the provider identifier reported to users) and
    implement ``embed()`` and ``describe()``.
    """

    name: str = ""

    def __init__(self, model: str, dimensions: int) -> None:
        if dimensions < 1:
            raise ValueError("dimensions must be >= 1")
        self.model = model
        self.dimensions = dimensions

    @abstractmethod
    def embed(self, texts: Sequence[str]) -> list[list[float]]:
        """Return one vector per text, in input order."""

    @abstractmethod
    def describe(self) -> ProviderInfo:
        """Return configuration details, probing the backend where possible."""

    def zero_vector(self) -> list[float]:
        return [0.0] * self.dimensions
