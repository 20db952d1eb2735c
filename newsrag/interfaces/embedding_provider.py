"""Embedding contract shared by ingestion and query-time retrieval.

Chunk text is embedded once at ingestion time; every user question is
embedded again at chat time.  Both sides must use the same provider and
model, because vectors from different models live in unrelated spaces.
The orchestrator pins :meth:`IEmbeddingProvider.get_dimension` against the
vector-store collection at start-up to catch a model swap early.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IEmbeddingProvider(ABC):
    """Turns text into fixed-length float vectors.

    Implementations live in ``newsrag/providers/embedding/``: an
    OpenAI-compatible API, ``nomic-embed-text`` through Ollama, and a
    local fastembed ONNX model.
    """

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed *texts* and return one vector per input, in input order.

        An empty list returns an empty list without contacting the backend.
        Raises :class:`~newsrag.utils.errors.EmbeddingError` when the backend
        fails or answers with the wrong number of vectors.
        """

    @abstractmethod
    async def embed_single(self, text: str) -> list[float]:
        """Embed one query string."""

    @abstractmethod
    def get_dimension(self) -> int:
        """Vector length; fixed for the lifetime of the instance."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Identifier used in logs, errors and health output."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured and usable."""
