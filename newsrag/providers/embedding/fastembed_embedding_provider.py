"""Local ONNX embedding provider using fastembed.

Installed through the ``fastembed`` extra.  The model is downloaded on
first use and cached; after that no network access is needed.  Both the
model load and inference are CPU-bound, so they run in worker threads.
"""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from newsrag.interfaces.embedding_provider import IEmbeddingProvider
from newsrag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_MODEL_DIMENSIONS: dict[str, int] = {
    "intfloat/multilingual-e5-large": 1024,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-small-en-v1.5": 384,
    "sentence-transformers/all-MiniLM-L6-v2": 384,
}

_DEFAULT_MODEL = "BAAI/bge-small-en-v1.5"
_BATCH_LIMIT = 64


def _load_text_embedding(model_name: str) -> Any:
    from fastembed import TextEmbedding

    return TextEmbedding(model_name=model_name)


class FastEmbedEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by a fastembed ``TextEmbedding`` model."""

    def __init__(self, model_name: str | None = None) -> None:
        self._model_name = model_name or _DEFAULT_MODEL
        self._dimension = _MODEL_DIMENSIONS.get(self._model_name, 384)
        self._model: Any = None
        self._load_lock = asyncio.Lock()

    async def _ensure_model(self) -> Any:
        async with self._load_lock:
            if self._model is None:
                logger.info("fastembed_model_loading", model=self._model_name)
                try:
                    self._model = await asyncio.to_thread(_load_text_embedding, self._model_name)
                except Exception as exc:
                    raise EmbeddingError(
                        message=f"Failed to load fastembed model '{self._model_name}': {exc}",
                        provider_name=self.get_provider_name(),
                    ) from exc
                logger.info("fastembed_model_loaded", model=self._model_name, dimension=self._dimension)
        return self._model

    @staticmethod
    def _run(model: Any, texts: list[str]) -> list[list[float]]:
        vectors: list[list[float]] = []
        for start in range(0, len(texts), _BATCH_LIMIT):
            # fastembed yields one numpy array per text.
            vectors.extend(array.tolist() for array in model.embed(texts[start : start + _BATCH_LIMIT]))
        return vectors

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        model = await self._ensure_model()
        try:
            return await asyncio.to_thread(self._run, model, texts)
        except Exception as exc:
            raise EmbeddingError(
                message=f"Fastembed embedding error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return f"fastembed_{self._model_name.split('/')[-1]}"

    def is_available(self) -> bool:
        """Return ``True`` if the fastembed package is installed."""
        try:
            import fastembed  # noqa: F401
        except ImportError:
            return False
        return True
