"""OpenAI-compatible embedding provider adapter.

:class:`OpenAICompatibleEmbedder` holds the request loop shared by every
backend that speaks the ``/v1/embeddings`` protocol: split the input into
per-call batches, restore input order from each item's ``index``, and
check that one vector came back per text.  :class:`OpenAIEmbeddingProvider`
points it at OpenAI (or a compatible host such as TogetherAI or Fireworks
via ``openai_base_url``); the Nomic adapter points it at Ollama.
"""

from __future__ import annotations

import openai
import structlog

from newsrag.config.settings import Settings
from newsrag.interfaces.embedding_provider import IEmbeddingProvider
from newsrag.utils.errors import EmbeddingError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MODEL = "text-embedding-3-small"

# Known embedding model dimensions.
_MODEL_DIMENSIONS: dict[str, int] = {
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
    "BAAI/bge-base-en-v1.5": 768,
    "BAAI/bge-large-en-v1.5": 1024,
}


class OpenAICompatibleEmbedder(IEmbeddingProvider):
    """Batching embedder over an ``openai.AsyncOpenAI`` client.

    Parameters
    ----------
    client:
        Configured async client; SDK retries should be disabled because
        the ingestion service owns the retry policy.
    model:
        Embedding model name sent with every request.
    dimension:
        Vector length the model produces.
    label:
        Provider name used in logs and errors.
    batch_limit:
        Maximum number of texts per request.
    """

    def __init__(
        self,
        client: openai.AsyncOpenAI,
        model: str,
        dimension: int,
        label: str,
        batch_limit: int,
    ) -> None:
        self._client = client
        self._model = model
        self._dimension = dimension
        self._label = label
        self._batch_limit = batch_limit

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        vectors: list[list[float]] = []
        for start in range(0, len(texts), self._batch_limit):
            vectors.extend(await self._embed_batch(texts[start : start + self._batch_limit]))

        if len(vectors) != len(texts):
            raise EmbeddingError(
                message=f"Expected {len(texts)} vectors, got {len(vectors)}",
                provider_name=self._label,
            )
        return vectors

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    async def _embed_batch(self, batch: list[str]) -> list[list[float]]:
        try:
            response = await self._client.embeddings.create(input=batch, model=self._model)
        except openai.APIError as exc:
            raise EmbeddingError(
                message=f"{self._label} API error: {exc}",
                provider_name=self._label,
            ) from exc

        logger.debug(
            "embedding_batch",
            provider=self._label,
            model=self._model,
            batch_size=len(batch),
            tokens=response.usage.total_tokens if response.usage else None,
        )
        # Position comes from ``index``, not from response order.
        return [item.embedding for item in sorted(response.data, key=lambda item: item.index)]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return self._label


class OpenAIEmbeddingProvider(OpenAICompatibleEmbedder):
    """``text-embedding-3-small`` (1536 dims) unless ``openai_embedding_model`` is set."""

    def __init__(self, settings: Settings) -> None:
        self._api_key = settings.openai_api_key
        client_kwargs: dict = {
            "api_key": self._api_key,
            "timeout": openai.Timeout(settings.provider_timeout_seconds, connect=5.0),
            "max_retries": 0,
        }
        if settings.openai_base_url:
            client_kwargs["base_url"] = settings.openai_base_url

        model = settings.openai_embedding_model or _DEFAULT_MODEL
        super().__init__(
            client=openai.AsyncOpenAI(**client_kwargs),
            model=model,
            dimension=_MODEL_DIMENSIONS.get(model, 768),
            label=(
                "openai-compatible_embedding" if settings.openai_base_url else "openai_embedding"
            ),
            batch_limit=2048,
        )

    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
        return bool(self._api_key)
