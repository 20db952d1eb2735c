"""Nomic embedding provider adapter (local/free via Ollama).

Ollama serves ``nomic-embed-text`` (768 dimensions) through its
OpenAI-compatible ``/v1`` endpoint, so this adapter is the shared
OpenAI-compatible embedder pointed at the local server.  No API key.
"""

from __future__ import annotations

import httpx
import openai

from newsrag.config.settings import Settings
from newsrag.providers.embedding.openai_embedding_provider import OpenAICompatibleEmbedder

_MODEL_DIMENSIONS: dict[str, int] = {
    "nomic-embed-text": 768,
    "mxbai-embed-large": 1024,
    "all-minilm": 384,
}


class NomicEmbeddingProvider(OpenAICompatibleEmbedder):
    """Embeddings from a local Ollama server, 512 texts per request."""

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        model = settings.ollama_embedding_model or "nomic-embed-text"
        super().__init__(
            client=openai.AsyncOpenAI(
                base_url=f"{self._base_url}/v1",
                api_key="ollama",
                timeout=openai.Timeout(settings.provider_timeout_seconds, connect=5.0),
                max_retries=0,
            ),
            model=model,
            dimension=_MODEL_DIMENSIONS.get(model, 768),
            label="nomic_embedding",
            batch_limit=512,
        )

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama server answers its model listing."""
        if not self._base_url:
            return False
        try:
            response = httpx.get(f"{self._base_url}/api/tags", timeout=3.0)
        except (httpx.ConnectError, httpx.TimeoutException):
            return False
        return response.status_code == 200
