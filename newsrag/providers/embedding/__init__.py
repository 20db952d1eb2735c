"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture semantic meaning.
These vectors are stored in the vector store and used for similarity search.

Three implementations of IEmbeddingProvider:
    1. OpenAIEmbeddingProvider    -- text-embedding-3-small (1536 dims), or any
       OpenAI-compatible endpoint.  Requires an API key.
    2. NomicEmbeddingProvider     -- nomic-embed-text via Ollama (768 dims).
       Free and local, but requires a running Ollama server.
    3. FastEmbedEmbeddingProvider -- ONNX-based, no network after download.

Note: FastEmbedEmbeddingProvider is imported directly where needed so that
the optional ``fastembed`` dependency is only touched when selected.
"""

from newsrag.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from newsrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider

__all__ = ["OpenAIEmbeddingProvider", "NomicEmbeddingProvider"]
