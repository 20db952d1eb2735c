"""Public interface definitions for all external service providers.

Every external API or service in the newsrag pipeline is accessed
exclusively through the abstract base classes defined in this package.
Concrete adapters implement these interfaces and are built once at startup
by the factories in ``newsrag.main``, then injected into the services.

CONCRETE PROVIDER MAP:
    Interface                  →  Concrete implementations (in newsrag/providers/)
    ─────────────────────────────────────────────────────────────────────
    ILLMProvider               →  OpenAILLMProvider, AnthropicLLMProvider,
                                  OllamaLLMProvider, FallbackLLMProvider
    IEmbeddingProvider         →  OpenAIEmbeddingProvider,
                                  NomicEmbeddingProvider,
                                  FastEmbedEmbeddingProvider
    IVectorStoreProvider       →  ChromaDBProvider, InMemoryVectorStore
    ISessionStore              →  InMemorySessionStore, SQLiteSessionStore,
                                  RedisSessionStore
    IArticleProvider           →  RSSFeedProvider
"""

from newsrag.interfaces.article_provider import IArticleProvider
from newsrag.interfaces.embedding_provider import IEmbeddingProvider
from newsrag.interfaces.llm_provider import ILLMProvider
from newsrag.interfaces.session_store import ISessionStore
from newsrag.interfaces.vector_store_provider import IVectorStoreProvider

__all__ = [
    "IArticleProvider",
    "IEmbeddingProvider",
    "ILLMProvider",
    "ISessionStore",
    "IVectorStoreProvider",
]
