"""Startup wiring for the news RAG system.

Builds every provider and service exactly once from a :class:`Settings`
value and injects them into a :class:`RAGOrchestrator`.  Backend names come
from configuration (``EMBEDDING_PROVIDER``, ``LLM_PROVIDER`` plus
``LLM_FALLBACK_PROVIDERS``, ``VECTOR_STORE_PROVIDER``,
``SESSION_STORE_PROVIDER``); an unknown name or a selected backend without
its credentials is a :class:`ConfigurationError` at startup, never a
per-request failure.
"""

from __future__ import annotations

import httpx
import structlog

from newsrag.config.loader import load_settings
from newsrag.config.settings import Settings
from newsrag.interfaces.article_provider import IArticleProvider
from newsrag.interfaces.embedding_provider import IEmbeddingProvider
from newsrag.interfaces.llm_provider import ILLMProvider
from newsrag.interfaces.session_store import ISessionStore
from newsrag.interfaces.vector_store_provider import IVectorStoreProvider
from newsrag.pipeline.orchestrator import RAGOrchestrator
from newsrag.providers.article.rss_feed_provider import RSSFeedProvider, build_http_client
from newsrag.providers.embedding.nomic_embedding_provider import NomicEmbeddingProvider
from newsrag.providers.embedding.openai_embedding_provider import OpenAIEmbeddingProvider
from newsrag.providers.llm.anthropic_provider import AnthropicLLMProvider
from newsrag.providers.llm.fallback_provider import FallbackLLMProvider
from newsrag.providers.llm.ollama_provider import OllamaLLMProvider
from newsrag.providers.llm.openai_provider import OpenAILLMProvider
from newsrag.providers.session.memory_session_store import InMemorySessionStore
from newsrag.providers.session.redis_session_store import RedisSessionStore
from newsrag.providers.session.sqlite_session_store import SQLiteSessionStore
from newsrag.providers.vector_store.chromadb_provider import ChromaDBProvider
from newsrag.providers.vector_store.memory_vector_store import InMemoryVectorStore
from newsrag.services.chat_service import ChatService
from newsrag.services.ingestion.chunker import TextChunker
from newsrag.services.ingestion.ingestion_service import IngestionService
from newsrag.utils.errors import ConfigurationError
from newsrag.utils.logging import configure_logging, get_logger

_logger: structlog.BoundLogger = get_logger(__name__)

EMBEDDING_BACKENDS = ("openai", "nomic", "fastembed")
LLM_BACKENDS = ("openai", "anthropic", "ollama")
VECTOR_STORE_BACKENDS = ("chromadb", "memory")
SESSION_STORE_BACKENDS = ("memory", "sqlite", "redis")


def _unknown_backend(kind: str, name: str, allowed: tuple[str, ...]) -> ConfigurationError:
    return ConfigurationError(
        message=f"Unknown {kind} backend {name!r}; expected one of: {', '.join(allowed)}"
    )


def _require_key(value: str, env_name: str, backend: str) -> None:
    if not value:
        raise ConfigurationError(
            message=f"{env_name} is required when the {backend!r} backend is selected",
            provider_name=backend,
        )


# ---------------------------------------------------------------------------
# Provider factories
# ---------------------------------------------------------------------------


def build_embedding_provider(settings: Settings) -> IEmbeddingProvider:
    """Return the embedding backend named by ``settings.embedding_provider``."""
    name = settings.embedding_provider
    if name == "openai":
        _require_key(settings.openai_api_key, "OPENAI_API_KEY", name)
        return OpenAIEmbeddingProvider(settings=settings)
    if name == "nomic":
        return NomicEmbeddingProvider(settings=settings)
    if name == "fastembed":
        # Optional extra; imported only when selected.
        from newsrag.providers.embedding.fastembed_embedding_provider import (
            FastEmbedEmbeddingProvider,
        )

        return FastEmbedEmbeddingProvider(model_name=settings.fastembed_model or None)
    raise _unknown_backend("embedding", name, EMBEDDING_BACKENDS)


def _build_single_llm(name: str, settings: Settings) -> ILLMProvider:
    if name == "openai":
        _require_key(settings.openai_api_key, "OPENAI_API_KEY", name)
        return OpenAILLMProvider(settings=settings)
    if name == "anthropic":
        _require_key(settings.anthropic_api_key, "ANTHROPIC_API_KEY", name)
        return AnthropicLLMProvider(settings=settings)
    if name == "ollama":
        return OllamaLLMProvider(settings=settings)
    raise _unknown_backend("LLM", name, LLM_BACKENDS)


def build_llm_provider(settings: Settings) -> FallbackLLMProvider:
    """Return the generation chain: the primary backend, then each fallback."""
    chain = [_build_single_llm(name, settings) for name in settings.get_llm_provider_chain()]
    return FallbackLLMProvider(chain, timeout=settings.provider_timeout_seconds)


def build_vector_store(settings: Settings) -> IVectorStoreProvider:
    name = settings.vector_store_provider
    if name == "chromadb":
        return ChromaDBProvider(
            persist_directory=settings.chromadb_persist_dir,
            collection_name=settings.chromadb_collection,
            server_url=settings.chromadb_url,
        )
    if name == "memory":
        return InMemoryVectorStore()
    raise _unknown_backend("vector store", name, VECTOR_STORE_BACKENDS)


def build_session_store(settings: Settings) -> ISessionStore:
    name = settings.session_store_provider
    if name == "memory":
        return InMemorySessionStore(ttl_seconds=settings.session_ttl_seconds)
    if name == "sqlite":
        return SQLiteSessionStore(
            db_path=settings.session_db_path,
            ttl_seconds=settings.session_ttl_seconds,
        )
    if name == "redis":
        return RedisSessionStore(
            redis_url=settings.redis_url,
            ttl_seconds=settings.session_ttl_seconds,
        )
    raise _unknown_backend("session store", name, SESSION_STORE_BACKENDS)


def build_article_providers(
    settings: Settings, http_client: httpx.AsyncClient
) -> list[IArticleProvider]:
    """One RSS provider per configured feed, all sharing *http_client*."""
    feeds = settings.get_feed_urls()
    if not feeds:
        raise ConfigurationError(message="INGEST_FEEDS must list at least one feed URL")
    return [
        RSSFeedProvider(
            feed_url=url,
            http_client=http_client,
            max_article_chars=settings.ingest_max_article_chars,
        )
        for url in feeds
    ]


# ---------------------------------------------------------------------------
# Service factories
# ---------------------------------------------------------------------------


def build_ingestion_service(
    settings: Settings,
    embedding_provider: IEmbeddingProvider,
    vector_store: IVectorStoreProvider,
    article_providers: list[IArticleProvider],
    chunker: TextChunker | None = None,
) -> IngestionService:
    return IngestionService(
        chunker=chunker or TextChunker(settings.chunk_size, settings.chunk_overlap),
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        article_providers=article_providers,
        max_articles=settings.ingest_max_articles,
        min_article_length=settings.ingest_min_article_length,
        batch_size=settings.ingest_batch_size,
        fetch_concurrency=settings.ingest_fetch_concurrency,
        timeout=settings.provider_timeout_seconds,
        max_retries=settings.provider_max_retries,
        retry_backoff=settings.provider_retry_backoff,
    )


def build_chat_service(
    settings: Settings,
    embedding_provider: IEmbeddingProvider,
    vector_store: IVectorStoreProvider,
    llm_provider: ILLMProvider,
    session_store: ISessionStore,
) -> ChatService:
    return ChatService(
        embedding_provider=embedding_provider,
        vector_store=vector_store,
        llm_provider=llm_provider,
        session_store=session_store,
        top_k=settings.rag_top_k,
        history_turns=settings.chat_history_turns,
        temperature=settings.llm_temperature,
        max_tokens=settings.llm_max_tokens,
        timeout=settings.provider_timeout_seconds,
        stream_queue_size=settings.stream_queue_size,
    )


def build_orchestrator(settings: Settings) -> RAGOrchestrator:
    """Construct every provider and service and wire them together.

    Raises
    ------
    ConfigurationError
        For invalid chunk parameters, unknown backend names, or a selected
        backend whose credentials are missing.
    """
    # Validate everything that can fail on configuration before opening
    # any connection.
    embedding_provider = build_embedding_provider(settings)
    llm_provider = build_llm_provider(settings)
    chunker = TextChunker(settings.chunk_size, settings.chunk_overlap)

    vector_store = build_vector_store(settings)
    session_store = build_session_store(settings)
    http_client = build_http_client()
    article_providers = build_article_providers(settings, http_client)

    ingestion_service = build_ingestion_service(
        settings, embedding_provider, vector_store, article_providers, chunker
    )
    chat_service = build_chat_service(
        settings, embedding_provider, vector_store, llm_provider, session_store
    )

    _logger.info(
        "components_built",
        embedding=embedding_provider.get_provider_name(),
        llm=llm_provider.get_provider_name(),
        vector_store=vector_store.get_provider_name(),
        session_store=session_store.get_provider_name(),
        feeds=len(article_providers),
    )
    return RAGOrchestrator(
        chat_service=chat_service,
        ingestion_service=ingestion_service,
        embedding_provider=embedding_provider,
        llm_provider=llm_provider,
        vector_store=vector_store,
        session_store=session_store,
        http_client=http_client,
        timeout=settings.provider_timeout_seconds,
    )


def create_app_components(
    config_path: str = "config/config.yaml",
) -> tuple[Settings, RAGOrchestrator]:
    """Load settings, configure logging, and build the orchestrator."""
    settings = load_settings(config_path)
    configure_logging(
        log_level=settings.log_level,
        json_output=(settings.app_env == "production"),
    )
    return settings, build_orchestrator(settings)
