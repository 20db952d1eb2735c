"""Custom exception hierarchy for newsrag.

All application exceptions inherit from :class:`NewsRAGError`, which
carries an optional ``provider_name`` so error handlers can identify which
backend (e.g. "openai", "chromadb", "rss_feed") caused the failure.

The hierarchy follows the failure classes of the RAG pipeline:

    NewsRAGError  (base -- catch-all for any newsrag error)
    +-- ConfigurationError       (startup / invalid or missing config)
    +-- ExtractionError          (one article could not be fetched or parsed)
    +-- ProviderUnavailableError (external service down / unreachable)
    +-- GenerationError          (any LLM call failure, incl. timeouts)
    +-- RAGError                 (embedding or vector-store failure)
    |   +-- EmbeddingError
    |   +-- VectorIndexError
    +-- IngestionError           (an ingestion run was aborted)

Recovery policy by class: ``ExtractionError`` skips one item,
``GenerationError`` moves to the next backend in the fallback chain,
``RAGError`` aborts the enclosing ingestion run or chat request, and
``ConfigurationError`` is fatal at startup.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from newsrag.models.rag import IngestionReport


class NewsRAGError(Exception):
    """Base exception for all newsrag errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name`` identifying which backend triggered the error.  The
    ``__str__`` method prefixes the provider name in brackets for structured
    log output, e.g. ``[openai] Rate limit exceeded``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


class ConfigurationError(NewsRAGError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ExtractionError(NewsRAGError):
    """Raised when a single article cannot be fetched or its body extracted.

    The ingestion pipeline catches this per article and skips the item.
    """

    def __init__(
        self,
        message: str = "Article extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class ProviderUnavailableError(NewsRAGError):
    """Raised when an external service or provider is unreachable."""

    def __init__(
        self,
        message: str = "External service is unavailable",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class GenerationError(NewsRAGError):
    """Raised when an LLM call fails, times out, or returns an empty response.

    :class:`~newsrag.providers.llm.fallback_provider.FallbackLLMProvider`
    catches this to try the next backend in the configured order.
    """

    def __init__(
        self,
        message: str = "LLM API call failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# RAG / vector-store errors
# ---------------------------------------------------------------------------

class RAGError(NewsRAGError):
    """Raised when a RAG pipeline operation fails (embedding or vector store)."""

    def __init__(
        self,
        message: str = "RAG pipeline operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmbeddingError(RAGError):
    """Raised when an embedding backend fails or returns malformed vectors."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class VectorIndexError(RAGError):
    """Raised when a vector-store operation fails or vectors do not fit the collection."""

    def __init__(
        self,
        message: str = "Vector index operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Orchestration errors
# ---------------------------------------------------------------------------

class IngestionError(NewsRAGError):
    """Raised when an ingestion run is aborted by an embedding or index failure.

    Carries the partial :class:`~newsrag.models.rag.IngestionReport` so
    operators can see how far the run got (articles fetched vs. indexed).
    """

    def __init__(
        self,
        message: str = "Ingestion run failed",
        provider_name: str | None = None,
        report: IngestionReport | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
        self._report = report

    @property
    def report(self) -> IngestionReport | None:
        return self._report
