"""Orchestrator for the article ingestion pipeline.

Pipeline stages: **fetch -> extract -> chunk -> embed -> upsert**.

The :class:`IngestionService` coordinates four collaborators (article
providers, chunker, embedding provider, vector store) without any of them
knowing about each other.  Each run walks the phases of
:class:`~newsrag.models.rag.IngestionPhase`:

    1. FETCHING   -- list entries from every article provider, capping the
                     total at ``max_articles`` spread evenly across sources
    2. EXTRACTING -- fetch article bodies concurrently (semaphore-bounded);
                     failed or thin articles are skipped, never fatal
    3. CHUNKING   -- split each article into overlapping windows
    4. EMBEDDING  -- embed one bounded batch of chunks per backend call
    5. UPSERTING  -- store that batch and wait for acknowledgement before
                     embedding the next one (back-pressure, bounded memory)

Failure policy: a per-article problem is logged and the article skipped.
An embedding or vector-store failure aborts the whole run with
:class:`~newsrag.utils.errors.IngestionError`, which carries the partial
report so operators can see how far the run got.

All dependencies are injected via constructor, so providers can be swapped
(e.g. OpenAI -> Ollama embeddings) without changing this class.
"""

from __future__ import annotations

import asyncio
import math
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from newsrag.models.rag import (
    DocumentChunk,
    FeedEntry,
    IngestionPhase,
    IngestionReport,
    SourceArticle,
)
from newsrag.services.ingestion.chunker import TextChunker
from newsrag.utils.concurrency import call_with_timeout, retry_async, throttled_gather
from newsrag.utils.errors import (
    EmbeddingError,
    ExtractionError,
    IngestionError,
    RAGError,
    VectorIndexError,
)

if TYPE_CHECKING:
    from newsrag.interfaces.article_provider import IArticleProvider
    from newsrag.interfaces.embedding_provider import IEmbeddingProvider
    from newsrag.interfaces.vector_store_provider import IVectorStoreProvider

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class _RunState:
    """Mutable counters for one run; frozen into an IngestionReport at the end."""

    started: float
    phase: IngestionPhase = IngestionPhase.FETCHING
    articles_listed: int = 0
    articles_indexed: int = 0
    articles_skipped: int = 0
    chunks_indexed: int = 0
    failed_sources: list[str] = field(default_factory=list)

    def report(self, phase: IngestionPhase | None = None, error: str | None = None) -> IngestionReport:
        return IngestionReport(
            phase=phase or self.phase,
            articles_listed=self.articles_listed,
            articles_indexed=self.articles_indexed,
            articles_skipped=self.articles_skipped,
            chunks_indexed=self.chunks_indexed,
            failed_sources=list(self.failed_sources),
            error=error,
            duration_seconds=round(time.monotonic() - self.started, 3),
        )


class IngestionService:
    """Runs the fetch -> extract -> chunk -> embed -> upsert pipeline.

    Parameters
    ----------
    chunker:
        Splits article text into overlapping windows.
    embedding_provider:
        Generates embedding vectors for chunk text.
    vector_store:
        Stores embedded chunks for semantic retrieval.
    article_providers:
        Sources of articles, e.g. one RSS feed each.
    max_articles:
        Cap on articles per run, distributed evenly across sources.
    min_article_length:
        Articles whose body is shorter than this are skipped as stubs.
    batch_size:
        Chunks per embedding call and per upsert.
    fetch_concurrency:
        Maximum simultaneous article fetches.
    timeout:
        Per-call timeout in seconds for every external call.
    max_retries / retry_backoff:
        Bounded retry with linear backoff for embedding and upsert calls.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_provider: IEmbeddingProvider,
        vector_store: IVectorStoreProvider,
        article_providers: list[IArticleProvider],
        max_articles: int = 50,
        min_article_length: int = 100,
        batch_size: int = 100,
        fetch_concurrency: int = 5,
        timeout: float = 30.0,
        max_retries: int = 2,
        retry_backoff: float = 1.0,
    ) -> None:
        self._chunker = chunker
        self._embedding_provider = embedding_provider
        self._vector_store = vector_store
        self._article_providers = list(article_providers)
        self._max_articles = max_articles
        self._min_article_length = min_article_length
        self._batch_size = batch_size
        self._fetch_concurrency = fetch_concurrency
        self._timeout = timeout
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self) -> IngestionReport:
        """Execute one ingestion run.

        Returns
        -------
        IngestionReport
            Counts of articles listed, indexed, and skipped, plus chunks
            stored.

        Raises
        ------
        IngestionError
            If the embedder or vector store fails; ``exc.report`` holds the
            partial report with ``phase == FAILED``.
        """
        state = _RunState(started=time.monotonic())
        logger.info(
            "ingestion_started",
            sources=len(self._article_providers),
            max_articles=self._max_articles,
        )

        entries = await self._fetch_entries(state)

        state.phase = IngestionPhase.EXTRACTING
        articles = await self._extract_articles(entries, state)

        state.phase = IngestionPhase.CHUNKING
        article_chunks: list[list[DocumentChunk]] = []
        for article in articles:
            chunks = self._chunker.chunk(article)
            if not chunks:
                state.articles_skipped += 1
                logger.info("article_skipped", url=article.url, reason="no_chunks")
                continue
            article_chunks.append(chunks)

        try:
            await self._embed_and_store(article_chunks, state)
        except RAGError as exc:
            report = state.report(phase=IngestionPhase.FAILED, error=str(exc))
            logger.error(
                "ingestion_failed",
                failed_phase=state.phase.value,
                error=str(exc),
                articles_indexed=report.articles_indexed,
                chunks_indexed=report.chunks_indexed,
            )
            raise IngestionError(
                message=f"Ingestion aborted during {state.phase.value}: {exc.message}",
                provider_name=exc.provider_name,
                report=report,
            ) from exc

        report = state.report(phase=IngestionPhase.DONE)
        logger.info(
            "ingestion_complete",
            articles_listed=report.articles_listed,
            articles_indexed=report.articles_indexed,
            articles_skipped=report.articles_skipped,
            chunks=report.chunks_indexed,
            failed_sources=report.failed_sources,
            time_s=report.duration_seconds,
        )
        return report

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    async def _fetch_entries(
        self, state: _RunState
    ) -> list[tuple[FeedEntry, IArticleProvider]]:
        """List entries from every source, deduplicated by URL and capped.

        Each entry is paired with the provider that listed it, which is the
        one that knows how to extract it.
        """
        if not self._article_providers:
            return []
        per_source = math.ceil(self._max_articles / len(self._article_providers))

        semaphore = asyncio.Semaphore(self._fetch_concurrency)
        listings = await throttled_gather(
            [
                call_with_timeout(
                    lambda p=provider: p.list_entries(per_source),
                    self._timeout,
                    ExtractionError,
                    provider.get_provider_name(),
                    "feed listing",
                )
                for provider in self._article_providers
            ],
            semaphore,
        )

        entries: list[tuple[FeedEntry, IArticleProvider]] = []
        seen_urls: set[str] = set()
        for provider, listing in zip(self._article_providers, listings, strict=True):
            # A failing source is skipped; cancellation still propagates.
            if isinstance(listing, Exception):
                state.failed_sources.append(provider.get_provider_name())
                logger.warning(
                    "feed_listing_failed",
                    provider=provider.get_provider_name(),
                    error=str(listing),
                    error_type=type(listing).__name__,
                )
                continue
            if isinstance(listing, BaseException):
                raise listing
            for entry in listing[:per_source]:
                if entry.url in seen_urls:
                    continue
                seen_urls.add(entry.url)
                entries.append((entry, provider))

        entries = entries[: self._max_articles]
        state.articles_listed = len(entries)
        return entries

    async def _extract_articles(
        self, entries: list[tuple[FeedEntry, IArticleProvider]], state: _RunState
    ) -> list[SourceArticle]:
        """Fetch bodies concurrently; skip failures and thin content."""
        if not entries:
            return []

        semaphore = asyncio.Semaphore(self._fetch_concurrency)
        results = await throttled_gather(
            [
                call_with_timeout(
                    lambda p=provider, e=entry: p.extract_article(e),
                    self._timeout,
                    ExtractionError,
                    provider.get_provider_name(),
                    f"fetching {entry.url}",
                )
                for entry, provider in entries
            ],
            semaphore,
        )

        articles: list[SourceArticle] = []
        for (entry, _), result in zip(entries, results, strict=True):
            if isinstance(result, Exception):
                state.articles_skipped += 1
                logger.warning(
                    "article_skipped",
                    url=entry.url,
                    reason="extraction_failed",
                    error=str(result),
                    error_type=type(result).__name__,
                )
                continue
            if isinstance(result, BaseException):
                raise result
            if len(result.text.strip()) < self._min_article_length:
                state.articles_skipped += 1
                logger.info(
                    "article_skipped",
                    url=entry.url,
                    reason="too_short",
                    text_length=len(result.text.strip()),
                )
                continue
            articles.append(result)
        return articles

    async def _embed_and_store(
        self, article_chunks: list[list[DocumentChunk]], state: _RunState
    ) -> None:
        """Embed and upsert chunks batch by batch.

        Each batch is one embedding call followed by one upsert that is
        awaited before the next batch starts.  An article counts as indexed
        once its last chunk has been stored.
        """
        state.phase = IngestionPhase.EMBEDDING
        if not article_chunks:
            return
        await call_with_timeout(
            lambda: self._vector_store.ensure_collection(self._embedding_provider.get_dimension()),
            self._timeout,
            VectorIndexError,
            self._vector_store.get_provider_name(),
            "ensure collection",
        )

        flat: list[DocumentChunk] = [chunk for chunks in article_chunks for chunk in chunks]
        # Index (exclusive) into ``flat`` at which each article's chunks end.
        article_ends: list[int] = []
        total = 0
        for chunks in article_chunks:
            total += len(chunks)
            article_ends.append(total)

        for start in range(0, len(flat), self._batch_size):
            batch = flat[start : start + self._batch_size]

            state.phase = IngestionPhase.EMBEDDING
            embeddings = await retry_async(
                lambda texts=[c.text for c in batch]: self._embedding_provider.embed(texts),
                timeout=self._timeout,
                max_retries=self._max_retries,
                backoff=self._retry_backoff,
                error_cls=EmbeddingError,
                provider_name=self._embedding_provider.get_provider_name(),
                operation="embed batch",
            )
            if len(embeddings) != len(batch):
                raise EmbeddingError(
                    message=f"Expected {len(batch)} vectors, got {len(embeddings)}",
                    provider_name=self._embedding_provider.get_provider_name(),
                )

            state.phase = IngestionPhase.UPSERTING
            stored = await retry_async(
                lambda chunks=batch, vectors=embeddings: self._vector_store.upsert(chunks, vectors),
                timeout=self._timeout,
                max_retries=self._max_retries,
                backoff=self._retry_backoff,
                error_cls=VectorIndexError,
                provider_name=self._vector_store.get_provider_name(),
                operation="upsert batch",
            )
            state.chunks_indexed += stored
            state.articles_indexed = sum(1 for end in article_ends if end <= start + len(batch))
            logger.info(
                "ingestion_batch_stored",
                batch_start=start,
                batch_size=len(batch),
                chunks_indexed=state.chunks_indexed,
            )

