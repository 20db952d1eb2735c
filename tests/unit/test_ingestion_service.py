"""Unit tests for IngestionService -- fetch, extract, chunk, embed, upsert."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from newsrag.models.rag import IngestionPhase
from newsrag.providers.vector_store.memory_vector_store import InMemoryVectorStore
from newsrag.services.ingestion.chunker import TextChunker
from newsrag.services.ingestion.ingestion_service import IngestionService
from newsrag.utils.errors import IngestionError, VectorIndexError
from tests.conftest import FakeArticleProvider, FakeEmbeddingProvider, long_text


def _service(
    providers: list[FakeArticleProvider],
    embedder: FakeEmbeddingProvider | None = None,
    store: InMemoryVectorStore | None = None,
    **kwargs,
) -> IngestionService:
    kwargs.setdefault("retry_backoff", 0.0)
    return IngestionService(
        chunker=TextChunker(200, 50),
        embedding_provider=embedder or FakeEmbeddingProvider(),
        vector_store=store or InMemoryVectorStore(),
        article_providers=providers,
        **kwargs,
    )


class TestSuccessfulRuns:
    @pytest.mark.asyncio
    async def test_one_extraction_failure_skips_only_that_article(self) -> None:
        provider = FakeArticleProvider(
            "wire",
            {
                "https://wire.test/1": long_text(seed="alpha"),
                "https://wire.test/2": long_text(seed="beta"),
                "https://wire.test/3": long_text(seed="gamma"),
            },
            broken={"https://wire.test/2"},
        )
        store = InMemoryVectorStore()

        report = await _service([provider], store=store).run()

        assert report.phase is IngestionPhase.DONE
        assert report.succeeded
        assert report.articles_listed == 3
        assert report.articles_indexed == 2
        assert report.articles_skipped == 1
        assert report.documents_added == report.chunks_indexed
        assert await store.count() == report.chunks_indexed > 0

    @pytest.mark.asyncio
    async def test_short_articles_are_skipped(self) -> None:
        provider = FakeArticleProvider(
            "wire",
            {"https://wire.test/stub": "Too short.", "https://wire.test/full": long_text()},
        )

        report = await _service([provider], min_article_length=100).run()

        assert report.articles_indexed == 1
        assert report.articles_skipped == 1

    @pytest.mark.asyncio
    async def test_max_articles_is_spread_across_sources(self) -> None:
        first = FakeArticleProvider("a", {f"https://a.test/{i}": long_text() for i in range(10)})
        second = FakeArticleProvider("b", {f"https://b.test/{i}": long_text() for i in range(10)})
        third = FakeArticleProvider("c", {f"https://c.test/{i}": long_text() for i in range(10)})

        report = await _service([first, second, third], max_articles=5).run()

        # ceil(5 / 3) == 2 per source, capped at 5 overall.
        assert first.listed_limits == [2]
        assert report.articles_listed == 5
        assert len(first.extracted) + len(second.extracted) + len(third.extracted) == 5

    @pytest.mark.asyncio
    async def test_duplicate_urls_are_ingested_once(self) -> None:
        shared = {"https://shared.test/story": long_text()}
        report = await _service(
            [FakeArticleProvider("a", shared), FakeArticleProvider("b", shared)]
        ).run()

        assert report.articles_listed == 1
        assert report.articles_indexed == 1

    @pytest.mark.asyncio
    async def test_failed_listing_is_recorded_and_others_continue(self) -> None:
        down = FakeArticleProvider("down", {}, listing_error=True)
        up = FakeArticleProvider("up", {"https://up.test/1": long_text()})

        report = await _service([down, up]).run()

        assert report.failed_sources == ["fake:down"]
        assert report.articles_indexed == 1

    @pytest.mark.asyncio
    async def test_unexpected_listing_error_only_skips_that_source(self) -> None:
        buggy = FakeArticleProvider("buggy", {}, listing_crash=True)
        up = FakeArticleProvider("up", {"https://up.test/1": long_text()})

        report = await _service([buggy, up]).run()

        assert report.phase is IngestionPhase.DONE
        assert report.failed_sources == ["fake:buggy"]
        assert report.articles_indexed == 1

    @pytest.mark.asyncio
    async def test_unexpected_extraction_error_only_skips_that_article(self) -> None:
        provider = FakeArticleProvider(
            "wire",
            {
                "https://wire.test/1": long_text(seed="alpha"),
                "https://wire.test/2": long_text(seed="beta"),
            },
            crashing={"https://wire.test/1"},
        )

        report = await _service([provider]).run()

        assert report.phase is IngestionPhase.DONE
        assert report.articles_indexed == 1
        assert report.articles_skipped == 1

    @pytest.mark.asyncio
    async def test_chunks_are_embedded_in_bounded_batches(self) -> None:
        embedder = FakeEmbeddingProvider()
        provider = FakeArticleProvider(
            "wire", {f"https://wire.test/{i}": long_text(200) for i in range(3)}
        )

        report = await _service([provider], embedder=embedder, batch_size=4).run()

        assert all(len(call) <= 4 for call in embedder.calls)
        assert sum(len(call) for call in embedder.calls) == report.chunks_indexed

    @pytest.mark.asyncio
    async def test_no_sources_is_an_empty_successful_run(self) -> None:
        report = await _service([]).run()

        assert report.phase is IngestionPhase.DONE
        assert report.documents_added == 0


class TestAbortedRuns:
    @pytest.mark.asyncio
    async def test_embedder_failure_aborts_with_partial_report(self) -> None:
        embedder = FakeEmbeddingProvider(fail_after_calls=1)
        provider = FakeArticleProvider(
            "wire", {f"https://wire.test/{i}": long_text(200) for i in range(3)}
        )

        with pytest.raises(IngestionError) as exc_info:
            await _service([provider], embedder=embedder, batch_size=2, max_retries=1).run()

        report = exc_info.value.report
        assert report is not None
        assert report.phase is IngestionPhase.FAILED
        assert report.chunks_indexed == 2
        assert report.articles_listed == 3
        assert "embedder offline" in (report.error or "")

    @pytest.mark.asyncio
    async def test_transient_upsert_failure_is_retried(self) -> None:
        store = InMemoryVectorStore()
        real_upsert = store.upsert
        attempts: list[int] = []

        async def flaky(chunks, embeddings):
            attempts.append(len(chunks))
            if len(attempts) == 1:
                raise VectorIndexError(message="busy", provider_name="memory")
            return await real_upsert(chunks, embeddings)

        store.upsert = flaky
        provider = FakeArticleProvider("wire", {"https://wire.test/1": long_text()})

        report = await _service([provider], store=store, max_retries=2).run()

        assert len(attempts) == 2
        assert report.chunks_indexed == await store.count()

    @pytest.mark.asyncio
    async def test_persistent_upsert_failure_raises_ingestion_error(self) -> None:
        store = InMemoryVectorStore()
        store.upsert = AsyncMock(
            side_effect=VectorIndexError(message="read-only", provider_name="memory")
        )
        provider = FakeArticleProvider("wire", {"https://wire.test/1": long_text()})

        with pytest.raises(IngestionError) as exc_info:
            await _service([provider], store=store, max_retries=2).run()

        assert store.upsert.await_count == 3
        assert exc_info.value.report.phase is IngestionPhase.FAILED
        assert exc_info.value.report.articles_indexed == 0
