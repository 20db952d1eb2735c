"""Shared pytest fixtures for the newsrag test suite."""

from __future__ import annotations

import asyncio
import hashlib
import math
from collections.abc import AsyncIterator
from datetime import datetime, timezone

import pytest

from newsrag.interfaces.article_provider import IArticleProvider
from newsrag.interfaces.embedding_provider import IEmbeddingProvider
from newsrag.interfaces.llm_provider import ILLMProvider
from newsrag.models.rag import DocumentChunk, FeedEntry, SourceArticle
from newsrag.utils.errors import EmbeddingError, ExtractionError, GenerationError

# ---------------------------------------------------------------------------
# Fake embedder
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(IEmbeddingProvider):
    """Deterministic bag-of-words embedder.

    Each lowercase word is hashed into one of ``dimension`` buckets, so
    texts sharing words have a high cosine similarity and identical texts
    embed identically.
    """

    def __init__(self, dimension: int = 32, fail_after_calls: int | None = None) -> None:
        self._dimension = dimension
        self._fail_after_calls = fail_after_calls
        self.calls: list[list[str]] = []

    def _vector(self, text: str) -> list[float]:
        vector = [0.0] * self._dimension
        for word in text.lower().split():
            digest = hashlib.sha256(word.encode("utf-8")).digest()
            vector[digest[0] % self._dimension] += 1.0
        norm = math.sqrt(sum(v * v for v in vector))
        return [v / norm for v in vector] if norm else vector

    async def embed(self, texts: list[str]) -> list[list[float]]:
        if self._fail_after_calls is not None and len(self.calls) >= self._fail_after_calls:
            raise EmbeddingError(message="embedder offline", provider_name="fake_embedding")
        self.calls.append(list(texts))
        return [self._vector(text) for text in texts]

    async def embed_single(self, text: str) -> list[float]:
        return (await self.embed([text]))[0]

    def get_dimension(self) -> int:
        return self._dimension

    def get_provider_name(self) -> str:
        return "fake_embedding"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Scripted LLMs
# ---------------------------------------------------------------------------


class ScriptedLLM(ILLMProvider):
    """LLM that returns a fixed answer, optionally split into fragments.

    ``fail`` makes every call raise ``GenerationError``; ``fail_after``
    makes :meth:`stream` raise after that many fragments.  ``delay`` is
    awaited before each fragment.
    """

    def __init__(
        self,
        name: str = "scripted",
        fragments: list[str] | None = None,
        fail: bool = False,
        fail_after: int | None = None,
        delay: float = 0.0,
    ) -> None:
        self._name = name
        self.fragments = fragments if fragments is not None else ["Hello", ", ", "world."]
        self._fail = fail
        self._fail_after = fail_after
        self._delay = delay
        self.complete_calls: list[tuple[str, str]] = []
        self.stream_calls = 0
        self.stream_closed = False

    @property
    def answer(self) -> str:
        return "".join(self.fragments)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        self.complete_calls.append((system_prompt, user_prompt))
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._fail:
            raise GenerationError(message="backend down", provider_name=self._name)
        return self.answer

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        self.stream_calls += 1
        try:
            if self._fail:
                raise GenerationError(message="backend down", provider_name=self._name)
            for index, fragment in enumerate(self.fragments):
                if self._fail_after is not None and index >= self._fail_after:
                    raise GenerationError(message="stream broke", provider_name=self._name)
                if self._delay:
                    await asyncio.sleep(self._delay)
                yield fragment
        finally:
            self.stream_closed = True

    def get_provider_name(self) -> str:
        return self._name

    def is_available(self) -> bool:
        return True

    async def validate_credentials(self) -> bool:
        return not self._fail


class BatchOnlyLLM(ILLMProvider):
    """LLM without native streaming; relies on the interface default."""

    def __init__(self, answer: str = "Batched answer.") -> None:
        self._answer = answer

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        return self._answer

    def get_provider_name(self) -> str:
        return "batch_only"

    def is_available(self) -> bool:
        return True

    async def validate_credentials(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fake article source
# ---------------------------------------------------------------------------


class FakeArticleProvider(IArticleProvider):
    """In-memory article source keyed by URL.

    ``bodies`` maps URL to article text; a URL listed in ``broken`` raises
    ``ExtractionError`` on extraction and one in ``crashing`` raises a plain
    ``RuntimeError``.  ``listing_error`` makes the listing itself fail with
    ``ExtractionError`` and ``listing_crash`` with ``RuntimeError``.
    """

    def __init__(
        self,
        name: str,
        bodies: dict[str, str],
        broken: set[str] | None = None,
        listing_error: bool = False,
        crashing: set[str] | None = None,
        listing_crash: bool = False,
    ) -> None:
        self._name = name
        self._bodies = bodies
        self._broken = broken or set()
        self._listing_error = listing_error
        self._crashing = crashing or set()
        self._listing_crash = listing_crash
        self.listed_limits: list[int] = []
        self.extracted: list[str] = []

    async def list_entries(self, limit: int) -> list[FeedEntry]:
        self.listed_limits.append(limit)
        if self._listing_error:
            raise ExtractionError(message="feed unreachable", provider_name=self.get_provider_name())
        if self._listing_crash:
            raise RuntimeError("feed parser bug")
        return [
            FeedEntry(
                title=f"Story {index}",
                url=url,
                published_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
                source=self._name,
            )
            for index, url in enumerate(self._bodies)
        ][:limit]

    async def extract_article(self, entry: FeedEntry) -> SourceArticle:
        self.extracted.append(entry.url)
        if entry.url in self._broken:
            raise ExtractionError(message="404", provider_name=self.get_provider_name())
        if entry.url in self._crashing:
            raise RuntimeError("unexpected markup")
        return SourceArticle(
            title=entry.title,
            text=self._bodies[entry.url],
            url=entry.url,
            published_at=entry.published_at,
            source=entry.source,
        )

    def get_provider_name(self) -> str:
        return f"fake:{self._name}"

    def is_available(self) -> bool:
        return True


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def make_chunk(
    chunk_id: str = "a-0",
    text: str = "quantum computing breakthrough announced",
    title: str = "Quantum leap",
    url: str = "https://example.com/quantum",
    chunk_index: int = 0,
) -> DocumentChunk:
    return DocumentChunk(
        chunk_id=chunk_id,
        text=text,
        title=title,
        url=url,
        timestamp="2024-05-01T00:00:00+00:00",
        source="example.com",
        chunk_index=chunk_index,
    )


def long_text(words: int = 80, seed: str = "news") -> str:
    """Return a deterministic article body of roughly ``words`` words."""
    return " ".join(f"{seed}{i % 17}" for i in range(words))


@pytest.fixture
def fake_embedder() -> FakeEmbeddingProvider:
    return FakeEmbeddingProvider()


@pytest.fixture
def scripted_llm() -> ScriptedLLM:
    return ScriptedLLM()


@pytest.fixture
def sample_article() -> SourceArticle:
    return SourceArticle(
        title="Chip makers race ahead",
        text="A" * 2500,
        url="https://example.com/chips",
        published_at=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        source="example.com",
    )
