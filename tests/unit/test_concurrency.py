"""Unit tests for the shared timeout, retry, and throttling helpers."""

from __future__ import annotations

import asyncio

import pytest

from newsrag.utils.concurrency import (
    call_with_timeout,
    iterate_with_timeout,
    retry_async,
    throttled_gather,
)
from newsrag.utils.errors import EmbeddingError, GenerationError, VectorIndexError


class TestThrottledGather:
    @pytest.mark.asyncio
    async def test_concurrency_never_exceeds_semaphore(self) -> None:
        running = 0
        peak = 0

        async def work(value: int) -> int:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return value * 2

        results = await throttled_gather([work(i) for i in range(8)], asyncio.Semaphore(3))

        assert results == [i * 2 for i in range(8)]
        assert peak <= 3

    @pytest.mark.asyncio
    async def test_exceptions_are_returned_in_place(self) -> None:
        async def boom() -> int:
            raise ValueError("bad")

        async def fine() -> int:
            return 1

        results = await throttled_gather([fine(), boom()], asyncio.Semaphore(2))

        assert results[0] == 1
        assert isinstance(results[1], ValueError)


class TestCallWithTimeout:
    @pytest.mark.asyncio
    async def test_result_passes_through(self) -> None:
        async def quick() -> str:
            return "ok"

        assert await call_with_timeout(quick, 1.0, EmbeddingError, "fake", "op") == "ok"

    @pytest.mark.asyncio
    async def test_deadline_raises_callers_error_class(self) -> None:
        async def slow() -> None:
            await asyncio.sleep(1.0)

        with pytest.raises(VectorIndexError, match="vector query timed out") as exc_info:
            await call_with_timeout(slow, 0.01, VectorIndexError, "chromadb", "vector query")

        assert exc_info.value.provider_name == "chromadb"


class TestRetryAsync:
    @pytest.mark.asyncio
    async def test_retries_until_success(self) -> None:
        attempts = 0

        async def flaky() -> str:
            nonlocal attempts
            attempts += 1
            if attempts < 3:
                raise EmbeddingError(message="busy", provider_name="fake")
            return "done"

        result = await retry_async(
            flaky,
            timeout=1.0,
            max_retries=2,
            backoff=0.0,
            error_cls=EmbeddingError,
            provider_name="fake",
            operation="embed",
        )

        assert result == "done"
        assert attempts == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self) -> None:
        attempts = 0

        async def broken() -> None:
            nonlocal attempts
            attempts += 1
            raise EmbeddingError(message="down", provider_name="fake")

        with pytest.raises(EmbeddingError, match="down"):
            await retry_async(
                broken,
                timeout=1.0,
                max_retries=1,
                backoff=0.0,
                error_cls=EmbeddingError,
                provider_name="fake",
                operation="embed",
            )
        assert attempts == 2

    @pytest.mark.asyncio
    async def test_other_errors_are_not_retried(self) -> None:
        attempts = 0

        async def wrong() -> None:
            nonlocal attempts
            attempts += 1
            raise ValueError("programming error")

        with pytest.raises(ValueError):
            await retry_async(
                wrong,
                timeout=1.0,
                max_retries=3,
                backoff=0.0,
                error_cls=EmbeddingError,
                provider_name="fake",
                operation="embed",
            )
        assert attempts == 1


class TestIterateWithTimeout:
    @pytest.mark.asyncio
    async def test_items_pass_through(self) -> None:
        async def source():
            for item in ("a", "b"):
                yield item

        items = [i async for i in iterate_with_timeout(source(), 1.0, GenerationError, "fake")]

        assert items == ["a", "b"]

    @pytest.mark.asyncio
    async def test_stall_raises_and_closes_source(self) -> None:
        closed = False

        async def source():
            nonlocal closed
            try:
                yield "first"
                await asyncio.sleep(1.0)
                yield "never"
            finally:
                closed = True

        received: list[str] = []
        with pytest.raises(GenerationError, match="stream stalled"):
            async for item in iterate_with_timeout(source(), 0.01, GenerationError, "fake"):
                received.append(item)

        assert received == ["first"]
        assert closed is True
