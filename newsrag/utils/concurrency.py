"""Shared concurrency primitives for provider calls.

Three patterns are exposed:

1. **throttled_gather** -- ``asyncio.gather`` with every awaitable wrapped
   in a semaphore acquire/release.  Used for the article-extraction
   fan-out during ingestion.

2. **call_with_timeout / retry_async** -- bound every external call in
   time, and optionally retry it a fixed number of times with linear
   backoff.  Exceeding the timeout raises the caller's error class so the
   failure is classified like any other provider failure.

3. **iterate_with_timeout** -- the streaming counterpart: each fragment of
   an async iterator must arrive within the timeout.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import TypeVar

import structlog

from newsrag.utils.errors import NewsRAGError
from newsrag.utils.logging import get_logger

_T = TypeVar("_T")

_logger: structlog.BoundLogger = get_logger(__name__)


async def throttled_gather(
    coros: list[Awaitable[_T]],
    semaphore: asyncio.Semaphore,
    return_exceptions: bool = True,
) -> list[_T | BaseException]:
    """Run awaitables concurrently, at most ``semaphore`` slots at a time.

    Parameters
    ----------
    coros:
        Awaitable objects to execute concurrently.
    semaphore:
        Semaphore bounding how many coroutines run simultaneously.
    return_exceptions:
        If ``True``, exceptions are returned in the results list rather
        than being raised.  Mirrors ``asyncio.gather`` semantics.

    Returns
    -------
    list[_T | BaseException]
        Results in the same order as the input coroutines.
    """

    async def _wrapped(coro: Awaitable[_T]) -> _T:
        async with semaphore:
            return await coro

    tasks = [_wrapped(c) for c in coros]
    return await asyncio.gather(*tasks, return_exceptions=return_exceptions)


async def call_with_timeout(
    call: Callable[[], Awaitable[_T]],
    timeout: float,
    error_cls: type[NewsRAGError],
    provider_name: str,
    operation: str,
) -> _T:
    """Await ``call()`` for at most *timeout* seconds.

    Raises
    ------
    NewsRAGError
        An instance of *error_cls* when the deadline passes.
    """
    try:
        async with asyncio.timeout(timeout):
            return await call()
    except TimeoutError as exc:
        raise error_cls(
            message=f"{operation} timed out after {timeout:.0f}s",
            provider_name=provider_name,
        ) from exc


async def retry_async(
    call: Callable[[], Awaitable[_T]],
    *,
    timeout: float,
    max_retries: int,
    backoff: float,
    error_cls: type[NewsRAGError],
    provider_name: str,
    operation: str,
) -> _T:
    """Run *call* with a per-attempt timeout and bounded retries.

    Only errors of *error_cls* (which includes timeouts) are retried.  The
    delay before attempt ``n`` is ``backoff * n`` seconds.  After
    ``max_retries`` retries the last error propagates.
    """
    attempts = max_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            return await call_with_timeout(
                call, timeout, error_cls, provider_name, operation
            )
        except error_cls as exc:
            if attempt >= attempts:
                raise
            delay = backoff * attempt
            _logger.warning(
                "provider_call_retry",
                operation=operation,
                provider=provider_name,
                attempt=attempt,
                backoff_s=delay,
                error=str(exc),
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover


async def iterate_with_timeout(
    source: AsyncIterator[_T],
    timeout: float,
    error_cls: type[NewsRAGError],
    provider_name: str,
) -> AsyncIterator[_T]:
    """Yield from *source*, failing if any single item takes longer than *timeout*.

    The source iterator is closed on exit, including on cancellation.
    """
    iterator = source.__aiter__()
    try:
        while True:
            try:
                async with asyncio.timeout(timeout):
                    item = await iterator.__anext__()
            except StopAsyncIteration:
                return
            except TimeoutError as exc:
                raise error_cls(
                    message=f"stream stalled for more than {timeout:.0f}s",
                    provider_name=provider_name,
                ) from exc
            yield item
    finally:
        aclose = getattr(iterator, "aclose", None)
        if aclose is not None:
            await aclose()
