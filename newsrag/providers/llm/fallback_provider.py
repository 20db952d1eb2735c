"""Ordered LLM fallback chain.

:class:`FallbackLLMProvider` wraps several :class:`ILLMProvider` backends
and is itself an :class:`ILLMProvider`, so the chat service never knows
whether it talks to one backend or a chain.

Failure handling
----------------
Each backend call runs under a per-call timeout.  A ``GenerationError``
(which includes timeouts) is logged and the next backend is tried.  When
every backend has failed, a single ``GenerationError`` naming all of them
is raised.

Streams can only fall over *before* their first fragment: once text has
reached the caller, switching backends would splice two different answers
together, so a mid-stream failure propagates instead.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import structlog

from newsrag.interfaces.llm_provider import ILLMProvider
from newsrag.utils.concurrency import call_with_timeout, iterate_with_timeout
from newsrag.utils.errors import ConfigurationError, GenerationError

logger = structlog.get_logger(logger_name=__name__)


class FallbackLLMProvider(ILLMProvider):
    """Try each configured backend in order until one succeeds."""

    def __init__(self, providers: list[ILLMProvider], timeout: float = 30.0) -> None:
        if not providers:
            raise ConfigurationError(message="Fallback chain needs at least one LLM provider")
        self._providers = list(providers)
        self._timeout = timeout

    @property
    def providers(self) -> list[ILLMProvider]:
        return list(self._providers)

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        failures: list[str] = []
        for provider in self._providers:
            name = provider.get_provider_name()
            try:
                result = await call_with_timeout(
                    lambda p=provider: p.complete(
                        system_prompt,
                        user_prompt,
                        temperature=temperature,
                        max_tokens=max_tokens,
                    ),
                    self._timeout,
                    GenerationError,
                    name,
                    "completion",
                )
            except GenerationError as exc:
                failures.append(str(exc))
                logger.warning("llm_backend_failed", provider=name, error=str(exc))
                continue
            if failures:
                logger.info("llm_fallback_succeeded", provider=name, failed=len(failures))
            return result
        raise self._exhausted(failures)

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        failures: list[str] = []
        for provider in self._providers:
            name = provider.get_provider_name()
            emitted = False
            fragments = iterate_with_timeout(
                provider.stream(
                    system_prompt,
                    user_prompt,
                    temperature=temperature,
                    max_tokens=max_tokens,
                ),
                self._timeout,
                GenerationError,
                name,
            )
            try:
                async for fragment in fragments:
                    emitted = True
                    yield fragment
            except GenerationError as exc:
                if emitted:
                    logger.error("llm_stream_interrupted", provider=name, error=str(exc))
                    raise
                failures.append(str(exc))
                logger.warning("llm_backend_failed", provider=name, error=str(exc))
                continue
            finally:
                await fragments.aclose()
            if failures:
                logger.info("llm_fallback_succeeded", provider=name, failed=len(failures))
            return
        raise self._exhausted(failures)

    def _exhausted(self, failures: list[str]) -> GenerationError:
        logger.error("llm_fallback_exhausted", failures=failures)
        return GenerationError(
            message="All LLM backends failed: " + "; ".join(failures),
            provider_name=self.get_provider_name(),
        )

    def is_available(self) -> bool:
        return any(p.is_available() for p in self._providers)

    async def validate_credentials(self) -> bool:
        """Return ``True`` when the primary backend accepts its credentials."""
        return await self._providers[0].validate_credentials()

    def get_provider_name(self) -> str:
        return "fallback(" + ",".join(p.get_provider_name() for p in self._providers) + ")"
