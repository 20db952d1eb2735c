"""Ollama LLM provider adapter.

Wraps a local Ollama server via its OpenAI-compatible API endpoint.
Uses the ``openai`` client library pointed at the Ollama base URL, so
streaming works the same way as in the OpenAI adapter.

Setup: Install Ollama (https://ollama.ai), then ``ollama pull llama3.2``.
Set OLLAMA_BASE_URL=http://localhost:11434
"""

from __future__ import annotations

from collections.abc import AsyncIterator

# httpx is used only for validate_credentials() to check if Ollama is running.
import httpx
import openai
import structlog

from newsrag.config.settings import Settings
from newsrag.interfaces.llm_provider import ILLMProvider
from newsrag.utils.errors import GenerationError

logger = structlog.get_logger(logger_name=__name__)


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server.

    Ollama exposes an OpenAI-compatible ``/v1`` API, so this adapter
    reuses the ``openai.AsyncOpenAI`` client pointed at the local URL.
    """

    def __init__(self, settings: Settings) -> None:
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._client = openai.AsyncOpenAI(
            base_url=f"{self._base_url}/v1",
            # Ollama ignores the key, but the SDK requires a non-empty value.
            api_key="ollama",
            timeout=openai.Timeout(settings.provider_timeout_seconds, connect=5.0),
            max_retries=0,
        )
        self._text_model = settings.ollama_text_model or "llama3.2"

    def _messages(self, system_prompt: str, user_prompt: str) -> list[dict]:
        return [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """Generate a text completion via Ollama's OpenAI-compatible API."""
        try:
            response = await self._client.chat.completions.create(
                model=self._text_model,
                messages=self._messages(system_prompt, user_prompt),
                temperature=temperature,
                max_tokens=max_tokens,
            )
        except openai.APIError as exc:
            raise GenerationError(
                message=f"Ollama API error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise GenerationError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_completion", model=self._text_model)
        return content

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        """Yield content deltas from Ollama's streaming chat endpoint."""
        try:
            response_stream = await self._client.chat.completions.create(
                model=self._text_model,
                messages=self._messages(system_prompt, user_prompt),
                temperature=temperature,
                max_tokens=max_tokens,
                stream=True,
            )
        except openai.APIError as exc:
            raise GenerationError(
                message=f"Ollama stream error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        fragments = 0
        try:
            async for chunk in response_stream:
                if chunk.choices and chunk.choices[0].delta.content:
                    fragments += 1
                    yield chunk.choices[0].delta.content
        except openai.APIError as exc:
            raise GenerationError(
                message=f"Ollama stream error: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        finally:
            await response_stream.close()

        if fragments == 0:
            raise GenerationError(
                message="Ollama stream produced no content",
                provider_name=self.get_provider_name(),
            )
        logger.info("ollama_stream_complete", model=self._text_model, fragments=fragments)

    def is_available(self) -> bool:
        """Return ``True`` if the Ollama base URL is configured."""
        return bool(self._base_url)

    async def validate_credentials(self) -> bool:
        """Check that the Ollama server is running and reachable.

        The native /api/tags endpoint lists installed models without
        running inference.
        """
        if not self.is_available():
            return False
        try:
            async with httpx.AsyncClient(timeout=5.0) as client:
                response = await client.get(f"{self._base_url}/api/tags")
                return response.status_code == 200
        except httpx.HTTPError:
            return False

    def get_provider_name(self) -> str:
        return "ollama"
