"""Abstract base class for LLM service providers.

Defines the contract for any large-language-model backend used to answer
chat messages.  Implementations may wrap OpenAI, the Anthropic API, or a
local Ollama server.  Call-sites depend only on :class:`ILLMProvider`, so a
fallback chain of backends is itself just another :class:`ILLMProvider`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


# Concrete implementations: OpenAILLMProvider, AnthropicLLMProvider,
# OllamaLLMProvider, FallbackLLMProvider
# Located in: newsrag/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM services used by the chat pipeline.

    Providers must support plain text completion.  Backends without
    incremental output inherit the default :meth:`stream`, which yields
    the whole completion as a single fragment.
    """

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message, including the retrieved context.
        user_prompt:
            The conversation summary and the current user message.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        newsrag.utils.errors.GenerationError
            If the API call fails or returns an empty response.
        """

    async def stream(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.7,
        max_tokens: int = 1000,
    ) -> AsyncIterator[str]:
        """Yield the completion as text fragments, in order.

        The concatenation of all fragments equals the text :meth:`complete`
        would return.  Providers without native streaming inherit this
        default, which produces the full text as one fragment.
        """
        yield await self.complete(
            system_prompt,
            user_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this LLM provider.

        Example return values: ``"openai"``, ``"anthropic"``.
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured.

        Implementations check that credentials are present without making
        an inference call.
        """

    @abstractmethod
    async def validate_credentials(self) -> bool:
        """Perform a lightweight API call to confirm credentials are valid.

        Unlike :meth:`is_available`, this method actively contacts the
        remote service.
        """
