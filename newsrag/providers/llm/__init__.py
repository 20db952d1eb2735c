"""LLM provider adapters.

Concrete implementations of ILLMProvider (newsrag/interfaces/llm_provider.py):
    - OpenAILLMProvider    -- gpt-4o-mini (also supports OpenAI-compatible APIs)
    - AnthropicLLMProvider -- Claude Sonnet
    - OllamaLLMProvider    -- local models via Ollama server
    - FallbackLLMProvider  -- ordered chain of the above

At startup, main.py builds the configured primary backend plus any
fallbacks and wraps them in a FallbackLLMProvider.
"""

from newsrag.providers.llm.anthropic_provider import AnthropicLLMProvider
from newsrag.providers.llm.fallback_provider import FallbackLLMProvider
from newsrag.providers.llm.ollama_provider import OllamaLLMProvider
from newsrag.providers.llm.openai_provider import OpenAILLMProvider

__all__ = [
    "AnthropicLLMProvider",
    "FallbackLLMProvider",
    "OllamaLLMProvider",
    "OpenAILLMProvider",
]
