"""Utility modules for newsrag.

- **errors** -- Domain exception hierarchy rooted at NewsRAGError; each
  failure class maps to one recovery policy (skip, fall back, abort).
- **concurrency** -- Semaphore-bounded gather plus timeout / bounded-retry
  wrappers applied to every external provider call.
- **logging** -- structlog setup with console output in development and
  structured JSON in production.
"""

from newsrag.utils.concurrency import (
    call_with_timeout,
    iterate_with_timeout,
    retry_async,
    throttled_gather,
)
from newsrag.utils.errors import (
    ConfigurationError,
    EmbeddingError,
    ExtractionError,
    GenerationError,
    IngestionError,
    NewsRAGError,
    ProviderUnavailableError,
    RAGError,
    VectorIndexError,
)
from newsrag.utils.logging import configure_logging, get_logger

__all__ = [
    "ConfigurationError",
    "EmbeddingError",
    "ExtractionError",
    "GenerationError",
    "IngestionError",
    "NewsRAGError",
    "ProviderUnavailableError",
    "RAGError",
    "VectorIndexError",
    "call_with_timeout",
    "configure_logging",
    "get_logger",
    "iterate_with_timeout",
    "retry_async",
    "throttled_gather",
]
