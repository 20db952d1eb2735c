"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK ────────────────────────────────────────────────
#
# pydantic-settings reads configuration from two sources, in priority
# order:
#
#   1. **Environment variables** -- e.g., OPENAI_API_KEY=sk-abc123
#   2. **.env file** -- key=value lines in the project root .env file
#
# Field ``openai_api_key`` maps to env var ``OPENAI_API_KEY``.  Defaults
# apply when neither source sets a value; ``config/config.yaml`` can
# replace those defaults (see loader.py).
#
# A Settings instance is built once at startup and passed explicitly to
# the factories in ``newsrag.main``.  No module reads a global instance.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_DEFAULT_FEEDS = ",".join(
    [
        "https://feeds.reuters.com/reuters/technologyNews",
        "https://rss.cnn.com/rss/edition.rss",
        "https://feeds.bbci.co.uk/news/technology/rss.xml",
    ]
)


def _split_csv(value: str) -> list[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    """newsrag application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # === App Config ===
    app_env: str = "development"
    log_level: str = "INFO"

    # === LLM / Embedding credentials ===
    # Empty string = "not configured".  Startup validation in main.py turns a
    # missing key for a *selected* backend into a ConfigurationError.
    openai_api_key: str = ""
    openai_base_url: str = ""  # Custom base URL for OpenAI-compatible APIs
    openai_text_model: str = ""  # Empty = provider default
    openai_embedding_model: str = ""
    anthropic_api_key: str = ""
    anthropic_model: str = ""
    ollama_base_url: str = "http://localhost:11434"
    ollama_text_model: str = "llama3.2"
    ollama_embedding_model: str = "nomic-embed-text"

    # === Backend selection ===
    embedding_provider: str = "openai"  # openai | nomic | fastembed
    fastembed_model: str = ""
    llm_provider: str = "openai"  # openai | anthropic | ollama
    llm_fallback_providers: str = ""  # comma-separated, tried in order
    vector_store_provider: str = "chromadb"  # chromadb | memory
    session_store_provider: str = "memory"  # memory | sqlite | redis

    # === Generation ===
    llm_temperature: float = 0.7
    llm_max_tokens: int = Field(default=1000, gt=0)

    # === Vector store ===
    chromadb_persist_dir: str = "./data/chromadb"
    chromadb_url: str = ""  # when set, use the HTTP client instead of a local dir
    chromadb_collection: str = "rag_documents"

    # === Sessions ===
    session_db_path: str = "data/sessions.db"
    redis_url: str = "redis://localhost:6379/0"
    session_ttl_seconds: int = Field(default=7 * 24 * 60 * 60, gt=0)

    # === Retrieval ===
    rag_top_k: int = Field(default=5, gt=0)
    chat_history_turns: int = Field(default=5, ge=0)

    # === Ingestion ===
    ingest_feeds: str = _DEFAULT_FEEDS
    ingest_max_articles: int = Field(default=50, gt=0)
    chunk_size: int = 1000
    chunk_overlap: int = 200
    ingest_min_article_length: int = Field(default=100, ge=0)
    ingest_batch_size: int = Field(default=100, gt=0)
    ingest_max_article_chars: int = Field(default=10000, gt=0)
    ingest_fetch_concurrency: int = Field(default=5, gt=0)

    # === Resilience ===
    provider_timeout_seconds: float = Field(default=30.0, gt=0)
    provider_max_retries: int = Field(default=2, ge=0)
    provider_retry_backoff: float = Field(default=1.0, ge=0)
    stream_queue_size: int = Field(default=64, gt=0)

    @field_validator(
        "embedding_provider", "llm_provider", "vector_store_provider", "session_store_provider"
    )
    @classmethod
    def _normalise_backend_name(cls, value: str) -> str:
        return value.strip().lower()

    def get_llm_provider_chain(self) -> list[str]:
        """Return the primary LLM backend followed by the fallbacks, deduplicated."""
        chain: list[str] = []
        for name in [self.llm_provider, *_split_csv(self.llm_fallback_providers.lower())]:
            if name not in chain:
                chain.append(name)
        return chain

    def get_feed_urls(self) -> list[str]:
        """Return the configured RSS/Atom feed URLs."""
        return _split_csv(self.ingest_feeds)
