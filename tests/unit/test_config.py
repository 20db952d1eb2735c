"""Unit tests for Settings and the YAML loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from newsrag.config.loader import load_config, load_settings
from newsrag.config.settings import Settings
from newsrag.utils.errors import ConfigurationError


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Run from an empty directory so no stray .env leaks in."""
    monkeypatch.chdir(tmp_path)
    for name in ("CHUNK_SIZE", "LLM_PROVIDER", "LLM_FALLBACK_PROVIDERS", "RAG_TOP_K", "INGEST_FEEDS"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, body: str) -> str:
    path = tmp_path / "config.yaml"
    path.write_text(body)
    return str(path)


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings()
        assert settings.chunk_size == 1000
        assert settings.chunk_overlap == 200
        assert settings.rag_top_k == 5
        assert settings.session_ttl_seconds == 604800
        assert len(settings.get_feed_urls()) == 3

    def test_backend_names_are_normalised(self) -> None:
        assert Settings(llm_provider="  Anthropic ").llm_provider == "anthropic"

    def test_llm_chain_is_primary_then_unique_fallbacks(self) -> None:
        settings = Settings(llm_provider="openai", llm_fallback_providers="Ollama, openai,,anthropic")
        assert settings.get_llm_provider_chain() == ["openai", "ollama", "anthropic"]

    def test_feed_list_ignores_blanks(self) -> None:
        settings = Settings(ingest_feeds=" https://a.test/rss , ,https://b.test/atom ")
        assert settings.get_feed_urls() == ["https://a.test/rss", "https://b.test/atom"]


class TestLoader:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert load_config(str(tmp_path / "absent.yaml")) == {}

    def test_sections_are_flattened_into_fields(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            "chunking:\n  chunk_size: 640\n  chunk_overlap: 64\nretrieval:\n  rag_top_k: 3\n",
        )

        settings = load_settings(path)

        assert settings.chunk_size == 640
        assert settings.chunk_overlap == 64
        assert settings.rag_top_k == 3

    def test_environment_beats_yaml(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        path = _write(tmp_path, "chunking:\n  chunk_size: 640\n")
        monkeypatch.setenv("CHUNK_SIZE", "512")

        assert load_settings(path).chunk_size == 512

    def test_non_mapping_yaml_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigurationError, match="mapping"):
            load_config(_write(tmp_path, "- just\n- a list\n"))

    def test_invalid_value_is_a_configuration_error(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "retrieval:\n  rag_top_k: 0\n")
        with pytest.raises(ConfigurationError, match="Invalid configuration"):
            load_settings(path)

    def test_shipped_config_loads(self) -> None:
        repo_config = Path(__file__).resolve().parents[2] / "config" / "config.yaml"
        settings = load_settings(str(repo_config))
        assert settings.chunk_size > settings.chunk_overlap
