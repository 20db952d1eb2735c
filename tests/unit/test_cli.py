"""Unit tests for the operator CLI -- argument parsing and command dispatch."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from newsrag.cli.main import build_parser, main, run_command
from newsrag.models.conversation import (
    ConversationTurn,
    HealthReport,
    SourceCitation,
    StreamEvent,
)
from newsrag.models.rag import IngestionPhase, IngestionReport
from newsrag.utils.errors import ConfigurationError, IngestionError, VectorIndexError


def _orchestrator() -> MagicMock:
    orchestrator = MagicMock()
    for name in (
        "initialize",
        "close",
        "trigger_ingestion",
        "get_history",
        "reset_session",
        "clear_index",
        "health_check",
    ):
        setattr(orchestrator, name, AsyncMock())
    return orchestrator


def _args(*argv: str):
    return build_parser().parse_args(list(argv))


class TestParser:
    def test_chat_session_option(self) -> None:
        args = _args("chat", "--session", "abc")
        assert args.command == "chat"
        assert args.session == "abc"

    def test_clear_index_short_flag(self) -> None:
        assert _args("clear-index", "-y").yes is True

    def test_history_requires_session_id(self) -> None:
        with pytest.raises(SystemExit):
            _args("history")

    def test_config_default(self) -> None:
        assert _args("health").config == "config/config.yaml"


class TestRunCommand:
    @pytest.mark.asyncio
    async def test_ingest_prints_report(self, capsys: pytest.CaptureFixture[str]) -> None:
        orchestrator = _orchestrator()
        orchestrator.trigger_ingestion.return_value = IngestionReport(
            articles_listed=3, articles_indexed=2, articles_skipped=1, chunks_indexed=9
        )

        code = await run_command(orchestrator, _args("ingest"))

        assert code == 0
        out = capsys.readouterr().out
        assert "Articles indexed:  2" in out
        assert "Chunks indexed:    9" in out
        orchestrator.initialize.assert_awaited_once()
        orchestrator.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_failed_ingest_prints_partial_report(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        orchestrator = _orchestrator()
        partial = IngestionReport(phase=IngestionPhase.FAILED, chunks_indexed=4, error="boom")
        orchestrator.trigger_ingestion.side_effect = IngestionError(
            message="Ingestion aborted during embedding", report=partial
        )

        code = await run_command(orchestrator, _args("ingest"))

        assert code == 1
        captured = capsys.readouterr()
        assert "Ingestion failed" in captured.err
        assert "Phase:             failed" in captured.out

    @pytest.mark.asyncio
    async def test_history_lists_turns(self, capsys: pytest.CaptureFixture[str]) -> None:
        orchestrator = _orchestrator()
        orchestrator.get_history.return_value = [
            ConversationTurn(role="user", content="What happened?"),
            ConversationTurn(
                role="assistant",
                content="Rates rose.",
                sources=[SourceCitation(title="Rates up", url="https://x.test", relevance=0.8)],
            ),
        ]

        await run_command(orchestrator, _args("history", "s1"))

        out = capsys.readouterr().out
        assert "user: What happened?" in out
        assert "- Rates up <https://x.test>" in out
        orchestrator.get_history.assert_awaited_once_with("s1")

    @pytest.mark.asyncio
    async def test_clear_index_with_yes_skips_prompt(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        orchestrator = _orchestrator()
        orchestrator.clear_index.return_value = 12

        with patch("builtins.input") as prompt:
            await run_command(orchestrator, _args("clear-index", "--yes"))

        prompt.assert_not_called()
        assert "Deleted 12 chunks." in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_clear_index_aborts_without_confirmation(self) -> None:
        orchestrator = _orchestrator()

        with patch("builtins.input", return_value="n"):
            code = await run_command(orchestrator, _args("clear-index"))

        assert code == 0
        orchestrator.clear_index.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_degraded_health_exits_nonzero(self) -> None:
        orchestrator = _orchestrator()
        orchestrator.health_check.return_value = HealthReport(
            status="degraded", components={"llm": False}
        )

        assert await run_command(orchestrator, _args("health")) == 1

    @pytest.mark.asyncio
    async def test_service_error_is_reported_and_closed(
        self, capsys: pytest.CaptureFixture[str]
    ) -> None:
        orchestrator = _orchestrator()
        orchestrator.initialize.side_effect = VectorIndexError(
            message="dimension mismatch", provider_name="chromadb"
        )

        code = await run_command(orchestrator, _args("health"))

        assert code == 1
        assert "[chromadb] dimension mismatch" in capsys.readouterr().err
        orchestrator.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_chat_streams_until_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        orchestrator = _orchestrator()

        async def stream(message, session_id):
            yield StreamEvent(type="token", content="Hi ")
            yield StreamEvent(type="token", content="there")
            yield StreamEvent(
                type="done",
                session_id="s-new",
                sources=[SourceCitation(title="Story", url="https://x.test", relevance=0.5)],
            )

        orchestrator.stream_message = MagicMock(side_effect=stream)

        with patch("builtins.input", side_effect=["hello", "exit"]):
            code = await run_command(orchestrator, _args("chat"))

        assert code == 0
        out = capsys.readouterr().out
        assert "Hi there" in out
        assert "[1] Story (0.50)" in out
        assert "Session id: s-new" in out
        orchestrator.stream_message.assert_called_once_with("hello", None)


class TestMain:
    def test_no_command_prints_help(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_configuration_error_exits_2(self, capsys: pytest.CaptureFixture[str]) -> None:
        with patch(
            "newsrag.main.create_app_components",
            side_effect=ConfigurationError(message="OPENAI_API_KEY is required"),
        ):
            assert main(["health"]) == 2
        assert "Configuration error" in capsys.readouterr().err
