# =============================================================================
# newsrag/cli/main.py -- Operator CLI
# =============================================================================
#
# Usage examples:
#   python -m newsrag.cli ingest
#   python -m newsrag.cli chat
#   python -m newsrag.cli chat --session 5f0c...        # continue a session
#   python -m newsrag.cli history 5f0c...
#   python -m newsrag.cli reset 5f0c...
#   python -m newsrag.cli clear-index --yes
#   python -m newsrag.cli health
#
# Every command builds the orchestrator from config/config.yaml, .env and
# the environment, initialises it, runs, and closes it again.
# =============================================================================

"""Command-line entry point for the news RAG system."""

from __future__ import annotations

import argparse
import asyncio
import sys
from collections.abc import Sequence

from newsrag.models.rag import IngestionReport
from newsrag.pipeline.orchestrator import RAGOrchestrator
from newsrag.utils.errors import ConfigurationError, IngestionError, NewsRAGError

_EXIT_COMMANDS = {"exit", "quit", ":q"}
_RESET_COMMAND = "/reset"


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


async def _handle_ingest(orchestrator: RAGOrchestrator, args: argparse.Namespace) -> int:
    print("Running ingestion over the configured feeds...")
    try:
        report = await orchestrator.trigger_ingestion()
    except IngestionError as exc:
        print(f"Ingestion failed: {exc.message}", file=sys.stderr)
        if exc.report is not None:
            _print_report(exc.report)
        return 1

    _print_report(report)
    return 0


def _print_report(report: IngestionReport) -> None:
    print("\nIngestion report:")
    print(f"  Phase:             {report.phase.value}")
    print(f"  Articles listed:   {report.articles_listed}")
    print(f"  Articles indexed:  {report.articles_indexed}")
    print(f"  Articles skipped:  {report.articles_skipped}")
    print(f"  Chunks indexed:    {report.chunks_indexed}")
    print(f"  Time:              {report.duration_seconds:.2f}s")
    if report.failed_sources:
        print(f"  Failed sources:    {', '.join(report.failed_sources)}")
    if report.error:
        print(f"  Error:             {report.error}")


async def _handle_chat(orchestrator: RAGOrchestrator, args: argparse.Namespace) -> int:
    session_id: str | None = args.session
    print("Ask about the news. Type 'exit' to leave, '/reset' to start over.")
    while True:
        try:
            message = (await asyncio.to_thread(input, "\nyou> ")).strip()
        except EOFError:
            print()
            break
        if not message:
            continue
        if message.lower() in _EXIT_COMMANDS:
            break
        if message == _RESET_COMMAND:
            if session_id:
                await orchestrator.reset_session(session_id)
            session_id = None
            print("Session cleared.")
            continue

        print("bot> ", end="", flush=True)
        async for event in orchestrator.stream_message(message, session_id):
            if event.type == "token":
                print(event.content, end="", flush=True)
                continue
            if event.type == "error":
                print(event.content, end="")
            session_id = event.session_id or session_id
            print()
            for index, source in enumerate(event.sources, start=1):
                print(f"  [{index}] {source.title} ({source.relevance:.2f})")
                print(f"      {source.url}")

    if session_id:
        print(f"Session id: {session_id}")
    return 0


async def _handle_history(orchestrator: RAGOrchestrator, args: argparse.Namespace) -> int:
    turns = await orchestrator.get_history(args.session_id)
    if not turns:
        print(f"No history for session {args.session_id}.")
        return 0
    for turn in turns:
        print(f"[{turn.timestamp.isoformat(timespec='seconds')}] {turn.role}: {turn.content}")
        for source in turn.sources:
            print(f"    - {source.title} <{source.url}>")
    return 0


async def _handle_reset(orchestrator: RAGOrchestrator, args: argparse.Namespace) -> int:
    existed = await orchestrator.reset_session(args.session_id)
    print("Session cleared." if existed else "No such session.")
    return 0


async def _handle_clear_index(orchestrator: RAGOrchestrator, args: argparse.Namespace) -> int:
    if not args.yes:
        confirm = input("Delete every indexed chunk? [y/N] ").strip().lower()
        if confirm not in ("y", "yes"):
            print("Aborted.")
            return 0
    removed = await orchestrator.clear_index()
    print(f"Deleted {removed} chunks.")
    return 0


async def _handle_health(orchestrator: RAGOrchestrator, args: argparse.Namespace) -> int:
    report = await orchestrator.health_check()
    print(f"Status: {report.status}")
    for component, available in sorted(report.components.items()):
        print(f"  {component:<15} {'up' if available else 'DOWN'}")
    print(f"  Indexed chunks: {report.indexed_chunks}")
    return 0 if report.status == "ok" else 1


_HANDLERS = {
    "ingest": _handle_ingest,
    "chat": _handle_chat,
    "history": _handle_history,
    "reset": _handle_reset,
    "clear-index": _handle_clear_index,
    "health": _handle_health,
}


async def run_command(orchestrator: RAGOrchestrator, args: argparse.Namespace) -> int:
    """Initialise *orchestrator*, run the selected command, and close it."""
    try:
        await orchestrator.initialize()
        return await _HANDLERS[args.command](orchestrator, args)
    except NewsRAGError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        await orchestrator.close()


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m newsrag.cli",
        description="Chat with a knowledge base of recent news articles.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to the YAML configuration file (default: config/config.yaml)",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("ingest", help="Fetch, chunk, embed and index the configured feeds")

    chat_parser = subparsers.add_parser("chat", help="Interactive streamed chat")
    chat_parser.add_argument("--session", default=None, help="Continue an existing session")

    history_parser = subparsers.add_parser("history", help="Print a session's turns")
    history_parser.add_argument("session_id")

    reset_parser = subparsers.add_parser("reset", help="Delete a session's history")
    reset_parser.add_argument("session_id")

    clear_parser = subparsers.add_parser("clear-index", help="Drop every indexed chunk")
    clear_parser.add_argument("--yes", "-y", action="store_true", help="Skip confirmation prompt")

    subparsers.add_parser("health", help="Show component availability and index size")

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 1

    # Deferred so that --help works without the provider SDKs configured.
    from newsrag.main import create_app_components

    try:
        _, orchestrator = create_app_components(args.config)
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2

    return asyncio.run(run_command(orchestrator, args))


if __name__ == "__main__":
    sys.exit(main())
