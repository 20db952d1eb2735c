# =============================================================================
# newsrag/cli/__init__.py -- CLI Module Overview
# =============================================================================
#
# Command-line front end for operators.  One argparse program with a
# subcommand per orchestrator operation:
#
#   ingest       run one fetch -> chunk -> embed -> upsert pass over the feeds
#   chat         interactive, streamed conversation (one session per run)
#   history      print the turns of a session
#   reset        delete a session immediately
#   clear-index  drop every indexed chunk
#   health       print per-component availability and the index size
#
# All subcommands build the full orchestrator from configuration via
# newsrag.main.create_app_components(), so the CLI and any other front end
# always use the same providers.
# =============================================================================

"""Command-line interface: ``python -m newsrag.cli <command>``."""
