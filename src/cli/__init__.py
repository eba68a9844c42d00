"""
cli — command-line interface for codeide-store.

Entry points
────────────
  python -m src.cli.main
  codeide-store           (via pyproject.toml [project.scripts])

Subcommands: show | save | history | restore | snippets | export | import | stats
"""

from src.cli.main import build_parser, cmd_export, cmd_history, cmd_import, main

__all__ = ["build_parser", "cmd_export", "cmd_history", "cmd_import", "main"]
