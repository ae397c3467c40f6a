"""
cli — command-line interface for cmdset.

Entry points
────────────
  python -m cmdset   (via cmdset/__main__.py)
  cmdset             (via pyproject.toml [project.scripts])

Subcommands: add | remove | list | show | exec | export | import | save | load | status
"""

from cmdset.cli.main import build_parser, cmd_exec, cmd_list, main

__all__ = ["build_parser", "cmd_exec", "cmd_list", "main"]
