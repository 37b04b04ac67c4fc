"""CLI command modules for pamsync.

Each module contains related command handlers dispatched from __main__.py.
"""

from pamsync.cli.commands.query import cmd_search, cmd_stats
from pamsync.cli.commands.sync import cmd_status, cmd_sync

__all__ = ["cmd_search", "cmd_stats", "cmd_status", "cmd_sync"]
