"""
pamsync CLI - Command-line interface for local-cloud sync.

Usage:
    pamsync sync [--json]
    pamsync status [--json]
    pamsync stats [--json]
    pamsync search QUERY [--json]
"""

import argparse
import logging
import sys

from pamsync.cli.commands import cmd_search, cmd_stats, cmd_status, cmd_sync
from pamsync.config import get_settings
from pamsync.storage import SQLiteEntityStore

# Set up logging
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pamsync",
        description="Sync personal affairs data between this machine and the cloud",
    )
    parser.add_argument("--db", help="Path to the local database", default=None)
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # sync
    p_sync = subparsers.add_parser("sync", help="Upload local data, then download remote data")
    p_sync.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    # status
    p_status = subparsers.add_parser("status", help="Show sync configuration and last sync time")
    p_status.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    # stats
    p_stats = subparsers.add_parser("stats", help="Show counts and financial totals")
    p_stats.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    # search
    p_search = subparsers.add_parser("search", help="Search tasks, records, credentials and assets")
    p_search.add_argument("query", help="Case-insensitive search text")
    p_search.add_argument("--json", "-j", action="store_true", help="Output as JSON")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(settings.log_level.upper())

    try:
        store = SQLiteEntityStore(args.db or settings.database_path)
    except Exception as e:
        logger.error(f"Failed to open local database: {e}")
        sys.exit(1)

    # Dispatch with error handling
    try:
        if args.command == "sync":
            cmd_sync(args, store, settings)
        elif args.command == "status":
            cmd_status(args, store, settings)
        elif args.command == "stats":
            cmd_stats(args, store)
        elif args.command == "search":
            cmd_search(args, store)
    except (ValueError, TypeError) as e:
        logger.error(f"Input validation error: {e}")
        sys.exit(1)
    except Exception as e:
        logger.error(f"Command failed: {e}")
        sys.exit(1)
    finally:
        store.close()


if __name__ == "__main__":
    main()
