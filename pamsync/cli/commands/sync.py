"""Sync commands for pamsync CLI: full sync and sync status."""

import asyncio
import json
import logging
import sys
from typing import TYPE_CHECKING, Optional

from pamsync.auth import CredentialsAuth
from pamsync.config import Settings, get_settings, load_credentials
from pamsync.storage.remote import HttpRemoteStore
from pamsync.sync import SyncOrchestrator, SyncOutcome
from pamsync.types import EntityKind

if TYPE_CHECKING:
    from pamsync.auth import Auth
    from pamsync.storage import RemoteStore, SQLiteEntityStore

logger = logging.getLogger(__name__)


def _print_outcome(outcome: SyncOutcome) -> None:
    for name, report in outcome.collections.items():
        line = (
            f"  {name:<17} up {report.uploaded:>4}"
            f"  down {report.downloaded:>4}"
            f"  (+{report.created} new, {report.updated} updated"
        )
        if report.skipped:
            line += f", {report.skipped} skipped"
        if report.upload_errors:
            line += f", {report.upload_errors} upload errors"
        print(line + ")")


async def _run_sync(orchestrator: SyncOrchestrator, remote: "RemoteStore") -> SyncOutcome:
    try:
        return await orchestrator.perform_full_sync()
    finally:
        aclose = getattr(remote, "aclose", None)
        if aclose is not None:
            await aclose()


def cmd_sync(
    args,
    store: "SQLiteEntityStore",
    settings: Optional[Settings] = None,
    remote: Optional["RemoteStore"] = None,
    auth: Optional["Auth"] = None,
):
    """Run one full sync: upload every local entity, then download every collection."""
    settings = settings or get_settings()

    if auth is None:
        auth = CredentialsAuth.from_settings(settings)
    if not auth.is_authenticated:
        print("✗ Not authenticated")
        print("  Set PAMSYNC_USER_ID and PAMSYNC_AUTH_TOKEN, or write credentials.json")
        sys.exit(1)

    if remote is None:
        try:
            remote = HttpRemoteStore.from_settings(settings)
        except ValueError as e:
            logger.debug(f"Remote store unavailable: {e}")
            print("✗ Backend not configured")
            print("  Set PAMSYNC_BACKEND_URL (https, or http://localhost for development)")
            sys.exit(1)

    orchestrator = SyncOrchestrator(store, remote, auth)
    outcome = asyncio.run(_run_sync(orchestrator, remote))

    if args.json:
        print(json.dumps(outcome.to_dict(), indent=2, default=str))
    elif outcome.success:
        print(f"✓ Sync complete at {outcome.finished_at.isoformat()}")
        _print_outcome(outcome)
    else:
        print(f"✗ Sync failed: {outcome.error}")
        _print_outcome(outcome)

    if not outcome.success:
        sys.exit(1)


def cmd_status(args, store: "SQLiteEntityStore", settings: Optional[Settings] = None):
    """Show backend configuration, last sync time and local counts."""
    settings = settings or get_settings()
    creds = load_credentials(settings)
    last_sync = store.get_last_sync_time()
    counts = {kind.value: store.count(kind) for kind in EntityKind}

    if args.json:
        status = {
            "backend_url": creds["backend_url"],
            "user_id": creds["user_id"],
            "authenticated": bool(creds["user_id"] and creds["auth_token"]),
            "last_sync_time": last_sync.isoformat() if last_sync else None,
            "database": str(store.db_path),
            "counts": counts,
        }
        print(json.dumps(status, indent=2))
        return

    print("Sync Status")
    print("=" * 40)
    if creds["backend_url"]:
        print(f"Backend:   {creds['backend_url']}")
    else:
        print("Backend:   ✗ not configured")
    if creds["user_id"] and creds["auth_token"]:
        print(f"User:      {creds['user_id']}")
    else:
        print("User:      ✗ not authenticated")
    print(f"Last sync: {last_sync.isoformat() if last_sync else 'never'}")
    print(f"Database:  {store.db_path}")
    print()
    for kind, n in counts.items():
        print(f"  {kind:<17} {n}")
