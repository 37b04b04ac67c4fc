"""
pamsync - Local-cloud synchronization for personal affairs data.

Keeps projects, tasks, finances, budgets, credentials and virtual assets
in a local SQLite store and mirrors them to per-user cloud collections.
"""

from .auth import CredentialsAuth
from .query import DataRepository, Snapshot
from .storage import HttpRemoteStore, SQLiteEntityStore
from .sync import SyncOrchestrator, SyncOutcome, SyncState

try:
    from importlib.metadata import version

    __version__ = version("pamsync")
except Exception:
    __version__ = "0.0.0"

__all__ = [
    "CredentialsAuth",
    "DataRepository",
    "HttpRemoteStore",
    "SQLiteEntityStore",
    "Snapshot",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncState",
]
