"""pamsync storage backends.

Local-first storage using SQLite, mirrored to an HTTP document backend.
"""

from .base import EntityStore, Payload, RemoteStore, collection_path
from .remote import HttpRemoteStore
from .sqlite import SQLiteEntityStore

__all__ = [
    "EntityStore",
    "HttpRemoteStore",
    "Payload",
    "RemoteStore",
    "SQLiteEntityStore",
    "collection_path",
]
