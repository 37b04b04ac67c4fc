"""Storage protocols for pamsync.

Two collaborators sit on either side of the sync engine:
- EntityStore: the local, authoritative-when-offline store (SQLiteEntityStore)
- RemoteStore: per-user document collections in the cloud (HttpRemoteStore)
"""

import uuid
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from pamsync.types import Entity, EntityKind

Payload = Dict[str, Any]


def collection_path(user_id: str, collection: str) -> str:
    """Path of a user's remote collection: ``users/{user_id}/{collection}``."""
    if not user_id or "/" in user_id:
        raise ValueError(f"Invalid user id for remote path: {user_id!r}")
    return f"users/{user_id}/{collection}"


@runtime_checkable
class EntityStore(Protocol):
    """Local CRUD used by the sync engine and the query layer.

    All operations are synchronous. Entities returned by the fetch methods
    are live: mutations to them are persisted by the next ``save()``.
    """

    def fetch_all(self, kind: EntityKind) -> List[Entity]:
        """Return every entity of ``kind``, including staged inserts."""
        ...

    def fetch_by_identifier(self, kind: EntityKind, entity_id: uuid.UUID) -> Optional[Entity]:
        """Return the entity of ``kind`` with ``entity_id``, or None."""
        ...

    def insert(self, entity: Entity) -> None:
        """Stage a new entity for the next ``save()``."""
        ...

    def save(self) -> None:
        """Commit all staged and modified entities.

        Raises:
            LocalPersistenceError: If the commit fails.
        """
        ...


@runtime_checkable
class RemoteStore(Protocol):
    """Authenticated per-user document collections.

    Every operation is a suspension point and may raise whatever the
    transport raises (timeouts included); the sync engine wraps those.
    """

    async def upsert_document(
        self, user_id: str, collection: str, document_id: str, payload: Payload
    ) -> None: ...

    async def fetch_all_documents(self, user_id: str, collection: str) -> List[Payload]: ...

    async def delete_document(self, user_id: str, collection: str, document_id: str) -> None: ...
