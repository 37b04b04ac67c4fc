"""In-memory collaborators for exercising the sync engine without a backend.

``InMemoryRemoteStore`` keeps documents per user and collection, records
every call, and can be told to fail specific operations. ``StaticAuth``
is a fixed session.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple

from pamsync.storage.base import Payload, collection_path

logger = logging.getLogger(__name__)


class RemoteFailure(Exception):
    """Injected remote failure."""

    pass


@dataclass
class StaticAuth:
    """A session that never changes unless told to."""

    current_user_id: Optional[str] = "user-1"
    is_authenticated: bool = True

    def sign_out(self) -> None:
        self.current_user_id = None
        self.is_authenticated = False


@dataclass
class RemoteCall:
    op: str  # "upsert", "fetch" or "delete"
    user_id: str
    collection: str
    document_id: Optional[str] = None


@dataclass
class InMemoryRemoteStore:
    """Dict-backed RemoteStore.

    Failure injection:
        fail_on_upsert: fail the Nth upsert (1-based, counted across collections)
        fail_upsert_collections: fail every upsert into these collections
        fail_fetch_collections: fail every fetch of these collections
        latency: seconds to sleep inside each call, to force interleaving
    """

    documents: Dict[str, Dict[str, Payload]] = field(default_factory=dict)
    calls: List[RemoteCall] = field(default_factory=list)
    fail_on_upsert: Optional[int] = None
    fail_upsert_collections: Set[str] = field(default_factory=set)
    fail_fetch_collections: Set[str] = field(default_factory=set)
    latency: float = 0.0
    upsert_count: int = 0

    async def _pause(self) -> None:
        if self.latency:
            await asyncio.sleep(self.latency)
        else:
            await asyncio.sleep(0)

    def collection(self, user_id: str, collection: str) -> Dict[str, Payload]:
        return self.documents.setdefault(collection_path(user_id, collection), {})

    def seed(self, user_id: str, collection: str, payloads: List[Payload]) -> None:
        """Place documents directly, keyed by their ``id``."""
        docs = self.collection(user_id, collection)
        for payload in payloads:
            docs[payload["id"]] = copy.deepcopy(payload)

    def calls_for(self, op: str) -> List[Tuple[str, Optional[str]]]:
        return [(c.collection, c.document_id) for c in self.calls if c.op == op]

    async def upsert_document(
        self, user_id: str, collection: str, document_id: str, payload: Payload
    ) -> None:
        self.calls.append(RemoteCall("upsert", user_id, collection, document_id))
        await self._pause()
        self.upsert_count += 1
        if self.fail_on_upsert is not None and self.upsert_count == self.fail_on_upsert:
            raise RemoteFailure(f"injected failure on upsert #{self.upsert_count}")
        if collection in self.fail_upsert_collections:
            raise RemoteFailure(f"injected failure writing {collection}")
        self.collection(user_id, collection)[document_id] = copy.deepcopy(payload)

    async def fetch_all_documents(self, user_id: str, collection: str) -> List[Payload]:
        self.calls.append(RemoteCall("fetch", user_id, collection))
        await self._pause()
        if collection in self.fail_fetch_collections:
            raise RemoteFailure(f"injected failure reading {collection}")
        return [copy.deepcopy(p) for p in self.collection(user_id, collection).values()]

    async def delete_document(self, user_id: str, collection: str, document_id: str) -> None:
        self.calls.append(RemoteCall("delete", user_id, collection, document_id))
        await self._pause()
        self.collection(user_id, collection).pop(document_id, None)
