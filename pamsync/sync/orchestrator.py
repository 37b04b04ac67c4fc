"""Full bidirectional sync between the local entity store and the remote store.

A sync session runs two strictly sequential phases over the collections in
``SYNC_ORDER``:

1. Upload: every local entity is mapped to its document and upserted,
   one document at a time. A remote write failure aborts the sync.
2. Download: every remote collection is fetched and reconciled into the
   local store, committing once per collection.

Only one session may run at a time; a second ``perform_full_sync()`` while
one is in flight raises ``SyncInProgressError``. There is no automatic
retry and no resumption state: a retried sync starts again from the first
collection.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, runtime_checkable

from pydantic import ValidationError

from pamsync.auth import Auth
from pamsync.errors import (
    DocumentDecodeError,
    IdentifierParseError,
    NotAuthenticatedError,
    RemoteReadError,
    RemoteWriteError,
    SyncInProgressError,
)
from pamsync.identity import to_remote_key
from pamsync.storage.base import EntityStore, RemoteStore
from pamsync.transfer import parse_document
from pamsync.types import EntityKind, utc_now

from .kinds import SYNC_ORDER, KindDescriptor, descriptor_for
from .reconcile import Reconciler
from .state import SyncState

logger = logging.getLogger(__name__)


@runtime_checkable
class ReadCache(Protocol):
    """A read cache that can be dropped wholesale, such as ``DataRepository``."""

    def invalidate(self) -> None: ...


@dataclass
class CollectionReport:
    """Per-collection counts for one sync session."""

    collection: str
    uploaded: int = 0
    upload_errors: int = 0
    downloaded: int = 0
    created: int = 0
    updated: int = 0
    skipped: int = 0
    unresolved_references: int = 0


@dataclass
class SyncOutcome:
    """Result of ``perform_full_sync()``."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    error: Optional[Exception] = None
    collections: Dict[str, CollectionReport] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.error is None and self.finished_at is not None

    def report(self, collection: str) -> CollectionReport:
        if collection not in self.collections:
            self.collections[collection] = CollectionReport(collection=collection)
        return self.collections[collection]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "error": str(self.error) if self.error else None,
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "collections": {
                name: {
                    "uploaded": r.uploaded,
                    "upload_errors": r.upload_errors,
                    "downloaded": r.downloaded,
                    "created": r.created,
                    "updated": r.updated,
                    "skipped": r.skipped,
                    "unresolved_references": r.unresolved_references,
                }
                for name, r in self.collections.items()
            },
        }


class SyncOrchestrator:
    """Drives full syncs for one local store against one remote store.

    Args:
        store: Local entity store (mutated only by the download phase).
        remote: Remote document store.
        auth: Source of the signed-in user.
        state: Observable state surface; a fresh SyncState if omitted.
        cache: Optional ``ReadCache``, dropped after each sync.
        descriptors: Collections in dependency order.
        clock: Wall-clock source for timestamps.
    """

    def __init__(
        self,
        store: EntityStore,
        remote: RemoteStore,
        auth: Auth,
        state: Optional[SyncState] = None,
        cache: Optional[ReadCache] = None,
        descriptors: Sequence[KindDescriptor] = SYNC_ORDER,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._store = store
        self._remote = remote
        self._auth = auth
        self._cache = cache
        self._descriptors = tuple(descriptors)
        self._clock = clock
        self._reconciler = Reconciler(store)
        self._in_flight = False

        if state is None:
            get_last = getattr(store, "get_last_sync_time", None)
            state = SyncState(last_sync_date=get_last() if get_last else None)
        self.state = state

    @property
    def is_syncing(self) -> bool:
        return self._in_flight

    @property
    def total_steps(self) -> int:
        return 2 * len(self._descriptors)

    async def perform_full_sync(self) -> SyncOutcome:
        """Upload then download every collection.

        Failures are reported through the returned outcome and the
        ``sync_error`` state; they are not raised.

        Raises:
            SyncInProgressError: If another sync is already running.
        """
        # Check-and-set with no await in between: atomic on the event loop
        if self._in_flight:
            logger.info("Rejecting sync request: a sync is already in progress")
            raise SyncInProgressError()
        self._in_flight = True
        try:
            return await self._run()
        finally:
            self._in_flight = False

    async def _run(self) -> SyncOutcome:
        outcome = SyncOutcome(started_at=self._clock())

        user_id = self._auth.current_user_id
        if not self._auth.is_authenticated or not user_id:
            error = NotAuthenticatedError()
            logger.warning(f"Sync refused: {error}")
            outcome.error = error
            self.state.update(sync_error=str(error), status_message=str(error))
            return outcome

        self.state.update(
            is_syncing=True,
            sync_progress=0.0,
            sync_error=None,
            status_message="Starting sync",
        )
        logger.info(f"Starting full sync for user {user_id}")

        step = 0
        try:
            for descriptor in self._descriptors:
                await self._upload_collection(user_id, descriptor, outcome)
                step += 1
                self.state.update(sync_progress=step / self.total_steps)

            for descriptor in self._descriptors:
                await self._download_collection(user_id, descriptor, outcome)
                step += 1
                self.state.update(sync_progress=step / self.total_steps)

            finished_at = self._clock()
            self._record_last_sync(finished_at)
        except Exception as e:
            logger.error(f"Sync failed: {e}", exc_info=True)
            outcome.error = e
            self.state.update(is_syncing=False, sync_error=str(e), status_message="Sync failed")
            return outcome
        finally:
            if self._cache is not None:
                self._cache.invalidate()

        outcome.finished_at = finished_at
        self.state.update(
            is_syncing=False,
            sync_progress=1.0,
            last_sync_date=finished_at,
            status_message="Sync complete",
        )
        logger.info(f"Full sync complete for user {user_id}")
        return outcome

    # === Phases ===

    async def _upload_collection(
        self, user_id: str, descriptor: KindDescriptor, outcome: SyncOutcome
    ) -> None:
        collection = descriptor.collection
        report = outcome.report(collection)
        entities = self._store.fetch_all(descriptor.kind)
        now = self._clock()

        self.state.update(status_message=f"Uploading {collection}...")
        logger.info(f"Uploading {len(entities)} {collection}")

        for index, entity in enumerate(entities):
            try:
                remote_key = to_remote_key(entity.id)
                payload = descriptor.to_wire(entity, now).to_payload()
            except IdentifierParseError as e:
                logger.warning(f"Skipping {collection} item {index + 1}: {e}")
                report.upload_errors += 1
                continue
            except ValidationError as e:
                logger.error(f"Cannot encode {collection}/{remote_key}: {e.error_count()} bad field(s)")
                raise RemoteWriteError(collection, e, remote_key) from e

            try:
                await self._remote.upsert_document(user_id, collection, remote_key, payload)
            except Exception as e:
                logger.error(f"Upload of {collection}/{remote_key} failed: {e}")
                raise RemoteWriteError(collection, e, remote_key) from e
            report.uploaded += 1

        logger.info(
            f"{collection} upload complete: {report.uploaded} succeeded, "
            f"{report.upload_errors} failed"
        )

    async def _download_collection(
        self, user_id: str, descriptor: KindDescriptor, outcome: SyncOutcome
    ) -> None:
        collection = descriptor.collection
        report = outcome.report(collection)

        self.state.update(status_message=f"Downloading {collection}...")
        try:
            payloads = await self._remote.fetch_all_documents(user_id, collection)
        except Exception as e:
            logger.error(f"Download of {collection} failed: {e}")
            raise RemoteReadError(collection, e) from e

        try:
            documents = [
                parse_document(descriptor.document_model, payload, collection)
                for payload in payloads
            ]
        except DocumentDecodeError as e:
            raise RemoteReadError(collection, e) from e

        report.downloaded = len(documents)
        result = self._reconciler.reconcile(descriptor, documents)
        report.created = result.created
        report.updated = result.updated
        report.skipped = result.skipped
        report.unresolved_references = result.unresolved_references

    def _record_last_sync(self, when: datetime) -> None:
        set_last = getattr(self._store, "set_last_sync_time", None)
        if set_last is not None:
            set_last(when)

    # === Single-document operations ===

    async def delete_remote(self, kind: EntityKind, entity_id: uuid.UUID) -> None:
        """Delete one entity's document from its remote collection.

        Used by user-facing delete flows; full syncs never delete.

        Raises:
            NotAuthenticatedError: If no user is signed in.
            RemoteWriteError: If the remote delete fails.
        """
        user_id = self._auth.current_user_id
        if not self._auth.is_authenticated or not user_id:
            raise NotAuthenticatedError()

        descriptor = descriptor_for(kind)
        remote_key = to_remote_key(entity_id)
        try:
            await self._remote.delete_document(user_id, descriptor.collection, remote_key)
        except Exception as e:
            raise RemoteWriteError(descriptor.collection, e, remote_key) from e
        logger.info(f"Deleted remote {descriptor.collection}/{remote_key}")
