"""Reconciliation of incoming remote documents into the local store.

For every document of a collection:
1. Decode its remote key into a local id (a bad key skips the document)
2. Look the entity up locally
3. Overwrite its synchronized fields, or create it with that exact id
4. Resolve cross-entity references against the local snapshot of the
   referenced collection; unknown keys become None

Documents are applied in the order given. The collection is committed
once, after the last document. Nothing is ever deleted.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Set, Tuple

from pamsync.errors import IdentifierParseError, LocalPersistenceError
from pamsync.identity import to_local_id
from pamsync.storage.base import EntityStore
from pamsync.transfer import CloudDocument
from pamsync.types import Entity, EntityKind

from .kinds import KindDescriptor

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Counts for one reconciled collection."""

    collection: str
    created: int = 0
    updated: int = 0
    skipped: int = 0
    unresolved_references: int = 0
    errors: List[str] = field(default_factory=list)

    @property
    def applied(self) -> int:
        return self.created + self.updated


class Reconciler:
    """Applies remote documents onto an EntityStore (upsert, last writer wins)."""

    def __init__(self, store: EntityStore):
        self._store = store

    def reconcile(
        self,
        descriptor: KindDescriptor,
        documents: Sequence[CloudDocument],
        commit: bool = True,
    ) -> ReconcileResult:
        """Upsert ``documents`` of one collection.

        Raises:
            LocalPersistenceError: If committing the batch fails.
        """
        result = ReconcileResult(collection=descriptor.collection)
        applied: List[Tuple[Entity, CloudDocument]] = []

        for document in documents:
            try:
                local_id = to_local_id(document.id)
            except IdentifierParseError as e:
                logger.warning(f"Skipping {descriptor.collection} document: {e}")
                result.skipped += 1
                result.errors.append(str(e))
                continue

            entity = self._store.fetch_by_identifier(descriptor.kind, local_id)
            if entity is None:
                entity = descriptor.create(local_id, document)
                self._store.insert(entity)
                result.created += 1
            else:
                descriptor.apply(entity, document)
                result.updated += 1
            applied.append((entity, document))

        if descriptor.references and applied:
            self._resolve_references(descriptor, applied, result)

        if commit:
            self._commit()

        logger.info(
            f"{descriptor.collection}: {result.created} created, {result.updated} updated, "
            f"{result.skipped} skipped"
        )
        return result

    def _known_ids(self, kind: EntityKind) -> Set[uuid.UUID]:
        # Includes entities staged earlier in this batch
        return {entity.id for entity in self._store.fetch_all(kind)}

    def _resolve_references(
        self,
        descriptor: KindDescriptor,
        applied: List[Tuple[Entity, CloudDocument]],
        result: ReconcileResult,
    ) -> None:
        for ref in descriptor.references:
            known = self._known_ids(ref.target)
            for entity, document in applied:
                resolved = self._resolve(getattr(document, ref.wire_attr), known)
                if ref.target is descriptor.kind and resolved == entity.id:
                    resolved = None
                if resolved is None and getattr(document, ref.wire_attr) is not None:
                    logger.debug(
                        f"Unresolved {ref.attr} {getattr(document, ref.wire_attr)!r} "
                        f"on {descriptor.collection}/{document.id}"
                    )
                    result.unresolved_references += 1
                setattr(entity, ref.attr, resolved)

    @staticmethod
    def _resolve(remote_key: Optional[str], known: Set[uuid.UUID]) -> Optional[uuid.UUID]:
        if remote_key is None:
            return None
        try:
            local_id = to_local_id(remote_key)
        except IdentifierParseError:
            return None
        return local_id if local_id in known else None

    def _commit(self) -> None:
        try:
            self._store.save()
        except LocalPersistenceError:
            raise
        except Exception as e:
            raise LocalPersistenceError(e) from e
