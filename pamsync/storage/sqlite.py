"""SQLite entity store for pamsync.

Local-first storage with:
- One table per entity kind
- A unit of work: fetched entities are tracked, edits and inserts are
  written together by ``save()``
- Deferred foreign keys with cascading deletes for Task -> Project and
  Task -> parent Task
- Sync metadata (last sync time)
"""

import contextlib
import json
import logging
import sqlite3
import uuid
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from pamsync.config import get_pamsync_home
from pamsync.errors import LocalPersistenceError
from pamsync.types import (
    AssetType,
    Budget,
    BudgetPeriod,
    CredentialCategory,
    CredentialEntry,
    Entity,
    EntityKind,
    FinancialCategory,
    FinancialRecord,
    Project,
    RepeatRule,
    Task,
    TaskPriority,
    TaskStatus,
    TransactionType,
    VirtualAsset,
    format_datetime,
    kind_of,
    parse_datetime,
    utc_now,
)

from .schema import TABLE_FOR_KIND, init_db, validate_table_name

logger = logging.getLogger(__name__)

_Key = Tuple[EntityKind, uuid.UUID]


def _uuid_or_none(value: Optional[str]) -> Optional[uuid.UUID]:
    return uuid.UUID(value) if value else None


def _str_or_none(value: Optional[uuid.UUID]) -> Optional[str]:
    return str(value) if value else None


# === Row conversion ===


def _project_to_row(p: Project) -> Dict[str, Any]:
    return {
        "id": str(p.id),
        "name": p.name,
        "color_hex": p.color_hex,
        "created_at": format_datetime(p.created_at),
    }


def _row_to_project(row: sqlite3.Row) -> Project:
    return Project(
        id=uuid.UUID(row["id"]),
        name=row["name"],
        color_hex=row["color_hex"],
        created_at=parse_datetime(row["created_at"]),
    )


def _task_to_row(t: Task) -> Dict[str, Any]:
    return {
        "id": str(t.id),
        "title": t.title,
        "description": t.description,
        "priority": t.priority.value,
        "status": t.status.value,
        "due_date": format_datetime(t.due_date),
        "created_at": format_datetime(t.created_at),
        "completed_at": format_datetime(t.completed_at),
        "reminder_date": format_datetime(t.reminder_date),
        "repeat_rule": t.repeat_rule.value if t.repeat_rule else None,
        "repeat_interval": t.repeat_interval,
        "project_id": _str_or_none(t.project_id),
        "parent_task_id": _str_or_none(t.parent_task_id),
    }


def _row_to_task(row: sqlite3.Row) -> Task:
    return Task(
        id=uuid.UUID(row["id"]),
        title=row["title"],
        description=row["description"],
        priority=TaskPriority(row["priority"]),
        status=TaskStatus(row["status"]),
        due_date=parse_datetime(row["due_date"]),
        created_at=parse_datetime(row["created_at"]),
        completed_at=parse_datetime(row["completed_at"]),
        reminder_date=parse_datetime(row["reminder_date"]),
        repeat_rule=RepeatRule(row["repeat_rule"]) if row["repeat_rule"] else None,
        repeat_interval=row["repeat_interval"],
        project_id=_uuid_or_none(row["project_id"]),
        parent_task_id=_uuid_or_none(row["parent_task_id"]),
    )


def _record_to_row(r: FinancialRecord) -> Dict[str, Any]:
    return {
        "id": str(r.id),
        "title": r.title,
        "amount": r.amount,
        "type": r.type.value,
        "category": r.category.value,
        "date": format_datetime(r.date),
        "description": r.description,
        "tags": json.dumps(list(r.tags)),
    }


def _row_to_record(row: sqlite3.Row) -> FinancialRecord:
    return FinancialRecord(
        id=uuid.UUID(row["id"]),
        title=row["title"],
        amount=row["amount"],
        type=TransactionType(row["type"]),
        category=FinancialCategory(row["category"]),
        date=parse_datetime(row["date"]),
        description=row["description"],
        tags=json.loads(row["tags"]) if row["tags"] else [],
    )


def _budget_to_row(b: Budget) -> Dict[str, Any]:
    return {
        "id": str(b.id),
        "name": b.name,
        "amount": b.amount,
        "spent": b.spent,
        "period": b.period.value,
        "start_date": format_datetime(b.start_date),
        "end_date": format_datetime(b.end_date),
        "category": b.category.value,
    }


def _row_to_budget(row: sqlite3.Row) -> Budget:
    # end_date is recomputed from period + start_date
    return Budget(
        id=uuid.UUID(row["id"]),
        name=row["name"],
        amount=row["amount"],
        spent=row["spent"],
        period=BudgetPeriod(row["period"]),
        start_date=parse_datetime(row["start_date"]),
        category=FinancialCategory(row["category"]),
    )


def _credential_to_row(c: CredentialEntry) -> Dict[str, Any]:
    return {
        "id": str(c.id),
        "title": c.title,
        "username": c.username,
        "secret": c.secret,
        "website": c.website,
        "notes": c.notes,
        "category": c.category.value,
        "is_favorite": int(c.is_favorite),
        "created_at": format_datetime(c.created_at),
        "updated_at": format_datetime(c.updated_at),
    }


def _row_to_credential(row: sqlite3.Row) -> CredentialEntry:
    return CredentialEntry(
        id=uuid.UUID(row["id"]),
        title=row["title"],
        username=row["username"],
        secret=row["secret"],
        website=row["website"],
        notes=row["notes"],
        category=CredentialCategory(row["category"]),
        is_favorite=bool(row["is_favorite"]),
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


def _asset_to_row(a: VirtualAsset) -> Dict[str, Any]:
    return {
        "id": str(a.id),
        "name": a.name,
        "asset_type": a.asset_type.value,
        "value": a.value,
        "currency": a.currency,
        "expiry_date": format_datetime(a.expiry_date),
        "description": a.description,
        "barcode": a.barcode,
        "is_active": int(a.is_active),
        "created_at": format_datetime(a.created_at),
        "updated_at": format_datetime(a.updated_at),
    }


def _row_to_asset(row: sqlite3.Row) -> VirtualAsset:
    return VirtualAsset(
        id=uuid.UUID(row["id"]),
        name=row["name"],
        asset_type=AssetType(row["asset_type"]),
        value=row["value"],
        currency=row["currency"],
        expiry_date=parse_datetime(row["expiry_date"]),
        description=row["description"],
        barcode=row["barcode"],
        is_active=bool(row["is_active"]),
        created_at=parse_datetime(row["created_at"]),
        updated_at=parse_datetime(row["updated_at"]),
    )


_TO_ROW: Dict[EntityKind, Callable[[Any], Dict[str, Any]]] = {
    EntityKind.PROJECT: _project_to_row,
    EntityKind.TASK: _task_to_row,
    EntityKind.FINANCIAL_RECORD: _record_to_row,
    EntityKind.BUDGET: _budget_to_row,
    EntityKind.CREDENTIAL: _credential_to_row,
    EntityKind.VIRTUAL_ASSET: _asset_to_row,
}

_FROM_ROW: Dict[EntityKind, Callable[[sqlite3.Row], Any]] = {
    EntityKind.PROJECT: _row_to_project,
    EntityKind.TASK: _row_to_task,
    EntityKind.FINANCIAL_RECORD: _row_to_record,
    EntityKind.BUDGET: _row_to_budget,
    EntityKind.CREDENTIAL: _row_to_credential,
    EntityKind.VIRTUAL_ASSET: _row_to_asset,
}


class SQLiteEntityStore:
    """SQLite-based local entity store.

    Entities handed out by ``fetch_all`` / ``fetch_by_identifier`` are
    tracked in an identity map, so fetching the same record twice yields
    the same object. ``save()`` writes new and changed entities in a single
    transaction; a failed save leaves the tracked state intact so it can
    be retried.
    """

    def __init__(self, db_path: Optional[Path] = None):
        self.db_path = Path(db_path) if db_path else get_pamsync_home() / "pamsync.db"
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._tracked: Dict[_Key, Entity] = {}
        # Last persisted row per key, for dirty checking
        self._clean_rows: Dict[_Key, Dict[str, Any]] = {}

        with self._connect() as conn:
            init_db(conn)

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA busy_timeout=5000")
        conn.execute("PRAGMA foreign_keys=ON")
        return conn

    @contextlib.contextmanager
    def _connect(self):
        """Context manager that commits on success, rolls back on error, always closes."""
        conn = self._get_conn()
        try:
            yield conn
            conn.commit()
        except Exception as e:
            logger.debug(f"Transaction failed, rolling back: {e}")
            conn.rollback()
            raise
        finally:
            conn.close()

    def close(self):
        """Connections are per-operation; kept for API symmetry."""
        pass

    # === Identity map ===

    def _track(self, kind: EntityKind, row: sqlite3.Row) -> Entity:
        key = (kind, uuid.UUID(row["id"]))
        entity = self._tracked.get(key)
        if entity is None:
            entity = _FROM_ROW[kind](row)
            self._tracked[key] = entity
            self._clean_rows[key] = _TO_ROW[kind](entity)
        return entity

    def _table(self, kind: EntityKind) -> str:
        return validate_table_name(TABLE_FOR_KIND[EntityKind(kind)])

    # === EntityStore protocol ===

    def fetch_all(self, kind: EntityKind) -> List[Entity]:
        """Return all entities of ``kind`` in insertion order, staged inserts last."""
        kind = EntityKind(kind)
        table = self._table(kind)
        with self._connect() as conn:
            rows = conn.execute(f"SELECT * FROM {table} ORDER BY rowid").fetchall()

        entities = [self._track(kind, row) for row in rows]
        seen = {e.id for e in entities}
        for (k, entity_id), entity in self._tracked.items():
            if k is kind and entity_id not in seen and (k, entity_id) not in self._clean_rows:
                entities.append(entity)
        return entities

    def fetch_by_identifier(self, kind: EntityKind, entity_id: uuid.UUID) -> Optional[Entity]:
        kind = EntityKind(kind)
        tracked = self._tracked.get((kind, entity_id))
        if tracked is not None:
            return tracked

        table = self._table(kind)
        with self._connect() as conn:
            row = conn.execute(f"SELECT * FROM {table} WHERE id = ?", (str(entity_id),)).fetchone()
        return self._track(kind, row) if row else None

    def insert(self, entity: Entity) -> None:
        """Stage ``entity`` for insertion.

        Raises:
            ValueError: If another entity with the same id is already known.
        """
        kind = kind_of(entity)
        key = (kind, entity.id)
        existing = self._tracked.get(key)
        if existing is None:
            existing = self.fetch_by_identifier(kind, entity.id)
        if existing is not None and existing is not entity:
            raise ValueError(f"Duplicate {kind.value} id: {entity.id}")
        self._tracked[key] = entity

    def has_changes(self) -> bool:
        """Whether any tracked entity differs from its persisted row."""
        return bool(self._dirty())

    def _dirty(self) -> List[Tuple[_Key, Dict[str, Any]]]:
        dirty = []
        for key, entity in self._tracked.items():
            row = _TO_ROW[key[0]](entity)
            if self._clean_rows.get(key) != row:
                dirty.append((key, row))
        return dirty

    def save(self) -> None:
        """Write every new or modified entity in one transaction."""
        dirty = self._dirty()
        if not dirty:
            return

        try:
            with self._connect() as conn:
                for (kind, _), row in dirty:
                    self._upsert_row(conn, kind, row)
        except sqlite3.Error as e:
            logger.error(f"Failed to save {len(dirty)} entities: {e}", exc_info=True)
            raise LocalPersistenceError(e) from e

        for key, row in dirty:
            self._clean_rows[key] = row
        logger.debug(f"Saved {len(dirty)} entities")

    def _upsert_row(self, conn: sqlite3.Connection, kind: EntityKind, row: Dict[str, Any]):
        table = self._table(kind)
        columns = list(row.keys())
        placeholders = ", ".join("?" for _ in columns)
        updates = ", ".join(f"{c} = excluded.{c}" for c in columns if c != "id")
        conn.execute(
            f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) "
            f"ON CONFLICT(id) DO UPDATE SET {updates}",
            [row[c] for c in columns],
        )

    def discard_changes(self) -> None:
        """Forget staged inserts and unsaved edits; later fetches reload from disk."""
        self._tracked.clear()
        self._clean_rows.clear()

    # === Deletion (user-facing flows only) ===

    def delete(self, entity: Entity) -> None:
        """Delete ``entity`` immediately, cascading to dependent tasks.

        Deleting a project removes its tasks; deleting a task removes its
        subtasks, recursively.
        """
        kind = kind_of(entity)
        key = (kind, entity.id)
        if key in self._tracked and key not in self._clean_rows:
            # Staged but never saved
            del self._tracked[key]
            return

        table = self._table(kind)
        try:
            with self._connect() as conn:
                conn.execute(f"DELETE FROM {table} WHERE id = ?", (str(entity.id),))
                remaining = {
                    row["id"] for row in conn.execute("SELECT id FROM tasks").fetchall()
                }
        except sqlite3.Error as e:
            raise LocalPersistenceError(e) from e

        self._tracked.pop(key, None)
        self._clean_rows.pop(key, None)
        for tracked_key in list(self._clean_rows):
            if tracked_key[0] is EntityKind.TASK and str(tracked_key[1]) not in remaining:
                self._tracked.pop(tracked_key, None)
                self._clean_rows.pop(tracked_key, None)

    # === Sync metadata ===

    def _get_sync_meta(self, key: str) -> Optional[str]:
        with self._connect() as conn:
            row = conn.execute("SELECT value FROM sync_meta WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else None

    def _set_sync_meta(self, key: str, value: str):
        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO sync_meta (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, format_datetime(utc_now())),
            )

    def get_last_sync_time(self) -> Optional[datetime]:
        """Get the timestamp of the last successful sync."""
        value = self._get_sync_meta("last_sync_time")
        return parse_datetime(value) if value else None

    def set_last_sync_time(self, when: datetime) -> None:
        try:
            self._set_sync_meta("last_sync_time", format_datetime(when))
        except sqlite3.Error as e:
            raise LocalPersistenceError(e) from e

    def count(self, kind: EntityKind) -> int:
        """Number of persisted entities of ``kind``."""
        table = self._table(kind)
        with self._connect() as conn:
            return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]


__all__ = ["SQLiteEntityStore"]
