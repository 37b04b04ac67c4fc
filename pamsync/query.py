"""Read-side query layer with a time-bounded snapshot cache.

``DataRepository.load()`` serves one immutable ``Snapshot`` of all six
collections from a TTL cache, reading the entity store only when the
cached snapshot is missing or older than the expiry window. Aggregates
and searches are computed from a snapshot, never from the store, so a
caller always sees a point-in-time consistent view.
"""

import asyncio
import copy
import logging
import time
from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from pamsync.config import DEFAULT_CACHE_TTL_SECONDS
from pamsync.storage.base import EntityStore
from pamsync.types import (
    Budget,
    CredentialEntry,
    EntityKind,
    FinancialRecord,
    Project,
    Task,
    TaskStatus,
    TransactionType,
    VirtualAsset,
    utc_now,
)

logger = logging.getLogger(__name__)

CACHE_KEY = "main_data"


class TTLCache:
    """Simple in-memory cache with TTL expiration."""

    def __init__(self, ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._cache: Dict[str, Tuple[Any, float]] = {}
        self._ttl = ttl_seconds
        self._clock = clock

    @property
    def ttl_seconds(self) -> float:
        return self._ttl

    def get(self, key: str) -> Optional[Any]:
        """Get value if exists and not expired."""
        if key in self._cache:
            value, timestamp = self._cache[key]
            if self._clock() - timestamp < self._ttl:
                return value
            # Expired, remove it
            del self._cache[key]
        return None

    def set(self, key: str, value: Any) -> None:
        """Set value with current timestamp."""
        self._cache[key] = (value, self._clock())

    def invalidate(self, key: str) -> None:
        self._cache.pop(key, None)

    def clear(self) -> None:
        """Clear all cached values."""
        self._cache.clear()


def _contains(haystack: Optional[str], needle: str) -> bool:
    return bool(haystack) and needle in haystack.casefold()


@dataclass(frozen=True)
class Snapshot:
    """Point-in-time copy of all six collections."""

    projects: Tuple[Project, ...] = ()
    tasks: Tuple[Task, ...] = ()
    records: Tuple[FinancialRecord, ...] = ()
    budgets: Tuple[Budget, ...] = ()
    credentials: Tuple[CredentialEntry, ...] = ()
    assets: Tuple[VirtualAsset, ...] = ()
    captured_at: Optional[datetime] = None

    # === Counts ===

    @property
    def total_projects(self) -> int:
        return len(self.projects)

    @property
    def total_tasks(self) -> int:
        return len(self.tasks)

    @property
    def completed_tasks(self) -> int:
        return sum(1 for t in self.tasks if t.status is TaskStatus.COMPLETED)

    @property
    def pending_tasks(self) -> int:
        return sum(1 for t in self.tasks if t.status is TaskStatus.PENDING)

    def task_counts_by_status(self) -> Dict[TaskStatus, int]:
        counts = Counter(t.status for t in self.tasks)
        return {status: counts.get(status, 0) for status in TaskStatus}

    @property
    def total_records(self) -> int:
        return len(self.records)

    @property
    def total_budgets(self) -> int:
        return len(self.budgets)

    @property
    def total_credentials(self) -> int:
        return len(self.credentials)

    @property
    def total_assets(self) -> int:
        return len(self.assets)

    # === Sums ===

    @property
    def total_income(self) -> float:
        return sum(r.amount for r in self.records if r.type is TransactionType.INCOME)

    @property
    def total_expense(self) -> float:
        return sum(r.amount for r in self.records if r.type is TransactionType.EXPENSE)

    @property
    def net_balance(self) -> float:
        return self.total_income - self.total_expense

    def tasks_for_project(self, project: Project) -> List[Task]:
        return [t for t in self.tasks if t.project_id == project.id]

    # === Search ===
    # An empty query matches everything; matching is case-insensitive.

    def search_tasks(self, query: str) -> List[Task]:
        if not query:
            return list(self.tasks)
        q = query.casefold()
        return [t for t in self.tasks if _contains(t.title, q) or _contains(t.description, q)]

    def search_records(self, query: str) -> List[FinancialRecord]:
        if not query:
            return list(self.records)
        q = query.casefold()
        return [r for r in self.records if _contains(r.title, q) or _contains(r.description, q)]

    def search_credentials(self, query: str) -> List[CredentialEntry]:
        if not query:
            return list(self.credentials)
        q = query.casefold()
        return [
            c
            for c in self.credentials
            if _contains(c.title, q) or _contains(c.username, q) or _contains(c.website, q)
        ]

    def search_assets(self, query: str) -> List[VirtualAsset]:
        if not query:
            return list(self.assets)
        q = query.casefold()
        return [a for a in self.assets if _contains(a.name, q) or _contains(a.description, q)]

    def search(self, query: str) -> Dict[str, List[Any]]:
        """Search every searchable collection at once."""
        return {
            "tasks": self.search_tasks(query),
            "records": self.search_records(query),
            "credentials": self.search_credentials(query),
            "assets": self.search_assets(query),
        }

    def stats(self) -> Dict[str, Any]:
        return {
            "projects": self.total_projects,
            "tasks": self.total_tasks,
            "completed_tasks": self.completed_tasks,
            "pending_tasks": self.pending_tasks,
            "tasks_by_status": {s.value: n for s, n in self.task_counts_by_status().items()},
            "records": self.total_records,
            "total_income": self.total_income,
            "total_expense": self.total_expense,
            "net_balance": self.net_balance,
            "budgets": self.total_budgets,
            "credentials": self.total_credentials,
            "assets": self.total_assets,
        }


class DataRepository:
    """Serves cached snapshots of the entity store.

    Args:
        store: The local entity store to read from.
        ttl_seconds: Snapshot expiry window (default 5 minutes).
        clock: Monotonic seconds source for the expiry check.
    """

    def __init__(
        self,
        store: EntityStore,
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._store = store
        self._cache = TTLCache(ttl_seconds=ttl_seconds, clock=clock)
        self._lock = asyncio.Lock()
        self.is_loading = False
        self.is_loading_more = False
        self.has_more = True
        self.last_refresh_time: Optional[datetime] = None

    def cached(self) -> Optional[Snapshot]:
        """The cached snapshot if present and unexpired, without loading."""
        return self._cache.get(CACHE_KEY)

    async def load(self) -> Snapshot:
        """Return the cached snapshot, reading the store if it is missing or expired.

        Concurrent callers share a single store read.
        """
        snapshot = self._cache.get(CACHE_KEY)
        if snapshot is not None:
            return snapshot

        async with self._lock:
            # Another caller may have filled the cache while we waited
            snapshot = self._cache.get(CACHE_KEY)
            if snapshot is not None:
                return snapshot

            self.is_loading = True
            try:
                snapshot = self._capture()
            finally:
                self.is_loading = False

            self._cache.set(CACHE_KEY, snapshot)
            self.last_refresh_time = snapshot.captured_at
            return snapshot

    async def refresh(self) -> Snapshot:
        """Drop the cached snapshot and reload from the store."""
        self.invalidate()
        return await self.load()

    def invalidate(self) -> None:
        self._cache.invalidate(CACHE_KEY)

    async def load_more(self) -> List[Any]:
        """Pagination hook. The snapshot already holds every row, so there is never more."""
        if self.is_loading_more or not self.has_more:
            return []
        self.is_loading_more = True
        try:
            self.has_more = False
            return []
        finally:
            self.is_loading_more = False

    def _capture(self) -> Snapshot:
        def copies(kind: EntityKind) -> tuple:
            return tuple(copy.deepcopy(e) for e in self._store.fetch_all(kind))

        snapshot = Snapshot(
            projects=copies(EntityKind.PROJECT),
            tasks=copies(EntityKind.TASK),
            records=copies(EntityKind.FINANCIAL_RECORD),
            budgets=copies(EntityKind.BUDGET),
            credentials=copies(EntityKind.CREDENTIAL),
            assets=copies(EntityKind.VIRTUAL_ASSET),
            captured_at=utc_now(),
        )
        logger.debug(
            f"Captured snapshot: {snapshot.total_projects} projects, {snapshot.total_tasks} tasks, "
            f"{snapshot.total_records} records"
        )
        return snapshot
