"""Observable sync state for UI consumers.

State changes are published as immutable snapshots through one channel.
A ``dispatch`` callable decides where listeners run (for example a UI
toolkit's "run on main thread" hook, or ``loop.call_soon_threadsafe``);
by default they run inline, in publication order.
"""

import logging
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)

Listener = Callable[["SyncStateSnapshot"], None]
Dispatch = Callable[[Callable[[], None]], None]


@dataclass(frozen=True)
class SyncStateSnapshot:
    is_syncing: bool = False
    sync_progress: float = 0.0  # 0..1, advances per collection per phase
    last_sync_date: Optional[datetime] = None
    sync_error: Optional[str] = None
    status_message: Optional[str] = None


def _run_inline(fn: Callable[[], None]) -> None:
    fn()


class SyncState:
    """Holds the current SyncStateSnapshot and notifies subscribers on change."""

    def __init__(
        self,
        dispatch: Optional[Dispatch] = None,
        last_sync_date: Optional[datetime] = None,
    ):
        self._dispatch = dispatch or _run_inline
        self._snapshot = SyncStateSnapshot(last_sync_date=last_sync_date)
        self._listeners: List[Listener] = []

    @property
    def snapshot(self) -> SyncStateSnapshot:
        return self._snapshot

    @property
    def is_syncing(self) -> bool:
        return self._snapshot.is_syncing

    @property
    def sync_progress(self) -> float:
        return self._snapshot.sync_progress

    @property
    def last_sync_date(self) -> Optional[datetime]:
        return self._snapshot.last_sync_date

    @property
    def sync_error(self) -> Optional[str]:
        return self._snapshot.sync_error

    @property
    def status_message(self) -> Optional[str]:
        return self._snapshot.status_message

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def update(self, **changes) -> SyncStateSnapshot:
        """Apply ``changes`` and publish the new snapshot if anything changed."""
        if "sync_progress" in changes:
            changes["sync_progress"] = min(max(float(changes["sync_progress"]), 0.0), 1.0)
        new = replace(self._snapshot, **changes)
        if new == self._snapshot:
            return new
        self._snapshot = new
        for listener in list(self._listeners):
            self._dispatch(lambda listener=listener: self._notify(listener, new))
        return new

    @staticmethod
    def _notify(listener: Listener, snapshot: SyncStateSnapshot) -> None:
        try:
            listener(snapshot)
        except Exception:
            logger.exception("Sync state listener failed")
