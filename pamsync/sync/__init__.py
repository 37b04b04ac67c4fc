"""Sync engine: per-kind descriptors, reconciliation, orchestration and state."""

from .kinds import DESCRIPTORS, SYNC_ORDER, KindDescriptor, ReferenceField, descriptor_for
from .orchestrator import CollectionReport, ReadCache, SyncOrchestrator, SyncOutcome
from .reconcile import ReconcileResult, Reconciler
from .state import SyncState, SyncStateSnapshot

__all__ = [
    "CollectionReport",
    "DESCRIPTORS",
    "KindDescriptor",
    "ReadCache",
    "ReconcileResult",
    "Reconciler",
    "ReferenceField",
    "SYNC_ORDER",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncState",
    "SyncStateSnapshot",
    "descriptor_for",
]
