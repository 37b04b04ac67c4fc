"""Test doubles and builders for the sync engine."""

from .builders import (
    T0,
    FixedClock,
    make_asset,
    make_budget,
    make_credential,
    make_project,
    make_record,
    make_task,
    new_key,
)
from .fakes import InMemoryRemoteStore, RemoteCall, RemoteFailure, StaticAuth

__all__ = [
    "FixedClock",
    "InMemoryRemoteStore",
    "RemoteCall",
    "RemoteFailure",
    "StaticAuth",
    "T0",
    "make_asset",
    "make_budget",
    "make_credential",
    "make_project",
    "make_record",
    "make_task",
    "new_key",
]
