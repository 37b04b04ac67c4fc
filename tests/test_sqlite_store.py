"""Tests for the SQLite entity store."""

import sqlite3
import uuid
from unittest.mock import patch

import pytest

from pamsync.errors import LocalPersistenceError
from pamsync.storage import SQLiteEntityStore
from pamsync.storage.schema import validate_table_name
from pamsync.testing import (
    T0,
    make_asset,
    make_budget,
    make_credential,
    make_project,
    make_record,
    make_task,
)
from pamsync.types import BudgetPeriod, EntityKind, TaskStatus


def _reopen(store: SQLiteEntityStore) -> SQLiteEntityStore:
    return SQLiteEntityStore(store.db_path)


class TestInsertAndFetch:
    def test_insert_then_save_persists(self, store):
        project = make_project(name="Work")
        store.insert(project)
        store.save()

        fresh = _reopen(store)
        loaded = fresh.fetch_by_identifier(EntityKind.PROJECT, project.id)
        assert loaded == project
        assert loaded is not project

    def test_staged_inserts_visible_before_save(self, store):
        project = make_project()
        store.insert(project)
        assert store.fetch_all(EntityKind.PROJECT) == [project]
        assert store.fetch_by_identifier(EntityKind.PROJECT, project.id) is project
        assert store.count(EntityKind.PROJECT) == 0

    def test_identity_map_returns_same_object(self, store):
        store.insert(make_project())
        store.save()
        fresh = _reopen(store)
        a = fresh.fetch_all(EntityKind.PROJECT)[0]
        b = fresh.fetch_by_identifier(EntityKind.PROJECT, a.id)
        assert a is b

    def test_fetch_missing_returns_none(self, store):
        assert store.fetch_by_identifier(EntityKind.TASK, uuid.uuid4()) is None

    def test_duplicate_insert_rejected(self, store):
        project = make_project()
        store.insert(project)
        store.save()
        with pytest.raises(ValueError):
            store.insert(make_project(id=project.id))

    def test_fetch_all_keeps_insertion_order(self, store):
        tasks = [make_task(title=f"t{i}") for i in range(5)]
        for t in tasks:
            store.insert(t)
        store.save()
        fresh = _reopen(store)
        assert [t.title for t in fresh.fetch_all(EntityKind.TASK)] == [f"t{i}" for i in range(5)]

    def test_every_kind_round_trips(self, store):
        entities = [
            make_project(),
            make_task(status=TaskStatus.COMPLETED, completed_at=T0),
            make_record(tags=["a", "b"]),
            make_budget(spent=40.0),
            make_credential(is_favorite=True, notes="backup codes in drawer"),
            make_asset(barcode="998877", expiry_date=T0),
        ]
        for e in entities:
            store.insert(e)
        store.save()

        fresh = _reopen(store)
        kinds = [
            EntityKind.PROJECT,
            EntityKind.TASK,
            EntityKind.FINANCIAL_RECORD,
            EntityKind.BUDGET,
            EntityKind.CREDENTIAL,
            EntityKind.VIRTUAL_ASSET,
        ]
        for kind, entity in zip(kinds, entities):
            assert fresh.fetch_by_identifier(kind, entity.id) == entity


class TestUnitOfWork:
    def test_edits_persist_on_save(self, store):
        project = make_project(name="Old")
        store.insert(project)
        store.save()

        project.name = "New"
        assert store.has_changes()
        store.save()
        assert not store.has_changes()

        assert _reopen(store).fetch_by_identifier(EntityKind.PROJECT, project.id).name == "New"

    def test_discard_changes_drops_staged(self, store):
        store.insert(make_project())
        store.discard_changes()
        assert store.fetch_all(EntityKind.PROJECT) == []

    def test_task_may_be_staged_before_its_project(self, store):
        project = make_project()
        task = make_task(project_id=project.id)
        store.insert(task)
        store.insert(project)
        store.save()
        assert store.count(EntityKind.TASK) == 1

    def test_dangling_reference_fails_commit(self, store):
        store.insert(make_task(project_id=uuid.uuid4()))
        with pytest.raises(LocalPersistenceError):
            store.save()

    def test_failed_save_keeps_tracked_state(self, store):
        project = make_project()
        store.insert(project)
        with patch.object(store, "_upsert_row", side_effect=sqlite3.OperationalError("disk full")):
            with pytest.raises(LocalPersistenceError):
                store.save()
        assert store.has_changes()
        store.save()
        assert store.count(EntityKind.PROJECT) == 1


class TestDelete:
    def test_delete_project_cascades_to_tasks(self, store):
        project = make_project()
        parent = make_task(title="Parent", project_id=project.id)
        child = make_task(title="Child", parent_task_id=parent.id)
        other = make_task(title="Loose")
        for e in (project, parent, child, other):
            store.insert(e)
        store.save()

        store.delete(project)

        remaining = [t.title for t in store.fetch_all(EntityKind.TASK)]
        assert remaining == ["Loose"]
        assert store.count(EntityKind.PROJECT) == 0

    def test_delete_staged_entity(self, store):
        project = make_project()
        store.insert(project)
        store.delete(project)
        assert store.fetch_all(EntityKind.PROJECT) == []


class TestBudgetRows:
    def test_end_date_recomputed_on_load(self, store):
        budget = make_budget(period=BudgetPeriod.WEEKLY)
        store.insert(budget)
        store.save()
        loaded = _reopen(store).fetch_by_identifier(EntityKind.BUDGET, budget.id)
        assert loaded.end_date == budget.end_date


class TestSyncMeta:
    def test_last_sync_time_round_trip(self, store):
        assert store.get_last_sync_time() is None
        store.set_last_sync_time(T0)
        assert _reopen(store).get_last_sync_time() == T0


def test_validate_table_name():
    assert validate_table_name("tasks") == "tasks"
    with pytest.raises(ValueError):
        validate_table_name("tasks; DROP TABLE projects")
