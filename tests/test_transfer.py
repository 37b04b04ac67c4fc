"""Tests for the per-kind wire documents."""

import copy
from datetime import timedelta

import pytest

from pamsync.errors import DocumentDecodeError
from pamsync.identity import to_remote_key
from pamsync.testing import (
    T0,
    make_asset,
    make_budget,
    make_credential,
    make_project,
    make_record,
    make_task,
)
from pamsync.transfer import (
    BudgetDocument,
    FinancialRecordDocument,
    TaskDocument,
    budget_to_wire,
    credential_to_wire,
    financial_record_to_wire,
    parse_document,
    project_to_wire,
    task_to_wire,
    virtual_asset_to_wire,
)
from pamsync.types import TaskStatus

STAMP = T0 + timedelta(days=1)


class TestToWire:
    def test_project_payload_uses_camel_case(self):
        project = make_project(name="Work")
        payload = project_to_wire(project, STAMP).to_payload()
        assert payload["id"] == to_remote_key(project.id)
        assert payload["name"] == "Work"
        assert payload["colorHex"] == "#FF9500"
        assert "createdAt" in payload
        assert payload["syncedAt"].startswith("2024-03-02")

    def test_task_references_are_remote_keys(self):
        project = make_project()
        parent = make_task(title="Parent")
        task = make_task(title="Write report", project_id=project.id, parent_task_id=parent.id)
        payload = task_to_wire(task, STAMP).to_payload()
        assert payload["projectId"] == to_remote_key(project.id)
        assert payload["parentTaskId"] == to_remote_key(parent.id)
        assert payload["title"] == "Write report"
        assert payload["taskDescription"] == "milk, eggs"
        assert payload["priority"] == "high"

    def test_task_without_references(self):
        payload = task_to_wire(make_task(), STAMP).to_payload()
        assert payload["projectId"] is None
        assert payload["parentTaskId"] is None

    def test_record_payload(self):
        record = make_record(tags=["work", "monthly"], description="March")
        payload = financial_record_to_wire(record, STAMP).to_payload()
        assert payload["amount"] == 5000.0
        assert payload["type"] == "income"
        assert payload["recordDescription"] == "March"
        assert payload["tags"] == ["work", "monthly"]

    def test_budget_carries_end_date(self):
        budget = make_budget()
        payload = budget_to_wire(budget, STAMP).to_payload()
        assert payload["period"] == "monthly"
        assert payload["endDate"].startswith("2024-04-01")

    def test_credential_secret_travels_as_password(self):
        payload = credential_to_wire(make_credential(secret="s3cret"), STAMP).to_payload()
        assert payload["password"] == "s3cret"
        assert payload["isFavorite"] is False
        assert "secret" not in payload

    def test_asset_payload(self):
        payload = virtual_asset_to_wire(make_asset(barcode="123"), STAMP).to_payload()
        assert payload["assetType"] == "gift_card"
        assert payload["currency"] == "CNY"
        assert payload["barcode"] == "123"
        assert payload["isActive"] is True

    def test_to_wire_does_not_mutate(self):
        task = make_task(status=TaskStatus.COMPLETED, completed_at=T0)
        before = copy.deepcopy(task)
        task_to_wire(task, STAMP)
        assert task == before

    def test_synced_at_defaults_to_now(self):
        doc = project_to_wire(make_project())
        assert doc.synced_at is not None


class TestParseDocument:
    def test_parse_round_trips_task(self):
        task = make_task(status=TaskStatus.COMPLETED, completed_at=T0)
        doc = parse_document(TaskDocument, task_to_wire(task, STAMP).to_payload(), "tasks")
        assert doc.title == task.title
        assert doc.status is TaskStatus.COMPLETED
        assert doc.completed_at == T0

    def test_parse_ignores_unknown_fields(self):
        payload = task_to_wire(make_task(), STAMP).to_payload()
        payload["somethingNew"] = 1
        doc = parse_document(TaskDocument, payload, "tasks")
        assert doc.title == "Buy groceries"

    def test_missing_required_field_raises_decode_error(self):
        payload = {"id": "k1", "title": "No dates"}
        with pytest.raises(DocumentDecodeError) as exc_info:
            parse_document(TaskDocument, payload, "tasks")
        assert exc_info.value.collection == "tasks"
        assert exc_info.value.remote_key == "k1"

    def test_negative_amount_rejected(self):
        payload = financial_record_to_wire(make_record(), STAMP).to_payload()
        payload["amount"] = -5
        with pytest.raises(DocumentDecodeError):
            parse_document(FinancialRecordDocument, payload, "financialRecords")

    def test_unknown_enum_rejected(self):
        payload = budget_to_wire(make_budget(), STAMP).to_payload()
        payload["period"] = "fortnightly"
        with pytest.raises(DocumentDecodeError):
            parse_document(BudgetDocument, payload, "budgets")

    def test_offset_less_timestamps_are_utc(self):
        payload = budget_to_wire(make_budget(), STAMP).to_payload()
        payload["startDate"] = "2024-01-01T00:00:00"
        payload["endDate"] = "2024-02-01T00:00:00"
        payload["syncedAt"] = "2024-01-01T08:00:00"
        doc = parse_document(BudgetDocument, payload, "budgets")
        assert doc.start_date.tzinfo is not None
        assert doc.start_date.utcoffset() == timedelta(0)
        assert doc.end_date.utcoffset() == timedelta(0)
        assert doc.synced_at.utcoffset() == timedelta(0)

    def test_explicit_offsets_are_kept(self):
        payload = budget_to_wire(make_budget(), STAMP).to_payload()
        payload["startDate"] = "2024-01-01T09:00:00+09:00"
        doc = parse_document(BudgetDocument, payload, "budgets")
        assert doc.start_date.utcoffset() == timedelta(hours=9)
