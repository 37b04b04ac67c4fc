"""Per-kind sync descriptors.

Each entity kind is described by one ``KindDescriptor``: its remote
collection, its document model, how to map an entity to the wire, how to
overwrite an entity from a document, and which fields reference other
entities. ``SYNC_ORDER`` is the dependency order used for both upload and
download: referenced kinds come before the kinds that reference them.
Adding a kind means adding a descriptor here.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Tuple, Type

from pamsync.transfer import (
    BudgetDocument,
    CloudDocument,
    CredentialDocument,
    FinancialRecordDocument,
    ProjectDocument,
    TaskDocument,
    VirtualAssetDocument,
    budget_to_wire,
    credential_to_wire,
    financial_record_to_wire,
    project_to_wire,
    task_to_wire,
    virtual_asset_to_wire,
)
from pamsync.types import (
    Budget,
    CredentialEntry,
    Entity,
    EntityKind,
    FinancialRecord,
    Project,
    Task,
    VirtualAsset,
)


@dataclass(frozen=True)
class ReferenceField:
    """A cross-entity reference carried on the wire as a remote key."""

    attr: str  # entity attribute holding the referenced local id
    wire_attr: str  # document attribute holding the referenced remote key
    target: EntityKind


@dataclass(frozen=True)
class KindDescriptor:
    kind: EntityKind
    collection: str
    document_model: Type[CloudDocument]
    to_wire: Callable[[Entity, Optional[datetime]], CloudDocument]
    apply: Callable[[Entity, CloudDocument], None]
    create: Callable[[uuid.UUID, CloudDocument], Entity]
    references: Tuple[ReferenceField, ...] = ()


# === Document -> entity field overwrite ===
# References are not touched here; the reconciler resolves them.


def _apply_project(p: Project, doc: ProjectDocument) -> None:
    p.name = doc.name
    p.color_hex = doc.color_hex
    p.created_at = doc.created_at


def _apply_task(t: Task, doc: TaskDocument) -> None:
    t.title = doc.title
    t.description = doc.task_description
    t.priority = doc.priority
    t.set_status(doc.status, at=doc.completed_at)
    t.due_date = doc.due_date
    t.created_at = doc.created_at
    t.reminder_date = doc.reminder_date
    t.repeat_rule = doc.repeat_rule
    t.repeat_interval = doc.repeat_interval


def _apply_record(r: FinancialRecord, doc: FinancialRecordDocument) -> None:
    r.title = doc.title
    r.amount = doc.amount
    r.type = doc.type
    r.category = doc.category
    r.date = doc.date
    r.description = doc.record_description
    r.tags = list(doc.tags)


def _apply_budget(b: Budget, doc: BudgetDocument) -> None:
    # end_date follows from period + start_date
    b.name = doc.name
    b.amount = doc.amount
    b.spent = doc.spent
    b.category = doc.category
    b.period = doc.period
    b.start_date = doc.start_date


def _apply_credential(c: CredentialEntry, doc: CredentialDocument) -> None:
    c.title = doc.title
    c.username = doc.username
    c.secret = doc.password
    c.website = doc.website
    c.notes = doc.notes
    c.category = doc.category
    c.is_favorite = doc.is_favorite
    c.created_at = doc.created_at
    c.updated_at = doc.updated_at


def _apply_asset(a: VirtualAsset, doc: VirtualAssetDocument) -> None:
    a.name = doc.name
    a.asset_type = doc.asset_type
    a.value = doc.value
    a.currency = doc.currency
    a.expiry_date = doc.expiry_date
    a.description = doc.asset_description
    a.barcode = doc.barcode
    a.is_active = doc.is_active
    a.created_at = doc.created_at
    a.updated_at = doc.updated_at


# === New entity from document, keeping the remote-origin id ===


def _create_project(local_id: uuid.UUID, doc: ProjectDocument) -> Project:
    return Project(
        id=local_id, name=doc.name, color_hex=doc.color_hex, created_at=doc.created_at
    )


def _create_task(local_id: uuid.UUID, doc: TaskDocument) -> Task:
    task = Task(id=local_id, title=doc.title, created_at=doc.created_at)
    _apply_task(task, doc)
    return task


def _create_record(local_id: uuid.UUID, doc: FinancialRecordDocument) -> FinancialRecord:
    return FinancialRecord(
        id=local_id,
        title=doc.title,
        amount=doc.amount,
        type=doc.type,
        category=doc.category,
        date=doc.date,
        description=doc.record_description,
        tags=list(doc.tags),
    )


def _create_budget(local_id: uuid.UUID, doc: BudgetDocument) -> Budget:
    return Budget(
        id=local_id,
        name=doc.name,
        amount=doc.amount,
        spent=doc.spent,
        period=doc.period,
        start_date=doc.start_date,
        category=doc.category,
    )


def _create_credential(local_id: uuid.UUID, doc: CredentialDocument) -> CredentialEntry:
    entry = CredentialEntry(
        id=local_id, title=doc.title, username=doc.username, secret=doc.password
    )
    _apply_credential(entry, doc)
    return entry


def _create_asset(local_id: uuid.UUID, doc: VirtualAssetDocument) -> VirtualAsset:
    asset = VirtualAsset(id=local_id, name=doc.name, asset_type=doc.asset_type, value=doc.value)
    _apply_asset(asset, doc)
    return asset


PROJECTS = KindDescriptor(
    kind=EntityKind.PROJECT,
    collection="projects",
    document_model=ProjectDocument,
    to_wire=project_to_wire,
    apply=_apply_project,
    create=_create_project,
)

TASKS = KindDescriptor(
    kind=EntityKind.TASK,
    collection="tasks",
    document_model=TaskDocument,
    to_wire=task_to_wire,
    apply=_apply_task,
    create=_create_task,
    references=(
        ReferenceField("project_id", "project_id", EntityKind.PROJECT),
        ReferenceField("parent_task_id", "parent_task_id", EntityKind.TASK),
    ),
)

FINANCIAL_RECORDS = KindDescriptor(
    kind=EntityKind.FINANCIAL_RECORD,
    collection="financialRecords",
    document_model=FinancialRecordDocument,
    to_wire=financial_record_to_wire,
    apply=_apply_record,
    create=_create_record,
)

BUDGETS = KindDescriptor(
    kind=EntityKind.BUDGET,
    collection="budgets",
    document_model=BudgetDocument,
    to_wire=budget_to_wire,
    apply=_apply_budget,
    create=_create_budget,
)

CREDENTIALS = KindDescriptor(
    kind=EntityKind.CREDENTIAL,
    collection="passwords",
    document_model=CredentialDocument,
    to_wire=credential_to_wire,
    apply=_apply_credential,
    create=_create_credential,
)

VIRTUAL_ASSETS = KindDescriptor(
    kind=EntityKind.VIRTUAL_ASSET,
    collection="virtualAssets",
    document_model=VirtualAssetDocument,
    to_wire=virtual_asset_to_wire,
    apply=_apply_asset,
    create=_create_asset,
)

SYNC_ORDER: Tuple[KindDescriptor, ...] = (
    PROJECTS,
    TASKS,
    FINANCIAL_RECORDS,
    BUDGETS,
    CREDENTIALS,
    VIRTUAL_ASSETS,
)

DESCRIPTORS: Dict[EntityKind, KindDescriptor] = {d.kind: d for d in SYNC_ORDER}


def descriptor_for(kind: EntityKind) -> KindDescriptor:
    return DESCRIPTORS[EntityKind(kind)]
