"""Cloud transfer models: the wire shape of each entity kind.

Each entity kind has its own document model (no shared envelope beyond
the ``id`` and ``syncedAt`` fields every document carries). Field names on
the wire are camelCase. Cross-entity references travel as the referenced
entity's remote key, never as embedded objects.

``to_wire`` functions are pure: they read the entity, never mutate it, and
stamp ``syncedAt`` with the supplied (or current) time.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from pamsync.errors import DocumentDecodeError
from pamsync.identity import to_remote_key
from pamsync.types import (
    AssetType,
    Budget,
    BudgetPeriod,
    CredentialCategory,
    CredentialEntry,
    FinancialCategory,
    FinancialRecord,
    Project,
    RepeatRule,
    Task,
    TaskPriority,
    TaskStatus,
    TransactionType,
    VirtualAsset,
    parse_datetime,
    utc_now,
)


class CloudDocument(BaseModel):
    """Fields common to every document."""

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    id: Optional[str] = None
    synced_at: Optional[datetime] = Field(default=None, alias="syncedAt")

    @field_validator("*", mode="after")
    @classmethod
    def _aware_datetimes(cls, value: Any) -> Any:
        # Offset-less timestamps on the wire are UTC, as in the local store.
        if isinstance(value, datetime):
            return parse_datetime(value)
        return value

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict with wire (camelCase) field names."""
        return self.model_dump(by_alias=True, mode="json")


class ProjectDocument(CloudDocument):
    name: str
    color_hex: str = Field(alias="colorHex")
    created_at: datetime = Field(alias="createdAt")


class TaskDocument(CloudDocument):
    title: str
    task_description: str = Field(default="", alias="taskDescription")
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[datetime] = Field(default=None, alias="dueDate")
    created_at: datetime = Field(alias="createdAt")
    completed_at: Optional[datetime] = Field(default=None, alias="completedAt")
    reminder_date: Optional[datetime] = Field(default=None, alias="reminderDate")
    repeat_rule: Optional[RepeatRule] = Field(default=None, alias="repeatRule")
    repeat_interval: int = Field(default=1, alias="repeatInterval")
    project_id: Optional[str] = Field(default=None, alias="projectId")
    parent_task_id: Optional[str] = Field(default=None, alias="parentTaskId")


class FinancialRecordDocument(CloudDocument):
    title: str
    amount: float = Field(ge=0)
    type: TransactionType
    category: FinancialCategory
    date: datetime
    record_description: str = Field(default="", alias="recordDescription")
    tags: List[str] = Field(default_factory=list)


class BudgetDocument(CloudDocument):
    name: str
    amount: float
    spent: float = 0.0
    period: BudgetPeriod
    start_date: datetime = Field(alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    category: FinancialCategory


class CredentialDocument(CloudDocument):
    # The secret travels as "password" and is not encrypted.
    title: str
    username: str
    password: str
    website: Optional[str] = None
    notes: Optional[str] = None
    category: CredentialCategory = CredentialCategory.OTHER
    is_favorite: bool = Field(default=False, alias="isFavorite")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


class VirtualAssetDocument(CloudDocument):
    name: str
    asset_type: AssetType = Field(alias="assetType")
    value: float
    currency: str = "CNY"
    expiry_date: Optional[datetime] = Field(default=None, alias="expiryDate")
    asset_description: Optional[str] = Field(default=None, alias="assetDescription")
    barcode: Optional[str] = None
    is_active: bool = Field(default=True, alias="isActive")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")


# === Entity -> document ===


def _ref(local_id) -> Optional[str]:
    return to_remote_key(local_id) if local_id is not None else None


def project_to_wire(project: Project, now: Optional[datetime] = None) -> ProjectDocument:
    return ProjectDocument(
        id=to_remote_key(project.id),
        synced_at=now or utc_now(),
        name=project.name,
        color_hex=project.color_hex,
        created_at=project.created_at,
    )


def task_to_wire(task: Task, now: Optional[datetime] = None) -> TaskDocument:
    return TaskDocument(
        id=to_remote_key(task.id),
        synced_at=now or utc_now(),
        title=task.title,
        task_description=task.description,
        priority=task.priority,
        status=task.status,
        due_date=task.due_date,
        created_at=task.created_at,
        completed_at=task.completed_at,
        reminder_date=task.reminder_date,
        repeat_rule=task.repeat_rule,
        repeat_interval=task.repeat_interval,
        project_id=_ref(task.project_id),
        parent_task_id=_ref(task.parent_task_id),
    )


def financial_record_to_wire(
    record: FinancialRecord, now: Optional[datetime] = None
) -> FinancialRecordDocument:
    return FinancialRecordDocument(
        id=to_remote_key(record.id),
        synced_at=now or utc_now(),
        title=record.title,
        amount=record.amount,
        type=record.type,
        category=record.category,
        date=record.date,
        record_description=record.description,
        tags=list(record.tags),
    )


def budget_to_wire(budget: Budget, now: Optional[datetime] = None) -> BudgetDocument:
    return BudgetDocument(
        id=to_remote_key(budget.id),
        synced_at=now or utc_now(),
        name=budget.name,
        amount=budget.amount,
        spent=budget.spent,
        period=budget.period,
        start_date=budget.start_date,
        end_date=budget.end_date,
        category=budget.category,
    )


def credential_to_wire(
    entry: CredentialEntry, now: Optional[datetime] = None
) -> CredentialDocument:
    return CredentialDocument(
        id=to_remote_key(entry.id),
        synced_at=now or utc_now(),
        title=entry.title,
        username=entry.username,
        password=entry.secret,
        website=entry.website,
        notes=entry.notes,
        category=entry.category,
        is_favorite=entry.is_favorite,
        created_at=entry.created_at,
        updated_at=entry.updated_at,
    )


def virtual_asset_to_wire(
    asset: VirtualAsset, now: Optional[datetime] = None
) -> VirtualAssetDocument:
    return VirtualAssetDocument(
        id=to_remote_key(asset.id),
        synced_at=now or utc_now(),
        name=asset.name,
        asset_type=asset.asset_type,
        value=asset.value,
        currency=asset.currency,
        expiry_date=asset.expiry_date,
        asset_description=asset.description,
        barcode=asset.barcode,
        is_active=asset.is_active,
        created_at=asset.created_at,
        updated_at=asset.updated_at,
    )


# === Payload -> document ===

D = TypeVar("D", bound=CloudDocument)


def parse_document(model: Type[D], payload: Dict[str, Any], collection: str) -> D:
    """Validate a raw payload against its collection's document model.

    Raises:
        DocumentDecodeError: If the payload does not fit the model.
    """
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        remote_key = payload.get("id") if isinstance(payload, dict) else None
        raise DocumentDecodeError(collection, remote_key, e) from e
