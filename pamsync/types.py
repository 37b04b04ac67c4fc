"""
Shared entity types for pamsync.

The six entity kinds managed locally and mirrored to the cloud live here,
together with their enumerations. These are the vocabulary shared by the
entity store, the wire documents, the reconciler and the query layer.
"""

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import List, Optional, Union

# === Shared Utility Functions ===


def utc_now() -> datetime:
    """Get current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(s: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """Parse an ISO datetime string, normalizing naive values to UTC."""
    if s is None or s == "":
        return None
    if isinstance(s, datetime):
        value = s
    else:
        value = datetime.fromisoformat(s.replace("Z", "+00:00"))
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Format a datetime for storage and the wire."""
    if dt is None:
        return None
    return dt.isoformat()


def add_months(dt: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def _is_weekend(d: date) -> bool:
    return d.weekday() >= 5


# === Enums ===


class EntityKind(str, Enum):
    """The six synchronized entity kinds."""

    PROJECT = "project"
    TASK = "task"
    FINANCIAL_RECORD = "financial_record"
    BUDGET = "budget"
    CREDENTIAL = "credential"
    VIRTUAL_ASSET = "virtual_asset"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RepeatRule(str, Enum):
    """How a task recurs."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    WEEKDAYS = "weekdays"
    WEEKENDS = "weekends"

    def next_date(self, dt: datetime) -> datetime:
        """Return the next occurrence after ``dt``."""
        if self is RepeatRule.DAILY:
            return dt + timedelta(days=1)
        if self is RepeatRule.WEEKLY:
            return dt + timedelta(weeks=1)
        if self is RepeatRule.MONTHLY:
            return add_months(dt, 1)
        if self is RepeatRule.YEARLY:
            return add_months(dt, 12)

        want_weekend = self is RepeatRule.WEEKENDS
        candidate = dt + timedelta(days=1)
        while _is_weekend(candidate.date()) != want_weekend:
            candidate += timedelta(days=1)
        return candidate


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class FinancialCategory(str, Enum):
    INCOME = "income"
    HOUSING = "housing"
    TRANSPORTATION = "transportation"
    FOOD = "food"
    UTILITIES = "utilities"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    HEALTH = "health"
    EDUCATION = "education"
    TRAVEL = "travel"
    OTHER = "other"


class BudgetPeriod(str, Enum):
    """Budget window length."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    def apply(self, start: datetime) -> datetime:
        """Compute the end of a budget window starting at ``start``."""
        if self is BudgetPeriod.WEEKLY:
            return start + timedelta(weeks=1)
        if self is BudgetPeriod.MONTHLY:
            return add_months(start, 1)
        return add_months(start, 12)


class CredentialCategory(str, Enum):
    SOCIAL = "social"
    EMAIL = "email"
    BANKING = "banking"
    SHOPPING = "shopping"
    WORK = "work"
    ENTERTAINMENT = "entertainment"
    OTHER = "other"


class AssetType(str, Enum):
    GIFT_CARD = "gift_card"
    COUPON = "coupon"
    VOUCHER = "voucher"
    MEMBERSHIP = "membership"
    LOYALTY = "loyalty"
    OTHER = "other"


# === Entities ===


@dataclass
class Project:
    """A named list of tasks."""

    name: str
    color_hex: str = "#8E8E93"
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class Task:
    """A unit of work, optionally inside a project or under a parent task.

    ``completed_at`` is set exactly when ``status`` is COMPLETED; use
    :meth:`set_status` rather than assigning ``status`` directly.
    """

    title: str
    description: str = ""
    priority: TaskPriority = TaskPriority.MEDIUM
    status: TaskStatus = TaskStatus.PENDING
    due_date: Optional[datetime] = None
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    reminder_date: Optional[datetime] = None
    repeat_rule: Optional[RepeatRule] = None
    repeat_interval: int = 1
    project_id: Optional[uuid.UUID] = None
    parent_task_id: Optional[uuid.UUID] = None

    def __post_init__(self):
        if self.status is TaskStatus.COMPLETED and self.completed_at is None:
            self.completed_at = utc_now()
        elif self.status is not TaskStatus.COMPLETED:
            self.completed_at = None

    def set_status(self, status: TaskStatus, at: Optional[datetime] = None) -> None:
        """Change status, stamping or clearing ``completed_at``."""
        self.status = TaskStatus(status)
        if self.status is TaskStatus.COMPLETED:
            self.completed_at = at or self.completed_at or utc_now()
        else:
            self.completed_at = None

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED


@dataclass
class FinancialRecord:
    """An income or expense entry. ``amount`` is a non-negative magnitude."""

    title: str
    amount: float
    type: TransactionType
    category: FinancialCategory
    date: datetime = field(default_factory=utc_now)
    description: str = ""
    tags: List[str] = field(default_factory=list)
    id: uuid.UUID = field(default_factory=uuid.uuid4)

    def __post_init__(self):
        if self.amount < 0:
            raise ValueError(f"amount must be >= 0, got {self.amount}")

    @property
    def signed_amount(self) -> float:
        return self.amount if self.type is TransactionType.INCOME else -self.amount


@dataclass
class Budget:
    """A spending ceiling over a period.

    ``end_date`` is derived: it is recomputed from ``period`` and
    ``start_date`` whenever either is assigned. ``spent`` is a locally
    cached aggregate.
    """

    name: str
    amount: float
    period: BudgetPeriod
    category: FinancialCategory
    spent: float = 0.0
    start_date: datetime = field(default_factory=utc_now)
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    end_date: datetime = field(init=False)

    def __setattr__(self, name, value):
        if name == "end_date" and "end_date" in self.__dict__:
            raise AttributeError("end_date is derived from period and start_date")
        object.__setattr__(self, name, value)
        if name in ("period", "start_date"):
            period = self.__dict__.get("period")
            start = self.__dict__.get("start_date")
            if period is not None and start is not None:
                object.__setattr__(self, "end_date", BudgetPeriod(period).apply(start))

    @property
    def remaining(self) -> float:
        return self.amount - self.spent

    @property
    def progress(self) -> float:
        return min(self.spent / self.amount, 1.0) if self.amount > 0 else 0.0

    @property
    def is_over_budget(self) -> bool:
        return self.spent > self.amount

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return (now or utc_now()) > self.end_date


@dataclass
class CredentialEntry:
    """A password-box entry. ``secret`` is stored and synchronized verbatim."""

    title: str
    username: str
    secret: str
    website: Optional[str] = None
    notes: Optional[str] = None
    category: CredentialCategory = CredentialCategory.OTHER
    is_favorite: bool = False
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class VirtualAsset:
    """A gift card, coupon, membership or similar stored-value item."""

    name: str
    asset_type: AssetType
    value: float
    currency: str = "CNY"
    expiry_date: Optional[datetime] = None
    description: Optional[str] = None
    barcode: Optional[str] = None
    is_active: bool = True
    id: uuid.UUID = field(default_factory=uuid.uuid4)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


Entity = Union[Project, Task, FinancialRecord, Budget, CredentialEntry, VirtualAsset]

ENTITY_CLASSES = {
    EntityKind.PROJECT: Project,
    EntityKind.TASK: Task,
    EntityKind.FINANCIAL_RECORD: FinancialRecord,
    EntityKind.BUDGET: Budget,
    EntityKind.CREDENTIAL: CredentialEntry,
    EntityKind.VIRTUAL_ASSET: VirtualAsset,
}


def kind_of(entity: Entity) -> EntityKind:
    """Return the EntityKind for an entity instance."""
    for kind, cls in ENTITY_CLASSES.items():
        if isinstance(entity, cls):
            return kind
    raise TypeError(f"Not a pamsync entity: {type(entity).__name__}")
