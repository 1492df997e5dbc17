"""
Core Data Models for Zakat Tracker

These models define the single persisted aggregate (UserDataRecord) and
everything derived from it: backups, export documents, usage statistics
and change notifications.

DESIGN DECISION: JSON field names are camelCase so stored records, backups
and exported files keep the exact shape users already have on disk.
Python code uses snake_case attributes; the alias generator bridges both.

DESIGN DECISION: There is ONE canonical category schema
(paid / targetAmount / currentAmount). The older tracker schema
(isPaid / amount / paidAmount) is accepted on input and normalized.
"""

from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Annotated, Optional

from pydantic import (
    AfterValidator,
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps written by older clients are UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


class CamelModel(BaseModel):
    """Base model serializing to camelCase JSON."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class BackupFrequency(str, Enum):
    """How often the automatic backup runs."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def interval(self) -> timedelta:
        """Time between two automatic backups."""
        return {
            BackupFrequency.DAILY: timedelta(hours=24),
            BackupFrequency.WEEKLY: timedelta(days=7),
            BackupFrequency.MONTHLY: timedelta(days=30),
        }[self]


class Currency(str, Enum):
    """Supported display currencies."""
    SAR = "SAR"
    AED = "AED"
    USD = "USD"
    EUR = "EUR"


class ChangeKind(str, Enum):
    """What caused the live record to change."""
    LOADED = "loaded"
    SAVED = "saved"
    IMPORTED = "imported"
    RESTORED = "restored"
    RESET = "reset"
    UPDATED = "updated"


# =============================================================================
# USER DATA RECORD
# =============================================================================

class AppInfo(CamelModel):
    """Record metadata."""

    version: str = "1.0.0"
    user_name: str = ""
    created_date: UTCDateTime = Field(default_factory=utcnow)
    last_updated: UTCDateTime = Field(default_factory=utcnow)
    theme: str = "default"


class Category(CamelModel):
    """
    A named allocation bucket with a target share of funds.

    Accepts the legacy tracker keys (isPaid, amount, paidAmount).
    """

    id: int
    name: str
    icon: str = ""
    percentage: float = Field(default=0, ge=0, le=100)
    target_amount: float = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("targetAmount", "target_amount", "amount"),
    )
    current_amount: float = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("currentAmount", "current_amount", "paidAmount"),
    )
    paid: bool = Field(
        default=False,
        validation_alias=AliasChoices("paid", "isPaid"),
    )
    color: str = ""
    notes: str = ""


class Activity(CamelModel):
    """An immutable log entry for a user action."""

    id: int
    icon: str = ""
    description: str = ""
    amount: float = 0
    occurred_at: UTCDateTime = Field(
        default_factory=utcnow,
        alias="date",
        validation_alias=AliasChoices("date", "timestamp", "occurred_at"),
    )


class Summary(CamelModel):
    """Derived totals plus the user's free-text reflections."""

    total_zakat: float = 0
    total_donations: float = 0
    completed_categories: int = Field(default=0, ge=0)
    progress_percentage: float = Field(default=0, ge=0, le=100)
    reflections: str = ""
    monthly_goal: float = 0
    yearly_goal: float = 0


class UserSettings(CamelModel):
    """User preferences stored alongside the data."""

    notifications: bool = True
    auto_backup: bool = True
    backup_frequency: BackupFrequency = BackupFrequency.WEEKLY
    currency: Currency = Currency.SAR
    language: str = "ar"
    reminder_enabled: bool = True
    reminder_days: set[int] = Field(default_factory=lambda: {1, 15})


class UserDataRecord(CamelModel):
    """
    The single persisted aggregate.

    CRITICAL: Category ids must be unique. Percentages conventionally sum
    to 100 but that is NOT enforced here (see the import validator warning).
    """

    app_info: AppInfo = Field(default_factory=AppInfo)
    categories: list[Category] = Field(default_factory=list)
    activities: list[Activity] = Field(default_factory=list)
    summary: Summary = Field(default_factory=Summary)
    settings: UserSettings = Field(default_factory=UserSettings)

    @model_validator(mode='after')
    def validate_unique_category_ids(self) -> 'UserDataRecord':
        """Reject duplicate category ids."""
        seen: set[int] = set()
        for category in self.categories:
            if category.id in seen:
                raise ValueError(f"Duplicate category id: {category.id}")
            seen.add(category.id)
        return self

    def find_category(self, category_id: int) -> Optional[Category]:
        """Return the category with this id, if any."""
        for category in self.categories:
            if category.id == category_id:
                return category
        return None

    def to_dict(self) -> dict:
        """JSON-compatible dict using the on-disk field names."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        """JSON text using the on-disk field names."""
        return self.model_dump_json(by_alias=True, indent=indent)


# =============================================================================
# BACKUP / EXPORT MODELS
# =============================================================================

class BackupEntry(CamelModel):
    """A full snapshot of the record, kept in the rotating backup list."""

    data: UserDataRecord
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    version: str = "1.0.0"


class ExportInfo(CamelModel):
    """Metadata written at the top of an export file."""

    export_date: date
    version: str = "1.0.0"
    user_agent: str = ""


class ExportDocument(CamelModel):
    """The downloaded/imported file shape: exportInfo + data."""

    export_info: ExportInfo
    data: UserDataRecord

    def to_json(self, indent: Optional[int] = 2) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)


# =============================================================================
# READ-ONLY VIEWS
# =============================================================================

class UsageStatistics(CamelModel):
    """Aggregates derived from the live record. Never persisted."""

    total_categories: int = Field(ge=0)
    completed_categories: int = Field(ge=0)
    total_activities: int = Field(ge=0)
    total_donation: float
    days_using: int
    last_activity: Optional[datetime] = None


class DataChangeEvent(BaseModel):
    """Notification sent to subscribers after the live record changes."""

    kind: ChangeKind
    record: Optional[UserDataRecord] = None
    timestamp: datetime = Field(default_factory=utcnow)


# =============================================================================
# DEFAULTS
# =============================================================================

# The seven zakat distribution classes; percentages sum to 100
DEFAULT_CATEGORIES: list[dict] = [
    {"id": 1, "name": "الفقير", "icon": "fas fa-heart", "percentage": 25, "color": "#e74c3c"},
    {"id": 2, "name": "المسكين", "icon": "fas fa-hands-helping", "percentage": 20, "color": "#3498db"},
    {"id": 3, "name": "العمال", "icon": "fas fa-user-tie", "percentage": 15, "color": "#2ecc71"},
    {"id": 4, "name": "المؤلفة قلوبهم", "icon": "fas fa-smile", "percentage": 10, "color": "#f39c12"},
    {"id": 5, "name": "في الرقاب", "icon": "fas fa-key", "percentage": 10, "color": "#9b59b6"},
    {"id": 6, "name": "في سبيل الله", "icon": "fas fa-crosshairs", "percentage": 10, "color": "#e67e22"},
    {"id": 7, "name": "ابن السبيل", "icon": "fas fa-route", "percentage": 10, "color": "#1abc9c"},
]


def default_user_data(version: str = "1.0.0") -> UserDataRecord:
    """
    Build the built-in first-run record.

    Used when neither stored data nor the default template is available.
    All amounts are zero and every category is unpaid.
    """
    now = utcnow()
    return UserDataRecord(
        app_info=AppInfo(version=version, created_date=now, last_updated=now),
        categories=[Category(**category) for category in DEFAULT_CATEGORIES],
        activities=[],
        summary=Summary(),
        settings=UserSettings(),
    )
