"""
Data Models Package

This package contains all Pydantic models used in the Zakat Tracker.
Everything persisted, backed up or exported conforms to these schemas.
"""

from zakat_tracker.models.user_data import (
    DEFAULT_CATEGORIES,
    Activity,
    AppInfo,
    BackupEntry,
    BackupFrequency,
    Category,
    ChangeKind,
    Currency,
    DataChangeEvent,
    ExportDocument,
    ExportInfo,
    Summary,
    UsageStatistics,
    UserDataRecord,
    UserSettings,
    default_user_data,
    utcnow,
)
from zakat_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from zakat_tracker.models.validation import ValidationIssue, ValidationResult

__all__ = [
    # User data models
    "DEFAULT_CATEGORIES",
    "Activity",
    "AppInfo",
    "BackupEntry",
    "BackupFrequency",
    "Category",
    "ChangeKind",
    "Currency",
    "DataChangeEvent",
    "ExportDocument",
    "ExportInfo",
    "Summary",
    "UsageStatistics",
    "UserDataRecord",
    "UserSettings",
    "default_user_data",
    "utcnow",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Validation models
    "ValidationIssue",
    "ValidationResult",
]
