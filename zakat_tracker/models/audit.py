"""
Audit Models for Zakat Tracker

Every significant action on the user's data is logged for audit purposes.
This provides:
1. Traceability of every save, backup, import, restore and reset
2. Debugging information when storage misbehaves
3. A record of which fallback tier produced the live data

DESIGN DECISION: Audit events describe what happened to the data,
never the data itself. Snapshots belong in backups, not in logs.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from zakat_tracker.models.user_data import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every step of the data lifecycle has its own event type.
    """
    # Loading
    DATA_LOADED = "data_loaded"
    STORAGE_READ_FAILED = "storage_read_failed"
    CORRUPT_DATA_PRESERVED = "corrupt_data_preserved"
    TEMPLATE_LOADED = "template_loaded"
    TEMPLATE_FALLBACK = "template_fallback"
    DEFAULTS_SYNTHESIZED = "defaults_synthesized"

    # Persistence
    DATA_SAVED = "data_saved"
    SAVE_FAILED = "save_failed"
    BACKUP_CREATED = "backup_created"
    BACKUP_FAILED = "backup_failed"

    # Transfer
    DATA_EXPORTED = "data_exported"
    DATA_IMPORTED = "data_imported"
    IMPORT_REJECTED = "import_rejected"

    # Recovery
    DATA_RESTORED = "data_restored"
    RESTORE_REJECTED = "restore_rejected"
    DATA_RESET = "data_reset"
    STORAGE_CLEARED = "storage_cleared"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Which storage key the event touched
    storage_key: Optional[str] = Field(
        default=None,
        description="Storage key read or written (e.g., 'zakatUserData')"
    )

    # Event details
    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    # Additional data (event-specific)
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "storage_key": self.storage_key,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.data_saved("zakatUserData", 7, 12)
        event = AuditEventBuilder.backup_failed("zakatBackupData", str(error))
    """

    @staticmethod
    def data_loaded(storage_key: str, source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_LOADED,
            storage_key=storage_key,
            description=f"User data loaded from {source}",
            details={"source": source},
        )

    @staticmethod
    def storage_read_failed(storage_key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_READ_FAILED,
            severity=AuditSeverity.WARNING,
            storage_key=storage_key,
            description="Stored user data unreadable, falling back to template",
            error_message=error_message,
        )

    @staticmethod
    def corrupt_data_preserved(storage_key: str, snapshot_key: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CORRUPT_DATA_PRESERVED,
            severity=AuditSeverity.WARNING,
            storage_key=storage_key,
            description=f"Unreadable user data kept under {snapshot_key}",
            details={"snapshot_key": snapshot_key},
        )

    @staticmethod
    def template_loaded(source: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_LOADED,
            description="Default template loaded",
            details={"template_source": source},
        )

    @staticmethod
    def template_fallback(source: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEMPLATE_FALLBACK,
            severity=AuditSeverity.WARNING,
            description="Default template unavailable, using built-in defaults",
            details={"template_source": source},
            error_message=error_message,
        )

    @staticmethod
    def defaults_synthesized(category_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEFAULTS_SYNTHESIZED,
            description=f"Built-in defaults created with {category_count} categories",
            details={"category_count": category_count},
        )

    @staticmethod
    def data_saved(
        storage_key: str,
        category_count: int,
        activity_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_SAVED,
            storage_key=storage_key,
            description="User data saved",
            details={
                "category_count": category_count,
                "activity_count": activity_count,
            },
        )

    @staticmethod
    def save_failed(storage_key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            storage_key=storage_key,
            description="Failed to save user data",
            error_message=error_message,
        )

    @staticmethod
    def backup_created(storage_key: str, backup_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_CREATED,
            severity=AuditSeverity.DEBUG,
            storage_key=storage_key,
            description=f"Backup created ({backup_count} kept)",
            details={"backup_count": backup_count},
        )

    @staticmethod
    def backup_failed(storage_key: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BACKUP_FAILED,
            severity=AuditSeverity.ERROR,
            storage_key=storage_key,
            description="Failed to write backup",
            error_message=error_message,
        )

    @staticmethod
    def data_exported(filename: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_EXPORTED,
            description=f"User data exported: {filename}",
            details={"filename": filename},
        )

    @staticmethod
    def data_imported(storage_key: str, category_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_IMPORTED,
            storage_key=storage_key,
            description=f"User data imported with {category_count} categories",
            details={"category_count": category_count},
        )

    @staticmethod
    def import_rejected(reason: str, issues: Optional[list[dict]] = None) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            description=f"Import rejected: {reason}",
            details={"issues": issues or []},
            error_message=reason,
        )

    @staticmethod
    def data_restored(index: int, backup_timestamp: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_RESTORED,
            description=f"Restored backup #{index}",
            details={
                "index": index,
                "backup_timestamp": backup_timestamp,
            },
        )

    @staticmethod
    def restore_rejected(index: int, history_length: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESTORE_REJECTED,
            severity=AuditSeverity.WARNING,
            description=f"Backup index {index} out of range",
            details={
                "index": index,
                "history_length": history_length,
            },
        )

    @staticmethod
    def data_reset(storage_key: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_RESET,
            severity=AuditSeverity.WARNING,
            storage_key=storage_key,
            description="User data reset to defaults",
        )

    @staticmethod
    def storage_cleared(keys: list[str]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_CLEARED,
            severity=AuditSeverity.WARNING,
            description=f"Removed {len(keys)} stored keys",
            details={"keys": keys},
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
        )
