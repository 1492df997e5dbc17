"""
Tests for Zakat Tracker models

Test strategy:
1. Unit tests for individual components (models, audit events)
2. Serialization checks use the on-disk camelCase names
3. No storage or network in these tests
"""

import pytest
from datetime import date, datetime, timedelta, timezone

from zakat_tracker.audit import AuditLogger
from zakat_tracker.models import (
    Activity,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BackupEntry,
    BackupFrequency,
    Category,
    ExportDocument,
    ExportInfo,
    UserDataRecord,
    ValidationIssue,
    ValidationResult,
    default_user_data,
)


class TestUserDataModels:
    """Tests for the persisted record models."""

    def test_default_record(self):
        """Built-in defaults: seven unpaid categories summing to 100."""
        record = default_user_data()
        assert [c.id for c in record.categories] == [1, 2, 3, 4, 5, 6, 7]
        assert [c.percentage for c in record.categories] == [25, 20, 15, 10, 10, 10, 10]
        assert all(c.target_amount == 0 and not c.paid for c in record.categories)
        assert record.activities == []
        assert record.settings.backup_frequency == BackupFrequency.WEEKLY
        assert record.settings.language == "ar"

    def test_serializes_camel_case(self):
        """Stored JSON uses camelCase field names."""
        data = default_user_data().to_dict()
        assert set(data) == {"appInfo", "categories", "activities", "summary", "settings"}
        assert "targetAmount" in data["categories"][0]
        assert "autoBackup" in data["settings"]
        assert "createdDate" in data["appInfo"]

    def test_accepts_snake_case_names(self):
        """Python field names also populate the model."""
        category = Category(id=1, name="A", target_amount=10, current_amount=5)
        assert category.target_amount == 10

    def test_legacy_category_keys(self):
        """isPaid / amount / paidAmount map onto the canonical schema."""
        category = Category.model_validate(
            {"id": 1, "name": "A", "isPaid": True, "amount": 300, "paidAmount": 300}
        )
        assert category.paid is True
        assert category.target_amount == 300
        assert category.current_amount == 300

    def test_category_name_is_any_string(self):
        """Names have no length limits."""
        assert Category(id=1, name="").name == ""
        assert len(Category(id=2, name="x" * 500).name) == 500

    def test_category_percentage_bounds(self):
        """Percentages must be within 0-100."""
        with pytest.raises(ValueError):
            Category(id=1, name="A", percentage=101)
        with pytest.raises(ValueError):
            Category(id=1, name="A", percentage=-1)

    def test_category_rejects_negative_amount(self):
        """Amounts cannot be negative."""
        with pytest.raises(ValueError):
            Category(id=1, name="A", target_amount=-100)

    def test_duplicate_category_ids(self):
        """Category ids must be unique within a record."""
        with pytest.raises(ValueError, match="Duplicate category id"):
            UserDataRecord(categories=[Category(id=1, name="A"), Category(id=1, name="B")])

    def test_activity_date_alias(self):
        """Activities serialize 'date' and accept 'timestamp'."""
        activity = Activity.model_validate(
            {"id": 1, "description": "x", "timestamp": "2024-05-01T12:00:00Z"}
        )
        assert activity.occurred_at == datetime(2024, 5, 1, 12, tzinfo=timezone.utc)
        assert "date" in activity.model_dump(by_alias=True)

    def test_naive_datetimes_become_utc(self):
        """Timestamps without a zone are read as UTC."""
        activity = Activity(id=1, occurred_at=datetime(2024, 5, 1, 12))
        assert activity.occurred_at.tzinfo == timezone.utc

    def test_find_category(self):
        """Lookup by id."""
        record = default_user_data()
        assert record.find_category(3).percentage == 15
        assert record.find_category(99) is None

    def test_backup_frequency_intervals(self):
        """Each frequency maps to its schedule."""
        assert BackupFrequency.DAILY.interval == timedelta(hours=24)
        assert BackupFrequency.WEEKLY.interval == timedelta(days=7)
        assert BackupFrequency.MONTHLY.interval == timedelta(days=30)


class TestTransferModels:
    """Tests for backup and export models."""

    def test_backup_entry_round_trip(self):
        """A backup entry survives JSON."""
        entry = BackupEntry(data=default_user_data(), version="1.0.0")
        restored = BackupEntry.model_validate_json(entry.model_dump_json(by_alias=True))
        assert restored.data.categories == entry.data.categories
        assert restored.timestamp == entry.timestamp

    def test_export_document_shape(self):
        """Export files carry exportInfo and data."""
        document = ExportDocument(
            export_info=ExportInfo(export_date=date(2024, 3, 1), user_agent="test"),
            data=default_user_data(),
        )
        text = document.to_json()
        assert '"exportInfo"' in text
        assert '"exportDate": "2024-03-01"' in text
        assert text.startswith("{\n  ")


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.DATA_LOADED,
            description="Loaded",
        )
        assert event.event_type == AuditEventType.DATA_LOADED
        assert event.severity == AuditSeverity.INFO

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.data_saved("zakatUserData", 7, 12)
        log_dict = event.to_log_dict()

        assert "event_id" in log_dict
        assert log_dict["event_type"] == "data_saved"
        assert log_dict["storage_key"] == "zakatUserData"
        assert log_dict["details"]["activity_count"] == 12

    def test_failure_events_are_errors(self):
        """Write failures are logged at error severity."""
        assert AuditEventBuilder.save_failed("k", "disk full").severity == AuditSeverity.ERROR
        assert AuditEventBuilder.backup_failed("k", "denied").severity == AuditSeverity.ERROR

    def test_import_rejected_carries_issues(self):
        """Rejected imports record why."""
        event = AuditEventBuilder.import_rejected("bad", [{"field": "categories"}])
        assert event.error_message == "bad"
        assert event.details["issues"][0]["field"] == "categories"

    @pytest.mark.asyncio
    async def test_audit_logger_counts_events(self):
        """The logger never raises and counts what it wrote."""
        logger = AuditLogger()
        assert await logger.log(AuditEventBuilder.data_reset("zakatUserData")) is True
        await logger.log_error("unexpected", "boom", {"where": "test"})
        assert logger.event_count == 2


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            structure_valid=False,
            schema_valid=False,
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="categories",
                    issue_type="missing",
                    message="Categories required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            structure_valid=True,
            schema_valid=True,
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="categories",
                    issue_type="percentage_total",
                    message="Percentages add up to 90%",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Percentages add up to 90%"]

    def test_issue_severity_is_checked(self):
        """Unknown severities are rejected."""
        with pytest.raises(ValueError):
            ValidationIssue(field="x", issue_type="y", message="z", severity="fatal")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
