"""Tests for the import validation pipeline."""

import pytest

from zakat_tracker.models.user_data import default_user_data
from zakat_tracker.validation import REQUIRED_FIELDS, ImportValidator


@pytest.fixture
def validator():
    return ImportValidator()


@pytest.fixture
def valid_data():
    return default_user_data().to_dict()


class TestStructure:
    """Stage 1: required sections."""

    def test_valid_data_passes(self, validator, valid_data):
        """A freshly built record is structurally valid."""
        assert validator.validate_structure(valid_data) is True

    @pytest.mark.parametrize("field", REQUIRED_FIELDS)
    def test_each_section_is_required(self, validator, valid_data, field):
        """Dropping any required section fails."""
        del valid_data[field]
        result = validator.validate(valid_data)

        assert result.structure_valid is False
        assert result.is_valid is False
        assert [issue.field for issue in result.issues] == [field]

    def test_empty_categories_fail(self, validator, valid_data):
        """An empty category list is not importable."""
        valid_data["categories"] = []
        assert validator.validate_structure(valid_data) is False

    def test_categories_must_be_a_list(self, validator, valid_data):
        """A category mapping is not accepted."""
        valid_data["categories"] = {"1": {"name": "A"}}
        assert validator.validate_structure(valid_data) is False

    @pytest.mark.parametrize("data", [None, "text", 42, [1, 2]])
    def test_non_objects_fail(self, validator, data):
        """Anything but a JSON object fails without raising."""
        assert validator.validate_structure(data) is False
        assert validator.validate(data).issues[0].issue_type == "invalid_type"


class TestSchema:
    """Stage 2: types and ranges."""

    def test_valid_data_yields_record(self, validator, valid_data):
        """A passing result carries the parsed record."""
        result = validator.validate(valid_data)

        assert result.is_valid is True
        assert result.record is not None
        assert len(result.record.categories) == 7

    def test_out_of_range_percentage(self, validator, valid_data):
        """Percentages above 100 are schema errors."""
        valid_data["categories"][0]["percentage"] = 101
        result = validator.validate(valid_data)

        assert result.structure_valid is True
        assert result.schema_valid is False
        assert result.has_errors is True
        assert result.issues[0].field.startswith("categories.0")

    def test_unknown_currency(self, validator, valid_data):
        """Enum values are checked."""
        valid_data["settings"]["currency"] = "GBP"
        assert validator.validate(valid_data).is_valid is False

    def test_duplicate_category_ids(self, validator, valid_data):
        """Category ids must be unique."""
        valid_data["categories"][1]["id"] = valid_data["categories"][0]["id"]
        assert validator.validate(valid_data).is_valid is False


class TestSemantics:
    """Stage 3: warnings that never block."""

    def test_percentage_total_warning(self, validator, valid_data):
        """Percentages not adding up to 100 only warn."""
        valid_data["categories"][0]["percentage"] = 50
        result = validator.validate(valid_data)

        assert result.is_valid is True
        assert result.has_errors is False
        assert any("125" in warning for warning in result.warnings)

    def test_duplicate_activity_ids_warning(self, validator, valid_data):
        """Repeated activity ids only warn."""
        valid_data["activities"] = [
            {"id": 1, "description": "a", "date": "2024-01-01T00:00:00Z"},
            {"id": 1, "description": "b", "date": "2024-01-02T00:00:00Z"},
        ]
        result = validator.validate(valid_data)

        assert result.is_valid is True
        assert [issue.issue_type for issue in result.issues] == ["duplicate_id"]


class TestUserFriendlySummary:
    """Tests for the message shown in the UI."""

    def test_clean_result(self, validator, valid_data):
        summary = validator.get_user_friendly_summary(validator.validate(valid_data))
        assert summary.startswith("✅")

    def test_rejected_result_lists_fixes(self, validator, valid_data):
        del valid_data["settings"]
        summary = validator.get_user_friendly_summary(validator.validate(valid_data))

        assert summary.startswith("❌")
        assert "settings" in summary
        assert "export feature" in summary
