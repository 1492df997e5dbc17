"""
Import Validation Pipeline

DESIGN DECISION: Imported data is validated in three stages:

STAGE 1 - STRUCTURE:
- The four top-level sections are present
- categories is a non-empty list
- This is the cheap check the UI can run before asking for confirmation

STAGE 2 - SCHEMA:
- Types, ranges and enum values via the UserDataRecord model
- Unique category ids
- Legacy tracker keys are normalized here

STAGE 3 - SEMANTICS:
- Percentages that do not add up to 100
- Duplicate activity ids
- Warnings only; they never block an import

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the user can decide.
"""

from typing import Any

from pydantic import ValidationError as PydanticValidationError

from zakat_tracker.models.user_data import UserDataRecord
from zakat_tracker.models.validation import ValidationIssue, ValidationResult


REQUIRED_FIELDS = ("categories", "activities", "summary", "settings")


class ImportValidator:
    """
    Validates the `data` section of an import file.

    Stateless; one instance can be shared.
    """

    def validate_structure(self, data: Any) -> bool:
        """
        Stage 1 only. Returns a boolean and never raises.
        """
        return not self._check_structure(data)

    def validate(self, data: Any) -> ValidationResult:
        """
        Run all stages. Later stages are skipped when an earlier one fails.
        """
        issues = self._check_structure(data)
        if issues:
            return ValidationResult(
                structure_valid=False,
                schema_valid=False,
                is_valid=False,
                issues=issues,
            )

        try:
            record = UserDataRecord.model_validate(data)
        except PydanticValidationError as e:
            return ValidationResult(
                structure_valid=True,
                schema_valid=False,
                is_valid=False,
                issues=self.schema_issues(e),
            )

        return ValidationResult(
            structure_valid=True,
            schema_valid=True,
            is_valid=True,
            issues=self._check_semantics(record),
            record=record,
        )

    def _check_structure(self, data: Any) -> list[ValidationIssue]:
        """Stage 1: required sections and a non-empty category list."""
        if not isinstance(data, dict):
            return [ValidationIssue(
                field="data",
                issue_type="invalid_type",
                message="Imported data must be a JSON object",
                severity="error",
            )]

        issues = []
        for field in REQUIRED_FIELDS:
            if field not in data:
                issues.append(ValidationIssue(
                    field=field,
                    issue_type="missing",
                    message=f"Required section '{field}' is missing",
                    severity="error",
                    suggested_fix="Import a file produced by the export feature",
                ))

        categories = data.get("categories")
        if "categories" in data and (not isinstance(categories, list) or not categories):
            issues.append(ValidationIssue(
                field="categories",
                issue_type="invalid_value",
                message="At least one category is required",
                severity="error",
            ))

        return issues

    def schema_issues(self, error: PydanticValidationError) -> list[ValidationIssue]:
        """Translate pydantic errors into issues (stage 2)."""
        issues = []
        for err in error.errors():
            location = ".".join(str(part) for part in err["loc"]) or "data"
            issues.append(ValidationIssue(
                field=location,
                issue_type=err["type"],
                message=f"{location}: {err['msg']}",
                severity="error",
            ))
        return issues

    def _check_semantics(self, record: UserDataRecord) -> list[ValidationIssue]:
        """Stage 3: suspicious but acceptable data."""
        issues = []

        total_percentage = sum(category.percentage for category in record.categories)
        if abs(total_percentage - 100) > 0.01:
            issues.append(ValidationIssue(
                field="categories",
                issue_type="percentage_total",
                message=f"Category percentages add up to {total_percentage:g}%, not 100%",
                severity="warning",
                suggested_fix="Adjust category percentages after importing",
            ))

        activity_ids = [activity.id for activity in record.activities]
        if len(activity_ids) != len(set(activity_ids)):
            issues.append(ValidationIssue(
                field="activities",
                issue_type="duplicate_id",
                message="Some activities share the same id",
                severity="warning",
            ))

        return issues

    def get_user_friendly_summary(self, result: ValidationResult) -> str:
        """
        Generate a user-friendly summary of validation results.
        """
        if result.is_valid and not result.issues:
            return "✅ The file looks good and is ready to import."

        lines = []
        if result.is_valid:
            lines.append("⚠️ The file can be imported, but please note:")
        else:
            lines.append("❌ This file cannot be imported:")

        for issue in result.issues:
            lines.append(f"  • {issue.message}")
            if issue.suggested_fix:
                lines.append(f"    → {issue.suggested_fix}")

        return "\n".join(lines)
