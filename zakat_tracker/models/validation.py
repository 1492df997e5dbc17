"""
Validation Result Models

Shared by the import validator and by the UI, which shows the issues
to the user in plain language.
"""

from typing import Optional

from pydantic import BaseModel, Field

from zakat_tracker.models.user_data import UserDataRecord


class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue (dotted path)"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_type', 'invalid_value')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of validating imported data.

    Stage 1: Structure (required top-level fields, non-empty categories)
    Stage 2: Schema (types and ranges via the UserDataRecord model)
    Stage 3: Semantics (non-blocking warnings)
    """

    structure_valid: bool = Field(
        ...,
        description="Did the structural check pass?"
    )
    schema_valid: bool = Field(
        ...,
        description="Did schema validation pass?"
    )
    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    record: Optional[UserDataRecord] = Field(
        default=None,
        description="The parsed record when validation passed"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        """Messages of warning-level issues."""
        return [issue.message for issue in self.issues if issue.severity == "warning"]
