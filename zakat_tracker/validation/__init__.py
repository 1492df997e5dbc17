"""Import validation package."""

from zakat_tracker.validation.validator import REQUIRED_FIELDS, ImportValidator

__all__ = ["REQUIRED_FIELDS", "ImportValidator"]
