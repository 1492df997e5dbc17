"""
Zakat Tracker Operations

User actions on categories and the activity log. Every action:
1. Works on a copy of the live record
2. Appends an activity describing what happened
3. Recalculates the summary totals
4. Saves through the store (which backs up and notifies listeners)

The activity log is capped; the oldest entries are dropped first.
"""

import time
from typing import Any, Optional

from pydantic import ValidationError as PydanticValidationError

from zakat_tracker.models.user_data import Activity, Category, UserDataRecord
from zakat_tracker.services.storage import NotFoundError
from zakat_tracker.store import UserDataError, UserDataStore, ValidationError
from zakat_tracker.validation import ImportValidator


EDITABLE_CATEGORY_FIELDS = ("name", "icon", "percentage", "target_amount", "color", "notes")


def next_timestamp_id(existing_ids: list[int]) -> int:
    """Millisecond timestamp, bumped past any id already in use."""
    candidate = int(time.time() * 1000)
    if existing_ids:
        candidate = max(candidate, max(existing_ids) + 1)
    return candidate


def _require_name(name: Any) -> None:
    # Stored records may carry any name; new names typed by the user may not be blank
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Category name cannot be empty")


def recalculate_summary(record: UserDataRecord) -> None:
    """
    Refresh the derived summary totals in place.

    Progress is the paid share of the total target, rounded to a whole
    percent. Reflections and goals are left alone.
    """
    total_target = sum(category.target_amount for category in record.categories)
    paid_target = sum(
        category.target_amount for category in record.categories if category.paid
    )

    summary = record.summary
    summary.total_zakat = total_target
    summary.total_donations = sum(category.current_amount for category in record.categories)
    summary.completed_categories = sum(1 for category in record.categories if category.paid)
    summary.progress_percentage = (
        round(paid_target / total_target * 100) if total_target > 0 else 0
    )


class ZakatTracker:
    """
    Category and activity operations on top of a UserDataStore.

    Usage:
        tracker = ZakatTracker(store)
        await tracker.mark_paid(3)
    """

    def __init__(self, store: UserDataStore):
        self._store = store

    @property
    def store(self) -> UserDataStore:
        return self._store

    async def add_activity(
        self,
        icon: str,
        description: str,
        amount: float = 0,
    ) -> Activity:
        """Log an activity on its own."""
        record = self._working_copy()
        activity = self._append_activity(record, icon, description, amount)
        await self._commit(record)
        return activity

    async def mark_paid(self, category_id: int) -> Category:
        """Mark a category paid; its current amount becomes its target."""
        record = self._working_copy()
        category = self._get_category(record, category_id)
        if category.paid:
            return category

        category.paid = True
        category.current_amount = category.target_amount
        self._append_activity(
            record,
            "💰",
            f"Paid {category.target_amount:g} {record.settings.currency.value} "
            f"to {category.name}",
            amount=category.target_amount,
        )
        await self._commit(record)
        return category

    async def mark_unpaid(self, category_id: int) -> Category:
        """Undo a payment."""
        record = self._working_copy()
        category = self._get_category(record, category_id)
        if not category.paid:
            return category

        category.paid = False
        category.current_amount = 0
        self._append_activity(
            record,
            "↩️",
            f"Payment of {category.target_amount:g} "
            f"{record.settings.currency.value} to {category.name} undone",
        )
        await self._commit(record)
        return category

    async def add_category(
        self,
        name: str,
        icon: str = "",
        percentage: float = 0,
        target_amount: float = 0,
        color: str = "",
        notes: str = "",
    ) -> Category:
        """Add a new unpaid category with a timestamp-derived id."""
        _require_name(name)
        record = self._working_copy()
        try:
            category = Category(
                id=next_timestamp_id([c.id for c in record.categories]),
                name=name,
                icon=icon,
                percentage=percentage,
                target_amount=target_amount,
                color=color,
                notes=notes,
            )
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid category",
                ImportValidator().schema_issues(e),
            )

        record.categories.append(category)
        self._append_activity(
            record,
            "➕",
            f"Added category {category.name} ({category.target_amount:g} "
            f"{record.settings.currency.value})",
        )
        await self._commit(record)
        return category

    async def edit_category(self, category_id: int, **changes: Any) -> Category:
        """
        Change category fields.

        Accepts name, icon, percentage, target_amount, color and notes.
        Name and amount changes are logged as activities.
        """
        unknown = set(changes) - set(EDITABLE_CATEGORY_FIELDS)
        if unknown:
            raise ValidationError(f"Cannot edit category fields: {sorted(unknown)}")
        if "name" in changes:
            _require_name(changes["name"])

        record = self._working_copy()
        category = self._get_category(record, category_id)
        try:
            updated = Category.model_validate({**category.model_dump(), **changes})
        except PydanticValidationError as e:
            raise ValidationError(
                "Invalid category",
                ImportValidator().schema_issues(e),
            )

        currency = record.settings.currency.value
        if updated.name != category.name:
            self._append_activity(
                record, "✏️", f'Renamed category "{category.name}" to "{updated.name}"'
            )
        if updated.target_amount != category.target_amount:
            self._append_activity(
                record,
                "💰",
                f'Changed amount of "{updated.name}" from '
                f"{category.target_amount:g} to {updated.target_amount:g} {currency}",
            )

        index = record.categories.index(category)
        record.categories[index] = updated
        await self._commit(record)
        return updated

    async def delete_category(self, category_id: int) -> Category:
        """Remove a category."""
        record = self._working_copy()
        category = self._get_category(record, category_id)
        record.categories.remove(category)
        self._append_activity(
            record,
            "🗑️",
            f"Deleted category {category.name} ({category.target_amount:g} "
            f"{record.settings.currency.value})",
        )
        await self._commit(record)
        return category

    async def reset_month(self, label: Optional[str] = None) -> UserDataRecord:
        """
        Start a new month: every category unpaid, activity log cleared.

        A single activity records the reset.
        """
        record = self._working_copy()
        for category in record.categories:
            category.paid = False
            category.current_amount = 0
        record.activities = []

        label = label or time.strftime("%B %Y")
        self._append_activity(record, "🔄", f"Month reset: {label}")
        await self._commit(record)
        return record

    async def save_reflections(self, text: str) -> bool:
        """Store the user's free-text reflections in the summary."""
        record = self._working_copy()
        record.summary.reflections = text
        return await self._commit(record)

    def _working_copy(self) -> UserDataRecord:
        current = self._store.get_current_user_data()
        if current is None:
            raise UserDataError("No user data loaded")
        return current.model_copy(deep=True)

    def _get_category(self, record: UserDataRecord, category_id: int) -> Category:
        category = record.find_category(category_id)
        if category is None:
            raise NotFoundError(f"Category not found: {category_id}")
        return category

    def _append_activity(
        self,
        record: UserDataRecord,
        icon: str,
        description: str,
        amount: float = 0,
    ) -> Activity:
        activity = Activity(
            id=next_timestamp_id([a.id for a in record.activities]),
            icon=icon,
            description=description,
            amount=amount,
        )
        record.activities.append(activity)

        # Keep only the newest entries
        limit = self._store.max_activities
        if len(record.activities) > limit:
            record.activities = record.activities[-limit:]
        return activity

    async def _commit(self, record: UserDataRecord) -> bool:
        recalculate_summary(record)
        return await self._store.save(record)
