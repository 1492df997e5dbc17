"""
Streamlit Frontend for Zakat Tracker

The data-management panel: track categories and payments, and keep the
user's data safe with backups, export/import and reset.

DESIGN PRINCIPLES:
1. Simple, clear interface
2. Explicit confirmation before anything destructive
3. Clear error messages in simple language
4. Visual feedback for all operations
5. No hidden actions

The store runs on one long-lived event loop in a background thread so the
automatic backup schedule survives Streamlit reruns.
"""

import asyncio
import json
import threading

import streamlit as st

from zakat_tracker.config import validate_all_settings
from zakat_tracker.models.user_data import BackupFrequency, Currency
from zakat_tracker.services.storage import NotFoundError
from zakat_tracker.store import (
    FormatError,
    OutOfRangeError,
    UserDataStore,
    ValidationError,
)
from zakat_tracker.tracker import ZakatTracker
from zakat_tracker.validation import ImportValidator


# Page configuration
st.set_page_config(
    page_title="Zakat Tracker",
    page_icon="🌙",
    layout="wide",
    initial_sidebar_state="expanded",
)


class ExportBuffer:
    """Export sink that keeps the latest export for the download button."""

    def __init__(self):
        self.filename = None
        self.text = None

    def __call__(self, filename: str, text: str) -> None:
        self.filename = filename
        self.text = text


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """Start the background event loop (once per server process)."""
    loop = asyncio.new_event_loop()
    threading.Thread(target=loop.run_forever, daemon=True).start()
    return loop


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return asyncio.run_coroutine_threadsafe(coro, get_event_loop()).result()


@st.cache_resource
def get_components():
    """Get or create the store, tracker and export buffer (cached)."""
    export_buffer = ExportBuffer()
    store = UserDataStore(export_sink=export_buffer)
    run_async(store.initialize())
    return store, ZakatTracker(store), export_buffer


def main():
    """Main application entry point."""
    store, tracker, export_buffer = get_components()

    # Sidebar navigation
    st.sidebar.title("🌙 Zakat Tracker")
    st.sidebar.markdown("---")

    page = st.sidebar.radio(
        "Navigate to:",
        ["📊 Overview", "🗂️ Categories", "💾 Backups", "📤 Export / Import", "⚙️ Settings"],
        index=0,
    )

    stats = store.get_usage_statistics()
    if stats:
        st.sidebar.markdown("---")
        st.sidebar.metric("Paid categories", f"{stats.completed_categories}/{stats.total_categories}")
        st.sidebar.metric("Days using", stats.days_using)

    # Route to appropriate page
    if page == "📊 Overview":
        render_overview_page(store, tracker)
    elif page == "🗂️ Categories":
        render_categories_page(tracker)
    elif page == "💾 Backups":
        render_backups_page(store)
    elif page == "📤 Export / Import":
        render_transfer_page(store, export_buffer)
    elif page == "⚙️ Settings":
        render_settings_page(store)


def render_overview_page(store: UserDataStore, tracker: ZakatTracker):
    """Render the progress overview and payment buttons."""
    st.title("📊 Overview")
    data = store.get_current_user_data()
    currency = data.settings.currency.value
    summary = data.summary

    col1, col2, col3 = st.columns(3)
    col1.metric("Total zakat", f"{summary.total_zakat:,.2f} {currency}")
    col2.metric("Paid so far", f"{summary.total_donations:,.2f} {currency}")
    col3.metric("Progress", f"{summary.progress_percentage:.0f}%")
    st.progress(int(summary.progress_percentage))

    st.markdown("### Categories")
    for category in data.categories:
        left, middle, right = st.columns([3, 2, 1])
        left.markdown(f"**{category.name}** ({category.percentage:g}%)")
        middle.markdown(f"{category.current_amount:,.2f} / {category.target_amount:,.2f} {currency}")
        if category.paid:
            if right.button("↩️ Undo", key=f"unpaid-{category.id}"):
                run_async(tracker.mark_unpaid(category.id))
                st.rerun()
        elif right.button("✅ Paid", key=f"paid-{category.id}"):
            run_async(tracker.mark_paid(category.id))
            st.rerun()

    st.markdown("### Reflections")
    reflections = st.text_area("Your notes for this month", value=summary.reflections)
    if st.button("💾 Save reflections"):
        if run_async(tracker.save_reflections(reflections)):
            st.success("Saved.")
        else:
            st.error("Could not save. Your disk may be full.")

    st.markdown("### Recent activity")
    if not data.activities:
        st.info("No activity yet.")
    for activity in reversed(data.activities[-10:]):
        st.markdown(
            f"{activity.icon} {activity.description} "
            f"<small>({activity.occurred_at.strftime('%d %B %Y %H:%M')})</small>",
            unsafe_allow_html=True,
        )

    st.markdown("---")
    confirm = st.checkbox("I want to start a new month (all categories become unpaid)")
    if st.button("🔄 Start new month", disabled=not confirm):
        run_async(tracker.reset_month())
        st.rerun()


def render_categories_page(tracker: ZakatTracker):
    """Render the category editor."""
    st.title("🗂️ Categories")
    data = tracker.store.get_current_user_data()

    for category in data.categories:
        with st.expander(f"{category.name} ({category.target_amount:,.2f})"):
            with st.form(key=f"edit-{category.id}"):
                name = st.text_input("Name", value=category.name)
                target_amount = st.number_input(
                    "Target amount", min_value=0.0, value=float(category.target_amount)
                )
                percentage = st.number_input(
                    "Percentage", min_value=0.0, max_value=100.0, value=float(category.percentage)
                )
                notes = st.text_area("Notes", value=category.notes)
                submitted = st.form_submit_button("💾 Save changes")

            if submitted:
                try:
                    run_async(tracker.edit_category(
                        category.id,
                        name=name,
                        target_amount=target_amount,
                        percentage=percentage,
                        notes=notes,
                    ))
                    st.rerun()
                except (ValidationError, NotFoundError) as e:
                    st.error(str(e))

            confirm = st.checkbox("Confirm delete", key=f"confirm-delete-{category.id}")
            if st.button("🗑️ Delete", key=f"delete-{category.id}", disabled=not confirm):
                run_async(tracker.delete_category(category.id))
                st.rerun()

    st.markdown("### Add a category")
    with st.form(key="add-category"):
        name = st.text_input("Name")
        icon = st.text_input("Icon", value="fas fa-hand-holding-heart")
        target_amount = st.number_input("Target amount", min_value=0.0)
        percentage = st.number_input("Percentage", min_value=0.0, max_value=100.0)
        submitted = st.form_submit_button("➕ Add")

    if submitted:
        try:
            run_async(tracker.add_category(
                name, icon=icon, percentage=percentage, target_amount=target_amount
            ))
            st.rerun()
        except ValidationError as e:
            st.error(f"Please check the values: {e}")


def render_backups_page(store: UserDataStore):
    """Render the backup history with restore buttons."""
    st.title("💾 Backups")
    st.markdown(
        f"The last {store.max_backups} versions of your data are kept automatically."
    )

    if st.button("📸 Back up now"):
        if run_async(store.create_backup()):
            st.success("Backup created.")
        else:
            st.error("The backup could not be written.")

    history = store.get_backup_history()
    if not history:
        st.info("No backups yet.")
        return

    for index, entry in enumerate(history):
        col1, col2 = st.columns([4, 1])
        col1.markdown(
            f"**{entry.timestamp.strftime('%d %B %Y %H:%M')}** - "
            f"{len(entry.data.categories)} categories, "
            f"{len(entry.data.activities)} activities"
        )
        if col2.button("♻️ Restore", key=f"restore-{index}"):
            try:
                run_async(store.restore_from_backup(index))
                st.success("Backup restored.")
                st.rerun()
            except OutOfRangeError as e:
                st.error(str(e))


def render_transfer_page(store: UserDataStore, export_buffer: ExportBuffer):
    """Render export download and import upload."""
    st.title("📤 Export / Import")

    st.markdown("### Export")
    if st.button("📦 Prepare export"):
        run_async(store.export_data())
    if export_buffer.text:
        st.download_button(
            "⬇️ Download",
            data=export_buffer.text,
            file_name=export_buffer.filename,
            mime="application/json",
        )

    st.markdown("---")
    st.markdown("### Import")
    st.warning("Importing replaces your current data. A backup is taken first.")
    uploaded_file = st.file_uploader("Choose an exported file", type=["json"])
    if not uploaded_file:
        return

    content = uploaded_file.getvalue()
    try:
        payload = json.loads(content.decode("utf-8-sig"))
        data = payload.get("data") if isinstance(payload, dict) else None
    except ValueError:
        data = None

    validator = ImportValidator()
    if data is None:
        st.error("This is not a Zakat Tracker export file.")
        return
    result = validator.validate(data)
    st.markdown(validator.get_user_friendly_summary(result))
    if not result.is_valid:
        return

    confirm = st.checkbox("Replace my current data with this file")
    if st.button("📥 Import", type="primary", disabled=not confirm):
        try:
            run_async(store.import_data(content))
            st.success("Data imported.")
        except (FormatError, ValidationError) as e:
            st.error(str(e))


def render_settings_page(store: UserDataStore):
    """Render preferences and maintenance actions."""
    st.title("⚙️ Settings")
    settings = store.get_current_user_data().settings

    with st.form(key="settings"):
        currency = st.selectbox(
            "Currency",
            options=list(Currency),
            index=list(Currency).index(settings.currency),
            format_func=lambda x: x.value,
        )
        auto_backup = st.checkbox("Automatic backups", value=settings.auto_backup)
        frequency = st.selectbox(
            "Backup frequency",
            options=list(BackupFrequency),
            index=list(BackupFrequency).index(settings.backup_frequency),
            format_func=lambda x: x.value.title(),
        )
        submitted = st.form_submit_button("💾 Save settings")

    if submitted:
        run_async(store.update_setting("settings.currency", currency.value))
        run_async(store.update_setting("settings.autoBackup", auto_backup))
        run_async(store.update_setting("settings.backupFrequency", frequency.value))
        st.success("Settings saved.")

    st.markdown("### Configuration")
    status = validate_all_settings()
    for name, ok in status.items():
        if name.endswith("_error"):
            continue
        if ok:
            st.success(f"✅ {name.title()} settings")
        else:
            st.error(f"❌ {name.title()} settings - {status.get(name + '_error')}")

    st.markdown("---")
    st.markdown("### Maintenance")

    confirm_clear = st.checkbox("Delete all stored data and backups from this computer")
    if st.button("🧹 Clear stored data", disabled=not confirm_clear):
        removed = run_async(store.clear_storage())
        st.success(f"Removed {len(removed)} stored items.")

    confirm_reset = st.checkbox("Reset everything to the defaults (a backup is taken first)")
    if st.button("⚠️ Reset data", disabled=not confirm_reset):
        if run_async(store.reset_data()):
            st.success("Data reset.")
            st.rerun()
        else:
            st.error("The stored data could not be removed.")


if __name__ == "__main__":
    main()
