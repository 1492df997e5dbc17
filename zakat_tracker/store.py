"""
User Data Store

This module owns the user's data lifecycle:
1. Load (stored record → default template → built-in defaults)
2. Save (every successful save appends a rotating backup)
3. Export / Import (JSON files, validated before anything changes)
4. Restore / Reset (always snapshot first)

DESIGN DECISION: The store enforces the boundaries:
- Loading never fails; it degrades through the fallback chain
- A failed backup never fails a save
- A rejected import or restore leaves the live record untouched
- Every step is audited

DESIGN DECISION: Operations that mutate state are serialized through a
single asyncio.Lock. Storage itself is synchronous and not transactional,
so an auto-backup tick can never interleave with an in-flight save.

The store is constructed explicitly and handed to the UI.
There is no module-level instance.
"""

import asyncio
import inspect
import json
from datetime import timedelta
from pathlib import Path
from typing import IO, Any, Awaitable, Callable, Optional, Union

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from zakat_tracker.audit import AuditLogger
from zakat_tracker.config import Settings, get_settings
from zakat_tracker.models.audit import AuditEvent, AuditEventBuilder
from zakat_tracker.models.user_data import (
    BackupEntry,
    ChangeKind,
    DataChangeEvent,
    ExportDocument,
    ExportInfo,
    UsageStatistics,
    UserDataRecord,
    UserSettings,
    default_user_data,
    utcnow,
)
from zakat_tracker.models.validation import ValidationIssue
from zakat_tracker.services.storage import (
    BackupWriteError,
    JSONFileStorage,
    KeyValueStorageInterface,
    StorageReadError,
    StorageWriteError,
)
from zakat_tracker.services.template import DefaultTemplateLoader, TemplateFetchError
from zakat_tracker.validation import ImportValidator


class UserDataError(Exception):
    """Base exception for user data operations."""
    pass


class FormatError(UserDataError):
    """Import file is not an export document (unreadable, not JSON, no 'data')."""
    pass


class ValidationError(UserDataError):
    """Imported or updated data failed validation."""

    def __init__(self, message: str, issues: Optional[list[ValidationIssue]] = None):
        self.issues = issues or []
        super().__init__(message)


class OutOfRangeError(UserDataError):
    """Backup index outside the stored history."""

    def __init__(self, index: int, history_length: int):
        self.index = index
        self.history_length = history_length
        super().__init__(
            f"Backup index {index} is out of range "
            f"(history has {history_length} entries)"
        )


ChangeListener = Callable[[DataChangeEvent], Union[None, Awaitable[None]]]
ExportSink = Callable[[str, str], Any]

_BACKUP_LIST = TypeAdapter(list[BackupEntry])


class UserDataStore:
    """
    Owns the live UserDataRecord and its persisted copies.

    Args:
        storage: Key-value backend. Defaults to JSON files in the data dir.
        template_loader: Source of the default template.
        audit_logger: Where audit events go.
        validator: Import validator.
        export_sink: Called with (filename, json_text) to deliver an export.
                     Defaults to writing the file into the export dir.
        settings: Application settings. Defaults to get_settings().
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorageInterface] = None,
        template_loader: Optional[DefaultTemplateLoader] = None,
        audit_logger: Optional[AuditLogger] = None,
        validator: Optional[ImportValidator] = None,
        export_sink: Optional[ExportSink] = None,
        settings: Optional[Settings] = None,
    ):
        settings = settings or get_settings()
        self._storage_settings = settings.storage
        self._backup_settings = settings.backup
        self._app_settings = settings.app

        self._storage = storage or JSONFileStorage(self._storage_settings.data_dir)
        self._template_loader = template_loader or DefaultTemplateLoader()
        self._audit_logger = audit_logger or AuditLogger()
        self._validator = validator or ImportValidator()
        self._export_sink = export_sink or self._write_export_file

        self._current: Optional[UserDataRecord] = None
        self._lock = asyncio.Lock()
        self._listeners: list[ChangeListener] = []
        self._auto_backup_task: Optional[asyncio.Task] = None
        self._logger = structlog.get_logger(__name__)

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------

    @property
    def storage_key(self) -> str:
        return self._storage_settings.user_data_key

    @property
    def backup_key(self) -> str:
        return self._storage_settings.backup_key

    @property
    def max_backups(self) -> int:
        return self._backup_settings.max_backups

    @property
    def max_activities(self) -> int:
        return self._app_settings.max_activities

    @property
    def version(self) -> str:
        return self._backup_settings.data_version

    @property
    def is_auto_backup_running(self) -> bool:
        return self._auto_backup_task is not None and not self._auto_backup_task.done()

    def get_current_user_data(self) -> Optional[UserDataRecord]:
        """The live record, or None before the first load."""
        return self._current

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------

    async def initialize(self) -> UserDataRecord:
        """Load the data and start the automatic backup schedule."""
        record = await self.load()
        self.setup_auto_backup()
        return record

    async def load(self) -> UserDataRecord:
        """
        Load the stored record.

        Falls back to the default template when storage is empty, unreadable
        or corrupt, and to built-in defaults when the template is unavailable.
        Corrupt text is copied to "<storage_key>.corrupt" before anything
        overwrites it. Never raises.
        """
        async with self._lock:
            record = await self._load_locked()
        await self._notify(ChangeKind.LOADED)
        return record

    async def load_default_template(self) -> UserDataRecord:
        """Adopt the default template (or built-in defaults) and persist it."""
        async with self._lock:
            record = await self._load_default_template_locked()
        await self._notify(ChangeKind.LOADED)
        return record

    async def create_default_data(self) -> UserDataRecord:
        """Replace the live record with built-in defaults (not persisted)."""
        async with self._lock:
            return await self._create_default_data_locked()

    async def _load_locked(self) -> UserDataRecord:
        key = self.storage_key
        try:
            stored = self._storage.get_item(key)
        except StorageReadError as e:
            await self._audit(AuditEventBuilder.storage_read_failed(key, str(e)))
            stored = None
        else:
            if stored is not None:
                try:
                    self._current = UserDataRecord.model_validate_json(stored)
                except PydanticValidationError as e:
                    await self._audit(AuditEventBuilder.storage_read_failed(key, str(e)))
                    await self._preserve_corrupt_locked(stored)
                else:
                    await self._audit(AuditEventBuilder.data_loaded(key, "storage"))
                    return self._current

        return await self._load_default_template_locked()

    async def _preserve_corrupt_locked(self, stored: str) -> None:
        # The fallback below overwrites the stored record
        snapshot_key = f"{self.storage_key}.corrupt"
        try:
            self._storage.set_item(snapshot_key, stored)
        except StorageWriteError as e:
            await self._audit(AuditEventBuilder.save_failed(snapshot_key, str(e)))
            return
        await self._audit(
            AuditEventBuilder.corrupt_data_preserved(self.storage_key, snapshot_key)
        )

    async def _load_default_template_locked(self) -> UserDataRecord:
        record, from_template = await self._build_default_record()
        self._current = record
        if from_template:
            await self._save_locked()
        return self._current

    async def _build_default_record(self) -> tuple[UserDataRecord, bool]:
        """The template record, or built-in defaults. Leaves the live record alone."""
        source = self._template_loader.source
        try:
            template = await self._template_loader.fetch()
            record = UserDataRecord.model_validate(template)
        except (TemplateFetchError, PydanticValidationError) as e:
            await self._audit(AuditEventBuilder.template_fallback(source, str(e)))
            return await self._synthesize_defaults(), False

        now = utcnow()
        record.app_info.created_date = now
        record.app_info.last_updated = now
        await self._audit(AuditEventBuilder.template_loaded(source))
        return record, True

    async def _create_default_data_locked(self) -> UserDataRecord:
        self._current = await self._synthesize_defaults()
        return self._current

    async def _synthesize_defaults(self) -> UserDataRecord:
        record = default_user_data(version=self.version)
        await self._audit(AuditEventBuilder.defaults_synthesized(len(record.categories)))
        return record

    # -------------------------------------------------------------------------
    # Saving and backups
    # -------------------------------------------------------------------------

    async def save(self, record: Optional[UserDataRecord] = None) -> bool:
        """
        Persist the live record (or adopt and persist `record`).

        Returns False if nothing is loaded or the write failed; the record
        stays in memory either way. A backup is appended after every
        successful write.
        """
        async with self._lock:
            previous = self._current.settings if self._current else None
            if record is not None:
                self._current = record
            saved = await self._save_locked()
            if record is not None:
                self._rearm_auto_backup(previous)
        if saved:
            await self._notify(ChangeKind.SAVED)
        return saved

    async def _save_locked(self, backup: bool = True) -> bool:
        if self._current is None:
            return False

        key = self.storage_key
        self._current.app_info.last_updated = utcnow()
        try:
            self._storage.set_item(key, self._current.to_json())
        except StorageWriteError as e:
            await self._audit(AuditEventBuilder.save_failed(key, str(e)))
            return False

        await self._audit(AuditEventBuilder.data_saved(
            key,
            category_count=len(self._current.categories),
            activity_count=len(self._current.activities),
        ))

        if backup:
            await self._create_backup_locked()
        return True

    async def create_backup(self) -> bool:
        """
        Snapshot the live record into the backup list (newest first).

        Returns False when the backup could not be written. Never raises.
        """
        async with self._lock:
            return await self._create_backup_locked()

    async def _create_backup_locked(self) -> bool:
        if self._current is None:
            return False

        key = self.backup_key
        try:
            entry = BackupEntry(
                data=self._current.model_copy(deep=True),
                timestamp=utcnow(),
                version=self.version,
            )
            backups = [entry] + self.get_backup_history()
            del backups[self.max_backups:]
            self._write_backups(backups)
        except BackupWriteError as e:
            await self._audit(AuditEventBuilder.backup_failed(key, str(e)))
            return False

        await self._audit(AuditEventBuilder.backup_created(key, len(backups)))
        return True

    def _write_backups(self, backups: list[BackupEntry]) -> None:
        payload = _BACKUP_LIST.dump_json(backups, by_alias=True).decode("utf-8")
        try:
            self._storage.set_item(self.backup_key, payload)
        except StorageWriteError as e:
            raise BackupWriteError(f"Failed to write backups: {e}") from e

    def get_backup_history(self) -> list[BackupEntry]:
        """
        Stored backups, newest first.

        Returns an empty list if the history cannot be read.
        Malformed entries are skipped.
        """
        try:
            stored = self._storage.get_item(self.backup_key)
        except StorageReadError as e:
            self._logger.warning("backup_history_unreadable", error=str(e))
            return []
        if not stored:
            return []

        try:
            raw = json.loads(stored)
        except ValueError as e:
            self._logger.warning("backup_history_corrupt", error=str(e))
            return []
        if not isinstance(raw, list):
            self._logger.warning("backup_history_corrupt", error="not a list")
            return []

        backups = []
        for position, item in enumerate(raw):
            try:
                backups.append(BackupEntry.model_validate(item))
            except PydanticValidationError:
                self._logger.warning("backup_entry_skipped", position=position)
                continue
        return backups

    async def restore_from_backup(self, index: int = 0) -> bool:
        """
        Replace the live record with a backup snapshot and save it.

        Raises:
            OutOfRangeError: If index is not in [0, len(history)).
                             The live record is unchanged.
        """
        async with self._lock:
            backups = self.get_backup_history()
            if not 0 <= index < len(backups):
                await self._audit(AuditEventBuilder.restore_rejected(index, len(backups)))
                raise OutOfRangeError(index, len(backups))

            entry = backups[index]
            previous = self._current.settings if self._current else None
            self._current = entry.data
            saved = await self._save_locked()
            self._rearm_auto_backup(previous)
            await self._audit(
                AuditEventBuilder.data_restored(index, entry.timestamp.isoformat())
            )

        await self._notify(ChangeKind.RESTORED)
        return saved

    # -------------------------------------------------------------------------
    # Export / Import
    # -------------------------------------------------------------------------

    async def export_data(self, filename: Optional[str] = None) -> Optional[ExportDocument]:
        """
        Build an export document and hand it to the export sink.

        Returns None if nothing is loaded. Stored state is not touched.
        """
        if self._current is None:
            return None

        today = utcnow().date()
        document = ExportDocument(
            export_info=ExportInfo(
                export_date=today,
                version=self.version,
                user_agent=self._app_settings.client_identifier,
            ),
            data=self._current.model_copy(deep=True),
        )
        filename = filename or f"zakat-data-{today.isoformat()}.json"

        self._export_sink(filename, document.to_json(indent=2))
        await self._audit(AuditEventBuilder.data_exported(filename))
        return document

    def _write_export_file(self, filename: str, text: str) -> None:
        export_dir = Path(self._storage_settings.export_dir)
        path = export_dir / Path(filename).name
        try:
            export_dir.mkdir(parents=True, exist_ok=True)
            path.write_text(text, encoding="utf-8")
        except OSError as e:
            raise StorageWriteError(f"Failed to write export file {path}: {e}")

    async def import_data(self, file: Union[str, Path, bytes, IO]) -> bool:
        """
        Import an export file.

        Args:
            file: A path, raw bytes, or a file-like object (text or binary)

        Raises:
            FormatError: Unreadable file, invalid JSON, or no 'data' section
            ValidationError: 'data' is structurally or semantically invalid

        On any failure the live record is unchanged.
        """
        text = await asyncio.to_thread(self._read_file_as_text, file)
        return await self.import_json(text)

    async def import_json(self, text: str) -> bool:
        """Import an export document that has already been read."""
        try:
            payload = json.loads(text)
        except ValueError as e:
            await self._audit(AuditEventBuilder.import_rejected("invalid JSON"))
            raise FormatError(f"Import file is not valid JSON: {e}")

        if not isinstance(payload, dict) or payload.get("data") is None:
            await self._audit(AuditEventBuilder.import_rejected("missing data section"))
            raise FormatError("Import file has no 'data' section")

        result = self._validator.validate(payload["data"])
        if not result.is_valid:
            issues = [issue.model_dump() for issue in result.issues]
            if not result.structure_valid:
                message = "Imported data is not in a compatible format"
            else:
                message = "Imported data contains invalid values"
            await self._audit(AuditEventBuilder.import_rejected(message, issues))
            raise ValidationError(message, result.issues)

        async with self._lock:
            # Snapshot the pre-import state; the import itself is not
            # backed up again so restore_from_backup(0) undoes it.
            await self._create_backup_locked()
            previous = self._current.settings if self._current else None
            self._current = result.record
            saved = await self._save_locked(backup=False)
            self._rearm_auto_backup(previous)
            await self._audit(AuditEventBuilder.data_imported(
                self.storage_key,
                len(self._current.categories),
            ))

        await self._notify(ChangeKind.IMPORTED)
        return saved

    def validate_imported_data(self, data: Any) -> bool:
        """Structural check of an import's 'data' section. Never raises."""
        return self._validator.validate_structure(data)

    @staticmethod
    def _read_file_as_text(file: Union[str, Path, bytes, IO]) -> str:
        try:
            if isinstance(file, (str, Path)):
                content = Path(file).read_bytes()
            elif isinstance(file, (bytes, bytearray)):
                content = bytes(file)
            else:
                content = file.read()
            if isinstance(content, (bytes, bytearray)):
                content = bytes(content).decode("utf-8-sig")
        except (OSError, UnicodeDecodeError, ValueError) as e:
            raise FormatError(f"Could not read import file: {e}")
        return content

    # -------------------------------------------------------------------------
    # Reset and maintenance
    # -------------------------------------------------------------------------

    async def reset_data(self) -> bool:
        """
        Back up, forget the stored record, and reload from the template.

        The live record is swapped only once the replacement is ready.

        Confirmation is the caller's job. Returns False only when the stored
        record could not be removed (the live record is then unchanged).
        """
        async with self._lock:
            key = self.storage_key
            await self._create_backup_locked()
            try:
                self._storage.remove_item(key)
            except StorageWriteError as e:
                await self._audit(AuditEventBuilder.save_failed(key, str(e)))
                return False

            previous = self._current.settings if self._current else None
            await self._load_default_template_locked()
            self._rearm_auto_backup(previous)
            await self._audit(AuditEventBuilder.data_reset(key))

        await self._notify(ChangeKind.RESET)
        return True

    async def clear_storage(self) -> list[str]:
        """
        Remove every stored key owned by this application, backups included.

        The live record stays in memory until the next save.
        """
        async with self._lock:
            prefix = self._storage_settings.key_prefix
            removed = []
            for key in self._storage.keys():
                if key.startswith(prefix):
                    self._storage.remove_item(key)
                    removed.append(key)
            await self._audit(AuditEventBuilder.storage_cleared(removed))
        return removed

    # -------------------------------------------------------------------------
    # Updates
    # -------------------------------------------------------------------------

    async def update_user_data(
        self,
        partial: Union[dict[str, Any], UserDataRecord],
    ) -> bool:
        """
        Shallow-merge top-level sections into the live record and save.

        Each given section (appInfo, categories, activities, summary,
        settings) replaces the current one wholesale. To change a single
        nested field use update_setting().

        Raises:
            ValidationError: Unknown section or invalid values.
                             The live record is unchanged.
        """
        if isinstance(partial, UserDataRecord):
            partial = {name: getattr(partial, name) for name in UserDataRecord.model_fields}

        async with self._lock:
            merged = {}
            if self._current is not None:
                merged = {
                    name: getattr(self._current, name)
                    for name in UserDataRecord.model_fields
                }
            for key, value in partial.items():
                merged[self._section_name(key)] = value

            try:
                record = UserDataRecord.model_validate(merged)
            except PydanticValidationError as e:
                raise ValidationError(
                    "Updated data contains invalid values",
                    self._validator.schema_issues(e),
                )

            previous = self._current.settings if self._current else None
            self._current = record.model_copy(deep=True)
            saved = await self._save_locked()
            self._rearm_auto_backup(previous)

        await self._notify(ChangeKind.UPDATED)
        return saved

    async def update_setting(self, path: str, value: Any) -> bool:
        """
        Set one nested field by dotted path and save.

        Paths use the stored field names, e.g. "settings.currency" or
        "appInfo.userName". Changing settings.autoBackup or
        settings.backupFrequency re-arms the backup schedule.
        """
        if self._current is None:
            raise UserDataError("No user data loaded")

        data = self._current.to_dict()
        keys = path.split(".")
        target = data
        for key in keys[:-1]:
            if not isinstance(target.get(key), dict):
                raise ValidationError(f"Unknown setting path: {path}")
            target = target[key]
        if keys[-1] not in target:
            raise ValidationError(f"Unknown setting path: {path}")
        target[keys[-1]] = value

        return await self.update_user_data({keys[0]: data[keys[0]]})

    def _section_name(self, key: str) -> str:
        fields = UserDataRecord.model_fields
        if key in fields:
            return key
        for name, field in fields.items():
            if field.alias == key:
                return name
        raise ValidationError(f"Unknown section: {key}")

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    def get_usage_statistics(self) -> Optional[UsageStatistics]:
        """Read-only aggregates over the live record. None before load."""
        data = self._current
        if data is None:
            return None

        return UsageStatistics(
            total_categories=len(data.categories),
            completed_categories=sum(1 for category in data.categories if category.paid),
            total_activities=len(data.activities),
            total_donation=sum(activity.amount for activity in data.activities),
            days_using=(utcnow() - data.app_info.created_date).days,
            last_activity=max(
                (activity.occurred_at for activity in data.activities),
                default=None,
            ),
        )

    # -------------------------------------------------------------------------
    # Automatic backup
    # -------------------------------------------------------------------------

    def setup_auto_backup(
        self,
        interval: Optional[timedelta] = None,
    ) -> Optional[asyncio.Task]:
        """
        Start the recurring backup task if autoBackup is enabled.

        The interval comes from settings.backupFrequency unless given.
        Any previously scheduled task is cancelled first.
        Must be called from a running event loop.
        """
        self.stop_auto_backup()

        data = self._current
        if data is None or not data.settings.auto_backup:
            return None

        interval = interval or data.settings.backup_frequency.interval
        self._auto_backup_task = asyncio.get_running_loop().create_task(
            self._auto_backup_loop(interval.total_seconds())
        )
        self._logger.info(
            "auto_backup_scheduled",
            frequency=data.settings.backup_frequency.value,
            interval_seconds=interval.total_seconds(),
        )
        return self._auto_backup_task

    def _rearm_auto_backup(self, previous: Optional[UserSettings]) -> None:
        """Reschedule after the live record was replaced, if its backup settings changed.

        With nothing loaded before, only a running schedule is touched;
        initialize() owns the first start.
        """
        settings = self._current.settings
        if previous is not None and (
            previous.auto_backup == settings.auto_backup
            and previous.backup_frequency == settings.backup_frequency
        ):
            return
        if self.is_auto_backup_running or (previous is not None and settings.auto_backup):
            self.setup_auto_backup()

    def stop_auto_backup(self) -> None:
        """Cancel the recurring backup task, if any."""
        if self._auto_backup_task is not None and not self._auto_backup_task.done():
            self._auto_backup_task.cancel()
        self._auto_backup_task = None

    async def _auto_backup_loop(self, interval_seconds: float) -> None:
        while True:
            await asyncio.sleep(interval_seconds)
            await self.create_backup()

    # -------------------------------------------------------------------------
    # Change notifications
    # -------------------------------------------------------------------------

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a listener called after the live record changes.

        Listeners may be plain functions or coroutines.
        Returns a function that unsubscribes the listener.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def _notify(self, kind: ChangeKind) -> None:
        event = DataChangeEvent(kind=kind, record=self._current)
        for listener in list(self._listeners):
            try:
                result = listener(event)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                # A broken listener must not break the store
                await self._audit_logger.log_error(
                    "change_listener_failed",
                    str(e),
                    {"kind": kind.value},
                )

    async def _audit(self, event: AuditEvent) -> None:
        await self._audit_logger.log(event)
