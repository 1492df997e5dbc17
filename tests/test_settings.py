"""Tests for zakat_tracker.config: environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from zakat_tracker.config import (
    PACKAGED_TEMPLATE_PATH,
    BackupSettings,
    Settings,
    StorageSettings,
    get_settings,
    validate_all_settings,
)


@pytest.fixture(autouse=True)
def fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestDefaults:
    def test_storage_defaults(self):
        storage = StorageSettings()
        assert storage.user_data_key == "zakatUserData"
        assert storage.backup_key == "zakatBackupData"
        assert storage.key_prefix == "zakat"
        assert storage.data_dir == Path("data")

    def test_backup_defaults(self):
        backup = BackupSettings()
        assert backup.max_backups == 5
        assert backup.data_version == "1.0.0"

    def test_app_and_template_defaults(self):
        settings = Settings()
        assert settings.app.max_activities == 50
        assert settings.template.source == str(PACKAGED_TEMPLATE_PATH)
        assert PACKAGED_TEMPLATE_PATH.exists()


class TestEnvironment:
    def test_prefixed_overrides(self, monkeypatch):
        """Each group reads its own ZAKAT_* prefix."""
        monkeypatch.setenv("ZAKAT_STORAGE_DATA_DIR", "/tmp/zakat")
        monkeypatch.setenv("ZAKAT_BACKUP_MAX_BACKUPS", "10")

        settings = Settings()
        assert settings.storage.data_dir == Path("/tmp/zakat")
        assert settings.backup.max_backups == 10

    def test_keys_cannot_contain_separators(self, monkeypatch):
        """Keys are file names on disk."""
        monkeypatch.setenv("ZAKAT_STORAGE_USER_DATA_KEY", "../outside")
        with pytest.raises(ValidationError):
            StorageSettings()

    def test_validate_all_settings_reports_errors(self, monkeypatch):
        """Startup check flags the broken group."""
        monkeypatch.setenv("ZAKAT_BACKUP_MAX_BACKUPS", "0")
        results = validate_all_settings()

        assert results["storage"] is True
        assert results["backup"] is False
        assert "backup_error" in results

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()
