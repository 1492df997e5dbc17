"""
Configuration Management for Zakat Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
Storage keys, backup limits and the default template location all live
in one place, so the store itself never reads the environment.
"""

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


PACKAGED_TEMPLATE_PATH = (
    Path(__file__).resolve().parent.parent / "data" / "user-data-template.json"
)


class StorageSettings(BaseSettings):
    """Local key-value storage configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ZAKAT_STORAGE_",
        extra="ignore"
    )

    data_dir: Path = Field(
        default=Path("data"),
        description="Directory holding one JSON file per storage key"
    )
    user_data_key: str = Field(
        default="zakatUserData",
        description="Key of the primary user data record"
    )
    backup_key: str = Field(
        default="zakatBackupData",
        description="Key of the rotating backup list"
    )
    key_prefix: str = Field(
        default="zakat",
        description="Prefix shared by every key owned by this application"
    )
    export_dir: Path = Field(
        default=Path("exports"),
        description="Where exported JSON files are written"
    )

    @field_validator('user_data_key', 'backup_key')
    @classmethod
    def validate_key(cls, v: str) -> str:
        """Keys become file names, so path separators are not allowed."""
        if not v or "/" in v or "\\" in v:
            raise ValueError(f"Invalid storage key: {v!r}")
        return v


class BackupSettings(BaseSettings):
    """Backup rotation configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ZAKAT_BACKUP_",
        extra="ignore"
    )

    max_backups: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of snapshots kept (newest first)"
    )
    data_version: str = Field(
        default="1.0.0",
        description="Version tag written into backups and exports"
    )


class TemplateSettings(BaseSettings):
    """Default template resource configuration."""

    model_config = SettingsConfigDict(
        env_prefix="ZAKAT_TEMPLATE_",
        extra="ignore"
    )

    source: str = Field(
        default=str(PACKAGED_TEMPLATE_PATH),
        description="File path or http(s) URL of the default template"
    )
    timeout_seconds: float = Field(
        default=5.0,
        gt=0,
        le=60,
        description="Timeout for fetching a remote template"
    )


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Environment
    app_environment: str = Field(
        default="development",
        description="Application environment"
    )
    debug_mode: bool = Field(
        default=False,
        description="Enable debug mode"
    )

    # Activity log retention
    max_activities: int = Field(
        default=50,
        ge=1,
        le=1000,
        description="Activities kept in the record (oldest dropped first)"
    )

    # Written into exports in place of a browser user agent
    client_identifier: str = Field(
        default="zakat-tracker/1.0.0",
        description="Client identifier recorded in export metadata"
    )


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def storage(self) -> StorageSettings:
        return StorageSettings()

    @property
    def backup(self) -> BackupSettings:
        return BackupSettings()

    @property
    def template(self) -> TemplateSettings:
        return TemplateSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("storage", "backup", "template", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
