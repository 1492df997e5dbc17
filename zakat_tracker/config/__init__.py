"""Configuration package."""

from zakat_tracker.config.settings import (
    PACKAGED_TEMPLATE_PATH,
    AppSettings,
    BackupSettings,
    Settings,
    StorageSettings,
    TemplateSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "PACKAGED_TEMPLATE_PATH",
    "AppSettings",
    "BackupSettings",
    "Settings",
    "StorageSettings",
    "TemplateSettings",
    "get_settings",
    "validate_all_settings",
]
