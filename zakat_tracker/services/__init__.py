"""Services package."""

from zakat_tracker.services.storage import (
    BackupWriteError,
    InMemoryStorage,
    JSONFileStorage,
    KeyValueStorageInterface,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from zakat_tracker.services.template import (
    DefaultTemplateLoader,
    TemplateFetchError,
)

__all__ = [
    # Storage services
    "BackupWriteError",
    "InMemoryStorage",
    "JSONFileStorage",
    "KeyValueStorageInterface",
    "NotFoundError",
    "QuotaExceededError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Template services
    "DefaultTemplateLoader",
    "TemplateFetchError",
]
