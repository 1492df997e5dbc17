"""
Storage Services Package

Provides the abstract key-value interface and local implementations.
Files on disk are the default backend; memory is used in tests.
"""

from zakat_tracker.services.storage.interface import (
    BackupWriteError,
    KeyValueStorageInterface,
    NotFoundError,
    QuotaExceededError,
    StorageError,
    StorageReadError,
    StorageWriteError,
)
from zakat_tracker.services.storage.local import (
    InMemoryStorage,
    JSONFileStorage,
)

__all__ = [
    # Interface
    "KeyValueStorageInterface",
    # Exceptions
    "BackupWriteError",
    "NotFoundError",
    "QuotaExceededError",
    "StorageError",
    "StorageReadError",
    "StorageWriteError",
    # Implementations
    "InMemoryStorage",
    "JSONFileStorage",
]
