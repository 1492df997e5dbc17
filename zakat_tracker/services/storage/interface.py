"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Keep the user's data in plain JSON files on disk
2. Use in-memory storage for testing
3. Simulate a full disk (quota exceeded) without touching the filesystem
4. Keep the data store decoupled from where bytes actually live

The interface is intentionally tiny: a synchronous, string-valued
key-value store. Everything richer lives in the UserDataStore.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStorageInterface(ABC):
    """
    Abstract interface for key-value storage.

    Values are JSON text. Any storage implementation (files, memory, ...)
    must implement these methods.
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: The storage key

        Returns:
            The stored text, or None if the key is absent

        Raises:
            StorageReadError: If the value exists but cannot be read
        """
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: The storage key
            value: Text to store

        Raises:
            StorageWriteError: If the write fails
            QuotaExceededError: If the backend is out of space
        """
        pass

    @abstractmethod
    def remove_item(self, key: str) -> bool:
        """
        Remove a key.

        Args:
            key: The storage key

        Returns:
            True if the key existed
        """
        pass

    @abstractmethod
    def keys(self) -> list[str]:
        """
        List all stored keys.

        Returns:
            Stored keys in sorted order
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageReadError(StorageError):
    """Stored value exists but could not be read."""
    pass


class StorageWriteError(StorageError):
    """Value could not be written."""
    pass


class QuotaExceededError(StorageWriteError):
    """Backend is out of space."""
    pass


class BackupWriteError(StorageWriteError):
    """Backup list could not be written. Never fatal to a save."""
    pass


class NotFoundError(StorageError):
    """Entity not found in the stored record."""
    pass
