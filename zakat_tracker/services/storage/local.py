"""
Local Storage Implementations

DESIGN DECISION: The user's data lives in plain JSON files, one file per
storage key, so a non-technical user can find and copy it:

    data/zakatUserData.json
    data/zakatBackupData.json

TRADEOFFS:
- No transactions (writes go to a temp file and are atomically renamed)
- Single writer only (the store serializes its own operations)

InMemoryStorage mirrors the same contract for tests, including an optional
byte quota so "disk full" can be exercised.
"""

import errno
import os
from pathlib import Path
from typing import Optional

from zakat_tracker.config import get_settings
from zakat_tracker.services.storage.interface import (
    KeyValueStorageInterface,
    QuotaExceededError,
    StorageReadError,
    StorageWriteError,
)


class JSONFileStorage(KeyValueStorageInterface):
    """
    File-backed key-value storage.

    Each key maps to `<data_dir>/<key>.json`.
    """

    SUFFIX = ".json"

    def __init__(self, data_dir: Optional[Path] = None):
        self._data_dir = Path(data_dir or get_settings().storage.data_dir)

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key:
            raise ValueError(f"Invalid storage key: {key!r}")
        return self._data_dir / f"{key}{self.SUFFIX}"

    def get_item(self, key: str) -> Optional[str]:
        """Read a key's file, None if it does not exist."""
        path = self._path(key)
        if not path.exists():
            return None
        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Failed to read {path}: {e}")

    def set_item(self, key: str, value: str) -> None:
        """Write a key's file atomically."""
        path = self._path(key)
        tmp = path.with_suffix(path.suffix + ".tmp")
        try:
            self._data_dir.mkdir(parents=True, exist_ok=True)
            with tmp.open("w", encoding="utf-8") as f:
                f.write(value)
            tmp.replace(path)
        except OSError as e:
            if tmp.exists():
                tmp.unlink()
            if e.errno == errno.ENOSPC:
                raise QuotaExceededError(f"No space left writing {path}")
            raise StorageWriteError(f"Failed to write {path}: {e}")

    def remove_item(self, key: str) -> bool:
        path = self._path(key)
        try:
            path.unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageWriteError(f"Failed to remove {path}: {e}")

    def keys(self) -> list[str]:
        if not self._data_dir.is_dir():
            return []
        return sorted(
            entry.name[: -len(self.SUFFIX)]
            for entry in os.scandir(self._data_dir)
            if entry.is_file() and entry.name.endswith(self.SUFFIX)
        )


class InMemoryStorage(KeyValueStorageInterface):
    """
    Dict-backed key-value storage.

    Args:
        quota_bytes: If set, writes that would push the total UTF-8 size of
                     all values past this limit raise QuotaExceededError.
    """

    def __init__(self, quota_bytes: Optional[int] = None):
        self._items: dict[str, str] = {}
        self._quota_bytes = quota_bytes

    @property
    def used_bytes(self) -> int:
        return sum(len(value.encode("utf-8")) for value in self._items.values())

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        if self._quota_bytes is not None:
            current = self._items.get(key)
            current_size = len(current.encode("utf-8")) if current is not None else 0
            new_total = self.used_bytes - current_size + len(value.encode("utf-8"))
            if new_total > self._quota_bytes:
                raise QuotaExceededError(
                    f"Storage quota exceeded writing {key!r} "
                    f"({new_total} > {self._quota_bytes} bytes)"
                )
        self._items[key] = value

    def remove_item(self, key: str) -> bool:
        return self._items.pop(key, None) is not None

    def keys(self) -> list[str]:
        return sorted(self._items)
