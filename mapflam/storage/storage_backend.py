"""
Durable key-value storage backends.

A minimal string key -> string value interface. The file backend keeps one
UTF-8 file per key and replaces it atomically on every write, so readers see
either the old or the new value, never a partial one.
"""

import hashlib
import os
import re
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Optional, Union

from ..config.config_module import get_config
from ..config.logger_module import log_info, log_error
from .storage_errors import StorageError


DEFAULT_STORAGE_DIR = "./.mapflam"


def write_atomic(path: Union[str, Path], data: bytes) -> None:
    """
    Write bytes to a file through a temporary sibling and os.replace.

    Raises:
        OSError: On write failure; the temporary file is removed and the
                 target is left untouched
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as handle:
            handle.write(data)
        os.replace(temp_name, path)
    except BaseException:
        try:
            os.unlink(temp_name)
        except FileNotFoundError:
            pass
        raise


class KeyValueStorage(ABC):
    """String key -> string value storage."""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored value, or None if the key is absent."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        """Store a value, replacing any previous one."""
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Delete a key; absent keys are ignored."""
        pass


class MemoryKeyValueStorage(KeyValueStorage):
    """Dict-backed storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileKeyValueStorage(KeyValueStorage):
    """
    One file per key inside a directory.

    File names are derived from the key with a short hash suffix so any
    key maps to a filesystem-safe name.
    """

    def __init__(self, directory: Optional[Union[str, Path]] = None):
        """
        Initialize the storage directory.

        Args:
            directory: Where values live (MAPFLAM_STORAGE_DIR or ./.mapflam)

        Raises:
            StorageError: If the directory cannot be created
        """
        self.directory = Path(
            directory or get_config("MAPFLAM_STORAGE_DIR", DEFAULT_STORAGE_DIR)
        )

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to create storage directory {self.directory}: {e}")

        log_info(f"FileKeyValueStorage using {self.directory}")

    def _path(self, key: str) -> Path:
        safe_key = re.sub(r'[^a-zA-Z0-9\-_.]', '_', key)[:40]
        digest = hashlib.md5(key.encode('utf-8')).hexdigest()[:8]
        return self.directory / f"{safe_key}_{digest}.json"

    def get_item(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None

        try:
            return path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            log_error(f"Failed to read storage key '{key}' from {path}: {e}")
            raise StorageError(f"Failed to read storage key '{key}': {e}")

    def set_item(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            write_atomic(path, value.encode("utf-8"))
        except (OSError, UnicodeError) as e:
            log_error(f"Failed to write storage key '{key}' to {path}: {e}")
            raise StorageError(f"Failed to write storage key '{key}': {e}")

    def remove_item(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageError(f"Failed to remove storage key '{key}': {e}")
