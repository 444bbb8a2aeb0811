"""
Storage module for MapFlam.

This module provides:
- A string key-value interface with in-memory and file backends
- The saved-composition store, bounded by count and age

Main classes:
- SavedCompositionStore: Rotating history of saved compositions
- FileKeyValueStorage: One atomically replaced file per key
- MemoryKeyValueStorage: Dict-backed storage

Errors:
- StorageError: Read/write failures
- StorageCorruptionError: Unparseable stored values
"""

from .storage_backend import FileKeyValueStorage, KeyValueStorage, MemoryKeyValueStorage
from .storage_errors import StorageCorruptionError, StorageError
from .storage_store import SavedCompositionStore

__all__ = [
    # Main classes
    "SavedCompositionStore",
    "KeyValueStorage",
    "FileKeyValueStorage",
    "MemoryKeyValueStorage",

    # Errors
    "StorageError",
    "StorageCorruptionError",
]

# Version info
__version__ = "1.0.0"
__author__ = "MapFlam Team"
