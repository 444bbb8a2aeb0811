"""
Custom exceptions for the storage module.

Backends raise these; the saved-composition store logs them and degrades
to an empty collection (reads) or a no-op (writes).
"""


class StorageError(Exception):
    """Raised on durable storage read/write failures."""
    pass


class StorageCorruptionError(StorageError):
    """Raised when a persisted value cannot be parsed."""
    pass
