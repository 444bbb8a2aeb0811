"""
Saved-composition store: a small rotating history of compositions.

The whole collection lives as one JSON array under a single storage key,
most recently saved first. Two independent bounds apply:
- capacity: every save truncates the collection to max_count entries
- age: every load drops entries older than retention_days and rewrites
  the stored value if anything was dropped

Every operation is a full read-modify-write of the array. Unreadable or
corrupted data is logged and treated as an empty store on reads; writes
against it are skipped so the stored value is never clobbered.
"""

import json
import time
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from ..composition.composition_models import SavedComposition
from ..config.logger_module import log_info, log_warning, log_error
from .storage_backend import KeyValueStorage, MemoryKeyValueStorage
from .storage_errors import StorageCorruptionError, StorageError


STORAGE_KEY = "mapflam_saved"
MAX_COMPOSITIONS = 5
RETENTION_DAYS = 30
STORAGE_QUOTA_BYTES = 5 * 1024 * 1024

DAY_MS = 24 * 60 * 60 * 1000

Listener = Callable[[List[SavedComposition]], None]


class SavedCompositionStore:
    """
    Capacity- and age-bounded store of SavedComposition records.

    Observers registered with subscribe() receive the new collection after
    every successful mutation, which keeps an in-memory reflection (such as
    a UI list) in sync with the durable value.
    """

    def __init__(self,
                 storage: Optional[KeyValueStorage] = None,
                 key: str = STORAGE_KEY,
                 max_count: int = MAX_COMPOSITIONS,
                 retention_days: float = RETENTION_DAYS,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the store.

        Args:
            storage: Durable key-value backend (in-memory if not given)
            key: Storage key holding the serialized collection
            max_count: Maximum number of compositions kept
            retention_days: Maximum age of a composition
            clock: Returns the current time in seconds
        """
        if max_count < 1:
            raise ValueError(f"max_count must be at least 1, got {max_count}")

        self.storage = storage if storage is not None else MemoryKeyValueStorage()
        self.key = key
        self.max_count = max_count
        self.retention_ms = int(retention_days * DAY_MS)
        self._clock = clock
        self._listeners: List[Listener] = []

    # ---- observers -------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register an observer of the collection.

        Returns:
            A function that unregisters the observer
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, compositions: List[SavedComposition]) -> None:
        for listener in list(self._listeners):
            try:
                listener(list(compositions))
            except Exception as e:
                log_error(f"Saved-composition observer failed: {type(e).__name__}: {e}")

    # ---- raw access ------------------------------------------------------

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    def _read(self) -> List[SavedComposition]:
        """
        Parse the stored collection.

        Raises:
            StorageError: If the backend cannot be read
            StorageCorruptionError: If the value is not a valid collection
        """
        raw = self.storage.get_item(self.key)
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except ValueError as e:
            raise StorageCorruptionError(f"Stored value under '{self.key}' is not JSON: {e}")

        if not isinstance(data, list):
            raise StorageCorruptionError(
                f"Stored value under '{self.key}' is a {type(data).__name__}, expected a list"
            )

        try:
            return [SavedComposition.model_validate(item) for item in data]
        except ValidationError as e:
            raise StorageCorruptionError(
                f"Stored value under '{self.key}' has an invalid composition: "
                f"{e.error_count()} validation error(s)"
            )

    def _write(self, compositions: List[SavedComposition]) -> None:
        """Serialize and store the collection, then notify observers."""
        value = json.dumps(
            [composition.to_dict() for composition in compositions],
            separators=(",", ":"),
        )
        self.storage.set_item(self.key, value)
        self._notify(compositions)

    # ---- operations ------------------------------------------------------

    def save(self, composition: SavedComposition) -> None:
        """
        Insert a composition as the most recent entry.

        An entry with the same id is replaced rather than duplicated, and
        the oldest entries beyond max_count are evicted.
        """
        try:
            existing = self._read()
            updated = [composition] + [c for c in existing if c.id != composition.id]

            evicted = updated[self.max_count:]
            updated = updated[:self.max_count]

            self._write(updated)
        except StorageError as e:
            log_error(f"Failed to save composition {composition.id}: {e}")
            return

        if evicted:
            log_info(
                f"Evicted {len(evicted)} composition(s) over capacity {self.max_count}: "
                f"{', '.join(c.id for c in evicted)}"
            )
        log_info(f"Saved composition {composition.id} ('{composition.name}')")

    def load_all(self) -> List[SavedComposition]:
        """
        Load every composition younger than the retention period.

        Expired entries are dropped from the stored value as a side effect.

        Returns:
            Compositions sorted newest first by creation time; empty if the
            stored value is unreadable
        """
        try:
            saved = self._read()
        except StorageError as e:
            log_error(f"Failed to load saved compositions: {e}")
            return []

        now_ms = self._now_ms()
        valid = [c for c in saved if now_ms - c.created_at < self.retention_ms]

        if len(valid) < len(saved):
            log_info(f"Expired {len(saved) - len(valid)} composition(s) older than the retention period")
            try:
                self._write(valid)
            except StorageError as e:
                log_warning(f"Failed to rewrite store after expiry: {e}")

        return sorted(valid, key=lambda c: c.created_at, reverse=True)

    def get(self, composition_id: str) -> Optional[SavedComposition]:
        """Return one unexpired composition by id, or None."""
        for composition in self.load_all():
            if composition.id == composition_id:
                return composition
        return None

    def delete(self, composition_id: str) -> None:
        """Remove a composition; unknown ids are ignored."""
        try:
            saved = self._read()
            updated = [c for c in saved if c.id != composition_id]
            if len(updated) == len(saved):
                log_info(f"Delete ignored, no composition {composition_id}")
                return

            self._write(updated)
        except StorageError as e:
            log_error(f"Failed to delete composition {composition_id}: {e}")
            return

        log_info(f"Deleted composition {composition_id}")

    def rename(self, composition_id: str, new_name: str) -> None:
        """
        Change a composition's name in place.

        Id, creation time, state and thumbnail are preserved, as is the
        entry's position. Unknown ids leave the stored value untouched.
        """
        try:
            saved = self._read()
            for index, composition in enumerate(saved):
                if composition.id == composition_id:
                    saved[index] = composition.renamed(new_name)
                    break
            else:
                log_info(f"Rename ignored, no composition {composition_id}")
                return

            self._write(saved)
        except StorageError as e:
            log_error(f"Failed to rename composition {composition_id}: {e}")
            return

        log_info(f"Renamed composition {composition_id} to '{new_name}'")

    def clear(self) -> None:
        """Remove every composition, including an unreadable stored value."""
        try:
            self.storage.remove_item(self.key)
        except StorageError as e:
            log_error(f"Failed to clear saved compositions: {e}")
            return

        self._notify([])
        log_info("Cleared all saved compositions")

    def storage_info(self) -> Dict[str, int]:
        """
        Diagnostics on the stored value.

        Returns:
            Dictionary with used_bytes, max_bytes and map_count
        """
        try:
            raw = self.storage.get_item(self.key) or "[]"
            data = json.loads(raw)
            count = len(data) if isinstance(data, list) else 0
            return {
                "used_bytes": len(raw.encode("utf-8")),
                "max_bytes": STORAGE_QUOTA_BYTES,
                "map_count": count,
            }
        except (StorageError, ValueError) as e:
            log_error(f"Failed to get storage info: {e}")
            return {"used_bytes": 0, "max_bytes": STORAGE_QUOTA_BYTES, "map_count": 0}
