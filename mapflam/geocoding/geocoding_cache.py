"""
In-memory cache for geocoding search results.

Keyed by the exact query string with a fixed time-to-live. Expiry is
passive: an expired entry is skipped on read and replaced on the next
write for the same query, never swept in the background.
"""

import time
from typing import Callable, Dict, List, Optional, Tuple

from ..composition.composition_models import LocationResult
from ..config.logger_module import log_debug


DEFAULT_TTL_SECONDS = 5 * 60


class SearchCache:
    """
    Maps query -> (results, timestamp) with a TTL check on every read.

    The clock is injectable so expiry can be tested without sleeping.
    """

    def __init__(self,
                 ttl_seconds: float = DEFAULT_TTL_SECONDS,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the cache.

        Args:
            ttl_seconds: How long a stored result set is served
            clock: Returns the current time in seconds
        """
        self.ttl = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[List[LocationResult], float]] = {}

    def get(self, query: str) -> Optional[List[LocationResult]]:
        """
        Return cached results for a query if they are still fresh.

        Args:
            query: Exact query string

        Returns:
            Cached results, or None on a miss or an expired entry
        """
        entry = self._entries.get(query)
        if entry is None:
            log_debug(f"Search cache miss: '{query}'")
            return None

        results, timestamp = entry
        age = self._clock() - timestamp
        if age >= self.ttl:
            log_debug(f"Search cache expired: '{query}' ({age:.0f}s old)")
            return None

        log_debug(f"Search cache hit: '{query}' ({len(results)} results, {age:.0f}s old)")
        return list(results)

    def put(self, query: str, results: List[LocationResult]) -> None:
        """Store results for a query, stamped with the current time."""
        self._entries[query] = (list(results), self._clock())

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, query: str) -> bool:
        return query in self._entries
