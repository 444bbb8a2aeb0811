"""
Keystroke debouncer for search-as-you-type callers.

The gateway imposes no rate limiting of its own; callers feed every
keystroke into a SearchDebouncer and only search once input has been quiet
for the delay. Responses can arrive out of order, so the debouncer also
tracks the latest issued query for discarding stale results.
"""

import time
from typing import Callable, Optional

from ..config.logger_module import log_debug


DEFAULT_DELAY_SECONDS = 0.3


class SearchDebouncer:
    """
    Single-threaded trailing-edge debouncer.

    Typical loop:
        debouncer.submit(text)          # on every keystroke
        if debouncer.ready():           # on every UI tick
            query = debouncer.take()
            results = gateway.search(query)
            if not debouncer.is_stale(query):
                show(results)
    """

    def __init__(self,
                 delay_seconds: float = DEFAULT_DELAY_SECONDS,
                 clock: Callable[[], float] = time.time):
        """
        Initialize the debouncer.

        Args:
            delay_seconds: Quiet period required before a search fires
            clock: Returns the current time in seconds
        """
        self.delay_seconds = delay_seconds
        self._clock = clock
        self._pending: Optional[str] = None
        self._last_submit = 0.0
        self._latest_issued: Optional[str] = None

    def submit(self, query: str) -> None:
        """Record a keystroke; restarts the quiet period."""
        self._pending = query
        self._last_submit = self._clock()

    def ready(self) -> bool:
        """True once a pending query has been quiet for the full delay."""
        if self._pending is None:
            return False
        return self._clock() - self._last_submit >= self.delay_seconds

    def get_wait_time(self) -> float:
        """
        Seconds until the pending query becomes ready.

        Returns:
            0.0 when ready or when nothing is pending
        """
        if self._pending is None:
            return 0.0
        remaining = self.delay_seconds - (self._clock() - self._last_submit)
        return max(0.0, remaining)

    def take(self) -> Optional[str]:
        """
        Hand out the pending query once it is ready.

        Returns:
            The query to search for, or None if nothing is ready
        """
        if not self.ready():
            return None

        query = self._pending
        self._pending = None
        self._latest_issued = query
        log_debug(f"Debounced search issued: '{query}'")
        return query

    def is_stale(self, query: str) -> bool:
        """True when a newer query has been issued or typed since this one."""
        if self._pending is not None and self._pending != query:
            return True
        return query != self._latest_issued

    def cancel(self) -> None:
        """Drop the pending query, e.g. when the search box is cleared."""
        self._pending = None
