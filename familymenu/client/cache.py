"""Query cache for the client data layer.

Results are stored under tuple keys such as ``("recipes", "pasta")`` or
``("achievements", "meal", plan_id)``. Mutations drop stale entries with
``invalidate`` by key prefix; there is no background refetching.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

QueryKey = tuple

_MISSING = object()


@dataclass
class CacheEntry:
    value: Any
    fetched_at: float
    stale_after: float

    def is_fresh(self, now: float) -> bool:
        return now - self.fetched_at < self.stale_after


class QueryCache:
    def __init__(self, default_stale_time: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self.default_stale_time = default_stale_time
        self._clock = clock
        self._entries: dict[QueryKey, CacheEntry] = {}

    def _lookup(self, key: QueryKey) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return _MISSING
        if not entry.is_fresh(self._clock()):
            del self._entries[key]
            return _MISSING
        return entry.value

    def get(self, key: QueryKey, default: Any = None) -> Any:
        """Return the cached value if it is still fresh, else ``default``."""
        value = self._lookup(key)
        return default if value is _MISSING else value

    def set(self, key: QueryKey, value: Any, stale_time: Optional[float] = None) -> None:
        self._entries[key] = CacheEntry(
            value=value,
            fetched_at=self._clock(),
            stale_after=self.default_stale_time if stale_time is None else stale_time,
        )

    def fetch(self, key: QueryKey, loader: Callable[[], Any], stale_time: Optional[float] = None) -> Any:
        """Return the cached value, calling ``loader`` on a miss."""
        value = self._lookup(key)
        if value is not _MISSING:
            return value
        value = loader()
        self.set(key, value, stale_time)
        return value

    def invalidate(self, *prefix) -> int:
        """Drop every entry whose key starts with ``prefix``. Returns the count dropped."""
        n = len(prefix)
        doomed = [key for key in self._entries if key[:n] == prefix]
        for key in doomed:
            del self._entries[key]
        if doomed:
            logger.debug("Invalidated %d cached queries for %s", len(doomed), prefix)
        return len(doomed)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, key: QueryKey) -> bool:
        return self._lookup(key) is not _MISSING

    def __len__(self) -> int:
        return len(self._entries)
