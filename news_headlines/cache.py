"""Time-bounded cache for rewritten headlines."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Optional, Protocol

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_CAPACITY = 1024


class HeadlineCache(Protocol):
    """Minimal protocol shared by the in-memory and SQL-backed caches."""

    def get(self, original: str) -> Optional[str]:
        """Return the fresh rewrite for ``original`` or ``None``."""

    def put(self, original: str, rewritten: str) -> None:
        """Store a rewrite stamped with the current time."""


@dataclass
class _Entry:
    heading: str
    timestamp: float


class RewriteCache:
    """LRU cache of rewritten headlines keyed by the original heading.

    Entries are valid while ``now - timestamp < ttl``. Stale entries are
    dropped when read; once ``capacity`` is reached the least recently used
    entry is evicted.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        capacity: int = DEFAULT_CAPACITY,
        clock: Clock = time.time,
    ):
        if ttl_seconds <= 0:
            raise ValueError("Cache TTL must be positive.")
        if capacity <= 0:
            raise ValueError("Cache capacity must be positive.")
        self.ttl_seconds = ttl_seconds
        self.capacity = capacity
        self._clock = clock
        self._entries: "OrderedDict[str, _Entry]" = OrderedDict()
        self._lock = threading.Lock()

    def _is_fresh(self, entry: _Entry, now: float) -> bool:
        return (now - entry.timestamp) < self.ttl_seconds

    def get(self, original: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(original)
            if entry is None:
                return None
            if not self._is_fresh(entry, self._clock()):
                del self._entries[original]
                logger.debug("Cache entry expired for: %.30s", original)
                return None
            self._entries.move_to_end(original)
            return entry.heading

    def put(self, original: str, rewritten: str) -> None:
        with self._lock:
            self._entries[original] = _Entry(heading=rewritten, timestamp=self._clock())
            self._entries.move_to_end(original)
            while len(self._entries) > self.capacity:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted cached headline: %.30s", evicted)

    def purge_expired(self) -> int:
        """Drop every stale entry and return how many were removed."""
        with self._lock:
            now = self._clock()
            stale = [
                key for key, entry in self._entries.items() if not self._is_fresh(entry, now)
            ]
            for key in stale:
                del self._entries[key]
        if stale:
            logger.info("Purged %d expired headline rewrites", len(stale))
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, original: object) -> bool:
        return isinstance(original, str) and self.get(original) is not None
