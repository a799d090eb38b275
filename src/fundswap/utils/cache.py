"""TTL cache for external catalog lookups.

The lock guards the entry table only. Two callers that miss on the same key
at the same moment both run their fetch; the first one to write wins and the
second returns the stored value. Fetches never wait on each other, so one
slow venue cannot stall lookups for unrelated keys.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """Cached value and the clock reading it was fetched at."""

    value: T
    fetched_at: float


class TTLCache(Generic[T]):
    """Single key-space cache with a per-instance TTL."""

    def __init__(
        self,
        ttl: float,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize the cache.

        Args:
            ttl: Seconds an entry stays valid
            name: Label used in log messages
            clock: Time source, injectable for tests
        """
        self.ttl = ttl
        self.name = name
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._lock = asyncio.Lock()

    def _live(self, key: str) -> Optional[CacheEntry[T]]:
        entry = self._entries.get(key)
        if entry is not None and self._clock() - entry.fetched_at < self.ttl:
            return entry
        return None

    async def get(self, key: str) -> Optional[T]:
        """Return the live value for key, or None."""
        async with self._lock:
            entry = self._live(key)
        return entry.value if entry else None

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        """Return the cached value for key, fetching it on a miss.

        A fetch that raises (including cancellation) stores nothing and leaves
        any previous entry in place.
        """
        async with self._lock:
            entry = self._live(key)
        if entry is not None:
            return entry.value

        logger.debug(f"{self.name} miss: {key}")
        value = await fetch()

        async with self._lock:
            entry = self._live(key)
            if entry is not None:
                return entry.value
            self._entries[key] = CacheEntry(value=value, fetched_at=self._clock())
        return value

    async def invalidate(self, key: Optional[str] = None) -> None:
        """Drop one key, or every key when none is given."""
        async with self._lock:
            if key is None:
                self._entries.clear()
            else:
                self._entries.pop(key, None)

    def __len__(self) -> int:
        return len(self._entries)
