"""Cache validity and capacity policies.

Stale entries are removed lazily when read and capacity is enforced just
before inserting a new key; there is no background sweep.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from loguru import logger

from place_resolver.lib.geocoder.cache import CacheEntry

MAX_AGE = timedelta(days=30)
UNUSED_THRESHOLD = timedelta(days=7)
MAX_ENTRIES = 10_000
EVICT_FRACTION = 0.2


class _CountingStore(Protocol):
    async def count(self) -> int: ...

    async def delete_oldest(self, n: int) -> int: ...


@dataclass(frozen=True)
class ValidityPolicy:
    """Decides whether a cache entry may still be served."""

    max_age: timedelta = MAX_AGE
    unused_threshold: timedelta = UNUSED_THRESHOLD

    def invalid_reason(self, entry: CacheEntry, now: datetime) -> str | None:
        """Explain why an entry is no longer valid, or None if it is."""
        age = now - entry.created_at
        if age > self.max_age:
            return f"too old ({age.days} days)"
        idle = now - entry.last_used_at
        if idle > self.unused_threshold:
            return f"unused for {idle.days} days"
        return None

    def is_valid(self, entry: CacheEntry, now: datetime) -> bool:
        return self.invalid_reason(entry, now) is None


@dataclass(frozen=True)
class EvictionPolicy:
    """Bounds the cache by trimming the least recently used fraction when full."""

    max_entries: int = MAX_ENTRIES
    evict_fraction: float = EVICT_FRACTION

    def __post_init__(self) -> None:
        if self.max_entries <= 0:
            msg = f"max_entries must be positive, got {self.max_entries}"
            raise ValueError(msg)
        if not (0 < self.evict_fraction <= 1):
            msg = f"evict_fraction must be in (0, 1], got {self.evict_fraction}"
            raise ValueError(msg)

    @property
    def evict_count(self) -> int:
        # At least one row, or a full cache could never admit a new key
        return max(1, math.floor(self.max_entries * self.evict_fraction))

    async def enforce(self, store: _CountingStore) -> int:
        """Evict before an insert if the cache has reached capacity.

        Returns:
            Number of entries removed.
        """
        current = await store.count()
        if current < self.max_entries:
            return 0

        logger.info(f"Geocode cache at capacity ({current}/{self.max_entries}), evicting {self.evict_count}")
        removed = await store.delete_oldest(self.evict_count)
        logger.info(f"Evicted {removed} least recently used cache entries")
        return removed
