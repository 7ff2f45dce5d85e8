"""Durable geocode cache keyed by exact location text.

Each operation runs in its own session and transaction, so a single
``CacheStore`` may be shared by any number of concurrent resolutions.
"""

import math
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from place_resolver.lib.geocoder.base import GeocodingResult
from place_resolver.models.geocode_cache import GeocodeCache

DEFAULT_CONFIDENCE = 0.9


def utc_now() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class CacheReadCorruptedError(Exception):
    """Raised when a stored row cannot be turned into a usable cache entry.

    Args:
        entry_id: Primary key of the offending row.
        reason: What failed validation.
    """

    def __init__(self, entry_id: uuid.UUID, reason: str) -> None:
        self.entry_id = entry_id
        self.reason = reason
        super().__init__(f"Corrupted cache entry {entry_id}: {reason}")


@dataclass(frozen=True)
class CacheEntry:
    """Validated snapshot of one cached resolution."""

    id: uuid.UUID
    location_text: str
    latitude: float
    longitude: float
    source: str
    created_at: datetime
    last_used_at: datetime
    usage_count: int
    formatted_address: str | None = None
    confidence_score: float | None = None

    @classmethod
    def from_row(cls, row: GeocodeCache) -> "CacheEntry":
        """Build an entry from an ORM row.

        Raises:
            CacheReadCorruptedError: If the row holds unusable values.
        """
        try:
            latitude = float(row.latitude)
            longitude = float(row.longitude)
            if not (math.isfinite(latitude) and -90 <= latitude <= 90):
                msg = f"latitude out of range: {row.latitude!r}"
                raise ValueError(msg)
            if not (math.isfinite(longitude) and -180 <= longitude <= 180):
                msg = f"longitude out of range: {row.longitude!r}"
                raise ValueError(msg)
            if not row.source:
                msg = "missing source provider"
                raise ValueError(msg)
            if row.created_at is None or row.last_used_at is None:
                msg = "missing timestamps"
                raise ValueError(msg)
            return cls(
                id=row.id,
                location_text=row.location_text,
                latitude=latitude,
                longitude=longitude,
                source=row.source,
                created_at=_as_utc(row.created_at),
                last_used_at=_as_utc(row.last_used_at),
                usage_count=int(row.usage_count or 0),
                formatted_address=row.formatted_address,
                confidence_score=row.confidence_score,
            )
        except (TypeError, ValueError) as e:
            raise CacheReadCorruptedError(row.id, str(e)) from e


@dataclass(frozen=True)
class CacheStats:
    """Aggregate cache figures for monitoring."""

    total_entries: int
    total_usage: int
    recent_entries: int
    cache_hit_rate: float
    max_entries: int
    utilization_percent: int


class CacheStore:
    """Async access to the ``geocode_cache`` table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    async def get(self, location_text: str) -> CacheEntry | None:
        """Look up the entry for a location text.

        Returns:
            The cached entry, or None on a miss.

        Raises:
            CacheReadCorruptedError: If the stored row fails validation.
        """
        async with self._session_factory() as session:
            result = await session.execute(select(GeocodeCache).where(GeocodeCache.location_text == location_text))
            row = result.scalar_one_or_none()
        if row is None:
            return None
        return CacheEntry.from_row(row)

    async def upsert(
        self,
        location_text: str,
        result: GeocodingResult,
        source: str,
        *,
        confidence_score: float = DEFAULT_CONFIDENCE,
    ) -> None:
        """Insert or refresh the entry for a location text in one statement.

        New rows start with ``usage_count=1``; existing rows take the new
        coordinates, address and source and have their usage incremented.
        ``created_at`` and ``confidence_score`` are kept from the first insert.
        """
        now = self._clock()
        async with self._session_factory() as session, session.begin():
            insert = self._insert_for(session)
            stmt = insert(GeocodeCache).values(
                id=uuid.uuid4(),
                location_text=location_text,
                latitude=result.latitude,
                longitude=result.longitude,
                formatted_address=result.formatted_address,
                source=source,
                confidence_score=confidence_score,
                created_at=now,
                last_used_at=now,
                usage_count=1,
            )
            stmt = stmt.on_conflict_do_update(
                index_elements=[GeocodeCache.location_text],
                set_={
                    "latitude": stmt.excluded.latitude,
                    "longitude": stmt.excluded.longitude,
                    "formatted_address": stmt.excluded.formatted_address,
                    "source": stmt.excluded.source,
                    "last_used_at": stmt.excluded.last_used_at,
                    "usage_count": GeocodeCache.usage_count + 1,
                },
            )
            await session.execute(stmt)

    async def touch(self, entry_id: uuid.UUID) -> None:
        """Record a cache hit: bump ``last_used_at`` and ``usage_count``."""
        async with self._session_factory() as session, session.begin():
            await session.execute(
                update(GeocodeCache)
                .where(GeocodeCache.id == entry_id)
                .values(last_used_at=self._clock(), usage_count=GeocodeCache.usage_count + 1)
            )

    async def delete(self, entry_id: uuid.UUID) -> None:
        async with self._session_factory() as session, session.begin():
            await session.execute(delete(GeocodeCache).where(GeocodeCache.id == entry_id))

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(GeocodeCache))
            return int(result.scalar_one())

    async def delete_oldest(self, n: int) -> int:
        """Delete the ``n`` least recently used entries.

        Returns:
            Number of rows removed.
        """
        if n <= 0:
            return 0
        async with self._session_factory() as session, session.begin():
            oldest = select(GeocodeCache.id).order_by(GeocodeCache.last_used_at.asc(), GeocodeCache.id).limit(n)
            ids = list((await session.execute(oldest)).scalars().all())
            if not ids:
                return 0
            result = await session.execute(delete(GeocodeCache).where(GeocodeCache.id.in_(ids)))
            return int(result.rowcount or 0)

    async def delete_all(self) -> int:
        async with self._session_factory() as session, session.begin():
            result = await session.execute(delete(GeocodeCache))
            return int(result.rowcount or 0)

    async def stats(self, max_entries: int, unused_threshold: timedelta) -> CacheStats:
        """Aggregate totals for monitoring.

        Args:
            max_entries: Configured capacity, for the utilization figure.
            unused_threshold: Window used to count recently used entries.
        """
        cutoff = self._clock() - unused_threshold
        async with self._session_factory() as session:
            totals = await session.execute(
                select(func.count(GeocodeCache.id), func.coalesce(func.sum(GeocodeCache.usage_count), 0))
            )
            total_entries, total_usage = totals.one()
            recent = await session.execute(
                select(func.count(GeocodeCache.id)).where(GeocodeCache.last_used_at >= cutoff)
            )
            recent_entries = int(recent.scalar_one())

        total_entries = int(total_entries)
        total_usage = int(total_usage)
        return CacheStats(
            total_entries=total_entries,
            total_usage=total_usage,
            recent_entries=recent_entries,
            cache_hit_rate=round(total_usage / total_entries, 2) if total_entries else 0.0,
            max_entries=max_entries,
            utilization_percent=round(total_entries / max_entries * 100) if max_entries else 0,
        )

    @staticmethod
    def _insert_for(session: AsyncSession) -> Callable[..., Any]:
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert
        if dialect == "sqlite":
            return sqlite.insert
        msg = f"Unsupported database dialect for cache upsert: {dialect}"
        raise RuntimeError(msg)
