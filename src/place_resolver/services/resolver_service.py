"""Resolver service — cache-first place-name resolution and batch candidate selection."""

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any

from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from place_resolver.lib.geocoder import build_provider_chain
from place_resolver.lib.geocoder.cache import (
    DEFAULT_CONFIDENCE,
    CacheEntry,
    CacheReadCorruptedError,
    CacheStats,
    CacheStore,
    utc_now,
)
from place_resolver.lib.geocoder.chain import ProviderChain
from place_resolver.lib.geocoder.policy import EvictionPolicy, ValidityPolicy
from place_resolver.lib.rate_gate import RateGate

if TYPE_CHECKING:
    from place_resolver.core.config import Settings

DEFAULT_BATCH_SIZE = 5
DEFAULT_BATCH_DELAY = 1.0
EMPTY_LOCATION_ERROR = "Location text is empty"
NO_CANDIDATES_ERROR = "No location candidates provided"


@dataclass
class ResolveResult:
    """Unified outcome of resolving one location text."""

    success: bool
    lat: float | None = None
    lng: float | None = None
    formatted_address: str | None = None
    source: str | None = None
    cached: bool | None = None
    error: str | None = None

    @classmethod
    def from_cache(cls, entry: CacheEntry) -> "ResolveResult":
        return cls(
            success=True,
            lat=entry.latitude,
            lng=entry.longitude,
            formatted_address=entry.formatted_address,
            source=entry.source,
            cached=True,
        )

    @classmethod
    def failure(cls, error: str) -> "ResolveResult":
        return cls(success=False, error=error)

    def to_dict(self) -> dict[str, Any]:
        """Return the populated fields only."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class BatchResolution:
    """Per-candidate outcomes of a batch plus the selected best result."""

    best: ResolveResult
    best_candidate: str | None = None
    primary: str | None = None
    results: dict[str, ResolveResult] = field(default_factory=dict)


def order_candidates(candidates: Sequence[str], primary: str | None = None) -> list[str]:
    """Distinct, non-blank candidates with the primary first.

    The primary defaults to the first candidate. Secondaries keep their
    extraction order; repeats collapse onto their first occurrence.
    """
    ordered: list[str] = []
    seen: set[str] = set()
    head = [primary] if primary is not None else []
    for text in [*head, *candidates]:
        if not text or not text.strip() or text in seen:
            continue
        seen.add(text)
        ordered.append(text)
    return ordered


def select_best(ordered: Sequence[str], results: dict[str, ResolveResult]) -> tuple[str | None, ResolveResult]:
    """Pick the primary if it resolved, else the first secondary that did.

    Args:
        ordered: Candidates with the primary first, secondaries in extraction order.
        results: Outcome for every candidate in ``ordered``.

    Returns:
        The chosen candidate and its result, or ``(None, failure)`` naming
        every attempted candidate and why it failed.
    """
    for text in ordered:
        result = results[text]
        if result.success:
            return text, result

    if not ordered:
        return None, ResolveResult.failure(NO_CANDIDATES_ERROR)

    reasons = "; ".join(f"'{text}' ({results[text].error})" for text in ordered)
    return None, ResolveResult.failure(f"All candidates failed: {reasons}")


class Resolver:
    """Resolve place names to coordinates, cache first, providers on miss.

    Args:
        store: Durable cache.
        chain: Ordered provider fallback chain.
        gate: Rate gate for this caller class; only provider calls pass through it.
        validity: Freshness rules for cached entries.
        eviction: Capacity rules applied before inserting a new key.
        batch_size: Candidates resolved concurrently per group.
        batch_delay: Pause in seconds between groups.
        default_confidence: Confidence stored on first insert.
        clock: Source of the current UTC time.
        sleep: Coroutine used for the pause between groups.
        write_lock: Lock serializing the capacity check with the insert; share
            one between resolvers writing to the same cache.
    """

    def __init__(
        self,
        store: CacheStore,
        chain: ProviderChain,
        gate: RateGate,
        validity: ValidityPolicy | None = None,
        eviction: EvictionPolicy | None = None,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay: float = DEFAULT_BATCH_DELAY,
        default_confidence: float = DEFAULT_CONFIDENCE,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        write_lock: asyncio.Lock | None = None,
    ) -> None:
        if batch_size <= 0:
            msg = f"batch_size must be positive, got {batch_size}"
            raise ValueError(msg)
        self.store = store
        self.chain = chain
        self.gate = gate
        self.validity = validity or ValidityPolicy()
        self.eviction = eviction or EvictionPolicy()
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.default_confidence = default_confidence
        self._clock = clock
        self._sleep = sleep
        self._write_lock = write_lock or asyncio.Lock()

    async def _cached(self, location: str) -> CacheEntry | None:
        """Return a servable cache entry, discarding invalid or unreadable ones."""
        try:
            entry = await self.store.get(location)
        except CacheReadCorruptedError as e:
            logger.warning(f"{e}; discarding")
            await self._discard(e.entry_id)
            return None
        except SQLAlchemyError as e:
            logger.warning(f"Cache lookup failed, treating as miss: {e}")
            return None

        if entry is None:
            return None

        reason = self.validity.invalid_reason(entry, self._clock())
        if reason is not None:
            logger.info(f"Cache entry for {entry.location_text!r} is {reason}; removing")
            await self._discard(entry.id)
            return None

        try:
            await self.store.touch(entry.id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to record cache usage: {e}")
        return entry

    async def _discard(self, entry_id: Any) -> None:
        try:
            await self.store.delete(entry_id)
        except SQLAlchemyError as e:
            logger.warning(f"Failed to delete cache entry {entry_id}: {e}")

    async def resolve_one(self, location: str) -> ResolveResult:
        """Resolve one location text.

        Serves a valid cache entry when present. Otherwise waits on the
        rate gate, walks the provider chain and writes a success back to
        the cache. Failures are returned, never raised, and never cached.
        """
        if not location or not location.strip():
            return ResolveResult.failure(EMPTY_LOCATION_ERROR)

        entry = await self._cached(location)
        if entry is not None:
            logger.debug(f"Cache hit for {location!r} ({entry.source})")
            return ResolveResult.from_cache(entry)

        logger.debug(f"Cache miss for {location!r}, calling providers")
        await self.gate.wait_for_next_call()
        outcome = await self.chain.resolve(location)

        if not outcome.success or outcome.result is None or outcome.provider is None:
            logger.info(f"All geocoding providers failed for {location!r}")
            return ResolveResult.failure(outcome.error or "Geocoding failed")

        try:
            async with self._write_lock:
                await self.eviction.enforce(self.store)
                await self.store.upsert(
                    location,
                    outcome.result,
                    outcome.provider,
                    confidence_score=self.default_confidence,
                )
        except SQLAlchemyError as e:
            logger.warning(f"Failed to cache result for {location!r}: {e}")

        return ResolveResult(
            success=True,
            lat=outcome.result.latitude,
            lng=outcome.result.longitude,
            formatted_address=outcome.result.formatted_address,
            source=outcome.provider,
            cached=False,
        )

    async def resolve_many(self, locations: Sequence[str]) -> dict[str, ResolveResult]:
        """Resolve distinct locations in concurrent groups of ``batch_size``."""
        distinct = list(dict.fromkeys(locations))
        results: dict[str, ResolveResult] = {}
        total_groups = (len(distinct) + self.batch_size - 1) // self.batch_size

        for start in range(0, len(distinct), self.batch_size):
            group = distinct[start : start + self.batch_size]
            logger.debug(f"Resolving group {start // self.batch_size + 1}/{total_groups} ({len(group)} locations)")
            outcomes = await asyncio.gather(*(self.resolve_one(text) for text in group))
            results.update(zip(group, outcomes, strict=True))

            if start + self.batch_size < len(distinct) and self.batch_delay > 0:
                await self._sleep(self.batch_delay)

        return results

    async def resolve_batch(self, candidates: Sequence[str], primary: str | None = None) -> BatchResolution:
        """Resolve every candidate of one content item and pick the best.

        Args:
            candidates: Location strings in extraction order.
            primary: The extractor's primary pick; defaults to ``candidates[0]``.

        Returns:
            BatchResolution with per-candidate results. ``best`` is the
            primary's result when it resolved, otherwise the first resolved
            secondary, otherwise a failure naming every candidate.
        """
        ordered = order_candidates(candidates, primary)
        results = await self.resolve_many(ordered)
        best_candidate, best = select_best(ordered, results)

        if best_candidate is None:
            logger.info(f"Batch resolution failed for {len(ordered)} candidate(s)")
        elif ordered and best_candidate != ordered[0]:
            logger.info(f"Primary candidate {ordered[0]!r} unresolved, using {best_candidate!r}")

        return BatchResolution(
            best=best,
            best_candidate=best_candidate,
            primary=ordered[0] if ordered else None,
            results=results,
        )

    async def get_cache_stats(self) -> CacheStats:
        return await self.store.stats(self.eviction.max_entries, self.validity.unused_threshold)

    async def clear_cache(self) -> int:
        """Remove every cache entry."""
        removed = await self.store.delete_all()
        logger.info(f"Cleared {removed} geocode cache entries")
        return removed


def build_resolver(
    settings: "Settings",
    session_factory: async_sessionmaker[AsyncSession],
    gate: RateGate,
    *,
    write_lock: asyncio.Lock | None = None,
) -> Resolver:
    """Wire a resolver from settings for one caller class.

    Args:
        settings: Application settings.
        session_factory: Session factory bound to the cache database.
        gate: Rate gate of the caller class this resolver serves.
        write_lock: Cache write lock shared with other resolvers on the same database.
    """
    return Resolver(
        CacheStore(session_factory),
        build_provider_chain(settings),
        gate,
        ValidityPolicy(
            max_age=timedelta(days=settings.geocode_cache_max_age_days),
            unused_threshold=timedelta(days=settings.geocode_cache_unused_days),
        ),
        EvictionPolicy(
            max_entries=settings.geocode_cache_max_entries,
            evict_fraction=settings.geocode_cache_evict_fraction,
        ),
        batch_size=settings.resolver_batch_size,
        batch_delay=settings.resolver_batch_delay,
        default_confidence=settings.geocode_cache_default_confidence,
        write_lock=write_lock,
    )
