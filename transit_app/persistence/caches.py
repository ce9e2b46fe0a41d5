"""
Month and ephemeris caches on top of a pluggable backend.

Both caches share one policy: an entry is served only while it is younger
than the TTL and was written under the current version. Stale entries are
deleted when read. Backend failures are logged and behave like a miss, so
callers only ever see data or ``None``.
"""

import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Optional, Sequence, Union

from ..errors import CacheUnavailableError
from ..logging.config import get_logger
from ..data.models import Ephemeris, TransitDayData
from ..utils.dates import days_in_month, month_key, parse_month_key, to_utc_day
from .backends import CacheBackend, CacheEntry

SECONDS_PER_DAY = 24 * 60 * 60

MonthLike = Union[date, str]


@dataclass(frozen=True)
class CachePolicy:
    """Freshness and size limits for one cache."""
    ttl_seconds: float
    version: int
    max_entries: Optional[int] = None

    @classmethod
    def from_days(cls, ttl_days: float, version: int,
                  max_entries: Optional[int] = None) -> "CachePolicy":
        return cls(ttl_seconds=ttl_days * SECONDS_PER_DAY, version=version,
                   max_entries=max_entries)

    def is_fresh(self, entry: CacheEntry, now: float) -> bool:
        """Young enough and written under the current version."""
        return entry.version == self.version and (now - entry.timestamp) < self.ttl_seconds


class PolicyCache:
    """Shared read/write/sweep logic for policy-governed caches."""

    name = "cache"

    def __init__(self, backend: CacheBackend, policy: CachePolicy,
                 clock: Callable[[], float] = time.time):
        self.backend = backend
        self.policy = policy
        self.clock = clock
        self.logger = get_logger(f"cache.{self.name}").bind(cache=self.name)

    async def _read_fresh(self, key: str) -> Optional[Any]:
        """Payload for ``key`` if present and fresh; stale entries are deleted."""
        try:
            entry = await self.backend.read(key)
        except CacheUnavailableError as e:
            self.logger.error("Error reading from cache", key=key, error=str(e))
            return None

        if entry is None:
            self.logger.debug("Cache miss", key=key)
            return None

        if not self.policy.is_fresh(entry, self.clock()):
            self.logger.debug("Cache entry expired", key=key, version=entry.version)
            await self._delete_quietly(key)
            return None

        return entry.payload

    async def _write(self, key: str, payload: Any) -> bool:
        """Store ``payload`` under ``key``, then enforce the size bound."""
        entry = CacheEntry(key=key, payload=payload, timestamp=self.clock(),
                           version=self.policy.version)
        try:
            await self.backend.write(entry)
        except CacheUnavailableError as e:
            self.logger.error("Error writing to cache", key=key, error=str(e))
            return False

        await self._enforce_size()
        return True

    async def _delete_quietly(self, key: str) -> None:
        try:
            await self.backend.delete(key)
        except CacheUnavailableError as e:
            self.logger.error("Error deleting cache entry", key=key, error=str(e))

    async def _enforce_size(self) -> int:
        """Evict oldest entries beyond ``max_entries``."""
        if self.policy.max_entries is None:
            return 0

        try:
            entries = await self.backend.entries()
        except CacheUnavailableError as e:
            self.logger.error("Error listing cache entries", error=str(e))
            return 0

        excess = len(entries) - self.policy.max_entries
        if excess <= 0:
            return 0

        # Entries come back oldest first
        for entry in entries[:excess]:
            await self._delete_quietly(entry.key)

        self.logger.info("Evicted oldest cache entries", count=excess)
        return excess

    async def clear(self) -> bool:
        """Remove every entry; False if the backend failed."""
        try:
            await self.backend.clear()
        except CacheUnavailableError as e:
            self.logger.error("Error clearing cache", error=str(e))
            return False

        self.logger.info("Cache cleared")
        return True

    async def cleanup_expired(self) -> int:
        """Delete every stale entry and return how many were removed."""
        try:
            entries = await self.backend.entries()
        except CacheUnavailableError as e:
            self.logger.error("Error listing cache entries", error=str(e))
            return 0

        now = self.clock()
        removed = 0
        for entry in entries:
            if not self.policy.is_fresh(entry, now):
                await self._delete_quietly(entry.key)
                removed += 1

        if removed:
            self.logger.info("Removed expired cache entries", count=removed)
        return removed


def _month_str(month: MonthLike) -> str:
    return month if isinstance(month, str) else month_key(month)


class MonthCache(PolicyCache):
    """
    Complete calendar months of transit data per subject.

    Keys are ``{subject_id}_{yyyy-mm}``, matched exactly. An entry holding
    fewer days than its month is never served.
    """

    name = "transits"

    @staticmethod
    def make_key(subject_id: str, month: MonthLike) -> str:
        return f"{subject_id}_{_month_str(month)}"

    async def get(self, subject_id: str, month: MonthLike) -> Optional[list[TransitDayData]]:
        """Cached days for the month, or None on any kind of miss."""
        month_str = _month_str(month)
        key = self.make_key(subject_id, month_str)

        payload = await self._read_fresh(key)
        if payload is None:
            return None

        try:
            days = [TransitDayData.from_dict(d) for d in payload["days"]]
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error("Unreadable cache entry", key=key, error=str(e))
            await self._delete_quietly(key)
            return None

        first = parse_month_key(month_str)
        expected = days_in_month(first.year, first.month)
        if len(days) < expected:
            self.logger.debug("Cache entry incomplete", key=key,
                              days=len(days), expected=expected)
            return None

        self.logger.debug("Cache hit", key=key)
        return days

    async def set(self, subject_id: str, month: MonthLike,
                  days: Sequence[TransitDayData]) -> bool:
        """Store a month's days, replacing any previous entry."""
        month_str = _month_str(month)
        payload = {
            "subject_id": subject_id,
            "month": month_str,
            "days": [d.to_dict() for d in days],
        }
        return await self._write(self.make_key(subject_id, month_str), payload)

    async def evict(self, subject_id: str, month: MonthLike) -> None:
        """Drop one month entry."""
        await self._delete_quietly(self.make_key(subject_id, month))


class EphemerisCache(PolicyCache):
    """Ephemeris batches keyed by their UTC date range."""

    name = "ephemeris"

    @staticmethod
    def make_key(start: Any, end: Any) -> str:
        return f"{to_utc_day(start).isoformat()}_to_{to_utc_day(end).isoformat()}"

    async def get(self, start: Any, end: Any) -> Optional[list[Ephemeris]]:
        key = self.make_key(start, end)

        payload = await self._read_fresh(key)
        if payload is None:
            return None

        try:
            data = [Ephemeris.from_dict(e) for e in payload["data"]]
        except (KeyError, TypeError, ValueError) as e:
            self.logger.error("Unreadable cache entry", key=key, error=str(e))
            await self._delete_quietly(key)
            return None

        self.logger.debug("Cache hit", key=key)
        return data

    async def set(self, start: Any, end: Any, data: Sequence[Ephemeris]) -> bool:
        start_day, end_day = to_utc_day(start), to_utc_day(end)
        payload = {
            "start_date": start_day.isoformat(),
            "end_date": end_day.isoformat(),
            "data": [e.to_dict() for e in data],
        }
        return await self._write(self.make_key(start_day, end_day), payload)

    async def info(self) -> dict[str, Any]:
        """Number of cached batches and the range each one covers."""
        try:
            entries = await self.backend.entries()
        except CacheUnavailableError as e:
            self.logger.error("Error getting cache info", error=str(e))
            return {"count": 0, "ranges": []}

        ranges = []
        for entry in entries:
            start_date, _, end_date = entry.key.partition("_to_")
            ranges.append({
                "start_date": start_date,
                "end_date": end_date,
                "timestamp": entry.timestamp,
            })

        return {"count": len(entries), "ranges": ranges}


async def cleanup_expired_caches(*caches: PolicyCache) -> int:
    """Sweep every cache once; returns the total number of removed entries."""
    logger = get_logger("cache.cleanup")
    counts = {cache.name: await cache.cleanup_expired() for cache in caches}
    total = sum(counts.values())

    if total:
        logger.info("Cache cleanup complete", total=total, **counts)
    return total


async def clear_all_caches(*caches: PolicyCache) -> bool:
    """Reset every cache; True only if all of them were cleared."""
    logger = get_logger("cache.cleanup")
    results = {cache.name: await cache.clear() for cache in caches}

    if all(results.values()):
        logger.info("All caches cleared")
        return True

    logger.warning("One or more caches could not be cleared", **results)
    return False
