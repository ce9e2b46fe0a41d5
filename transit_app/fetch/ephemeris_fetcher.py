"""Daily sky ephemeris sampled at a fixed observer."""

import asyncio
from datetime import date, timedelta
from typing import Awaitable, Callable, Optional, Sequence

from ..client.calculation import CalculationClient
from ..config.defaults import EphemerisParams
from ..data.models import Ephemeris, Progress, Subject
from ..data.parsers import build_ephemeris_entry
from ..errors import DayFetchError, NoDataError
from ..logging.config import get_fetch_logger
from ..persistence.caches import EphemerisCache
from ..state.cancellation import CancellationToken
from ..utils.dates import DateLike, iter_days, to_utc_day, today_utc
from ..validation.ephemeris_schema import validate_ephemeris_array

EphemerisProgressCallback = Callable[[list[Ephemeris], Progress], None]
Sleep = Callable[[float], Awaitable[None]]

logger = get_fetch_logger(__name__)


class EphemerisFetcher:
    """
    Builds a day-by-day ephemeris from single-subject calculations.

    The service has no ephemeris endpoint, so each day is computed as a
    subject at the configured observer. Whole ranges are cached; a cache hit
    is replayed to the progress callback in chunks.
    """

    def __init__(self, client: CalculationClient, cache: EphemerisCache,
                 params: Optional[EphemerisParams] = None,
                 sleep: Sleep = asyncio.sleep):
        self.client = client
        self.cache = cache
        self.params = params or EphemerisParams()
        self._sleep = sleep

    def observer_subject(self, day: date) -> Subject:
        """Observer subject sampled on ``day``."""
        return Subject(
            name=self.params.observer_name,
            year=day.year,
            month=day.month,
            day=day.day,
            hour=self.params.observer_hour,
            minute=0,
            second=0,
            city=self.params.observer_city,
            nation=self.params.observer_nation,
            timezone="UTC",
            longitude=self.params.observer_longitude,
            latitude=self.params.observer_latitude,
        )

    def resolve_window(self, start: Optional[DateLike] = None,
                       end: Optional[DateLike] = None) -> tuple[date, date]:
        """Apply defaults: today UTC through ``default_span_days`` later."""
        start_day = to_utc_day(start) if start is not None else today_utc()
        if end is not None:
            end_day = to_utc_day(end)
        else:
            end_day = start_day + timedelta(days=self.params.default_span_days)
        return start_day, end_day

    async def _replay_cached(self, cached: list[Ephemeris],
                             on_progress: EphemerisProgressCallback,
                             token: Optional[CancellationToken]) -> None:
        """Stream a cached batch as cumulative chunks."""
        total = len(cached)
        for i in range(0, total, self.params.chunk_size):
            if token is not None and token.cancelled:
                break

            chunk = cached[:min(i + self.params.chunk_size, total)]
            on_progress(chunk, Progress(loaded=len(chunk), total=total))

            if self.params.chunk_delay_seconds > 0:
                await self._sleep(self.params.chunk_delay_seconds)

    async def fetch_ephemeris(
        self,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        active_points: Optional[Sequence[str]] = None,
        on_progress: Optional[EphemerisProgressCallback] = None,
        skip_cache: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> list[Ephemeris]:
        """
        Fetch one ephemeris entry per day of ``[start, end]``.

        Args:
            start: First day, default today UTC
            end: Last day, default ``default_span_days`` after start
            active_points: Points the service should compute
            on_progress: Receives the cumulative list and progress
            skip_cache: Recompute even when a cached batch exists
            token: Checked before every day

        Returns:
            Entries in date order; partial if the token was cancelled

        Raises:
            NoDataError: If no day could be computed
            EphemerisValidationError: If the assembled batch is malformed
        """
        start_day, end_day = self.resolve_window(start, end)

        if not skip_cache:
            cached = await self.cache.get(start_day, end_day)
            if cached is not None:
                logger.debug("Returning cached ephemeris data",
                             start=start_day.isoformat(), end=end_day.isoformat())
                if on_progress:
                    await self._replay_cached(cached, on_progress, token)
                return cached

        days = list(iter_days(start_day, end_day))
        entries = []
        results: list[Ephemeris] = []

        for day in days:
            if token is not None and token.cancelled:
                logger.info("Ephemeris fetch cancelled", fetched=len(results), total=len(days))
                return results

            try:
                response = await self.client.get_subject(self.observer_subject(day), active_points)
                entry = build_ephemeris_entry(day, response, self.params.observer_hour)
            except DayFetchError as e:
                logger.warning(
                    "Failed to fetch ephemeris day",
                    date=day.isoformat(),
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            entries.append(entry)
            results.append(Ephemeris.from_dict(entry))

            if on_progress:
                on_progress(list(results), Progress(loaded=len(results), total=len(days)))

        if not results:
            raise NoDataError(
                "No ephemeris data could be fetched",
                start=start_day.isoformat(),
                end=end_day.isoformat(),
            )

        validate_ephemeris_array(entries)

        await self.cache.set(start_day, end_day, results)
        return results
