"""
Transit range fetching with month-granular caching.

A requested range is split into calendar months. Each month is served from
the month cache when possible; otherwise its intersection with the range is
computed one day at a time. Only a fully computed calendar month is written
back to the cache.
"""

import asyncio
from datetime import date
from typing import Awaitable, Callable, Optional

from ..client.calculation import CalculationClient
from ..config.defaults import RangeFetchParams
from ..data.models import ChartOptions, MonthResult, Progress, Subject, TransitDayData
from ..data.parsers import build_transit_day
from ..errors import DayFetchError
from ..logging.config import get_fetch_logger
from ..persistence.caches import MonthCache
from ..state.cancellation import CancellationToken
from ..utils.dates import (
    DateLike,
    days_in_month,
    filter_to_window,
    intersect_window,
    is_full_month,
    iter_days,
    month_key,
    months_between,
    to_utc_day,
)

ProgressCallback = Callable[[Progress], None]
Sleep = Callable[[float], Awaitable[None]]

logger = get_fetch_logger(__name__)


class RangeFetcher:
    """Fetches transit day records for a subject over a date range."""

    def __init__(self, client: CalculationClient, cache: MonthCache,
                 params: Optional[RangeFetchParams] = None,
                 sleep: Sleep = asyncio.sleep):
        self.client = client
        self.cache = cache
        self.params = params or RangeFetchParams()
        self._sleep = sleep

    async def fetch_day(self, natal: Subject, day: date,
                        options: Optional[ChartOptions] = None) -> Optional[TransitDayData]:
        """
        Compute one day's transits against the natal chart.

        Returns:
            Day record, or None if the day could not be computed
        """
        transit = natal.at_instant(day, hour=self.params.transit_hour)
        try:
            response = await self.client.get_transit_chart_data(natal, transit, options)
            return build_transit_day(day, response)
        except DayFetchError as e:
            logger.warning(
                "Failed to fetch transit day",
                date=day.isoformat(),
                error=str(e),
                error_type=type(e).__name__,
            )
            return None

    async def fetch_month(
        self,
        subject_id: str,
        natal: Subject,
        month: date,
        start: DateLike,
        end: DateLike,
        options: Optional[ChartOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
    ) -> MonthResult:
        """
        Resolve one calendar month of the requested range.

        Args:
            subject_id: Cache identity of the natal subject
            natal: Natal subject
            month: Any day in the month
            start: Requested range start
            end: Requested range end
            options: Computation options
            on_progress: Receives month-relative progress after every day
            token: Checked before every day; a cancelled month is incomplete

        Returns:
            MonthResult holding the days of the month window, unfiltered
        """
        key = month_key(month)
        window_start, window_end = intersect_window(month, start, end)
        window_days = list(iter_days(window_start, window_end))
        progress = Progress(loaded=0, total=len(window_days))

        cached = await self.cache.get(subject_id, key)
        if cached is not None:
            if on_progress:
                on_progress(progress.advance(progress.total))
            return MonthResult(month=key, days=tuple(cached), from_cache=True, complete=True)

        logger.debug(
            "Fetching month window",
            month=key,
            fetch_start=window_start.isoformat(),
            fetch_end=window_end.isoformat(),
        )

        days = []
        cancelled = False
        for index, day in enumerate(window_days):
            if token is not None and token.cancelled:
                cancelled = True
                break

            if index and self.params.inter_call_delay_seconds > 0:
                await self._sleep(self.params.inter_call_delay_seconds)

            record = await self.fetch_day(natal, day, options)
            if record is not None:
                days.append(record)

            progress = progress.advance()
            if on_progress:
                on_progress(progress)

        complete = (
            not cancelled
            and is_full_month(month, window_start, window_end)
            and len(days) == days_in_month(month.year, month.month)
        )
        if complete:
            await self.cache.set(subject_id, key, days)
        elif not cancelled and len(days) < len(window_days):
            logger.info(
                "Month fetched with missing days",
                month=key,
                fetched=len(days),
                expected=len(window_days),
            )

        return MonthResult(month=key, days=tuple(days), from_cache=False, complete=complete)

    async def fetch_range(
        self,
        subject_id: str,
        natal: Subject,
        start: DateLike,
        end: DateLike,
        options: Optional[ChartOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[TransitDayData]:
        """
        Fetch every day of ``[start, end]``, in date order.

        Failed days are absent from the result. Progress counts days across
        the whole range.

        Returns:
            Day records filtered to the exact requested window
        """
        start_day, end_day = to_utc_day(start), to_utc_day(end)
        months = months_between(start_day, end_day)
        total = sum(1 for _ in iter_days(start_day, end_day))

        collected: list[TransitDayData] = []
        done = 0

        for month in months:
            if token is not None and token.cancelled:
                break

            base = done

            def report(month_progress: Progress, base: int = base) -> None:
                if on_progress:
                    on_progress(Progress(loaded=base + month_progress.loaded, total=total))

            result = await self.fetch_month(subject_id, natal, month, start_day, end_day,
                                            options, report, token)
            collected.extend(result.days)
            window_start, window_end = intersect_window(month, start_day, end_day)
            done += (window_end - window_start).days + 1

        return filter_to_window(collected, start_day, end_day)
