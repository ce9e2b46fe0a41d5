"""
Timeline orchestration with generation-tagged requests.

Each request gets a new generation and a fresh cancellation token; starting
a request cancels the previous token. Work belonging to a superseded or
closed request keeps running to its next checkpoint but never publishes.
"""

import asyncio
from dataclasses import replace
from typing import Any, Callable, Generic, Optional, TypeVar

from ..data.models import Ephemeris, Progress, TransitDayData
from ..errors import NoDataError, PipelineFailureError
from ..fetch.ephemeris_fetcher import EphemerisFetcher
from ..fetch.range_fetcher import RangeFetcher
from ..logging.config import get_request_logger, log_request_transition
from ..utils.dates import filter_to_window, month_key, months_between
from .cancellation import CancellationToken
from .models import EphemerisRequest, RequestState, TimelineSnapshot, TransitRequest

T = TypeVar("T")
R = TypeVar("R")

Listener = Callable[[TimelineSnapshot], None]

logger = get_request_logger(__name__)


class TimelineOrchestrator(Generic[T, R]):
    """Generation, cancellation and publication shared by both timelines."""

    kind = "timeline"

    def __init__(self, listener: Listener):
        self.listener = listener
        self.generation = 0
        self.snapshot: TimelineSnapshot[T] = TimelineSnapshot(generation=0, state=RequestState.IDLE)
        self._token: Optional[CancellationToken] = None
        self._task: Optional[asyncio.Task] = None
        self._last_request: Optional[R] = None
        self._mounted = True

    @property
    def mounted(self) -> bool:
        return self._mounted

    def _begin(self, request: R, context: dict[str, Any]) -> CancellationToken:
        """Open a new generation, superseding the current one."""
        if not self._mounted:
            raise RuntimeError(f"{self.kind} orchestrator is closed")

        if self._token is not None and not self._token.cancelled:
            self._token.cancel()
            if self.snapshot.state == RequestState.FETCHING:
                log_request_transition(
                    logger,
                    generation=self._token.generation,
                    from_state=RequestState.FETCHING.value,
                    to_state=RequestState.SUPERSEDED.value,
                    trigger="new_request",
                    context={"kind": self.kind, "superseded_by": self.generation + 1},
                )

        self.generation += 1
        self._token = CancellationToken(self.generation)
        self._last_request = request

        log_request_transition(
            logger,
            generation=self.generation,
            from_state=RequestState.IDLE.value,
            to_state=RequestState.FETCHING.value,
            trigger="request",
            context={"kind": self.kind, **context},
        )
        return self._token

    def _publish(self, snapshot: TimelineSnapshot[T], token: CancellationToken) -> bool:
        """Hand ``snapshot`` to the listener if its request is still current."""
        if not self._mounted or token.cancelled or token.generation != self.generation:
            return False

        self.snapshot = snapshot
        self.listener(snapshot)
        return True

    def _settle(self, snapshot: TimelineSnapshot[T], token: CancellationToken,
                state: RequestState, error: Optional[Exception] = None,
                context: Optional[dict[str, Any]] = None) -> None:
        """Publish the final state of a request."""
        if self._publish(snapshot.with_state(state, error), token):
            log_request_transition(
                logger,
                generation=token.generation,
                from_state=RequestState.FETCHING.value,
                to_state=state.value,
                trigger="fetch_complete" if error is None else "fetch_failed",
                context={"kind": self.kind, **(context or {})},
            )

    def _start(self, coro: Any) -> asyncio.Task:
        self._task = asyncio.create_task(coro)
        return self._task

    async def wait(self) -> None:
        """Wait for the current request to finish publishing."""
        if self._task is not None:
            await self._task

    def close(self) -> None:
        """Stop publishing for good; in-flight work is abandoned."""
        self._mounted = False
        if self._token is not None:
            self._token.cancel()
        logger.debug("Orchestrator closed", kind=self.kind, generation=self.generation)


class TransitTimelineOrchestrator(TimelineOrchestrator[TransitDayData, TransitRequest]):
    """
    Drives a RangeFetcher month by month and publishes incremental results.

    Progress counts months. After every month the listener receives the
    concatenation of all months so far, filtered to the requested window.
    """

    kind = "transits"

    def __init__(self, fetcher: RangeFetcher, listener: Listener):
        super().__init__(listener)
        self.fetcher = fetcher

    def request(self, req: TransitRequest) -> asyncio.Task:
        """
        Start a new request, superseding any running one.

        Must be called with a running event loop. The empty fetching
        snapshot is published before this returns.
        """
        months = months_between(req.start, req.end)
        token = self._begin(req, {
            "subject_id": req.subject_id,
            "start": req.start.isoformat(),
            "end": req.end.isoformat(),
            "months": len(months),
        })

        snapshot: TimelineSnapshot[TransitDayData] = TimelineSnapshot(
            generation=token.generation,
            state=RequestState.FETCHING,
            progress=Progress(loaded=0, total=len(months)),
        )
        self._publish(snapshot, token)

        return self._start(self._run(req, months, token, snapshot))

    def retry(self) -> Optional[asyncio.Task]:
        """Reissue the last request."""
        if self._last_request is None:
            return None
        return self.request(self._last_request)

    async def _run(self, req: TransitRequest, months: list, token: CancellationToken,
                   snapshot: TimelineSnapshot[TransitDayData]) -> None:
        loaded: dict[str, tuple[TransitDayData, ...]] = {}
        progress = snapshot.progress

        for month in months:
            if token.cancelled:
                return

            key = month_key(month)
            try:
                result = await self.fetcher.fetch_month(
                    req.subject_id, req.natal, month, req.start, req.end,
                    req.options, token=token,
                )
                loaded[key] = result.days
            except Exception as e:
                logger.error(
                    "Failed to fetch transits for month",
                    generation=token.generation,
                    month=key,
                    error=str(e),
                    error_type=type(e).__name__,
                )

            if token.cancelled:
                return

            # Months are concatenated in calendar order regardless of arrival
            combined = [day for m in months for day in loaded.get(month_key(m), ())]
            progress = progress.advance()
            snapshot = snapshot.with_data(tuple(filter_to_window(combined, req.start, req.end)), progress)
            self._publish(snapshot, token)

        if token.cancelled:
            return

        if not snapshot.data:
            error = NoDataError(
                "No transit data could be fetched",
                start=req.start.isoformat(),
                end=req.end.isoformat(),
            )
            self._settle(snapshot, token, RequestState.FAILED, error,
                         {"subject_id": req.subject_id})
            return

        self._settle(snapshot, token, RequestState.SETTLED,
                     context={"subject_id": req.subject_id, "days": len(snapshot.data)})


class EphemerisTimelineOrchestrator(TimelineOrchestrator[Ephemeris, EphemerisRequest]):
    """Drives an EphemerisFetcher and republishes each progress batch."""

    kind = "ephemeris"

    def __init__(self, fetcher: EphemerisFetcher, listener: Listener):
        super().__init__(listener)
        self.fetcher = fetcher

    def request(self, req: Optional[EphemerisRequest] = None) -> asyncio.Task:
        """Start a new request, superseding any running one."""
        req = req or EphemerisRequest()
        token = self._begin(req, req.describe())

        snapshot: TimelineSnapshot[Ephemeris] = TimelineSnapshot(
            generation=token.generation,
            state=RequestState.FETCHING,
        )
        self._publish(snapshot, token)

        return self._start(self._run(req, token, snapshot))

    def retry(self) -> Optional[asyncio.Task]:
        """Reissue the last request."""
        if self._last_request is None:
            return None
        return self.request(self._last_request)

    def refetch(self) -> asyncio.Task:
        """Reissue the last request, bypassing the cache."""
        req = self._last_request or EphemerisRequest()
        return self.request(replace(req, skip_cache=True))

    async def _run(self, req: EphemerisRequest, token: CancellationToken,
                   snapshot: TimelineSnapshot[Ephemeris]) -> None:
        latest = snapshot

        def on_progress(batch: list[Ephemeris], progress: Progress) -> None:
            nonlocal latest
            candidate = latest.with_data(tuple(batch), progress)
            if self._publish(candidate, token):
                latest = candidate

        try:
            result = await self.fetcher.fetch_ephemeris(
                start=req.start,
                end=req.end,
                active_points=req.active_points,
                on_progress=on_progress,
                skip_cache=req.skip_cache,
                token=token,
            )
        except PipelineFailureError as e:
            logger.error(
                "Ephemeris fetch failed",
                generation=token.generation,
                error=str(e),
                error_type=type(e).__name__,
            )
            self._settle(latest, token, RequestState.FAILED, e)
            return

        if token.cancelled:
            return

        final = latest.with_data(tuple(result), Progress(loaded=len(result), total=len(result)))
        self._settle(final, token, RequestState.SETTLED, context={"days": len(result)})
