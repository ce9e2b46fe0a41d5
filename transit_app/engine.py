"""
Timeline engine coordinator.

Wires configuration, the calculation client, caches and fetchers into one
object and hands out orchestrators bound to them.
"""

from pathlib import Path
from typing import Any, Optional, Sequence

import httpx
import structlog

from .client.calculation import CalculationClient
from .config.defaults import CacheParams, PipelineConfig
from .config.loader import ConfigLoader
from .data.models import ChartOptions, Ephemeris, Subject, TransitDayData
from .fetch.ephemeris_fetcher import EphemerisFetcher, EphemerisProgressCallback
from .fetch.range_fetcher import ProgressCallback, RangeFetcher
from .logging.config import configure_logging
from .persistence.backends import CacheBackend, MemoryCacheBackend, SqliteCacheBackend
from .persistence.caches import (
    CachePolicy,
    EphemerisCache,
    MonthCache,
    cleanup_expired_caches,
    clear_all_caches,
)
from .state.cancellation import CancellationToken
from .state.orchestrator import (
    EphemerisTimelineOrchestrator,
    Listener,
    TransitTimelineOrchestrator,
)
from .utils.dates import DateLike

logger = structlog.get_logger(__name__)


def build_backend(params: CacheParams, table: str) -> CacheBackend:
    """Cache backend selected by configuration."""
    if params.backend == "sqlite":
        return SqliteCacheBackend(params.sqlite_path, table=table)
    return MemoryCacheBackend()


class TimelineEngine:
    """
    Main coordinator for transit and ephemeris timelines.

    Manages the pipeline:
    Config → Calculation client → Caches → Fetchers → Orchestrators
    """

    def __init__(self, config: Optional[PipelineConfig] = None,
                 config_dir: Optional[str] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None,
                 setup_logging: bool = False) -> None:
        """Initialize the engine from explicit or loaded configuration."""
        if config is None:
            loader = ConfigLoader.create(Path(config_dir) if config_dir else None)
            config = loader.load()
        self.config = config

        if setup_logging:
            configure_logging(
                level=config.logging.level,
                format_json=config.logging.format_json,
                include_caller=config.logging.include_caller,
            )

        self.client = CalculationClient(config.client, transport=transport)

        cache_params = config.cache
        self.month_cache = MonthCache(
            build_backend(cache_params, "transits"),
            CachePolicy.from_days(cache_params.transit_ttl_days, cache_params.transit_version,
                                  cache_params.max_entries),
        )
        self.ephemeris_cache = EphemerisCache(
            build_backend(cache_params, "ephemeris"),
            CachePolicy.from_days(cache_params.ephemeris_ttl_days, cache_params.ephemeris_version,
                                  cache_params.max_entries),
        )

        self.range_fetcher = RangeFetcher(self.client, self.month_cache, config.range_fetch)
        self.ephemeris_fetcher = EphemerisFetcher(self.client, self.ephemeris_cache, config.ephemeris)

        logger.info(
            "Timeline engine initialized",
            base_url=config.client.base_url,
            cache_backend=cache_params.backend,
        )

    async def __aenter__(self) -> "TimelineEngine":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    def transit_orchestrator(self, listener: Listener) -> TransitTimelineOrchestrator:
        """New transit orchestrator publishing to ``listener``."""
        return TransitTimelineOrchestrator(self.range_fetcher, listener)

    def ephemeris_orchestrator(self, listener: Listener) -> EphemerisTimelineOrchestrator:
        """New ephemeris orchestrator publishing to ``listener``."""
        return EphemerisTimelineOrchestrator(self.ephemeris_fetcher, listener)

    async def fetch_transits(
        self,
        subject_id: str,
        natal: Subject,
        start: DateLike,
        end: DateLike,
        options: Optional[ChartOptions] = None,
        on_progress: Optional[ProgressCallback] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[TransitDayData]:
        """One-shot transit range fetch without an orchestrator."""
        return await self.range_fetcher.fetch_range(subject_id, natal, start, end,
                                                    options, on_progress, token)

    async def fetch_ephemeris(
        self,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
        active_points: Optional[Sequence[str]] = None,
        on_progress: Optional[EphemerisProgressCallback] = None,
        skip_cache: bool = False,
        token: Optional[CancellationToken] = None,
    ) -> list[Ephemeris]:
        """One-shot ephemeris fetch without an orchestrator."""
        return await self.ephemeris_fetcher.fetch_ephemeris(start, end, active_points,
                                                            on_progress, skip_cache, token)

    async def cleanup_caches(self) -> int:
        """Remove expired entries from both caches."""
        return await cleanup_expired_caches(self.month_cache, self.ephemeris_cache)

    async def clear_caches(self) -> bool:
        """Reset both caches."""
        return await clear_all_caches(self.month_cache, self.ephemeris_cache)

    async def aclose(self) -> None:
        await self.client.aclose()
        await self.month_cache.backend.close()
        await self.ephemeris_cache.backend.close()
        logger.info("Timeline engine closed")
