"""Default configuration parameters for the transit timeline pipeline."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ClientParams:
    """Calculation service connection parameters."""
    base_url: str = "https://astrologer.p.rapidapi.com/api/v4"
    api_key: str = ""
    api_host: str = "astrologer.p.rapidapi.com"
    api_host_header: str = "X-RapidAPI-Host"
    api_key_header: str = "X-RapidAPI-Key"
    timeout_seconds: float = 15.0                  # Per-call timeout
    user_agent: str = "transit-app/0.1"


@dataclass(frozen=True)
class RangeFetchParams:
    """Transit range fetching parameters."""
    inter_call_delay_seconds: float = 0.05         # Pause between day calls
    transit_hour: int = 12                         # Transit instant, UTC hour


@dataclass(frozen=True)
class EphemerisParams:
    """Sky ephemeris fetching parameters."""
    chunk_size: int = 10                           # Days per cached batch
    chunk_delay_seconds: float = 0.05              # Pause between cached batches
    default_span_days: int = 365
    observer_name: str = "Ephemeris"
    observer_city: str = "Greenwich"
    observer_nation: str = "GB"
    observer_latitude: float = 51.4778
    observer_longitude: float = 0.0
    observer_hour: int = 12


@dataclass(frozen=True)
class CacheParams:
    """Month and ephemeris cache parameters."""
    backend: str = "memory"                        # "memory" or "sqlite"
    sqlite_path: str = "transit_cache.db"
    transit_ttl_days: int = 5
    transit_version: int = 2                       # Bump to invalidate every month entry
    ephemeris_ttl_days: int = 30
    ephemeris_version: int = 1
    max_entries: int = 500                         # Oldest entries evicted beyond this


@dataclass(frozen=True)
class LoggingParams:
    """Logging output parameters."""
    level: str = "INFO"
    format_json: bool = False
    include_caller: bool = False                   # Add filename and line number


@dataclass(frozen=True)
class PipelineConfig:
    """Complete pipeline configuration."""
    client: ClientParams
    range_fetch: RangeFetchParams
    ephemeris: EphemerisParams
    cache: CacheParams
    logging: LoggingParams


def get_default_config() -> PipelineConfig:
    """Get the default configuration instance."""
    return PipelineConfig(
        client=ClientParams(),
        range_fetch=RangeFetchParams(),
        ephemeris=EphemerisParams(),
        cache=CacheParams(),
        logging=LoggingParams(),
    )
