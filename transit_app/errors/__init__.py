"""
Error classification for the transit timeline pipeline.

Day-level errors are recoverable and never leave the fetchers; pipeline
failures abort a fetch and reach the orchestrator.
"""

from .day_level import (
    DayFetchError,
    CalculationTimeoutError,
    CalculationApiError,
    CalculationNetworkError,
    MalformedResponseError,
    IncompleteResponseError,
)
from .pipeline_failures import (
    PipelineFailureError,
    EphemerisValidationError,
    NoDataError,
    CacheUnavailableError,
    ConfigurationError,
)

__all__ = [
    # Day-level errors
    "DayFetchError",
    "CalculationTimeoutError",
    "CalculationApiError",
    "CalculationNetworkError",
    "MalformedResponseError",
    "IncompleteResponseError",
    # Pipeline failures
    "PipelineFailureError",
    "EphemerisValidationError",
    "NoDataError",
    "CacheUnavailableError",
    "ConfigurationError",
]
