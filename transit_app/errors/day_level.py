"""
Day-level error classifications for calculation service calls.

These exceptions describe a single day that could not be computed. They are
always caught by the fetchers, logged, and the day is skipped.
"""

from typing import Optional, Dict, Any


class DayFetchError(Exception):
    """Base class for single-day failures that are skipped, never retried."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = True


class CalculationTimeoutError(DayFetchError):
    """The calculation service did not answer within the per-call timeout."""

    def __init__(self, message: str, timeout_seconds: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.timeout_seconds = timeout_seconds


class CalculationApiError(DayFetchError):
    """The calculation service answered with a non-2xx status."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response_text: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status_code = status_code
        self.response_text = response_text


class CalculationNetworkError(DayFetchError):
    """Connection-level failure talking to the calculation service."""

    def __init__(self, message: str, endpoint: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.endpoint = endpoint


class MalformedResponseError(DayFetchError):
    """Response body exists but cannot be decoded or has the wrong shape."""

    def __init__(self, message: str, raw_data: Optional[str] = None,
                 expected_format: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.raw_data = raw_data
        self.expected_format = expected_format


class IncompleteResponseError(DayFetchError):
    """Response decoded but reported a non-OK status or lacks required data."""

    def __init__(self, message: str, status: Optional[str] = None,
                 missing_fields: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status
        self.missing_fields = missing_fields or []
