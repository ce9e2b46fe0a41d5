"""
Range-level failure classifications.

These exceptions abort a whole fetch and propagate to the orchestrator,
which turns them into a retry-capable error state.
"""

from typing import Optional, Dict, Any


class PipelineFailureError(Exception):
    """Base class for failures that surface to the caller."""

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.context = context or {}
        self.recoverable = False


class EphemerisValidationError(PipelineFailureError):
    """Assembled ephemeris batch failed structural validation."""

    def __init__(self, message: str, problems: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.problems = problems or []


class NoDataError(PipelineFailureError):
    """Every day of the requested range failed."""

    def __init__(self, message: str, start: Optional[str] = None,
                 end: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.start = start
        self.end = end


class CacheUnavailableError(PipelineFailureError):
    """Cache backend could not be read or written."""

    def __init__(self, message: str, operation: Optional[str] = None,
                 key: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.operation = operation
        self.key = key


class ConfigurationError(PipelineFailureError):
    """Merged configuration did not pass validation."""

    def __init__(self, message: str, errors: Optional[list] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.errors = errors or []
