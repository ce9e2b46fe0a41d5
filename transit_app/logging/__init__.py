"""
Logging configuration and utilities for the transit timeline pipeline.
"""
from .config import (
    configure_logging,
    get_fetch_logger,
    get_logger,
    get_request_logger,
    log_request_transition,
    redact_credentials,
)

__all__ = [
    "configure_logging",
    "redact_credentials",
    "get_logger",
    "get_fetch_logger",
    "get_request_logger",
    "log_request_transition",
]
