"""
Centralized logging configuration for the transit timeline pipeline.

Every component logs through structlog configured here, so fetch failures,
cache decisions and orchestrator transitions share one structured format.
Credential-like fields are masked before rendering.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, FilteringBoundLogger, WrappedLogger

REDACTED = "***"

# Compared case-insensitively; header names and config field names
CREDENTIAL_KEYS = frozenset({
    "api_key",
    "authorization",
    "x-rapidapi-key",
})


def redact_credentials(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values in the event and in any nested headers mapping."""
    for key, value in list(event_dict.items()):
        if key.lower() in CREDENTIAL_KEYS and value:
            event_dict[key] = REDACTED
        elif key == "headers" and isinstance(value, dict):
            event_dict[key] = {
                name: REDACTED if name.lower() in CREDENTIAL_KEYS and val else val
                for name, val in value.items()
            }
    return event_dict


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the pipeline.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: If True, output JSON lines; otherwise console output
        include_timestamp: Include an ISO timestamp
        include_caller: Include filename and line number
        extra_processors: Additional processors, run before redaction
    """
    log_level = getattr(logging, level.upper())

    # force=True so a second engine can reconfigure the root handler
    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s",
        force=True,
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    processors.append(redact_credentials)

    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_fetch_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for the range and ephemeris fetchers.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound to the fetch subsystem
    """
    return get_logger(name).bind(subsystem="fetch")


def get_request_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for orchestrator request lifecycles.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Structlog logger bound to the orchestrator subsystem
    """
    return get_logger(name).bind(
        subsystem="orchestrator",
        audit_trail=True
    )


def log_request_transition(
    logger: FilteringBoundLogger,
    generation: int,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a request lifecycle transition with standardized format.

    Args:
        logger: Structlog logger instance
        generation: Generation id of the request
        from_state: Current state
        to_state: Target state
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        generation=generation,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("request_transition")
