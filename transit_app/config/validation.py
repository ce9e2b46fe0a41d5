"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any
from urllib.parse import urlparse

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class ValidationError:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_client_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate calculation client parameters."""
        errors = []

        if "base_url" in params:
            value = params["base_url"]
            parsed = urlparse(value) if isinstance(value, str) else None
            if parsed is None or not parsed.scheme or not parsed.netloc:
                errors.append(ValidationError(
                    field="base_url",
                    message="Must be an absolute http(s) URL",
                    value=value
                ))

        if "timeout_seconds" in params:
            value = params["timeout_seconds"]
            if not _is_number(value) or value <= 0:
                errors.append(ValidationError(
                    field="timeout_seconds",
                    message="Must be a positive number",
                    value=value
                ))

        for name in ("api_host_header", "api_key_header"):
            if name in params:
                value = params[name]
                if not isinstance(value, str) or not value:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a non-empty string",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_range_fetch_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate range fetcher parameters."""
        errors = []

        if "inter_call_delay_seconds" in params:
            value = params["inter_call_delay_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="inter_call_delay_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "transit_hour" in params:
            value = params["transit_hour"]
            if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value <= 23:
                errors.append(ValidationError(
                    field="transit_hour",
                    message="Must be an integer hour between 0 and 23",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_ephemeris_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate ephemeris fetcher parameters."""
        errors = []

        for name in ("chunk_size", "default_span_days"):
            if name in params:
                value = params[name]
                if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive integer",
                        value=value
                    ))

        if "chunk_delay_seconds" in params:
            value = params["chunk_delay_seconds"]
            if not _is_number(value) or value < 0:
                errors.append(ValidationError(
                    field="chunk_delay_seconds",
                    message="Must be a non-negative number",
                    value=value
                ))

        if "observer_latitude" in params:
            value = params["observer_latitude"]
            if not _is_number(value) or not -90 <= value <= 90:
                errors.append(ValidationError(
                    field="observer_latitude",
                    message="Must be a latitude between -90 and 90",
                    value=value
                ))

        if "observer_longitude" in params:
            value = params["observer_longitude"]
            if not _is_number(value) or not -180 <= value <= 180:
                errors.append(ValidationError(
                    field="observer_longitude",
                    message="Must be a longitude between -180 and 180",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_cache_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate cache parameters."""
        errors = []

        if "backend" in params:
            value = params["backend"]
            if value not in ("memory", "sqlite"):
                errors.append(ValidationError(
                    field="backend",
                    message="Must be 'memory' or 'sqlite'",
                    value=value
                ))

        for name in ("transit_ttl_days", "ephemeris_ttl_days", "max_entries",
                     "transit_version", "ephemeris_version"):
            if name in params:
                value = params[name]
                if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                    errors.append(ValidationError(
                        field=name,
                        message="Must be a positive integer",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_logging_params(params: dict[str, Any]) -> list[ValidationError]:
        """Validate logging parameters."""
        errors = []

        if "level" in params:
            value = params["level"]
            if not isinstance(value, str) or value.upper() not in LOG_LEVELS:
                errors.append(ValidationError(
                    field="level",
                    message=f"Must be one of {', '.join(LOG_LEVELS)}",
                    value=value
                ))

        for name in ("format_json", "include_caller"):
            if name in params and not isinstance(params[name], bool):
                errors.append(ValidationError(
                    field=name,
                    message="Must be a boolean",
                    value=params[name]
                ))

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ValidationError]:
        """Validate complete configuration."""
        errors = []

        if "client" in config:
            errors.extend(ConfigValidator.validate_client_params(config["client"]))

        if "range_fetch" in config:
            errors.extend(ConfigValidator.validate_range_fetch_params(config["range_fetch"]))

        if "ephemeris" in config:
            errors.extend(ConfigValidator.validate_ephemeris_params(config["ephemeris"]))

        if "cache" in config:
            errors.extend(ConfigValidator.validate_cache_params(config["cache"]))

        if "logging" in config:
            errors.extend(ConfigValidator.validate_logging_params(config["logging"]))

        return errors
