"""Configuration loader with layered parameter precedence."""

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..errors import ConfigurationError
from .defaults import (
    CacheParams,
    ClientParams,
    EphemerisParams,
    LoggingParams,
    PipelineConfig,
    RangeFetchParams,
    get_default_config,
)
from .validation import ConfigValidator

CONFIG_FILENAME = "pipeline.yaml"

# Environment variable -> (section, field)
ENV_OVERRIDES = {
    "ASTROLOGER_API_URL": ("client", "base_url"),
    "ASTROLOGER_API_KEY": ("client", "api_key"),
    "ASTROLOGER_API_HOST": ("client", "api_host"),
    "ASTROLOGER_API_HOST_HEADER": ("client", "api_host_header"),
    "ASTROLOGER_API_KEY_HEADER": ("client", "api_key_header"),
}

SECTION_TYPES = {
    "client": ClientParams,
    "range_fetch": RangeFetchParams,
    "ephemeris": EphemerisParams,
    "cache": CacheParams,
    "logging": LoggingParams,
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with layered precedence."""

    config_dir: Path
    defaults: PipelineConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from pipeline.yaml, if present."""
        config_file = self.config_dir / CONFIG_FILENAME

        if not config_file.exists():
            return {}

        with open(config_file) as f:
            file_config = yaml.safe_load(f)

        return file_config or {}

    def load_env_config(self, environ: Optional[Mapping[str, str]] = None) -> dict[str, Any]:
        """Collect overrides from ASTROLOGER_* environment variables."""
        environ = os.environ if environ is None else environ
        config: dict[str, Any] = {}

        for var, (section, field_name) in ENV_OVERRIDES.items():
            value = environ.get(var)
            if value:
                config.setdefault(section, {})[field_name] = value

        return config

    def merge_config(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> dict[str, Any]:
        """
        Merge configuration with layered precedence.

        Priority order:
        1. Call-site overrides (highest priority)
        2. pipeline.yaml in the config directory
        3. ASTROLOGER_* environment variables
        4. Defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)
        config = self._deep_merge(config, self.load_env_config(environ))
        config = self._deep_merge(config, self.load_file_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load(
        self,
        overrides: Optional[dict[str, Any]] = None,
        environ: Optional[Mapping[str, str]] = None
    ) -> PipelineConfig:
        """Merge, validate and build the typed configuration."""
        merged = self.merge_config(overrides, environ)

        errors = ConfigValidator.validate_config(merged)
        if errors:
            messages = [f"{err.field}: {err.message} (got: {err.value})" for err in errors]
            raise ConfigurationError(
                f"Invalid configuration: {'; '.join(messages)}",
                errors=errors
            )

        return build_config(merged)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result


def build_config(merged: dict[str, Any]) -> PipelineConfig:
    """Build a PipelineConfig from a merged dictionary, ignoring unknown keys."""
    sections = {}
    for section, params_type in SECTION_TYPES.items():
        known = {f.name for f in fields(params_type)}
        values = {k: v for k, v in merged.get(section, {}).items() if k in known}
        sections[section] = params_type(**values)
    return PipelineConfig(**sections)
