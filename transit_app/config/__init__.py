"""Pipeline configuration: defaults, layered loading and validation."""

from .defaults import PipelineConfig, get_default_config
from .loader import ConfigLoader

__all__ = ["PipelineConfig", "get_default_config", "ConfigLoader"]
