"""Configuration utilities for Respimg."""

from .loader import (
    Config,
    ConfigModel,
    LoggingSettings,
    OutputSettings,
    TransformOptions,
    load_config,
    resolve_options,
)

__all__ = [
    "Config",
    "ConfigModel",
    "LoggingSettings",
    "OutputSettings",
    "TransformOptions",
    "load_config",
    "resolve_options",
]
