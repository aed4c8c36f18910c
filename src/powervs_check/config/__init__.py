"""Typed settings for powervs-check and the loader that layers them."""

from powervs_check.config.errors import (
    ConfigError,
    ConfigFileNotFoundError,
    ConfigValidationError,
    PlaceholderResolutionError,
)
from powervs_check.config.loader import (
    deep_merge,
    environment_overrides,
    load_config,
    validate_settings,
)
from powervs_check.config.models import (
    AppSettings,
    CloudSettings,
    DiscoverySettings,
    LoggingSettings,
    MetricsSettings,
    ServiceSettings,
    WatchSettings,
)

__all__ = [
    "AppSettings",
    "CloudSettings",
    "ConfigError",
    "ConfigFileNotFoundError",
    "ConfigValidationError",
    "DiscoverySettings",
    "LoggingSettings",
    "MetricsSettings",
    "PlaceholderResolutionError",
    "ServiceSettings",
    "WatchSettings",
    "deep_merge",
    "environment_overrides",
    "load_config",
    "validate_settings",
]
