"""Convenience exports for the configuration package."""

from .loader import ConfigError, find_config, load_config, save_config
from .logging_conf import JSONFormatter, configure_logging
from .schemas import StambaughConfig, resolve_config
from .settings import ENV_PREFIX, Settings, get_settings, reset_settings_cache

__all__ = [
    "ConfigError",
    "find_config",
    "load_config",
    "save_config",
    "JSONFormatter",
    "configure_logging",
    "StambaughConfig",
    "resolve_config",
    "ENV_PREFIX",
    "Settings",
    "get_settings",
    "reset_settings_cache",
]
