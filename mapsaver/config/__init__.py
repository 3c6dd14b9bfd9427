"""Configuration and logging helpers for Static Map Saver."""

from .config_module import (
    ConfigError,
    MapSaverSettings,
    get_config,
    load_config,
    validate_config,
)
from .logger_module import initialize_logger, log_debug, log_error, log_info, log_warning

__all__ = [
    "ConfigError",
    "MapSaverSettings",
    "get_config",
    "load_config",
    "validate_config",
    "initialize_logger",
    "log_debug",
    "log_info",
    "log_warning",
    "log_error",
]
