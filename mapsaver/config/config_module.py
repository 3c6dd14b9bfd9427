"""
Configuration management module for Static Map Saver.

Handles loading the .env file, accessing configuration values, validating
required keys and building the settings object handed to the clients.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional
from dotenv import load_dotenv


AIRTABLE_REQUIRED_KEYS = ["AIRTABLE_ORG_ID", "AIRTABLE_API_KEY"]
MAPBOX_REQUIRED_KEYS = ["MAPBOX_USERNAME", "MAPBOX_ACCESS_TOKEN"]
REQUIRED_KEYS = AIRTABLE_REQUIRED_KEYS + MAPBOX_REQUIRED_KEYS

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


class ConfigError(Exception):
    """Custom exception for configuration-related errors."""

    # Matches mapping_errors.ErrorKind.CONFIG
    kind = "config"


def load_config(env_path: str = ".env", required: bool = False) -> None:
    """
    Load environment variables from a .env file.

    Args:
        env_path: Path to the .env file (default: ".env")
        required: Raise ConfigError instead of warning when the file is missing

    Raises:
        ConfigError: If the file is missing and required is True
    """
    logger = logging.getLogger(__name__)

    if os.path.isfile(env_path):
        load_dotenv(env_path, override=True)
        logger.info(f"Loaded configuration from {env_path}")
    elif required:
        message = f"Invalid path to your .env file: {env_path}"
        logger.error(message)
        raise ConfigError(message)
    else:
        logger.warning(f"Configuration file {env_path} not found, using system environment variables only")


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value from environment variables.

    Args:
        key: Environment variable key
        default: Default value if key not found

    Returns:
        Configuration value or default
    """
    logger = logging.getLogger(__name__)

    value = os.getenv(key, default)

    if value == default and default is not None:
        logger.warning(f"Configuration key '{key}' not found, using default value: {default}")
    elif value is None:
        logger.warning(f"Configuration key '{key}' not found and no default provided")

    return value


def validate_config(required_keys: List[str]) -> None:
    """
    Validate that all required configuration keys are present and non-empty.

    Args:
        required_keys: List of required environment variable keys

    Raises:
        ConfigError: If any required key is missing or empty
    """
    logger = logging.getLogger(__name__)
    missing_keys = []
    empty_keys = []

    for key in required_keys:
        value = os.getenv(key)
        if value is None:
            missing_keys.append(key)
        elif value.strip() == "":
            empty_keys.append(key)

    if missing_keys or empty_keys:
        error_msg = "Configuration validation failed:"
        if missing_keys:
            error_msg += f" Missing keys: {', '.join(missing_keys)}."
        if empty_keys:
            error_msg += f" Empty keys: {', '.join(empty_keys)}."

        logger.error(error_msg)
        raise ConfigError(error_msg)

    logger.info(f"Configuration validation passed for keys: {', '.join(required_keys)}")


def parse_bool(key: str, value: Any) -> bool:
    """
    Interpret a configuration value as a boolean flag.

    Raises:
        ConfigError: If the value is not a recognised flag
    """
    if isinstance(value, bool):
        return value
    normalized = str(value).strip().lower()
    if normalized in _TRUE_VALUES:
        return True
    if normalized in _FALSE_VALUES:
        return False
    raise ConfigError(f"Configuration key '{key}' must be a boolean flag, got: {value!r}")


def parse_int(key: str, value: Any) -> int:
    """Interpret a configuration value as an integer."""
    try:
        return int(str(value).strip())
    except ValueError:
        raise ConfigError(f"Configuration key '{key}' must be an integer, got: {value!r}")


def parse_float(key: str, value: Any) -> float:
    """Interpret a configuration value as a float."""
    try:
        return float(str(value).strip())
    except ValueError:
        raise ConfigError(f"Configuration key '{key}' must be a number, got: {value!r}")


@dataclass(frozen=True)
class MapSaverSettings:
    """Settings for one map saving run, built once at startup."""

    # Airtable
    airtable_org_id: str = ""
    airtable_api_key: str = ""
    airtable_view: Optional[str] = None
    airtable_base_url: str = "https://api.airtable.com/v0/"
    use_airtable_cache: bool = False

    # MapBox
    mapbox_username: str = ""
    mapbox_access_token: str = ""
    mapbox_style_id: str = "streets-v11"
    mapbox_height: int = 600
    mapbox_width: int = 600
    mapbox_zoom_wide: float = 8
    mapbox_zoom_detail: float = 12
    mapbox_high_density: bool = False
    mapbox_base_url: str = "https://api.mapbox.com/styles/v1/"

    # Shared
    verify_ssl: bool = True
    image_dir: str = "images"
    cache_dir: str = "cache"
    log_level: str = "INFO"
    log_file: Optional[str] = "logs/map_saver.log"

    @classmethod
    def from_env(cls,
                 env_dir: str = None,
                 required_keys: List[str] = None) -> "MapSaverSettings":
        """
        Load the .env file from env_dir and build settings from the environment.

        Args:
            env_dir: Directory holding the .env file (defaults to the working directory)
            required_keys: Keys that must be present (defaults to REQUIRED_KEYS)

        Returns:
            Populated MapSaverSettings

        Raises:
            ConfigError: If the .env file is missing, a required key is missing
                or a value cannot be parsed
        """
        env_path = Path(env_dir or ".") / ".env"
        load_config(str(env_path), required=True)
        validate_config(REQUIRED_KEYS if required_keys is None else required_keys)

        high_density = os.getenv("MAPBOX_HIGH_DENSITY", os.getenv("MAPBOX_@2X", "0"))
        log_level = get_config("LOG_LEVEL", "INFO").upper()
        if parse_bool("DISPLAY_ERRORS", os.getenv("DISPLAY_ERRORS", "0")):
            log_level = "DEBUG"

        return cls(
            airtable_org_id=get_config("AIRTABLE_ORG_ID", ""),
            airtable_api_key=get_config("AIRTABLE_API_KEY", ""),
            airtable_view=os.getenv("AIRTABLE_VIEW") or None,
            airtable_base_url=get_config("AIRTABLE_BASE_URL", cls.airtable_base_url),
            use_airtable_cache=parse_bool(
                "AIRTABLE_API_CACHE_DATA", os.getenv("AIRTABLE_API_CACHE_DATA", "0")
            ),
            mapbox_username=get_config("MAPBOX_USERNAME", ""),
            mapbox_access_token=get_config("MAPBOX_ACCESS_TOKEN", ""),
            mapbox_style_id=get_config("MAPBOX_STYLE_ID", cls.mapbox_style_id),
            mapbox_height=parse_int("MAPBOX_HEIGHT", get_config("MAPBOX_HEIGHT", cls.mapbox_height)),
            mapbox_width=parse_int("MAPBOX_WIDTH", get_config("MAPBOX_WIDTH", cls.mapbox_width)),
            mapbox_zoom_wide=parse_float(
                "MAPBOX_ZOOM_WIDE", get_config("MAPBOX_ZOOM_WIDE", cls.mapbox_zoom_wide)
            ),
            mapbox_zoom_detail=parse_float(
                "MAPBOX_ZOOM_DETAIL", get_config("MAPBOX_ZOOM_DETAIL", cls.mapbox_zoom_detail)
            ),
            mapbox_high_density=parse_bool("MAPBOX_HIGH_DENSITY", high_density),
            mapbox_base_url=get_config("MAPBOX_BASE_URL", cls.mapbox_base_url),
            verify_ssl=parse_bool("VERIFY_SSL", os.getenv("VERIFY_SSL", "1")),
            image_dir=get_config("MAP_SAVER_IMAGE_DIR", cls.image_dir),
            cache_dir=get_config("MAP_SAVER_CACHE_DIR", cls.cache_dir),
            log_level=log_level,
            log_file=os.getenv("LOG_FILE", cls.log_file) or None,
        )
