"""
Logging utilities for Static Map Saver.

Provides centralized logging configuration and convenience methods
for consistent logging across the application.
"""

import logging
from pathlib import Path
from typing import Optional


LOGGER_NAME = "mapsaver"

# Flag to track if logger has been initialized to ensure idempotency
_logger_initialized = False


def initialize_logger(log_level: str = "INFO",
                      log_file: Optional[str] = "logs/map_saver.log") -> None:
    """
    Initialize the application logger with console and optional file handlers.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Path to log file, or None to log to the console only
    """
    global _logger_initialized

    if _logger_initialized:
        return

    logger = logging.getLogger(LOGGER_NAME)
    level = getattr(logging, log_level.upper(), logging.INFO)
    logger.setLevel(level)

    # Clear any existing handlers to prevent duplicates
    logger.handlers.clear()

    console_formatter = logging.Formatter(
        '%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler = logging.StreamHandler()
    console_handler.setLevel(min(level, logging.INFO))
    console_handler.setFormatter(console_formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(file_formatter)
        logger.addHandler(file_handler)

    _logger_initialized = True

    logger.info(f"Logger initialized with level {log_level}, file: {log_file}")


def log_debug(message: str) -> None:
    """Log a debug message."""
    logging.getLogger(LOGGER_NAME).debug(message)


def log_info(message: str) -> None:
    """
    Log an info message.

    Args:
        message: Message to log
    """
    logging.getLogger(LOGGER_NAME).info(message)


def log_warning(message: str) -> None:
    """
    Log a warning message.

    Args:
        message: Message to log
    """
    logging.getLogger(LOGGER_NAME).warning(message)


def log_error(message: str) -> None:
    """
    Log an error message.

    Args:
        message: Message to log
    """
    logging.getLogger(LOGGER_NAME).error(message)
