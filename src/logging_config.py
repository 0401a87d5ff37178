"""
Centralized logging configuration with rotating file handlers.

This module provides logging for debugging calibration drift, route
planning and store synchronisation problems during indoor navigation.

Usage:
    from src.logging_config import setup_logging
    setup_logging()  # Call once at application startup
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

# Log directory (relative to project root)
LOG_DIR = Path(__file__).parent.parent / "logs"

# Log format with function name and line number for debugging
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Rotation settings: 5 MB per file, keep 5 backups (25 MB total max)
MAX_LOG_SIZE_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5


def _rotating_handler(filename: str, level: int, formatter: logging.Formatter) -> RotatingFileHandler:
    handler = RotatingFileHandler(
        LOG_DIR / filename,
        maxBytes=MAX_LOG_SIZE_BYTES,
        backupCount=BACKUP_COUNT,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> None:
    """
    Configure logging with console and rotating file handlers.

    Sets up the following outputs:
    - Console: Shows INFO and above (user-facing messages)
    - logs/navigation.log: routing, calibration and windowing (DEBUG and above)
    - logs/store.log: document store traffic (DEBUG and above)

    Args:
        console_level: Minimum log level for console output (default: INFO)
        file_level: Minimum log level for file output (default: DEBUG)

    Example:
        # At application startup
        from src.logging_config import setup_logging
        setup_logging()

        # For verbose console output during debugging
        setup_logging(console_level=logging.DEBUG)
    """
    # Create logs directory if it doesn't exist
    LOG_DIR.mkdir(exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    # Get root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, let handlers filter

    # Clear any existing handlers (prevents duplicate logs on re-init)
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Attach file handlers to specific loggers
    navigation_logger = logging.getLogger("src.navigation")
    navigation_logger.handlers.clear()
    navigation_logger.addHandler(_rotating_handler("navigation.log", file_level, formatter))

    store_logger = logging.getLogger("src.store")
    store_logger.handlers.clear()
    store_logger.addHandler(_rotating_handler("store.log", file_level, formatter))

    # Suppress noisy third-party loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("bosdyn").setLevel(logging.WARNING)

    root_logger.info("Logging initialized - console: %s, file: %s",
                     logging.getLevelName(console_level),
                     logging.getLevelName(file_level))
