"""
Logging setup for MapFlam.

Handlers live on the root logger so warnings from Playwright, requests and
googlemaps reach the same console and file as MapFlam's own messages.
MapFlam code logs through the "mapflam" logger via the log_* helpers.
"""

import logging
from pathlib import Path
from typing import Optional


APP_LOGGER = "mapflam"
DEFAULT_LOG_FILE = "logs/mapflam.log"

CONSOLE_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'
FILE_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Chatty at DEBUG: connection pools, image plugins, the event loop
QUIET_LOGGERS = ("urllib3", "PIL", "asyncio")

_logger_initialized = False


def _console_handler() -> logging.Handler:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def _file_handler(log_file: str) -> logging.Handler:
    Path(log_file).parent.mkdir(parents=True, exist_ok=True)

    handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt=DATE_FORMAT))
    return handler


def initialize_logger(log_level: str = "INFO",
                      log_file: Optional[str] = DEFAULT_LOG_FILE) -> None:
    """
    Configure logging once per process; later calls are ignored.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL (unknown -> INFO)
        log_file: DEBUG-level log file, or None for console only
    """
    global _logger_initialized

    if _logger_initialized:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))
    root_logger.handlers.clear()

    root_logger.addHandler(_console_handler())
    if log_file:
        root_logger.addHandler(_file_handler(log_file))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    _logger_initialized = True

    logging.getLogger(APP_LOGGER).info(
        f"Logger initialized with level {log_level}, file: {log_file or 'none'}"
    )


def log_debug(message: str) -> None:
    """Log a debug message."""
    logging.getLogger(APP_LOGGER).debug(message)


def log_info(message: str) -> None:
    """Log an info message."""
    logging.getLogger(APP_LOGGER).info(message)


def log_warning(message: str) -> None:
    """Log a warning message."""
    logging.getLogger(APP_LOGGER).warning(message)


def log_error(message: str) -> None:
    """
    Log an error message.

    Args:
        message: Message to log; include the failed operation and its cause
    """
    logging.getLogger(APP_LOGGER).error(message)
