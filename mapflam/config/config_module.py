"""
Configuration management module for MapFlam.

Settings come from the process environment, optionally seeded from a .env
file. Values are read lazily at the point of use, so tests and the CLI can
change the environment before components are built.
"""

import os
import logging
from typing import Any, Callable, List, Optional, TypeVar
from dotenv import load_dotenv


DEFAULT_ENV_PATH = ".env"

T = TypeVar("T")


class ConfigError(Exception):
    """Raised for missing or malformed configuration values."""
    pass


def load_config(env_path: str = DEFAULT_ENV_PATH) -> bool:
    """
    Load environment variables from a .env file, overriding existing ones.

    Args:
        env_path: Path to the .env file (default: ".env")

    Returns:
        True if the file existed and was loaded
    """
    logger = logging.getLogger(__name__)

    if not os.path.exists(env_path):
        logger.warning(f"Configuration file {env_path} not found, using system environment variables only")
        return False

    load_dotenv(env_path, override=True)
    logger.info(f"Loaded configuration from {env_path}")
    return True


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a raw configuration value.

    Args:
        key: Environment variable name
        default: Returned when the variable is not set at all

    Returns:
        The string value (possibly empty) or the default
    """
    value = os.getenv(key)
    if value is not None:
        return value

    logger = logging.getLogger(__name__)
    if default is not None:
        logger.debug(f"Configuration key '{key}' not set, using default value: {default}")
    else:
        logger.debug(f"Configuration key '{key}' not set and no default provided")
    return default


def _parse_config(key: str, default: T, parse: Callable[[str], T], kind: str) -> T:
    value = get_config(key)
    if value is None or not value.strip():
        return default

    try:
        return parse(value.strip())
    except ValueError:
        raise ConfigError(f"Configuration key '{key}' must be {kind}, got '{value}'")


def get_float_config(key: str, default: float) -> float:
    """
    Get a configuration value parsed as a float; blank means default.

    Raises:
        ConfigError: If the value is set but is not a number
    """
    return _parse_config(key, default, float, "a number")


def get_int_config(key: str, default: int) -> int:
    """
    Get a configuration value parsed as an integer; blank means default.

    Raises:
        ConfigError: If the value is set but is not an integer
    """
    return _parse_config(key, default, int, "an integer")


def validate_config(required_keys: List[str], context: Optional[str] = None) -> None:
    """
    Check that every required key is set to a non-blank value.

    Args:
        required_keys: Environment variable names
        context: Feature needing the keys, named in the error message

    Raises:
        ConfigError: Listing the missing and the blank keys
    """
    logger = logging.getLogger(__name__)

    missing_keys = [key for key in required_keys if os.getenv(key) is None]
    empty_keys = [
        key for key in required_keys
        if key not in missing_keys and not os.getenv(key).strip()
    ]

    if not missing_keys and not empty_keys:
        logger.info(f"Configuration validation passed for keys: {', '.join(required_keys)}")
        return

    error_msg = "Configuration validation failed"
    if context:
        error_msg += f" for {context}"
    error_msg += ":"
    if missing_keys:
        error_msg += f" Missing keys: {', '.join(missing_keys)}."
    if empty_keys:
        error_msg += f" Empty keys: {', '.join(empty_keys)}."

    logger.error(error_msg)
    raise ConfigError(error_msg)
