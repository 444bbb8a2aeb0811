"""
Unit tests for config_module.py.

Tests cover:
- .env file loading and environment variable overriding
- get_config with present keys, missing keys, and defaults
- Typed float/int accessors
- validate_config passing and failing scenarios
- ConfigError exception handling
"""

import os
import logging
import pytest

from mapflam.config.config_module import (
    ConfigError,
    get_config,
    get_float_config,
    get_int_config,
    load_config,
    validate_config,
)


class TestLoadConfig:
    """Test cases for load_config function."""

    def test_load_config_existing_file(self, tmp_path, caplog, monkeypatch):
        """Test loading configuration from existing .env file."""
        # Registered with monkeypatch so the loaded values are undone afterwards
        monkeypatch.setenv("MAPBOX_API_KEY", "")
        monkeypatch.setenv("MAPFLAM_STORAGE_DIR", "")
        env_file = tmp_path / ".env"
        env_file.write_text("MAPBOX_API_KEY=pk.test\nMAPFLAM_STORAGE_DIR=/tmp/maps\n")

        with caplog.at_level(logging.INFO):
            loaded = load_config(str(env_file))

        assert loaded is True
        assert os.getenv("MAPBOX_API_KEY") == "pk.test"
        assert os.getenv("MAPFLAM_STORAGE_DIR") == "/tmp/maps"
        assert f"Loaded configuration from {env_file}" in caplog.text

    def test_load_config_nonexistent_file(self, caplog):
        """Test loading configuration when .env file doesn't exist."""
        nonexistent_file = "/path/that/does/not/exist/.env"

        with caplog.at_level(logging.WARNING):
            loaded = load_config(nonexistent_file)

        assert loaded is False
        assert f"Configuration file {nonexistent_file} not found" in caplog.text

    def test_load_config_override_existing_env(self, tmp_path, monkeypatch):
        """Test that .env file values override existing environment variables."""
        monkeypatch.setenv("MAPFLAM_LOG_LEVEL", "INFO")

        env_file = tmp_path / ".env"
        env_file.write_text("MAPFLAM_LOG_LEVEL=DEBUG\n")

        load_config(str(env_file))

        assert os.getenv("MAPFLAM_LOG_LEVEL") == "DEBUG"

    def test_load_config_default_path(self, tmp_path, monkeypatch):
        """Test loading configuration with default .env path."""
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("MAPFLAM_USER_AGENT", "")
        (tmp_path / ".env").write_text("MAPFLAM_USER_AGENT=MapFlamTest/0.1\n")

        load_config()

        assert os.getenv("MAPFLAM_USER_AGENT") == "MapFlamTest/0.1"


class TestGetConfig:
    """Test cases for get_config function."""

    @pytest.fixture(autouse=True)
    def env(self, monkeypatch):
        monkeypatch.setenv("EXISTING_KEY", "existing_value")
        monkeypatch.setenv("EMPTY_KEY", "")
        monkeypatch.delenv("MISSING_KEY", raising=False)

    def test_get_config_existing_key(self):
        assert get_config("EXISTING_KEY") == "existing_value"

    def test_get_config_missing_key_with_default(self, caplog):
        with caplog.at_level(logging.DEBUG):
            result = get_config("MISSING_KEY", "default_value")

        assert result == "default_value"
        assert "Configuration key 'MISSING_KEY' not set, using default value: default_value" in caplog.text

    def test_get_config_missing_key_no_default(self, caplog):
        with caplog.at_level(logging.DEBUG):
            result = get_config("MISSING_KEY")

        assert result is None
        assert "Configuration key 'MISSING_KEY' not set and no default provided" in caplog.text

    def test_get_config_empty_key(self):
        """An empty value is returned as-is, not replaced by the default."""
        assert get_config("EMPTY_KEY", "fallback") == ""

    def test_get_config_various_defaults(self):
        assert get_config("MISSING_KEY", "string") == "string"
        assert get_config("MISSING_KEY", 42) == 42
        assert get_config("MISSING_KEY", [1, 2, 3]) == [1, 2, 3]


class TestTypedConfig:
    """Test cases for get_float_config and get_int_config."""

    def test_float_config_parses_value(self, monkeypatch):
        monkeypatch.setenv("MAPFLAM_SEARCH_TTL", "120.5")
        assert get_float_config("MAPFLAM_SEARCH_TTL", 300) == 120.5

    def test_float_config_missing_or_blank_uses_default(self, monkeypatch):
        monkeypatch.delenv("MAPFLAM_SEARCH_TTL", raising=False)
        assert get_float_config("MAPFLAM_SEARCH_TTL", 300) == 300

        monkeypatch.setenv("MAPFLAM_SEARCH_TTL", "  ")
        assert get_float_config("MAPFLAM_SEARCH_TTL", 300) == 300

    def test_float_config_invalid_raises(self, monkeypatch):
        monkeypatch.setenv("MAPFLAM_SEARCH_TTL", "five minutes")
        with pytest.raises(ConfigError) as exc_info:
            get_float_config("MAPFLAM_SEARCH_TTL", 300)
        assert "must be a number" in str(exc_info.value)

    def test_int_config(self, monkeypatch):
        monkeypatch.setenv("MAPFLAM_SEARCH_LIMIT", " 3 ")
        assert get_int_config("MAPFLAM_SEARCH_LIMIT", 5) == 3

        monkeypatch.setenv("MAPFLAM_SEARCH_LIMIT", "3.5")
        with pytest.raises(ConfigError) as exc_info:
            get_int_config("MAPFLAM_SEARCH_LIMIT", 5)
        assert "must be an integer, got '3.5'" in str(exc_info.value)


class TestValidateConfig:
    """Test cases for validate_config function."""

    @pytest.fixture(autouse=True)
    def env(self, monkeypatch):
        monkeypatch.setenv("VALID_KEY1", "value1")
        monkeypatch.setenv("VALID_KEY2", "value2")
        monkeypatch.setenv("EMPTY_KEY", "")
        monkeypatch.setenv("WHITESPACE_KEY", "   ")
        monkeypatch.delenv("MISSING_KEY", raising=False)
        monkeypatch.delenv("MISSING_KEY1", raising=False)
        monkeypatch.delenv("MISSING_KEY2", raising=False)

    def test_validate_config_all_present(self, caplog):
        with caplog.at_level(logging.INFO):
            validate_config(["VALID_KEY1", "VALID_KEY2"])

        assert "Configuration validation passed" in caplog.text

    def test_validate_config_missing_keys(self, caplog):
        with pytest.raises(ConfigError) as exc_info:
            validate_config(["VALID_KEY1", "MISSING_KEY1", "MISSING_KEY2"])

        assert "Configuration validation failed" in str(exc_info.value)
        assert "Missing keys: MISSING_KEY1, MISSING_KEY2" in str(exc_info.value)
        assert "Configuration validation failed" in caplog.text

    def test_validate_config_empty_and_whitespace_keys(self):
        with pytest.raises(ConfigError) as exc_info:
            validate_config(["VALID_KEY1", "EMPTY_KEY", "WHITESPACE_KEY"])

        assert "Empty keys: EMPTY_KEY, WHITESPACE_KEY" in str(exc_info.value)

    def test_validate_config_context_in_message(self):
        with pytest.raises(ConfigError) as exc_info:
            validate_config(["MISSING_KEY"], context="Mapbox geocoding")

        assert "Configuration validation failed for Mapbox geocoding:" in str(exc_info.value)

    def test_validate_config_empty_list(self, caplog):
        with caplog.at_level(logging.INFO):
            validate_config([])

        assert "Configuration validation passed for keys:" in caplog.text


class TestConfigError:
    """Test cases for ConfigError exception."""

    def test_config_error_inheritance(self):
        assert issubclass(ConfigError, Exception)

    def test_config_error_message(self):
        assert str(ConfigError("Test configuration error")) == "Test configuration error"
