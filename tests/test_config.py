"""Tests for configuration module."""

import os
from pathlib import Path

import pytest

from src.shared.config import Config
from src.shared.exceptions import ConfigurationError


def test_config_paths_exist():
    """Test that config paths are properly initialized."""
    assert isinstance(Config.ROOT_DIR, Path)
    assert isinstance(Config.DATA_DIR, Path)
    assert isinstance(Config.LOGS_DIR, Path)


def test_config_default_values():
    """Test default configuration values."""
    assert Config.DB_HOST == os.getenv("DB_HOST", "localhost")
    assert Config.DB_PORT == int(os.getenv("DB_PORT", "5432"))
    assert Config.MARKET_SYMBOL == os.getenv("MARKET_SYMBOL", "BTCUSDT")
    assert Config.REQUEST_TIMEOUT == int(os.getenv("REQUEST_TIMEOUT", "30"))
    assert Config.MARKET_REQUEST_DELAY == float(os.getenv("MARKET_REQUEST_DELAY", "0.3"))
    assert Config.OCCURRENCE_DELAY == float(os.getenv("OCCURRENCE_DELAY", "2.0"))
    assert Config.FRED_LOOKBACK == int(os.getenv("FRED_LOOKBACK", "48"))


def test_config_database_url(monkeypatch):
    """Test database URL construction."""
    monkeypatch.setattr(Config, "DATABASE_URL", None)
    db_url = Config().database_url
    assert "postgresql://" in db_url
    assert Config.DB_HOST in db_url
    assert str(Config.DB_PORT) in db_url
    assert Config.DB_NAME in db_url


def test_config_database_url_override(monkeypatch):
    monkeypatch.setattr(Config, "DATABASE_URL", "sqlite:///events.db")
    assert Config().database_url == "sqlite:///events.db"


def test_config_validation_missing_fred_key(monkeypatch):
    """Test configuration validation fails without FRED API key."""
    monkeypatch.setattr(Config, "FRED_API_KEY", None)
    with pytest.raises(ConfigurationError, match="FRED_API_KEY not set"):
        Config.validate()


def test_config_validation_error_is_value_error(monkeypatch):
    monkeypatch.setattr(Config, "FRED_API_KEY", "")
    with pytest.raises(ValueError):
        Config.validate()


def test_config_validation_passes_with_key(monkeypatch):
    monkeypatch.setattr(Config, "FRED_API_KEY", "test_key")
    Config.validate()


def test_config_market_validation_missing_coinglass_key(monkeypatch):
    monkeypatch.setattr(Config, "COINGLASS_API_KEY", None)
    with pytest.raises(ConfigurationError, match="COINGLASS_API_KEY not set"):
        Config.validate_market()
