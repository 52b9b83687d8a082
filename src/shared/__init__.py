"""Shared utilities and configuration."""

from src.shared.config import Config
from src.shared.utils import date_key, parse_date, setup_logger, to_utc

__all__ = ["Config", "setup_logger", "to_utc", "date_key", "parse_date"]
