"""Data ingestion module - collectors and preprocessors."""

from src.ingestion.collectors import BaseCollector, FREDCollector, MarketCollector

__all__ = [
    "BaseCollector",
    "FREDCollector",
    "MarketCollector",
]
