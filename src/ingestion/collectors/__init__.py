"""Collectors package."""

from src.ingestion.collectors.base_collector import BaseCollector
from src.ingestion.collectors.fred_collector import FREDCollector, FREDSeries
from src.ingestion.collectors.market_collector import (
    Candle,
    FundingPoint,
    MarketCollector,
    MarketEndpoint,
    OpenInterestPoint,
    TimeUnit,
)

__all__ = [
    "BaseCollector",
    "FREDCollector",
    "FREDSeries",
    "MarketCollector",
    "MarketEndpoint",
    "TimeUnit",
    "Candle",
    "FundingPoint",
    "OpenInterestPoint",
]
