"""FRED Data Collector - published values for the tracked releases.

Fetches the most recent observations of the series behind each supported
release:
    - CPIAUCSL: Consumer Price Index for All Urban Consumers
    - PPIACO: Producer Price Index for All Commodities
    - PAYEMS: All Employees, Total Nonfarm
    - UNRATE: Unemployment Rate
    - DFEDTARU: Federal Funds Target Range - Upper Limit

Observations come back most recent first as ``ObservedValue`` rows. FRED's
``"."`` placeholder (value not yet published) is parsed by fredapi as NaN and
surfaces here as ``value=None``; it is never treated as zero.

The default lookback counts observations, not months. For the daily
DFEDTARU series it spans only a few weeks, so callers needing older
meetings pass ``observation_start`` instead.

API Documentation: https://fred.stlouisfed.org/docs/api/
Get API Key: https://fred.stlouisfed.org/docs/api/api_key.html

Example:
    >>> from src.ingestion.collectors.fred_collector import FREDCollector
    >>>
    >>> collector = FREDCollector()
    >>> observations = collector.get_observations("CPIAUCSL", limit=24)
    >>> observations[0]
    ObservedValue(date=datetime.date(2024, 10, 1), value=315.564)
"""

from dataclasses import dataclass
from datetime import date
from pathlib import Path

from fredapi import Fred

from src.ingestion.collectors.base_collector import BaseCollector
from src.shared.config import Config
from src.shared.exceptions import ConfigurationError, FetchError
from src.shared.schemas import ObservedValue


@dataclass(frozen=True)
class FREDSeries:
    """Immutable descriptor for a FRED data series."""

    series_id: str
    name: str
    description: str
    frequency: str  # D=Daily, M=Monthly
    units: str


class FREDCollector(BaseCollector):
    """Collector for the FRED series backing the tracked releases.

    Uses the official FRED API via the fredapi package.

    Rate Limits:
        FRED API allows 120 requests per minute. This collector throttles
        requests to stay within limits.
    """

    SOURCE_NAME = "fred"

    # 120 calls/min = 1 call every 0.5 seconds
    MIN_REQUEST_INTERVAL = 0.5

    CPI = FREDSeries(
        series_id="CPIAUCSL",
        name="cpi",
        description="Consumer Price Index for All Urban Consumers: All Items",
        frequency="M",
        units="Index 1982-1984=100",
    )

    PPI = FREDSeries(
        series_id="PPIACO",
        name="ppi",
        description="Producer Price Index by Commodity: All Commodities",
        frequency="M",
        units="Index 1982=100",
    )

    NONFARM_PAYROLLS = FREDSeries(
        series_id="PAYEMS",
        name="nonfarm_payrolls",
        description="All Employees, Total Nonfarm",
        frequency="M",
        units="Thousands of Persons",
    )

    UNEMPLOYMENT_RATE = FREDSeries(
        series_id="UNRATE",
        name="unemployment_rate",
        description="Unemployment Rate",
        frequency="M",
        units="Percent",
    )

    FED_TARGET_UPPER = FREDSeries(
        series_id="DFEDTARU",
        name="fed_target_upper",
        description="Federal Funds Target Range - Upper Limit",
        frequency="D",
        units="Percent",
    )

    _ALL_SERIES: tuple[FREDSeries, ...] = (
        CPI,
        PPI,
        NONFARM_PAYROLLS,
        UNEMPLOYMENT_RATE,
        FED_TARGET_UPPER,
    )

    def __init__(
        self,
        api_key: str | None = None,
        log_file: Path | None = None,
    ) -> None:
        """Initialize the FRED collector.

        Args:
            api_key: FRED API key (defaults to Config.FRED_API_KEY).
            log_file: Optional path for file-based logging.

        Raises:
            ConfigurationError: If no API key is provided or configured.
        """
        super().__init__(log_file=log_file or Config.LOGS_DIR / "collectors" / "fred_collector.log")

        self._api_key = api_key or Config.FRED_API_KEY
        if not self._api_key or self._api_key == "your_fred_api_key_here":
            raise ConfigurationError(
                "FRED API key is required. Set FRED_API_KEY in .env or pass api_key parameter. "
                "Get a free key at https://fred.stlouisfed.org/docs/api/api_key.html"
            )

        self._fred = Fred(api_key=self._api_key)
        self.logger.info("FREDCollector initialized")

    @classmethod
    def describe(cls, series_id: str) -> FREDSeries | None:
        """Return the predefined descriptor for ``series_id``, if any."""
        return next((s for s in cls._ALL_SERIES if s.series_id == series_id), None)

    def health_check(self) -> bool:
        """Verify FRED API is reachable.

        Returns:
            True if API responds successfully, False otherwise.
        """
        try:
            self._fred.get_series_info(self.CPI.series_id)
            return True
        except Exception as e:
            self.logger.error("FRED health check failed: %s", e)
            return False

    def get_observations(
        self,
        series_id: str,
        limit: int | None = None,
        observation_start: date | None = None,
    ) -> list[ObservedValue]:
        """Fetch the most recent observations of a series.

        Args:
            series_id: FRED series identifier (e.g. "CPIAUCSL").
            limit: Maximum number of observations. Defaults to
                Config.FRED_LOOKBACK unless observation_start is given.
            observation_start: Optional earliest reference date. Without a
                limit, every observation since this date is returned.

        Returns:
            Observations ordered most recent first. Unpublished values carry
            ``value=None``; rows that cannot be parsed are dropped.

        Raises:
            ValueError: If series_id is empty.
            FetchError: If the request fails.
        """
        if not series_id or not series_id.strip():
            raise ValueError("series_id cannot be empty")

        if limit is None and observation_start is None:
            limit = Config.FRED_LOOKBACK
        kwargs = {"sort_order": "desc"}
        if limit is not None:
            kwargs["limit"] = limit
        if observation_start is not None:
            kwargs["observation_start"] = observation_start.strftime("%Y-%m-%d")

        self._throttle_request()

        try:
            series_data = self._fred.get_series(series_id, **kwargs)
        except Exception as e:
            self.logger.error("Failed to fetch series '%s': %s", series_id, e)
            raise FetchError(f"FRED request for {series_id} failed: {e}") from e

        observations = []
        for raw_date, raw_value in series_data.items():
            try:
                observations.append(ObservedValue.from_raw(raw_date, raw_value))
            except (TypeError, ValueError) as e:
                self.logger.warning(
                    "Skipping malformed %s observation %r=%r: %s", series_id, raw_date, raw_value, e
                )

        observations.sort(key=lambda obs: obs.date, reverse=True)
        if limit is not None:
            observations = observations[:limit]

        self.logger.info("Fetched %s: %d observations", series_id, len(observations))
        return observations
