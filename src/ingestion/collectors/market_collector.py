"""Market Data Collector - daily price and derivatives history.

Three independent daily series feed the reaction backfill:
    - candles:       Binance USD-M futures klines        (timestamps in ms)
    - funding rate:  Binance USD-M futures funding       (timestamps in ms)
    - open interest: Coinglass aggregated OI OHLC         (timestamps in s)

The two providers disagree on time units, so every endpoint is declared
with an explicit ``TimeUnit`` and all conversion goes through it. Rows are
validated at the boundary: anything malformed is logged and dropped rather
than passed on with guessed values.

Funding settles several times a day; the daily value is the sum of that
day's settlements expressed in percent.

Example:
    >>> from datetime import datetime, timezone
    >>> from src.ingestion.collectors.market_collector import MarketCollector
    >>>
    >>> collector = MarketCollector()
    >>> start = datetime(2024, 11, 10, tzinfo=timezone.utc)
    >>> end = datetime(2024, 11, 21, tzinfo=timezone.utc)
    >>> candles = collector.fetch_candles(start, end)
    >>> candles[0].date
    '2024-11-10'
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from src.ingestion.collectors.base_collector import BaseCollector
from src.shared.config import Config
from src.shared.exceptions import ConfigurationError, MarketDataError
from src.shared.utils import date_key


class TimeUnit(Enum):
    """Epoch resolution expected (and returned) by an endpoint."""

    MILLISECONDS = 1000
    SECONDS = 1

    def to_epoch(self, dt: datetime) -> int:
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=timezone.utc)
        return int(dt.timestamp() * self.value)

    def from_epoch(self, raw: int | float | str) -> datetime:
        return datetime.fromtimestamp(float(raw) / self.value, tz=timezone.utc)


@dataclass(frozen=True)
class MarketEndpoint:
    """Immutable descriptor for a market-data endpoint."""

    name: str
    path: str
    time_unit: TimeUnit
    description: str


@dataclass(frozen=True)
class Candle:
    date: str
    open: float
    high: float
    low: float
    close: float


@dataclass(frozen=True)
class FundingPoint:
    date: str
    rate: float  # percent, summed over the day's settlements


@dataclass(frozen=True)
class OpenInterestPoint:
    date: str
    value: float  # daily close of aggregated open interest


class MarketCollector(BaseCollector):
    """Collector for daily market series around an occurrence.

    Every request is throttled by ``request_delay`` (default
    Config.MARKET_REQUEST_DELAY) and bounded by Config.REQUEST_TIMEOUT.
    HTTP 429/5xx responses are retried by the session adapter before a
    ``MarketDataError`` is raised.
    """

    SOURCE_NAME = "market"

    MAX_RETRIES = 3
    RETRY_BACKOFF = 1.0

    KLINES = MarketEndpoint(
        name="candles",
        path="/fapi/v1/klines",
        time_unit=TimeUnit.MILLISECONDS,
        description="Binance USD-M futures daily klines",
    )

    FUNDING_RATE = MarketEndpoint(
        name="funding_rate",
        path="/fapi/v1/fundingRate",
        time_unit=TimeUnit.MILLISECONDS,
        description="Binance USD-M futures funding rate history",
    )

    OPEN_INTEREST = MarketEndpoint(
        name="open_interest",
        path="/api/futures/openInterest/ohlc-aggregated-history",
        time_unit=TimeUnit.SECONDS,
        description="Coinglass aggregated open interest OHLC",
    )

    def __init__(
        self,
        symbol: str | None = None,
        derivatives_symbol: str | None = None,
        coinglass_api_key: str | None = None,
        request_delay: float | None = None,
        timeout: int | None = None,
        log_file: Path | None = None,
    ) -> None:
        """Initialize the market collector.

        Args:
            symbol: Futures pair for candles and funding (default Config.MARKET_SYMBOL).
            derivatives_symbol: Coin for open interest (default Config.DERIVATIVES_SYMBOL).
            coinglass_api_key: Coinglass key (default Config.COINGLASS_API_KEY).
            request_delay: Seconds between consecutive calls.
            timeout: Per-request timeout in seconds.
            log_file: Optional path for file-based logging.

        Raises:
            ConfigurationError: If no Coinglass API key is available.
        """
        super().__init__(log_file=log_file or Config.LOGS_DIR / "collectors" / "market_collector.log")

        self.symbol = symbol or Config.MARKET_SYMBOL
        self.derivatives_symbol = derivatives_symbol or Config.DERIVATIVES_SYMBOL
        self._coinglass_api_key = coinglass_api_key or Config.COINGLASS_API_KEY
        if not self._coinglass_api_key:
            raise ConfigurationError(
                "Coinglass API key is required. Set COINGLASS_API_KEY in .env "
                "or pass coinglass_api_key parameter."
            )

        self.MIN_REQUEST_INTERVAL = (
            Config.MARKET_REQUEST_DELAY if request_delay is None else request_delay
        )
        self.timeout = timeout or Config.REQUEST_TIMEOUT
        self._session = self._create_session()

        self.logger.info(
            "MarketCollector initialized, symbol=%s, derivatives_symbol=%s",
            self.symbol,
            self.derivatives_symbol,
        )

    def health_check(self) -> bool:
        """Verify the futures API is reachable."""
        try:
            response = self._session.get(
                f"{Config.BINANCE_FUTURES_URL}/fapi/v1/ping", timeout=self.timeout
            )
            response.raise_for_status()
            return True
        except requests.exceptions.RequestException as e:
            self.logger.error("Market health check failed: %s", e)
            return False

    # ------------------------------------------------------------------
    # Series
    # ------------------------------------------------------------------

    def fetch_candles(self, start: datetime, end: datetime) -> list[Candle]:
        """Daily candles whose open time lies in ``[start, end)``.

        Raises:
            MarketDataError: Request failed or the payload is not a list.
        """
        unit = self.KLINES.time_unit
        payload = self._get(
            self.KLINES,
            f"{Config.BINANCE_FUTURES_URL}{self.KLINES.path}",
            params={
                "symbol": self.symbol,
                "interval": "1d",
                "startTime": unit.to_epoch(start),
                "endTime": unit.to_epoch(end) - 1,
                "limit": 1500,
            },
        )
        if not isinstance(payload, list):
            raise MarketDataError(f"Unexpected klines payload: {type(payload).__name__}")

        candles = []
        for row in payload:
            try:
                candles.append(
                    Candle(
                        date=date_key(unit.from_epoch(row[0])),
                        open=float(row[1]),
                        high=float(row[2]),
                        low=float(row[3]),
                        close=float(row[4]),
                    )
                )
            except (IndexError, TypeError, ValueError) as e:
                self.logger.warning("Skipping malformed kline %r: %s", row, e)

        self.logger.info("Fetched %d candles for %s", len(candles), self.symbol)
        return candles

    def fetch_funding(self, start: datetime, end: datetime) -> list[FundingPoint]:
        """Daily funding (sum of settlements, percent) in ``[start, end)``.

        Raises:
            MarketDataError: Request failed or the payload is not a list.
        """
        unit = self.FUNDING_RATE.time_unit
        payload = self._get(
            self.FUNDING_RATE,
            f"{Config.BINANCE_FUTURES_URL}{self.FUNDING_RATE.path}",
            params={
                "symbol": self.symbol,
                "startTime": unit.to_epoch(start),
                "endTime": unit.to_epoch(end) - 1,
                "limit": 1000,
            },
        )
        if not isinstance(payload, list):
            raise MarketDataError(f"Unexpected funding payload: {type(payload).__name__}")

        daily: dict[str, float] = {}
        for row in payload:
            try:
                day = date_key(unit.from_epoch(row["fundingTime"]))
                rate = float(row["fundingRate"]) * 100
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning("Skipping malformed funding row %r: %s", row, e)
                continue
            daily[day] = daily.get(day, 0.0) + rate

        points = [FundingPoint(date=day, rate=round(total, 6)) for day, total in sorted(daily.items())]
        self.logger.info("Fetched funding for %d days (%s)", len(points), self.symbol)
        return points

    def fetch_open_interest(self, start: datetime, end: datetime) -> list[OpenInterestPoint]:
        """Daily aggregated open interest (close) in ``[start, end)``.

        Raises:
            MarketDataError: Request failed or the provider reported an error.
        """
        unit = self.OPEN_INTEREST.time_unit
        payload = self._get(
            self.OPEN_INTEREST,
            f"{Config.COINGLASS_URL}{self.OPEN_INTEREST.path}",
            params={
                "symbol": self.derivatives_symbol,
                "interval": "1d",
                "startTime": unit.to_epoch(start),
                "endTime": unit.to_epoch(end) - 1,
            },
            headers={"CG-API-KEY": self._coinglass_api_key, "accept": "application/json"},
        )
        if not isinstance(payload, dict) or str(payload.get("code")) != "0":
            message = payload.get("msg") if isinstance(payload, dict) else None
            raise MarketDataError(f"Coinglass error: {message or payload!r}")

        points = []
        for row in payload.get("data") or []:
            try:
                points.append(
                    OpenInterestPoint(
                        date=date_key(unit.from_epoch(row["t"])),
                        value=float(row["c"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                self.logger.warning("Skipping malformed open interest row %r: %s", row, e)

        self.logger.info("Fetched open interest for %d days (%s)", len(points), self.derivatives_symbol)
        return points

    # ------------------------------------------------------------------
    # Private: HTTP layer
    # ------------------------------------------------------------------

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        retry = Retry(
            total=self.MAX_RETRIES,
            backoff_factor=self.RETRY_BACKOFF,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET"],
        )
        adapter = HTTPAdapter(max_retries=retry)
        session.mount("https://", adapter)
        session.mount("http://", adapter)
        return session

    def _get(
        self,
        endpoint: MarketEndpoint,
        url: str,
        params: dict,
        headers: dict | None = None,
    ):
        """GET ``url`` and decode the JSON body.

        Raises:
            MarketDataError: Network / HTTP failure or a non-JSON body.
        """
        self._throttle_request()
        self.logger.debug("GET %s params=%s", url, params)

        try:
            response = self._session.get(url, params=params, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            return response.json()
        except requests.exceptions.RequestException as e:
            raise MarketDataError(f"{endpoint.name} request failed: {e}") from e
        except ValueError as e:
            raise MarketDataError(f"{endpoint.name} returned invalid JSON: {e}") from e
