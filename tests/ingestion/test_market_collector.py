"""Unit tests for the market data collector."""

from datetime import datetime, timezone
from unittest.mock import Mock, patch

import pytest
import requests

from src.ingestion.collectors.market_collector import (
    Candle,
    FundingPoint,
    MarketCollector,
    OpenInterestPoint,
    TimeUnit,
)
from src.shared.exceptions import ConfigurationError, MarketDataError

START = datetime(2024, 11, 10, tzinfo=timezone.utc)
END = datetime(2024, 11, 21, tzinfo=timezone.utc)
NOV_13_MS = 1731456000000  # 2024-11-13T00:00:00Z


def _response(payload, status: int = 200) -> Mock:
    response = Mock()
    response.status_code = status
    response.json.return_value = payload
    if status >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status} Error")
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture
def collector(tmp_path):
    with patch("src.ingestion.collectors.base_collector.time.sleep"):
        yield MarketCollector(
            symbol="BTCUSDT",
            derivatives_symbol="BTC",
            coinglass_api_key="cg_key",
            request_delay=0.3,
            timeout=10,
            log_file=tmp_path / "market.log",
        )


# ---------------------------------------------------------------------------
# Time units
# ---------------------------------------------------------------------------


class TestTimeUnit:
    def test_milliseconds(self):
        assert TimeUnit.MILLISECONDS.to_epoch(datetime(2024, 11, 13, tzinfo=timezone.utc)) == NOV_13_MS

    def test_seconds(self):
        assert TimeUnit.SECONDS.to_epoch(datetime(2024, 11, 13, tzinfo=timezone.utc)) == NOV_13_MS // 1000

    def test_roundtrip(self):
        assert TimeUnit.SECONDS.from_epoch(NOV_13_MS // 1000) == TimeUnit.MILLISECONDS.from_epoch(NOV_13_MS)

    def test_endpoint_units(self):
        assert MarketCollector.KLINES.time_unit is TimeUnit.MILLISECONDS
        assert MarketCollector.FUNDING_RATE.time_unit is TimeUnit.MILLISECONDS
        assert MarketCollector.OPEN_INTEREST.time_unit is TimeUnit.SECONDS


# ---------------------------------------------------------------------------
# Initialization
# ---------------------------------------------------------------------------


class TestMarketCollectorInit:
    def test_missing_coinglass_key(self, tmp_path, monkeypatch):
        monkeypatch.setattr("src.shared.config.Config.COINGLASS_API_KEY", None)
        with pytest.raises(ConfigurationError, match="Coinglass API key is required"):
            MarketCollector(log_file=tmp_path / "market.log")

    def test_defaults_from_config(self, tmp_path, monkeypatch):
        monkeypatch.setattr("src.shared.config.Config.COINGLASS_API_KEY", "cg_key")
        monkeypatch.setattr("src.shared.config.Config.MARKET_REQUEST_DELAY", 0.3)
        collector = MarketCollector(log_file=tmp_path / "market.log")
        assert collector.MIN_REQUEST_INTERVAL == 0.3
        assert collector.symbol == "BTCUSDT"


# ---------------------------------------------------------------------------
# Candles
# ---------------------------------------------------------------------------


class TestFetchCandles:
    def test_parses_klines(self, collector):
        payload = [
            [NOV_13_MS, "88000.0", "93000.5", "86000.0", "90000.0", "1000", NOV_13_MS + 86399999],
            [NOV_13_MS + 86400000, "90000.0", "92000.0", "89000.0", "91000.0", "900", 0],
        ]
        with patch.object(collector._session, "get", return_value=_response(payload)) as mock_get:
            candles = collector.fetch_candles(START, END)

        assert candles == [
            Candle(date="2024-11-13", open=88000.0, high=93000.5, low=86000.0, close=90000.0),
            Candle(date="2024-11-14", open=90000.0, high=92000.0, low=89000.0, close=91000.0),
        ]
        params = mock_get.call_args.kwargs["params"]
        assert params["startTime"] == TimeUnit.MILLISECONDS.to_epoch(START)
        assert params["endTime"] == TimeUnit.MILLISECONDS.to_epoch(END) - 1
        assert params["interval"] == "1d"
        assert mock_get.call_args.kwargs["timeout"] == 10

    def test_skips_malformed_rows(self, collector):
        payload = [[NOV_13_MS, "1", "2", "0.5", "1.5"], [NOV_13_MS, "oops"], "garbage"]
        with patch.object(collector._session, "get", return_value=_response(payload)):
            candles = collector.fetch_candles(START, END)
        assert len(candles) == 1

    def test_error_payload_raises(self, collector):
        payload = {"code": -1121, "msg": "Invalid symbol."}
        with patch.object(collector._session, "get", return_value=_response(payload)):
            with pytest.raises(MarketDataError, match="klines"):
                collector.fetch_candles(START, END)

    def test_http_error_raises(self, collector):
        with patch.object(collector._session, "get", return_value=_response([], status=500)):
            with pytest.raises(MarketDataError, match="candles request failed"):
                collector.fetch_candles(START, END)

    def test_timeout_raises(self, collector):
        with patch.object(collector._session, "get", side_effect=requests.exceptions.Timeout("timed out")):
            with pytest.raises(MarketDataError):
                collector.fetch_candles(START, END)


# ---------------------------------------------------------------------------
# Funding
# ---------------------------------------------------------------------------


class TestFetchFunding:
    def test_sums_settlements_per_day_in_percent(self, collector):
        payload = [
            {"symbol": "BTCUSDT", "fundingTime": NOV_13_MS, "fundingRate": "0.0001"},
            {"symbol": "BTCUSDT", "fundingTime": NOV_13_MS + 8 * 3600000, "fundingRate": "0.0002"},
            {"symbol": "BTCUSDT", "fundingTime": NOV_13_MS + 86400000, "fundingRate": "-0.0001"},
        ]
        with patch.object(collector._session, "get", return_value=_response(payload)):
            points = collector.fetch_funding(START, END)

        assert points == [FundingPoint("2024-11-13", 0.03), FundingPoint("2024-11-14", -0.01)]

    def test_skips_malformed_rows(self, collector):
        payload = [{"fundingTime": NOV_13_MS}, {"fundingTime": NOV_13_MS, "fundingRate": "0.0001"}]
        with patch.object(collector._session, "get", return_value=_response(payload)):
            assert collector.fetch_funding(START, END) == [FundingPoint("2024-11-13", 0.01)]


# ---------------------------------------------------------------------------
# Open interest
# ---------------------------------------------------------------------------


class TestFetchOpenInterest:
    def test_parses_daily_close_in_seconds(self, collector):
        payload = {
            "code": "0",
            "msg": "success",
            "data": [{"t": NOV_13_MS // 1000, "o": "1", "h": "2", "l": "0.5", "c": "57000000000.5"}],
        }
        with patch.object(collector._session, "get", return_value=_response(payload)) as mock_get:
            points = collector.fetch_open_interest(START, END)

        assert points == [OpenInterestPoint("2024-11-13", 57000000000.5)]
        kwargs = mock_get.call_args.kwargs
        assert kwargs["params"]["startTime"] == TimeUnit.SECONDS.to_epoch(START)
        assert kwargs["params"]["symbol"] == "BTC"
        assert kwargs["headers"]["CG-API-KEY"] == "cg_key"

    def test_provider_error_code(self, collector):
        payload = {"code": "30001", "msg": "API key missing"}
        with patch.object(collector._session, "get", return_value=_response(payload)):
            with pytest.raises(MarketDataError, match="API key missing"):
                collector.fetch_open_interest(START, END)


# ---------------------------------------------------------------------------
# Rate limiting / health
# ---------------------------------------------------------------------------


class TestThrottling:
    def test_sleeps_between_calls(self, tmp_path):
        collector = MarketCollector(coinglass_api_key="cg_key", request_delay=0.3, log_file=tmp_path / "m.log")
        with patch.object(collector._session, "get", return_value=_response([])):
            with patch("src.ingestion.collectors.base_collector.time.sleep") as mock_sleep:
                collector.fetch_candles(START, END)
                collector.fetch_funding(START, END)

        assert mock_sleep.call_count == 1
        assert 0 < mock_sleep.call_args.args[0] <= 0.3


class TestHealthCheck:
    def test_success(self, collector):
        with patch.object(collector._session, "get", return_value=_response({})):
            assert collector.health_check() is True

    def test_failure(self, collector):
        with patch.object(collector._session, "get", side_effect=requests.exceptions.ConnectionError("down")):
            assert collector.health_check() is False
