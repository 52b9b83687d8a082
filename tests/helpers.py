"""Builders shared by the test modules."""

from datetime import datetime, timezone

from src.ingestion.collectors.market_collector import Candle, FundingPoint, OpenInterestPoint
from src.shared.schemas import Occurrence

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


def make_occurrence(event_key="cpi", when="2024-11-13T13:30:00", notes="Oct 2024 CPI", **kwargs):
    scheduled = datetime.fromisoformat(when).replace(tzinfo=timezone.utc)
    return Occurrence(event_key=event_key, scheduled_at=scheduled, notes=notes, **kwargs)


def make_candles(start_day: int, closes: list[float], month: str = "2024-11") -> list[Candle]:
    """Consecutive daily candles; open = previous close, high/low +-1 around the body."""
    candles = []
    previous = closes[0]
    for offset, close in enumerate(closes):
        candles.append(
            Candle(
                date=f"{month}-{start_day + offset:02d}",
                open=previous,
                high=max(previous, close) + 1,
                low=min(previous, close) - 1,
                close=close,
            )
        )
        previous = close
    return candles


def rich_extras(candles: list[Candle]) -> tuple[list[FundingPoint], list[OpenInterestPoint]]:
    funding = [FundingPoint(date=c.date, rate=0.01) for c in candles]
    open_interest = [
        OpenInterestPoint(date=c.date, value=1_000_000.0 + i) for i, c in enumerate(candles)
    ]
    return funding, open_interest
