"""Merge the daily market series of a reaction window into price points.

Candles are the spine: one output row per candle, ordered by date. Funding
and open interest join on the exact ``YYYY-MM-DD`` key. Days a secondary
series does not cover stay ``None``; nothing is filled or interpolated.
"""

from dataclasses import asdict

import pandas as pd

from src.ingestion.collectors.market_collector import Candle, FundingPoint, OpenInterestPoint
from src.shared.schemas import PricePoint


def _frame(rows: list, columns: list[str], rename: dict | None = None) -> pd.DataFrame:
    df = pd.DataFrame([asdict(row) for row in rows], columns=columns)
    return df.rename(columns=rename) if rename else df


def _optional(value) -> float | None:
    return None if pd.isna(value) else float(value)


def merge_price_series(
    candles: list[Candle],
    funding: list[FundingPoint] | None = None,
    open_interest: list[OpenInterestPoint] | None = None,
) -> list[PricePoint]:
    """Left-join funding and open interest onto the candles by date."""
    if not candles:
        return []

    df = _frame(candles, ["date", "open", "high", "low", "close"])
    df = df.drop_duplicates(subset="date", keep="last")

    funding_df = _frame(funding or [], ["date", "rate"], {"rate": "funding_rate"})
    oi_df = _frame(open_interest or [], ["date", "value"], {"value": "open_interest"})

    df = df.merge(funding_df.drop_duplicates(subset="date", keep="last"), on="date", how="left")
    df = df.merge(oi_df.drop_duplicates(subset="date", keep="last"), on="date", how="left")
    df = df.sort_values("date").reset_index(drop=True)

    return [
        PricePoint(
            date=row["date"],
            close=float(row["close"]),
            high=float(row["high"]),
            low=float(row["low"]),
            open=_optional(row["open"]),
            open_interest=_optional(row["open_interest"]),
            funding_rate=_optional(row["funding_rate"]),
        )
        for row in df.to_dict("records")
    ]
