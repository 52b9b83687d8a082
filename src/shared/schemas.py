"""Domain records shared by the schedule, sync and backfill pipelines.

These are plain dataclasses, independent of the ORM rows in
``src.shared.db.models``. The store converts between the two.

Missing data is always ``None``. ``PricePoint.to_dict`` omits missing
fields entirely so a serialized point never carries a fake zero.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from src.shared.utils import date_key, parse_date

MONTH_ABBR = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")

_REFERENCE_RE = re.compile(r"\b(Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)\s+(\d{4})\b")

MISSING_SENTINEL = "."


class EventKey(str, Enum):
    """The five supported release types."""

    CPI = "cpi"
    PPI = "ppi"
    NFP = "nfp"
    UNRATE = "unrate"
    FOMC = "fomc"


class Direction(str, Enum):
    UP = "up"
    DOWN = "down"
    CHOP = "chop"


def format_reference_label(period: date, suffix: str) -> str:
    """``date(2024, 10, 1), "CPI"`` -> ``"Oct 2024 CPI"``."""
    return f"{MONTH_ABBR[period.month - 1]} {period.year} {suffix}"


def parse_reference_period(notes: str | None) -> date | None:
    """Return the first day of the month named in a notes label, if any."""
    if not notes:
        return None
    match = _REFERENCE_RE.search(notes)
    if not match:
        return None
    return date(int(match.group(2)), MONTH_ABBR.index(match.group(1)) + 1, 1)


def _to_float(value: Any) -> float | None:
    """Parse a provider value, mapping the "no data" forms to ``None``.

    Raises:
        ValueError: If the value is present but not numeric.
    """
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value in ("", MISSING_SENTINEL):
            return None
    number = float(value)
    if math.isnan(number):
        return None
    return number


# ---------------------------------------------------------------------------
# Occurrences and observations
# ---------------------------------------------------------------------------


@dataclass
class Occurrence:
    """One scheduled instance of a recurring release."""

    event_key: str
    scheduled_at: datetime
    notes: str | None = None
    forecast: float | None = None
    actual: float | None = None
    market_reaction: dict | None = None
    id: int | None = None

    def __post_init__(self) -> None:
        self.event_key = EventKey(self.event_key).value
        if self.scheduled_at.tzinfo is None:
            self.scheduled_at = self.scheduled_at.replace(tzinfo=timezone.utc)
        else:
            self.scheduled_at = self.scheduled_at.astimezone(timezone.utc)

    @property
    def occurrence_date(self) -> date:
        return self.scheduled_at.date()

    @property
    def reaction_key(self) -> str:
        return f"{self.event_key}-{date_key(self.scheduled_at)}"

    @property
    def reference_period(self) -> date | None:
        return parse_reference_period(self.notes)


@dataclass(frozen=True)
class ObservedValue:
    """A single statistics-source data point (reference period, value)."""

    date: date
    value: float | None

    @classmethod
    def from_raw(cls, raw_date: Any, raw_value: Any) -> "ObservedValue":
        """Build from an untyped ``{date, value}`` pair.

        The ``"."`` sentinel and NaN become ``None``.

        Raises:
            ValueError: If the date or a present value cannot be parsed.
        """
        return cls(date=parse_date(raw_date), value=_to_float(raw_value))

    @property
    def available(self) -> bool:
        return self.value is not None


# ---------------------------------------------------------------------------
# Reaction records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PricePoint:
    """One merged daily row of the reaction window."""

    date: str
    close: float
    high: float
    low: float
    open: float | None = None
    open_interest: float | None = None
    funding_rate: float | None = None

    @property
    def is_rich(self) -> bool:
        return self.open_interest is not None and self.funding_rate is not None

    def to_dict(self) -> dict:
        data = {"date": self.date, "close": self.close, "high": self.high, "low": self.low}
        for name in ("open", "open_interest", "funding_rate"):
            value = getattr(self, name)
            if value is not None:
                data[name] = value
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "PricePoint":
        return cls(
            date=data["date"],
            close=float(data["close"]),
            high=float(data["high"]),
            low=float(data["low"]),
            open=_to_float(data.get("open")),
            open_interest=_to_float(data.get("open_interest")),
            funding_rate=_to_float(data.get("funding_rate")),
        )


@dataclass(frozen=True)
class ReactionStats:
    """Event-relative statistics, returns in percent rounded to 2 dp.

    ``d3_return`` and ``max_upside`` are optional extensions; readers must
    tolerate their absence in older records.
    """

    d0_return: float | None
    d1_return: float | None
    d7_return: float | None
    max_drawdown: float | None
    range: float | None
    direction: str = Direction.CHOP.value
    d3_return: float | None = None
    max_upside: float | None = None

    def to_dict(self) -> dict:
        return {
            "d0_return": self.d0_return,
            "d1_return": self.d1_return,
            "d3_return": self.d3_return,
            "d7_return": self.d7_return,
            "max_drawdown": self.max_drawdown,
            "max_upside": self.max_upside,
            "range": self.range,
            "direction": self.direction,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReactionStats":
        return cls(
            d0_return=data.get("d0_return"),
            d1_return=data.get("d1_return"),
            d7_return=data.get("d7_return"),
            max_drawdown=data.get("max_drawdown"),
            range=data.get("range"),
            direction=data.get("direction", Direction.CHOP.value),
            d3_return=data.get("d3_return"),
            max_upside=data.get("max_upside"),
        )

    def horizon_return(self, horizon: str) -> float | None:
        return getattr(self, f"{horizon}_return", None)


@dataclass(frozen=True)
class ReactionRecord:
    """Cached market reaction for one occurrence, replaced wholesale on rerun.

    ``window_end`` is the upper bound of the fetch window after clamping to
    the clock, as an ISO-8601 UTC instant. Records written without it load
    with ``None``.
    """

    event_key: str
    occurrence_date: str
    stats: ReactionStats
    price_series: tuple[PricePoint, ...] = field(default_factory=tuple)
    window_end: str | None = None

    @property
    def key(self) -> str:
        return f"{self.event_key}-{self.occurrence_date}"

    @property
    def is_rich(self) -> bool:
        """True when every price point carries funding and open interest."""
        return bool(self.price_series) and all(p.is_rich for p in self.price_series)

    def to_dict(self) -> dict:
        return {
            "event_key": self.event_key,
            "occurrence_date": self.occurrence_date,
            "stats": self.stats.to_dict(),
            "price_series": [p.to_dict() for p in self.price_series],
            "window_end": self.window_end,
        }

    def to_json(self) -> str:
        """Canonical serialization: identical inputs give identical bytes."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))

    def summary(self) -> dict:
        """Compact view embedded on the occurrence row."""
        return {
            "d0": self.stats.d0_return,
            "d1": self.stats.d1_return,
            "d7": self.stats.d7_return,
            "direction": self.stats.direction,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReactionRecord":
        return cls(
            event_key=data["event_key"],
            occurrence_date=data["occurrence_date"],
            stats=ReactionStats.from_dict(data.get("stats") or {}),
            price_series=tuple(PricePoint.from_dict(p) for p in data.get("price_series") or []),
            window_end=data.get("window_end"),
        )

    @classmethod
    def from_json(cls, payload: str) -> "ReactionRecord":
        return cls.from_dict(json.loads(payload))
