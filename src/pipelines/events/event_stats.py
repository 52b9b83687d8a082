"""Event Statistics Aggregator.

Read-side rollups over the stored reaction records of one release type:
how often the market rose after the release, and by how much on average.

Nothing is cached or written. An event type with no usable records yields
``count`` / ``sample_size`` of zero and ``None`` rates instead of raising.
"""

from collections.abc import Iterable
from dataclasses import dataclass

import pandas as pd

from src.shared.db.storage import EventStore
from src.shared.schemas import Direction, EventKey, ReactionRecord

HORIZONS = ("d0", "d1", "d3", "d7")


@dataclass(frozen=True)
class VolatilitySummary:
    """Distribution of absolute D+1 moves, in percent."""

    sample_size: int
    mean: float | None
    median: float | None
    p90: float | None


@dataclass(frozen=True)
class EventStats:
    event_key: str
    horizon: str
    count: int  # stored records for the event type
    sample_size: int  # records carrying a return for the horizon
    win_rate: float | None  # fraction in [0, 1]
    avg_return: float | None  # percent
    volatility: VolatilitySummary

    def to_dict(self) -> dict:
        return {
            "event_key": self.event_key,
            "horizon": self.horizon,
            "count": self.count,
            "sample_size": self.sample_size,
            "win_rate": self.win_rate,
            "avg_return": self.avg_return,
            "volatility": {
                "sample_size": self.volatility.sample_size,
                "mean": self.volatility.mean,
                "median": self.volatility.median,
                "p90": self.volatility.p90,
            },
        }


def _volatility(records: list[ReactionRecord]) -> VolatilitySummary:
    moves = pd.Series(
        [abs(r.stats.d1_return) for r in records if r.stats.d1_return is not None],
        dtype="float64",
    )
    if moves.empty:
        return VolatilitySummary(sample_size=0, mean=None, median=None, p90=None)
    return VolatilitySummary(
        sample_size=len(moves),
        mean=round(float(moves.mean()), 2),
        median=round(float(moves.median()), 2),
        p90=round(float(moves.quantile(0.9)), 2),
    )


def summarize(event_key: str, records: Iterable[ReactionRecord], horizon: str = "d1") -> EventStats:
    """Fold reaction records into an ``EventStats``.

    For ``d1`` a win is a record whose direction is "up" (a move above the
    direction threshold). For other horizons a win is any positive return.
    Records without the horizon's return count toward ``count`` only.

    Raises:
        ValueError: If the horizon is not one of d0, d1, d3, d7.
    """
    if horizon not in HORIZONS:
        raise ValueError(f"Unsupported horizon {horizon!r}; expected one of {', '.join(HORIZONS)}")

    records = list(records)
    usable = [r for r in records if r.stats.horizon_return(horizon) is not None]
    returns = [r.stats.horizon_return(horizon) for r in usable]

    if horizon == "d1":
        wins = sum(1 for r in usable if r.stats.direction == Direction.UP.value)
    else:
        wins = sum(1 for value in returns if value > 0)

    return EventStats(
        event_key=event_key,
        horizon=horizon,
        count=len(records),
        sample_size=len(usable),
        win_rate=round(wins / len(usable), 4) if usable else None,
        avg_return=round(sum(returns) / len(returns), 2) if returns else None,
        volatility=_volatility(records),
    )


class EventStatsAggregator:
    """Compute per-event-type statistics from the reaction store on demand."""

    def __init__(self, store: EventStore) -> None:
        self.store = store

    def aggregate(self, event_key: str, horizon: str = "d1") -> EventStats:
        key = EventKey(event_key).value
        return summarize(key, self.store.list_reactions(key), horizon)

    def aggregate_all(self, horizon: str = "d1") -> dict[str, EventStats]:
        return {key.value: self.aggregate(key.value, horizon) for key in EventKey}
