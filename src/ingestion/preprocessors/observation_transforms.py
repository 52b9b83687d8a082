"""Derived metrics for published statistics series.

Each release type reports a different view of its FRED series:
    - yoy:   year-over-year percent change (CPI, PPI), 1 decimal
    - mom:   month-over-month absolute change (NFP), whole thousands
    - level: the published value unchanged (unemployment, policy rate)

All functions are pure. They accept observations in any order and return
one ``ObservedValue`` per input date, most recent first, with ``value=None``
wherever the metric cannot be computed.
"""

from datetime import date, timedelta

from src.schedule.event_types import METRIC_LEVEL, METRIC_MOM, METRIC_YOY
from src.shared.schemas import ObservedValue

YOY_TOLERANCE = timedelta(days=45)


def _one_year_before(day: date) -> date:
    try:
        return day.replace(year=day.year - 1)
    except ValueError:  # Feb 29
        return day.replace(year=day.year - 1, day=28)


def calculate_yoy(
    observations: list[ObservedValue],
    tolerance: timedelta = YOY_TOLERANCE,
) -> list[ObservedValue]:
    """Year-over-year percent change.

    The prior value is the observation closest to exactly one year earlier,
    within ``tolerance``. Targets earlier than the oldest fetched observation
    have no prior; the window is never stretched to reach one.
    """
    available = sorted((obs for obs in observations if obs.available), key=lambda obs: obs.date)
    oldest = min((obs.date for obs in observations), default=None)

    derived = []
    for obs in sorted(observations, key=lambda o: o.date, reverse=True):
        value = None
        target = _one_year_before(obs.date)
        if obs.available and oldest is not None and target >= oldest:
            candidates = [
                prior
                for prior in available
                if prior.date < obs.date and abs(prior.date - target) <= tolerance
            ]
            if candidates:
                prior = min(candidates, key=lambda p: (abs(p.date - target), p.date))
                if prior.value:
                    value = round((obs.value - prior.value) / prior.value * 100, 1)
        derived.append(ObservedValue(date=obs.date, value=value))
    return derived


def calculate_mom_change(observations: list[ObservedValue]) -> list[ObservedValue]:
    """Consecutive-difference change, rounded to a whole number."""
    ordered = sorted(observations, key=lambda o: o.date)
    derived = []
    for previous, current in zip([None] + ordered[:-1], ordered):
        value = None
        if previous is not None and previous.available and current.available:
            value = float(round(current.value - previous.value))
        derived.append(ObservedValue(date=current.date, value=value))
    derived.reverse()
    return derived


def level_values(observations: list[ObservedValue]) -> list[ObservedValue]:
    """Pass the published values through unchanged."""
    return sorted(observations, key=lambda o: o.date, reverse=True)


_TRANSFORMS = {
    METRIC_YOY: calculate_yoy,
    METRIC_MOM: calculate_mom_change,
    METRIC_LEVEL: level_values,
}


def derive_metric(metric: str, observations: list[ObservedValue]) -> list[ObservedValue]:
    """Apply the transform registered for ``metric``.

    Raises:
        ValueError: If the metric kind is unknown.
    """
    try:
        transform = _TRANSFORMS[metric]
    except KeyError:
        raise ValueError(f"Unknown metric kind: {metric!r}") from None
    return transform(observations)
