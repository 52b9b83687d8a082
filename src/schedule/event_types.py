"""Static definitions of the five supported release types.

The table is built once at import and exposed read-only. Weekday numbers
follow ``datetime.weekday()`` (Monday = 0).

Policy meeting dates are versioned data: ``FOMC_MEETINGS`` must be extended
each year once the Federal Reserve publishes the next calendar. Asking the
generator for a year beyond ``coverage`` raises ``ScheduleCoverageError``.
"""

from dataclasses import dataclass
from datetime import date
from types import MappingProxyType

from src.shared.schemas import EventKey

TUESDAY = 1
THURSDAY = 3
FRIDAY = 4

# Metric kinds understood by the observation transforms
METRIC_YOY = "yoy"
METRIC_MOM = "mom"
METRIC_LEVEL = "level"


@dataclass(frozen=True)
class NthWeekdayRule:
    """The ``nth`` ``weekday`` of each month.

    When ``min_day`` is set and the nth weekday lands before that day of the
    month, the following week's weekday is used instead.
    """

    weekday: int
    nth: int
    min_day: int | None = None


@dataclass(frozen=True)
class FixedDatesRule:
    """An explicit, hand-maintained list of dates."""

    dates: tuple[date, ...]
    coverage: tuple[int, int]  # first and last year the list is complete for
    version: str = ""

    def covers(self, year: int) -> bool:
        return self.coverage[0] <= year <= self.coverage[1]


@dataclass(frozen=True)
class EventTypeDefinition:
    """Immutable descriptor for one recurring release."""

    key: str
    name: str
    label: str  # notes suffix, e.g. "CPI" -> "Oct 2024 CPI"
    rule: NthWeekdayRule | FixedDatesRule
    hour: int  # local release time, US/Eastern
    minute: int
    series_id: str  # FRED series holding the published value
    metric: str
    reference_lag_months: int = 1


FOMC_MEETINGS = FixedDatesRule(
    dates=tuple(
        date.fromisoformat(d)
        for d in (
            # 2023
            "2023-02-01", "2023-03-22", "2023-05-03", "2023-06-14",
            "2023-07-26", "2023-09-20", "2023-11-01", "2023-12-13",
            # 2024
            "2024-01-31", "2024-03-20", "2024-05-01", "2024-06-12",
            "2024-07-31", "2024-09-18", "2024-11-07", "2024-12-18",
            # 2025
            "2025-01-29", "2025-03-19", "2025-05-07", "2025-06-18",
            "2025-07-30", "2025-09-17", "2025-10-29", "2025-12-10",
            # 2026
            "2026-01-28", "2026-03-18", "2026-04-29", "2026-06-17",
            "2026-07-29", "2026-09-16", "2026-10-28", "2026-12-09",
        )
    ),
    coverage=(2023, 2026),
    version="2026.1",
)


CPI = EventTypeDefinition(
    key=EventKey.CPI.value,
    name="Consumer Price Index",
    label="CPI",
    rule=NthWeekdayRule(weekday=TUESDAY, nth=2, min_day=10),
    hour=8,
    minute=30,
    series_id="CPIAUCSL",
    metric=METRIC_YOY,
)

PPI = EventTypeDefinition(
    key=EventKey.PPI.value,
    name="Producer Price Index",
    label="PPI",
    rule=NthWeekdayRule(weekday=THURSDAY, nth=2, min_day=10),
    hour=8,
    minute=30,
    series_id="PPIACO",
    metric=METRIC_YOY,
)

NFP = EventTypeDefinition(
    key=EventKey.NFP.value,
    name="Nonfarm Payrolls",
    label="Jobs Report",
    rule=NthWeekdayRule(weekday=FRIDAY, nth=1),
    hour=8,
    minute=30,
    series_id="PAYEMS",
    metric=METRIC_MOM,
)

UNRATE = EventTypeDefinition(
    key=EventKey.UNRATE.value,
    name="Unemployment Rate",
    label="Unemployment Rate",
    rule=NthWeekdayRule(weekday=FRIDAY, nth=1),
    hour=8,
    minute=30,
    series_id="UNRATE",
    metric=METRIC_LEVEL,
)

FOMC = EventTypeDefinition(
    key=EventKey.FOMC.value,
    name="FOMC Rate Decision",
    label="FOMC",
    rule=FOMC_MEETINGS,
    hour=14,
    minute=0,
    series_id="DFEDTARU",
    metric=METRIC_LEVEL,
    reference_lag_months=0,
)


EVENT_TYPES: MappingProxyType = MappingProxyType(
    {definition.key: definition for definition in (CPI, PPI, NFP, UNRATE, FOMC)}
)
