"""Recurrence Schedule Generator.

Emits release instants (UTC) for each supported event type over a range of
years. The generator is pure: no I/O, no clock, no randomness, so the same
inputs always give the same schedule.

Two recurrence strategies are supported:
    - NthWeekdayRule: e.g. 2nd Tuesday of each month, with an optional
      "not before day N" correction that moves the release one week later.
    - FixedDatesRule: an explicit list of meeting dates with declared
      year coverage.

Release-time localization:
    Release hours are US/Eastern. By default the UTC offset is approximated
    by calendar month: April to October is daylight time (UTC-4), every other
    month standard time (UTC-5). Releases in the weeks around the real
    March/November transitions can be off by one hour under this rule.
    ``exact_dst=True`` resolves the offset from the tz database instead.

Example:
    >>> from src.schedule import EVENT_TYPES, ScheduleGenerator
    >>> generator = ScheduleGenerator(EVENT_TYPES)
    >>> generator.generate("cpi", 2024, 2024)[10]
    datetime.datetime(2024, 11, 12, 13, 30, tzinfo=datetime.timezone.utc)
"""

import calendar
from collections.abc import Mapping
from datetime import date, datetime, timedelta, timezone

from src.schedule.event_types import (
    EVENT_TYPES,
    EventTypeDefinition,
    FixedDatesRule,
    NthWeekdayRule,
)
from src.shared.exceptions import ScheduleCoverageError
from src.shared.schemas import EventKey, Occurrence, format_reference_label
from src.shared.utils import to_utc

ORIGIN_TIMEZONE = "US/Eastern"
STANDARD_OFFSET_HOURS = 5
DAYLIGHT_OFFSET_HOURS = 4
DAYLIGHT_MONTHS = range(4, 11)  # April..October


def nth_weekday_of_month(year: int, month: int, weekday: int, nth: int) -> date:
    """Return the ``nth`` (1-based) ``weekday`` of the given month.

    Raises:
        ValueError: If the month has no such weekday (e.g. a 5th Monday).
    """
    first = date(year, month, 1)
    offset = (weekday - first.weekday()) % 7
    day = 1 + offset + (nth - 1) * 7
    if day > calendar.monthrange(year, month)[1]:
        raise ValueError(f"No weekday #{nth} ({weekday}) in {year}-{month:02d}")
    return date(year, month, day)


def _shift_month(day: date, months: int) -> date:
    index = day.year * 12 + (day.month - 1) - months
    return date(index // 12, index % 12 + 1, 1)


class ScheduleGenerator:
    """Generate occurrence instants from a table of event definitions."""

    def __init__(
        self,
        definitions: Mapping[str, EventTypeDefinition] = EVENT_TYPES,
        exact_dst: bool = False,
    ) -> None:
        """
        Args:
            definitions: Event key -> definition (normally ``EVENT_TYPES``).
            exact_dst: Use the tz database instead of the April-October rule.
        """
        self._definitions = definitions
        self.exact_dst = exact_dst

    def definition(self, event_key: str) -> EventTypeDefinition:
        key = EventKey(event_key).value
        try:
            return self._definitions[key]
        except KeyError:
            raise ValueError(f"No definition registered for event type '{key}'") from None

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def generate(self, event_key: str, start_year: int, end_year: int) -> list[datetime]:
        """Release instants (UTC, ascending) for one event type.

        Raises:
            ValueError: If ``start_year > end_year`` or the key is unknown.
            ScheduleCoverageError: If a fixed-date list does not cover the range.
        """
        definition = self.definition(event_key)
        days = self._release_days(definition, start_year, end_year)
        return [self._release_instant(definition, day) for day in days]

    def generate_occurrences(self, event_key: str, start_year: int, end_year: int) -> list[Occurrence]:
        """Like :meth:`generate` but with reference-period notes attached."""
        definition = self.definition(event_key)
        return [
            Occurrence(
                event_key=definition.key,
                scheduled_at=self._release_instant(definition, day),
                notes=self.reference_label(definition, day),
            )
            for day in self._release_days(definition, start_year, end_year)
        ]

    def generate_full_schedule(self, start_year: int, end_year: int) -> list[Occurrence]:
        """Occurrences of every registered event type, ordered by instant."""
        occurrences: list[Occurrence] = []
        for key in self._definitions:
            occurrences.extend(self.generate_occurrences(key, start_year, end_year))
        return sorted(occurrences, key=lambda occ: (occ.scheduled_at, occ.event_key))

    @staticmethod
    def reference_label(definition: EventTypeDefinition, release_day: date) -> str:
        """Notes label naming the month the release describes."""
        period = _shift_month(release_day, definition.reference_lag_months)
        return format_reference_label(period, definition.label)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _release_days(self, definition: EventTypeDefinition, start_year: int, end_year: int) -> list[date]:
        if start_year > end_year:
            raise ValueError(f"start_year ({start_year}) must not be after end_year ({end_year})")

        rule = definition.rule
        if isinstance(rule, NthWeekdayRule):
            return [
                self._nth_weekday_day(rule, year, month)
                for year in range(start_year, end_year + 1)
                for month in range(1, 13)
            ]
        if isinstance(rule, FixedDatesRule):
            missing = [year for year in range(start_year, end_year + 1) if not rule.covers(year)]
            if missing:
                raise ScheduleCoverageError(
                    f"{definition.key} dates cover {rule.coverage[0]}-{rule.coverage[1]} "
                    f"(list version {rule.version or 'unversioned'}); "
                    f"no dates for {', '.join(str(y) for y in missing)}"
                )
            return sorted(d for d in rule.dates if start_year <= d.year <= end_year)
        raise TypeError(f"Unsupported recurrence rule: {type(rule).__name__}")

    @staticmethod
    def _nth_weekday_day(rule: NthWeekdayRule, year: int, month: int) -> date:
        day = nth_weekday_of_month(year, month, rule.weekday, rule.nth)
        if rule.min_day is not None and day.day < rule.min_day:
            day += timedelta(days=7)
        return day

    def _release_instant(self, definition: EventTypeDefinition, day: date) -> datetime:
        local = datetime(day.year, day.month, day.day, definition.hour, definition.minute)
        if self.exact_dst:
            return to_utc(local, ORIGIN_TIMEZONE).astimezone(timezone.utc)

        offset = DAYLIGHT_OFFSET_HOURS if day.month in DAYLIGHT_MONTHS else STANDARD_OFFSET_HOURS
        return (local + timedelta(hours=offset)).replace(tzinfo=timezone.utc)
