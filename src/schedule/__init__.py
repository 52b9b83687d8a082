"""Recurrence schedule generator for the supported macro releases."""

from src.schedule.event_types import (
    EVENT_TYPES,
    EventTypeDefinition,
    FixedDatesRule,
    NthWeekdayRule,
)
from src.schedule.generator import ScheduleGenerator, nth_weekday_of_month

__all__ = [
    "EVENT_TYPES",
    "EventTypeDefinition",
    "FixedDatesRule",
    "NthWeekdayRule",
    "ScheduleGenerator",
    "nth_weekday_of_month",
]
