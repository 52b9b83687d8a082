"""Tests for the recurrence schedule generator."""

from datetime import date, datetime, timezone

import pytest

from src.schedule import EVENT_TYPES, ScheduleGenerator, nth_weekday_of_month
from src.schedule.event_types import FOMC_MEETINGS, FixedDatesRule, NthWeekdayRule
from src.shared.exceptions import ScheduleCoverageError

WEEKDAY_RULE_KEYS = [key for key, d in EVENT_TYPES.items() if isinstance(d.rule, NthWeekdayRule)]


@pytest.fixture
def generator():
    return ScheduleGenerator(EVENT_TYPES)


# ---------------------------------------------------------------------------
# Event definitions
# ---------------------------------------------------------------------------


class TestEventTypes:
    def test_five_event_types(self):
        assert set(EVENT_TYPES) == {"cpi", "ppi", "nfp", "unrate", "fomc"}

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            EVENT_TYPES["gdp"] = EVENT_TYPES["cpi"]  # type: ignore[index]

    def test_definitions_frozen(self):
        with pytest.raises(Exception):
            EVENT_TYPES["cpi"].hour = 9  # type: ignore[misc]

    def test_series_mapping(self):
        assert {k: d.series_id for k, d in EVENT_TYPES.items()} == {
            "cpi": "CPIAUCSL",
            "ppi": "PPIACO",
            "nfp": "PAYEMS",
            "unrate": "UNRATE",
            "fomc": "DFEDTARU",
        }

    def test_fomc_list_within_coverage(self):
        years = {d.year for d in FOMC_MEETINGS.dates}
        assert years == set(range(FOMC_MEETINGS.coverage[0], FOMC_MEETINGS.coverage[1] + 1))
        assert all(sum(1 for d in FOMC_MEETINGS.dates if d.year == y) == 8 for y in years)


# ---------------------------------------------------------------------------
# Weekday arithmetic
# ---------------------------------------------------------------------------


class TestNthWeekday:
    def test_second_tuesday(self):
        assert nth_weekday_of_month(2024, 11, 1, 2) == date(2024, 11, 12)

    def test_first_friday(self):
        assert nth_weekday_of_month(2024, 11, 4, 1) == date(2024, 11, 1)

    def test_no_fifth_weekday(self):
        with pytest.raises(ValueError):
            nth_weekday_of_month(2024, 2, 0, 5)


# ---------------------------------------------------------------------------
# Generation
# ---------------------------------------------------------------------------


class TestWeekdayRules:
    @pytest.mark.parametrize("event_key", WEEKDAY_RULE_KEYS)
    @pytest.mark.parametrize("year", [2023, 2024, 2025, 2030])
    def test_one_per_month_on_target_weekday(self, generator, event_key, year):
        instants = generator.generate(event_key, year, year)
        rule = EVENT_TYPES[event_key].rule

        assert [i.month for i in instants] == list(range(1, 13))
        assert all(i.year == year for i in instants)
        assert all(i.weekday() == rule.weekday for i in instants)

    @pytest.mark.parametrize("event_key", ["cpi", "ppi"])
    @pytest.mark.parametrize("year", range(2023, 2031))
    def test_fallback_to_third_weekday(self, generator, event_key, year):
        rule = EVENT_TYPES[event_key].rule
        for instant in generator.generate(event_key, year, year):
            second = nth_weekday_of_month(year, instant.month, rule.weekday, 2)
            if second.day <= 9:
                expected = nth_weekday_of_month(year, instant.month, rule.weekday, 3)
            else:
                expected = second
            assert instant.date() == expected

    def test_known_fallback_month(self, generator):
        # October 2024: 2nd Tuesday is the 8th, so the release moves to the 15th
        october = generator.generate("cpi", 2024, 2024)[9]
        assert october.date() == date(2024, 10, 15)

    def test_nfp_has_no_fallback(self, generator):
        # November 2024: 1st Friday is the 1st
        assert generator.generate("nfp", 2024, 2024)[10].date() == date(2024, 11, 1)

    def test_ordered_and_multi_year(self, generator):
        instants = generator.generate("ppi", 2023, 2025)
        assert len(instants) == 36
        assert instants == sorted(instants)

    def test_start_after_end_rejected(self, generator):
        with pytest.raises(ValueError):
            generator.generate("cpi", 2025, 2024)

    def test_unknown_key_rejected(self, generator):
        with pytest.raises(ValueError):
            generator.generate("gdp", 2024, 2024)


class TestReleaseTime:
    def test_winter_and_summer_differ_by_one_hour(self, generator):
        instants = generator.generate("cpi", 2024, 2024)
        january, july = instants[0], instants[6]
        assert january.tzinfo == timezone.utc
        assert january.hour - july.hour == 1
        assert (january.hour, january.minute) == (13, 30)
        assert (july.hour, july.minute) == (12, 30)

    def test_policy_statement_hour(self, generator):
        meetings = generator.generate("fomc", 2024, 2024)
        assert meetings[0] == datetime(2024, 1, 31, 19, 0, tzinfo=timezone.utc)
        assert meetings[5] == datetime(2024, 9, 18, 18, 0, tzinfo=timezone.utc)

    def test_approximation_in_transition_week(self):
        # 2024-03-12 is already daylight time; the month rule still says standard
        approximate = ScheduleGenerator(EVENT_TYPES).generate("cpi", 2024, 2024)[2]
        exact = ScheduleGenerator(EVENT_TYPES, exact_dst=True).generate("cpi", 2024, 2024)[2]
        assert approximate.date() == exact.date() == date(2024, 3, 12)
        assert approximate.hour == 13
        assert exact.hour == 12

    def test_exact_dst_matches_approximation_mid_season(self):
        approximate = ScheduleGenerator(EVENT_TYPES).generate("nfp", 2024, 2024)
        exact = ScheduleGenerator(EVENT_TYPES, exact_dst=True).generate("nfp", 2024, 2024)
        for month in (0, 1, 4, 5, 6, 7, 8, 11):
            assert approximate[month] == exact[month]


class TestFixedDates:
    def test_filters_by_year(self, generator):
        meetings = generator.generate("fomc", 2025, 2025)
        assert [m.date() for m in meetings] == sorted(d for d in FOMC_MEETINGS.dates if d.year == 2025)

    def test_outside_coverage_fails_loudly(self, generator):
        with pytest.raises(ScheduleCoverageError, match="2027"):
            generator.generate("fomc", 2026, 2027)

    def test_custom_definitions_are_used(self):
        from dataclasses import replace

        custom = {"fomc": replace(EVENT_TYPES["fomc"], rule=FixedDatesRule((date(2030, 1, 30),), (2030, 2030)))}
        instants = ScheduleGenerator(custom).generate("fomc", 2030, 2030)
        assert [i.date() for i in instants] == [date(2030, 1, 30)]


class TestOccurrences:
    def test_reference_period_notes(self, generator):
        november = {o.event_key: o for o in generator.generate_full_schedule(2024, 2024) if o.scheduled_at.month == 11}
        assert november["cpi"].notes == "Oct 2024 CPI"
        assert november["ppi"].notes == "Oct 2024 PPI"
        assert november["nfp"].notes == "Oct 2024 Jobs Report"
        assert november["unrate"].notes == "Oct 2024 Unemployment Rate"
        assert november["fomc"].notes == "Nov 2024 FOMC"

    def test_january_refers_to_previous_december(self, generator):
        january = generator.generate_occurrences("cpi", 2025, 2025)[0]
        assert january.notes == "Dec 2024 CPI"

    def test_full_schedule_sorted_and_unique(self, generator):
        schedule = generator.generate_full_schedule(2024, 2025)
        assert len(schedule) == 2 * (4 * 12 + 8)
        assert [o.scheduled_at for o in schedule] == sorted(o.scheduled_at for o in schedule)
        keys = {(o.event_key, o.occurrence_date) for o in schedule}
        assert len(keys) == len(schedule)

    def test_deterministic(self, generator):
        assert generator.generate_full_schedule(2024, 2024) == generator.generate_full_schedule(2024, 2024)
