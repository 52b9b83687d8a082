"""Tests for YoY / MoM / level observation transforms."""

from datetime import date

import pytest

from src.ingestion.preprocessors.observation_transforms import (
    calculate_mom_change,
    calculate_yoy,
    derive_metric,
    level_values,
)
from src.shared.schemas import ObservedValue


def monthly_series(start_year: int, months: int, value_for) -> list[ObservedValue]:
    """Monthly observations dated on the 1st, most recent first."""
    series = []
    for i in range(months):
        year, month = divmod(start_year * 12 + i, 12)
        series.append(ObservedValue(date=date(year, month + 1, 1), value=value_for(i)))
    return list(reversed(series))


class TestYoY:
    def test_synthetic_two_percent_series(self):
        observations = monthly_series(2020, 48, lambda i: 100 * 1.02 ** (i / 12))

        derived = sorted(calculate_yoy(observations), key=lambda o: o.date)

        assert len(derived) == 48
        assert all(o.value is None for o in derived[:12])
        assert all(o.value == 2.0 for o in derived[12:])

    def test_most_recent_first(self):
        derived = calculate_yoy(monthly_series(2020, 24, lambda i: 100.0 + i))
        assert derived[0].date == date(2021, 12, 1)
        assert derived[-1].date == date(2020, 1, 1)

    def test_example_rounds_to_one_decimal(self):
        observations = [
            ObservedValue(date(2024, 10, 1), 312.5),
            ObservedValue(date(2023, 10, 1), 306.2),
        ]
        derived = calculate_yoy(observations)
        assert derived[0] == ObservedValue(date(2024, 10, 1), 2.1)
        assert derived[1].value is None

    def test_prior_within_tolerance(self):
        observations = [
            ObservedValue(date(2024, 10, 1), 110.0),
            ObservedValue(date(2023, 9, 1), 90.0),
            ObservedValue(date(2023, 10, 20), 100.0),
        ]
        assert calculate_yoy(observations)[0].value == 10.0

    def test_prior_outside_tolerance(self):
        observations = [
            ObservedValue(date(2024, 10, 1), 110.0),
            ObservedValue(date(2023, 8, 1), 100.0),
        ]
        assert calculate_yoy(observations)[0].value is None

    def test_missing_values_are_skipped(self):
        observations = [
            ObservedValue(date(2024, 11, 1), None),
            ObservedValue(date(2024, 10, 1), 110.0),
            ObservedValue(date(2023, 11, 1), 100.0),
            ObservedValue(date(2023, 10, 1), None),
        ]
        derived = {o.date: o.value for o in calculate_yoy(observations)}
        assert derived[date(2024, 11, 1)] is None
        # The Oct 2023 point is unpublished; Nov 2023 is 31 days from the target
        assert derived[date(2024, 10, 1)] == 10.0

    def test_empty(self):
        assert calculate_yoy([]) == []


class TestMoM:
    def test_consecutive_difference(self):
        observations = monthly_series(2024, 3, lambda i: [158_000.0, 158_227.4, 158_239.0][i])
        derived = calculate_mom_change(observations)
        assert [o.value for o in derived] == [12.0, 227.0, None]

    def test_gap_breaks_the_chain(self):
        observations = monthly_series(2024, 3, lambda i: [100.0, None, 130.0][i])
        assert [o.value for o in calculate_mom_change(observations)] == [None, None, None]


class TestLevel:
    def test_pass_through(self):
        observations = [ObservedValue(date(2024, 9, 1), 4.1), ObservedValue(date(2024, 10, 1), 4.1)]
        assert level_values(observations) == list(reversed(observations))


class TestDeriveMetric:
    @pytest.mark.parametrize("metric", ["yoy", "mom", "level"])
    def test_known_metrics(self, metric):
        assert derive_metric(metric, []) == []

    def test_unknown_metric(self):
        with pytest.raises(ValueError, match="Unknown metric"):
            derive_metric("qoq", [])
