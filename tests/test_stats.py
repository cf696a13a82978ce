"""Tests for duration statistics."""

from datetime import timedelta

import pytest

from emergetime.errors import EmptySampleError
from emergetime.stats import (
    Statistic,
    average_duration,
    expected_duration,
    median_duration,
)


def _secs(*values: int) -> list[timedelta]:
    return [timedelta(seconds=v) for v in values]


class TestMedianDuration:
    def test_single_sample(self):
        assert median_duration(_secs(42)) == timedelta(seconds=42)

    def test_odd_count_takes_middle(self):
        assert median_duration(_secs(1, 2, 3)) == timedelta(seconds=2)

    def test_even_count_takes_lower_middle(self):
        """Averaging the middle indices selects the lower element, not 2s."""
        assert median_duration(_secs(1, 3)) == timedelta(seconds=1)

    def test_even_count_larger_sample(self):
        assert median_duration(_secs(40, 10, 30, 20)) == timedelta(seconds=20)

    def test_input_order_does_not_matter(self):
        assert median_duration(_secs(9, 1, 5)) == timedelta(seconds=5)

    def test_does_not_mutate_input(self):
        samples = _secs(3, 1, 2)
        median_duration(samples)
        assert samples == _secs(3, 1, 2)

    def test_empty_raises(self):
        with pytest.raises(EmptySampleError):
            median_duration([])


class TestAverageDuration:
    def test_mean(self):
        assert average_duration(_secs(50, 100)) == timedelta(seconds=75)

    def test_integer_division(self):
        assert average_duration([timedelta(microseconds=10)] * 2 + [timedelta()]) == timedelta(
            microseconds=6
        )

    def test_empty_raises_value_error(self):
        with pytest.raises(ValueError):
            average_duration([])


class TestExpectedDuration:
    def test_median_is_default(self):
        assert expected_duration(_secs(1, 3)) == timedelta(seconds=1)

    def test_average(self):
        assert expected_duration(_secs(1, 3), Statistic.AVERAGE) == timedelta(seconds=2)

