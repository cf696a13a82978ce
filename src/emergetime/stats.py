"""Duration statistics per package."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import timedelta
from enum import StrEnum

from emergetime.errors import EmptySampleError


class Statistic(StrEnum):
    """Central tendency used to estimate a build's duration."""

    MEDIAN = "median"
    AVERAGE = "average"


def median_duration(durations: Sequence[timedelta]) -> timedelta:
    """Median of the samples.

    For an even number of samples this picks the element at the mean of
    the two middle *indices*, i.e. the lower middle element, rather than
    averaging the two middle values. ``[1s, 3s]`` gives ``1s``.

    Raises:
        EmptySampleError: If ``durations`` is empty.
    """
    if not durations:
        raise EmptySampleError("median of an empty duration sample")
    ordered = sorted(durations)
    count = len(ordered)
    if count % 2:
        return ordered[count // 2]
    upper_mid = count // 2
    lower_mid = upper_mid - 1
    return ordered[(lower_mid + upper_mid) // 2]


def average_duration(durations: Sequence[timedelta]) -> timedelta:
    """Integer mean: total duration floor-divided by the sample count.

    Raises:
        EmptySampleError: If ``durations`` is empty.
    """
    if not durations:
        raise EmptySampleError("average of an empty duration sample")
    return sum(durations, timedelta()) // len(durations)


def expected_duration(
    durations: Sequence[timedelta],
    statistic: Statistic = Statistic.MEDIAN,
) -> timedelta:
    """Expected duration of the next build given past samples."""
    if statistic == Statistic.AVERAGE:
        return average_duration(durations)
    return median_duration(durations)

