"""Formatters for emergetime output."""

from emergetime.formatters.text import (
    ETA_IMMINENT,
    ETA_UNKNOWN,
    NO_RUNNING_COMPILES,
    format_duration,
    format_estimate,
    format_history,
    format_pending,
    tabulate_status,
)

__all__ = [
    "ETA_IMMINENT",
    "ETA_UNKNOWN",
    "NO_RUNNING_COMPILES",
    "format_duration",
    "format_estimate",
    "format_history",
    "format_pending",
    "tabulate_status",
]
