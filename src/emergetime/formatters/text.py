"""Plain-text rendering of history and running compiles."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import datetime, timedelta

from emergetime.history import PackageHistory
from emergetime.models import BuildSession, CompileStatus, CompletedCompile, EtaState
from emergetime.stats import Statistic

ETA_UNKNOWN = "unknown"
ETA_IMMINENT = "any time now"
NO_RUNNING_COMPILES = "No compilations currently running."

_SECOND_US = 1_000_000


def format_duration(duration: timedelta) -> str:
    """Render a duration as ``1h2m3s``, rounded to whole seconds."""
    micros = duration // timedelta(microseconds=1)
    sign = "-" if micros < 0 else ""
    seconds = (abs(micros) + _SECOND_US // 2) // _SECOND_US
    if seconds == 0:
        return "0s"
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{sign}{hours}h{minutes}m{secs}s"
    if minutes:
        return f"{sign}{minutes}m{secs}s"
    return f"{sign}{secs}s"


def format_timestamp(moment: datetime) -> str:
    """RFC 3339 timestamp in the local timezone."""
    return moment.astimezone().isoformat(timespec="seconds")


def format_compile(compile_: CompletedCompile) -> str:
    return (
        f"{format_timestamp(compile_.start)}: {compile_.key}: "
        f"{format_duration(compile_.duration)}"
    )


def format_history(compiles: Iterable[CompletedCompile]) -> str:
    """One line per compile followed by the total count."""
    lines = [format_compile(c) for c in compiles]
    lines.append(f"Total number of compilations: {len(lines)}")
    return "\n".join(lines)


def format_estimate(
    history: PackageHistory,
    expected: timedelta,
    statistic: Statistic = Statistic.MEDIAN,
) -> str:
    """History of one package plus its expected duration."""
    return (
        f"{format_history(history.compiles)}\n"
        f"{statistic.value.capitalize()} duration: {format_duration(expected)}"
    )


def format_eta(status: CompileStatus) -> str:
    if status.eta_state == EtaState.IMMINENT:
        return ETA_IMMINENT
    if status.eta_state == EtaState.UNKNOWN or status.eta is None:
        return ETA_UNKNOWN
    return format_duration(status.eta)


def tabulate_status(statuses: list[CompileStatus]) -> str:
    """Right-aligned Package/Phase/Elapsed/ETA table."""
    width = max([len("Package"), *(len(s.identifier) for s in statuses)])
    rows = [f"{'Package':>{width}} {'Phase':>10} {'Elapsed':>10} ETA"]
    for status in statuses:
        rows.append(
            f"{status.identifier:>{width}} {status.phase:>10} "
            f"{format_duration(status.elapsed):>10} {format_eta(status)}"
        )
    return "\n".join(rows)


def format_pending(sessions: Mapping[str, BuildSession], now: datetime) -> str:
    """Unterminated log sessions that are still running, sorted by key."""
    lines = [
        f"{key}: started {format_timestamp(sessions[key].start)}, "
        f"running for {format_duration(now - sessions[key].start)}"
        for key in sorted(sessions)
    ]
    lines.append(f"Total number of unfinished compilations: {len(sessions)}")
    return "\n".join(lines)
