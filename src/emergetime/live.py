"""Correlate running builds with the log history to estimate ETAs."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import UTC, datetime, timedelta

from emergetime.models import CompileStatus, EtaState, RunningBuild, RunningCompile
from emergetime.parsers.patterns import split_package_version
from emergetime.stats import Statistic, expected_duration

logger = logging.getLogger(__name__)


def running_compiles(
    latest_start: Mapping[str, datetime],
    running: Iterable[RunningBuild],
) -> list[RunningCompile]:
    """Attach a start time from the log to each running build.

    Builds whose package has no recorded start are dropped, as are
    identifiers without a version part. Repeated identifiers (several
    sandbox processes for one build) are reported once.

    Args:
        latest_start: Most recent build start per bare package name.
        running: Builds found in the process snapshot.

    Returns:
        Running compiles sorted by identifier.
    """
    compiles: dict[str, RunningCompile] = {}
    for build in running:
        if build.identifier in compiles:
            continue
        split = split_package_version(build.identifier)
        if split is None:
            logger.debug("Cannot split running build identifier %r", build.identifier)
            continue
        package, _version = split
        start = latest_start.get(package)
        if start is None:
            logger.debug("No start time in log for running build %s", build.identifier)
            continue
        compiles[build.identifier] = RunningCompile(
            identifier=build.identifier,
            start=start,
            phase=build.phase,
        )
    return [compiles[identifier] for identifier in sorted(compiles)]


def estimate(
    compile_: RunningCompile,
    durations: Sequence[timedelta] | None,
    *,
    statistic: Statistic = Statistic.MEDIAN,
    now: datetime,
) -> CompileStatus:
    """Elapsed time and remaining-time estimate for one running compile."""
    elapsed = now - compile_.start
    if not durations:
        return CompileStatus(**compile_.model_dump(), elapsed=elapsed)

    expected = expected_duration(durations, statistic)
    eta = expected - elapsed
    state = EtaState.IMMINENT if eta < timedelta() else EtaState.KNOWN
    return CompileStatus(
        **compile_.model_dump(),
        elapsed=elapsed,
        expected=expected,
        eta=eta,
        eta_state=state,
    )


def correlate(
    latest_start: Mapping[str, datetime],
    running: Iterable[RunningBuild],
    durations: Mapping[str, Sequence[timedelta]],
    *,
    statistic: Statistic = Statistic.MEDIAN,
    now: datetime | None = None,
) -> list[CompileStatus]:
    """Build the status of every running compile, ordered by identifier."""
    if now is None:
        now = datetime.now(tz=UTC)

    statuses: list[CompileStatus] = []
    for compile_ in running_compiles(latest_start, running):
        package, _version = split_package_version(compile_.identifier) or (compile_.identifier, "")
        statuses.append(
            estimate(compile_, durations.get(package), statistic=statistic, now=now)
        )
    return statuses
