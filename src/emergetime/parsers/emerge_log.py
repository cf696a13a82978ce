"""Reconstruct build history from emerge.log.

The reconstructor is a single-pass fold over log lines. It pairs
``>>> emerge`` lines with their ``::: completed emerge`` lines by the
``package-version`` key and records:

- ``compiles``: completed builds in log order
- ``in_progress``: builds that started but never completed
- ``durations``: per-package duration samples
- ``latest_start``: most recent build start per package
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Collection, Iterable
from datetime import datetime, timedelta
from pathlib import Path
from typing import TextIO

from pydantic import BaseModel, Field

from emergetime.errors import LogUnreadableError
from emergetime.models import BuildSession, CompletedCompile, LogEvent, from_epoch
from emergetime.parsers.patterns import (
    BuildLineFields,
    LineCategory,
    RemovalLineFields,
    is_restart_marker,
    match_line,
)

logger = logging.getLogger(__name__)

DEFAULT_LOG_PATH = Path("/var/log/emerge.log")


class ReconstructionResult(BaseModel):
    """Everything a full scan of the log produced."""

    compiles: list[CompletedCompile] = Field(default_factory=list)
    in_progress: dict[str, BuildSession] = Field(default_factory=dict)
    durations: dict[str, list[timedelta]] = Field(default_factory=dict)
    latest_start: dict[str, datetime] = Field(default_factory=dict)

    def still_running(self, running: Collection[str]) -> dict[str, BuildSession]:
        """Return the in-flight sessions whose key is in ``running``.

        Sessions left open in the log whose process is gone are treated as
        abandoned. ``in_progress`` itself is not modified.
        """
        return {key: session for key, session in self.in_progress.items() if key in running}


def parse_event(line: str, lineno: int) -> LogEvent | None:
    """Split a raw line into timestamp and message.

    Returns ``None`` for lines that are too short or whose timestamp
    cannot be parsed. The latter is logged with its line number.
    """
    fields = line.split()
    if len(fields) < 2:
        return None
    raw_ts = fields[0][:-1]
    if not (raw_ts.isascii() and raw_ts.isdecimal()):
        logger.warning("Could not parse timestamp on line %d: %r", lineno, fields[0])
        return None
    try:
        timestamp = int(raw_ts)
        when = from_epoch(timestamp)
    except (ValueError, OverflowError, OSError) as exc:
        logger.warning("Timestamp out of range on line %d: %s", lineno, exc)
        return None
    return LogEvent(
        lineno=lineno,
        timestamp=timestamp,
        time=when,
        message=" ".join(fields[1:]),
    )


class LogReconstructor:
    """Streaming state machine over emerge.log lines.

    Args:
        restart_heuristic: Discard all in-flight builds when a message
            suggests portage started over (``>>> emerge (1 of``,
            ``*** terminating.``, ``*** exiting successfully.``).
    """

    def __init__(self, *, restart_heuristic: bool = False) -> None:
        self.restart_heuristic = restart_heuristic
        self.compiles: list[CompletedCompile] = []
        self.in_progress: dict[str, BuildSession] = {}
        # Unmerges only absorb completion lines; they never yield durations.
        self.removals: dict[str, BuildSession] = {}
        self.durations: dict[str, list[timedelta]] = defaultdict(list)
        self.latest_start: dict[str, datetime] = {}
        self._lineno = 0

    def feed(self, line: str, lineno: int | None = None) -> None:
        """Consume one raw log line."""
        if lineno is None:
            lineno = self._lineno + 1
        self._lineno = lineno

        event = parse_event(line, lineno)
        if event is None:
            return
        self.apply(event)

    def apply(self, event: LogEvent) -> None:
        """Apply an already-parsed event to the fold state."""
        if self.restart_heuristic and is_restart_marker(event.message):
            if self.in_progress:
                logger.debug(
                    "Discarding %d in-flight build(s) at line %d",
                    len(self.in_progress),
                    event.lineno,
                )
            self.in_progress = {}

        matched = match_line(event.message)
        fields = matched.fields
        if matched.category == LineCategory.BUILD_START and isinstance(fields, BuildLineFields):
            self._start_build(fields, event.time)
        elif matched.category == LineCategory.REMOVAL_START and isinstance(
            fields, RemovalLineFields
        ):
            self.removals[fields.key] = BuildSession(
                package=fields.package,
                version=fields.version,
                start=event.time,
            )
        elif matched.category == LineCategory.BUILD_COMPLETE and isinstance(
            fields, BuildLineFields
        ):
            self._complete_build(fields.key, event.time)

    def _start_build(self, fields: BuildLineFields, start: datetime) -> None:
        # Last start wins for a repeated key.
        self.in_progress[fields.key] = BuildSession(
            package=fields.package,
            version=fields.version,
            start=start,
        )
        self.latest_start[fields.package] = start

    def _complete_build(self, key: str, end: datetime) -> None:
        session = self.in_progress.pop(key, None)
        if session is None:
            # Either an unmerge finishing or a start outside the scanned window.
            self.removals.pop(key, None)
            return

        compile_ = CompletedCompile(
            package=session.package,
            version=session.version,
            start=session.start,
            end=end,
        )
        self.compiles.append(compile_)
        self.durations[compile_.package].append(compile_.duration)

    def scan(self, lines: Iterable[str]) -> ReconstructionResult:
        """Feed every line and return the accumulated result."""
        for lineno, line in enumerate(lines, start=self._lineno + 1):
            self.feed(line, lineno)
        return self.result()

    def result(self) -> ReconstructionResult:
        return ReconstructionResult(
            compiles=list(self.compiles),
            in_progress=dict(self.in_progress),
            durations={name: list(durs) for name, durs in self.durations.items()},
            latest_start=dict(self.latest_start),
        )


def read_log(
    source: Path | str | TextIO = DEFAULT_LOG_PATH,
    *,
    restart_heuristic: bool = False,
) -> ReconstructionResult:
    """Scan a log file or an open text stream.

    Args:
        source: Path to the log, or any iterable text stream.
        restart_heuristic: See :class:`LogReconstructor`.

    Returns:
        The reconstruction result for the whole log.

    Raises:
        LogUnreadableError: If the log cannot be opened or read.
    """
    reconstructor = LogReconstructor(restart_heuristic=restart_heuristic)

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            with path.open("r", encoding="utf-8", errors="replace") as f:
                return reconstructor.scan(f)
        except OSError as exc:
            raise LogUnreadableError(f"Could not open log file '{path}': {exc}") from exc

    try:
        return reconstructor.scan(source)
    except OSError as exc:
        raise LogUnreadableError(f"Could not read log stream: {exc}") from exc
