"""Core Pydantic models for reconstructed build history."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


def make_key(package: str, version: str) -> str:
    """Composite key: ``package-version``."""
    return f"{package}-{version}"


def from_epoch(seconds: int) -> datetime:
    """Convert epoch seconds from the log into an aware UTC datetime."""
    return datetime.fromtimestamp(seconds, tz=UTC)


class LogEvent(BaseModel):
    """A single log line split into its timestamp and message."""

    lineno: int
    timestamp: int
    time: datetime
    message: str


class BuildSession(BaseModel):
    """A build (or removal) that has started but not yet completed."""

    package: str
    version: str
    start: datetime

    @property
    def key(self) -> str:
        """Canonical key: ``package-version``."""
        return make_key(self.package, self.version)


class CompletedCompile(BuildSession):
    """A build session paired with its completion line."""

    model_config = ConfigDict(frozen=True)

    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


class RunningBuild(BaseModel):
    """A build-tool worker process as seen in the process table."""

    identifier: str
    phase: str = ""


class RunningCompile(BaseModel):
    """A running build joined with the start time recorded in the log."""

    identifier: str
    start: datetime
    phase: str = ""


class EtaState(StrEnum):
    """How the remaining time of a running compile is known."""

    KNOWN = "known"
    UNKNOWN = "unknown"
    IMMINENT = "imminent"


class CompileStatus(RunningCompile):
    """Elapsed time and ETA for a running compile."""

    elapsed: timedelta
    expected: timedelta | None = None
    eta: timedelta | None = None
    eta_state: EtaState = EtaState.UNKNOWN
