"""Line patterns for emerge.log messages.

Each matcher returns a typed record instead of a dict of named groups.
The build-start, build-complete and removal-start patterns are mutually
exclusive: the first two differ in their literal prefix and the third
never contains ``emerge (``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import StrEnum

from emergetime.models import make_key

_PACKAGE = r"(?P<package>[A-Za-z0-9/_-]+)"
_BUILD_COMMON = (
    r"\((?P<ith>\d+) of (?P<total>\d+)\) " + _PACKAGE + r"-(?P<version>\d[^ ]+) to /"
)

BUILD_START_RE = re.compile(r">>> emerge " + _BUILD_COMMON)
BUILD_COMPLETE_RE = re.compile(r"::: completed emerge " + _BUILD_COMMON)
REMOVAL_START_RE = re.compile(r"=== Unmerging\.\.\. \(" + _PACKAGE + r"-(?P<version>\d.*)\)")
PACKAGE_VERSION_RE = re.compile(_PACKAGE + r"-(?P<version>\d[^ ]+)")

# Portage restarting with --keep-going begins a fresh "(1 of N)" run.
RESTART_RE = re.compile(r">>> emerge \(1 of")
SESSION_END_MESSAGES = frozenset({"*** exiting successfully.", "*** terminating."})


class LineCategory(StrEnum):
    """What kind of event a log message describes."""

    BUILD_START = "build_start"
    BUILD_COMPLETE = "build_complete"
    REMOVAL_START = "removal_start"
    UNRECOGNIZED = "unrecognized"


@dataclass(frozen=True)
class BuildLineFields:
    """Fields of a ``>>> emerge`` or ``::: completed emerge`` line."""

    package: str
    version: str
    index: int
    total: int

    @property
    def key(self) -> str:
        return make_key(self.package, self.version)


@dataclass(frozen=True)
class RemovalLineFields:
    """Fields of an ``=== Unmerging...`` line."""

    package: str
    version: str

    @property
    def key(self) -> str:
        return make_key(self.package, self.version)


@dataclass(frozen=True)
class LineMatch:
    category: LineCategory
    fields: BuildLineFields | RemovalLineFields | None = None


UNRECOGNIZED = LineMatch(LineCategory.UNRECOGNIZED)


def _build_fields(match: re.Match[str] | None) -> BuildLineFields | None:
    if match is None:
        return None
    return BuildLineFields(
        package=match.group("package"),
        version=match.group("version"),
        index=int(match.group("ith")),
        total=int(match.group("total")),
    )


def parse_build_start(message: str) -> BuildLineFields | None:
    """Parse ``>>> emerge (I of N) PACKAGE-VERSION to /``."""
    return _build_fields(BUILD_START_RE.search(message))


def parse_build_complete(message: str) -> BuildLineFields | None:
    """Parse ``::: completed emerge (I of N) PACKAGE-VERSION to /``."""
    return _build_fields(BUILD_COMPLETE_RE.search(message))


def parse_removal_start(message: str) -> RemovalLineFields | None:
    """Parse ``=== Unmerging... (PACKAGE-VERSION)``."""
    match = REMOVAL_START_RE.search(message)
    if match is None:
        return None
    return RemovalLineFields(package=match.group("package"), version=match.group("version"))


def match_line(message: str) -> LineMatch:
    """Classify a log message and extract its fields.

    Args:
        message: The log line with its leading timestamp token removed.

    Returns:
        A LineMatch whose category is ``UNRECOGNIZED`` when no pattern applies.
    """
    start = parse_build_start(message)
    if start is not None:
        return LineMatch(LineCategory.BUILD_START, start)
    removal = parse_removal_start(message)
    if removal is not None:
        return LineMatch(LineCategory.REMOVAL_START, removal)
    complete = parse_build_complete(message)
    if complete is not None:
        return LineMatch(LineCategory.BUILD_COMPLETE, complete)
    return UNRECOGNIZED


def is_restart_marker(message: str) -> bool:
    """Whether the message suggests all earlier in-flight builds are gone."""
    return message in SESSION_END_MESSAGES or RESTART_RE.search(message) is not None


def split_package_version(identifier: str) -> tuple[str, str] | None:
    """Split ``category/name-1.2.3`` into ``("category/name", "1.2.3")``.

    Returns ``None`` when the identifier has no version part.
    """
    match = PACKAGE_VERSION_RE.fullmatch(identifier)
    if match is None:
        return None
    return match.group("package"), match.group("version")
