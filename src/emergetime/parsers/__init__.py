"""Parsers for emerge.log."""

from .emerge_log import (
    DEFAULT_LOG_PATH,
    LogReconstructor,
    ReconstructionResult,
    parse_event,
    read_log,
)
from .patterns import (
    BuildLineFields,
    LineCategory,
    LineMatch,
    RemovalLineFields,
    is_restart_marker,
    match_line,
    parse_build_complete,
    parse_build_start,
    parse_removal_start,
    split_package_version,
)

__all__ = [
    "BuildLineFields",
    "DEFAULT_LOG_PATH",
    "LineCategory",
    "LineMatch",
    "LogReconstructor",
    "ReconstructionResult",
    "RemovalLineFields",
    "is_restart_marker",
    "match_line",
    "parse_build_complete",
    "parse_build_start",
    "parse_event",
    "parse_removal_start",
    "read_log",
    "split_package_version",
]
