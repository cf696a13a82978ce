"""Exceptions raised by emergetime."""


class EmergeTimeError(Exception):
    """Base error for emergetime."""


class LogUnreadableError(EmergeTimeError):
    """The build log could not be opened or read."""


class ProcessTableError(EmergeTimeError):
    """The process table root could not be listed."""


class PackageNotFoundError(EmergeTimeError):
    """No completed compile matches the requested package."""

    def __init__(self, pattern: str) -> None:
        super().__init__(f"Found no compilations matching {pattern}")
        self.pattern = pattern


class EmptySampleError(EmergeTimeError, ValueError):
    """A statistic was requested over an empty duration sample."""
