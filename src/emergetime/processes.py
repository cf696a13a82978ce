"""Snapshot of running build processes from a /proc-style directory.

Portage runs each ebuild phase under a sandbox process whose first
argument looks like ``[app-shells/bash-5.2_p15] sandbox``. The last
whitespace-separated token of its final argument names the phase
(``compile``, ``install``, ...).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from pydantic import BaseModel, Field

from emergetime.errors import ProcessTableError
from emergetime.models import RunningBuild

logger = logging.getLogger(__name__)

DEFAULT_PROC_DIR = Path("/proc")
SANDBOX_MARKER = "sandbox"


class ProcessRecord(BaseModel):
    """A process id and its argument vector."""

    pid: int
    cmdline: list[str] = Field(default_factory=list)


def _read_cmdline(path: Path) -> list[str]:
    data = path.read_bytes().decode("utf-8", errors="replace")
    return [arg for arg in data.split("\0") if arg]


def list_processes(proc_dir: Path | str = DEFAULT_PROC_DIR) -> list[ProcessRecord]:
    """List every process under ``proc_dir`` with its command line.

    Processes that exit or become unreadable while the table is being
    read are skipped.

    Raises:
        ProcessTableError: If ``proc_dir`` itself cannot be listed.
    """
    root = Path(proc_dir)
    try:
        entries = [entry for entry in root.iterdir() if entry.name.isdecimal()]
    except OSError as exc:
        raise ProcessTableError(f"Could not list process table '{root}': {exc}") from exc

    records: list[ProcessRecord] = []
    for entry in sorted(entries, key=lambda e: int(e.name)):
        try:
            if not entry.is_dir():
                continue
            cmdline = _read_cmdline(entry / "cmdline")
        except OSError as exc:
            logger.debug("Skipping process %s: %s", entry.name, exc)
            continue
        records.append(ProcessRecord(pid=int(entry.name), cmdline=cmdline))
    return records


def parse_build_process(
    record: ProcessRecord,
    sandbox_marker: str = SANDBOX_MARKER,
) -> RunningBuild | None:
    """Extract the package identifier and phase from a sandbox process."""
    argv = record.cmdline
    if len(argv) < 2:
        return None
    first = argv[0]
    if not (first.startswith("[") and first.endswith(sandbox_marker)):
        return None

    identifier = first[1:].split("]", 1)[0]
    tokens = argv[-1].split()
    phase = tokens[-1] if tokens else ""
    return RunningBuild(identifier=identifier, phase=phase)


def running_builds(
    records: Iterable[ProcessRecord],
    sandbox_marker: str = SANDBOX_MARKER,
) -> list[RunningBuild]:
    """Filter a process list down to build sandboxes."""
    builds: list[RunningBuild] = []
    for record in records:
        build = parse_build_process(record, sandbox_marker)
        if build is not None:
            builds.append(build)
    return builds


def snapshot_running_builds(
    proc_dir: Path | str = DEFAULT_PROC_DIR,
    sandbox_marker: str = SANDBOX_MARKER,
) -> list[RunningBuild]:
    """Read the process table once and return the running builds."""
    builds = running_builds(list_processes(proc_dir), sandbox_marker)
    logger.debug("Found %d running build process(es) under %s", len(builds), proc_dir)
    return builds
