"""CLI interface for emergetime."""

import logging
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated, Optional

import click
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from typer.core import TyperGroup

from emergetime.config import EmergeTimeConfig, load_config, merge_cli_overrides
from emergetime.errors import LogUnreadableError, PackageNotFoundError, ProcessTableError
from emergetime.formatters import (
    NO_RUNNING_COMPILES,
    format_estimate,
    format_history,
    format_pending,
    tabulate_status,
)
from emergetime.history import compiles_since, find_package_history
from emergetime.live import correlate
from emergetime.models import RunningBuild
from emergetime.parsers import ReconstructionResult, read_log
from emergetime.processes import snapshot_running_builds
from emergetime.stats import Statistic, expected_duration

EXIT_IO_ERROR = 1
EXIT_NOT_FOUND = 2
EXIT_USAGE_ERROR = EXIT_IO_ERROR


class EmergeTimeGroup(TyperGroup):
    """Report bad flags and option values with exit code 1.

    Click exits with 2 on usage errors, which is reserved for a package
    query that found nothing.
    """

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as exc:
            exc.exit_code = EXIT_USAGE_ERROR
            raise

    def invoke(self, ctx):
        try:
            return super().invoke(ctx)
        except click.UsageError as exc:
            exc.exit_code = EXIT_USAGE_ERROR
            raise


app = typer.Typer(
    name="emergetime",
    cls=EmergeTimeGroup,
    help="Show emerge build history and estimate how long running builds will take.",
)

console = Console()
err_console = Console(stderr=True)

LogOption = Annotated[
    Optional[Path],
    typer.Option("--log", "-l", help="Location of emerge log to parse."),
]
ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", help="Path to a .emergetime.toml config file."),
]
RestartOption = Annotated[
    Optional[bool],
    typer.Option(
        "--restart-heuristic/--no-restart-heuristic",
        help="Drop unfinished builds when portage appears to start over.",
    ),
]
ProcDirOption = Annotated[
    Optional[Path],
    typer.Option("--proc-dir", "-d", help="Root of the /proc filesystem."),
]
StatisticOption = Annotated[
    Optional[Statistic],
    typer.Option("--statistic", help="Statistic used for estimates."),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from emergetime import __version__

        console.print(f"emergetime {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log debug diagnostics to stderr."),
    ] = False,
) -> None:
    """emergetime - build history and ETAs from emerge.log.

    Shows the compile history when no command is given.
    """
    _configure_logging(verbose)
    if ctx.invoked_subcommand is None:
        history_cmd()


def _print(text: str) -> None:
    console.print(text, markup=False, highlight=False, soft_wrap=True)


def _settings(config_path: Path | None, **overrides: object) -> EmergeTimeConfig:
    return merge_cli_overrides(load_config(config_path), **overrides)


def _scan(config: EmergeTimeConfig) -> ReconstructionResult:
    try:
        return read_log(config.log.path, restart_heuristic=config.log.restart_heuristic)
    except LogUnreadableError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(EXIT_IO_ERROR) from exc


def _snapshot(config: EmergeTimeConfig) -> list[RunningBuild]:
    try:
        return snapshot_running_builds(
            config.processes.proc_dir,
            config.processes.sandbox_marker,
        )
    except ProcessTableError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}", highlight=False)
        raise typer.Exit(EXIT_IO_ERROR) from exc


@app.command(name="history")
def history_cmd(
    log: LogOption = None,
    since: Annotated[
        Optional[str],
        typer.Option(
            "--since",
            help="Only show compiles started on or after this date (YYYY-MM-DD).",
        ),
    ] = None,
    config_path: ConfigOption = None,
    restart_heuristic: RestartOption = None,
) -> None:
    """Show the history of completed compiles."""
    since_time: datetime | None = None
    if since:
        try:
            since_time = datetime.strptime(since, "%Y-%m-%d").astimezone()
        except ValueError:
            err_console.print(
                f"[red]Error:[/red] Invalid date format: {escape(since)}",
                highlight=False,
            )
            err_console.print("Use YYYY-MM-DD format (e.g., 2024-01-15)")
            raise typer.Exit(EXIT_IO_ERROR)

    config = _settings(config_path, log_path=log, restart_heuristic=restart_heuristic)
    result = _scan(config)
    _print(format_history(compiles_since(result.compiles, since_time)))


@app.command(name="estimate")
def estimate_cmd(
    package: Annotated[str, typer.Argument(help="Package name, with or without category.")],
    log: LogOption = None,
    statistic: StatisticOption = None,
    config_path: ConfigOption = None,
    restart_heuristic: RestartOption = None,
) -> None:
    """Show the history of one package and its expected build time."""
    config = _settings(
        config_path,
        log_path=log,
        statistic=statistic,
        restart_heuristic=restart_heuristic,
    )
    result = _scan(config)

    try:
        history = find_package_history(result.compiles, package)
    except PackageNotFoundError as exc:
        _print(str(exc))
        raise typer.Exit(EXIT_NOT_FOUND) from exc

    chosen = config.estimate.statistic
    expected = expected_duration(result.durations[history.package], chosen)
    _print(format_estimate(history, expected, chosen))


@app.command(name="current")
def current_cmd(
    log: LogOption = None,
    proc_dir: ProcDirOption = None,
    statistic: StatisticOption = None,
    config_path: ConfigOption = None,
    restart_heuristic: RestartOption = None,
) -> None:
    """Show running compiles with elapsed time and ETA."""
    config = _settings(
        config_path,
        log_path=log,
        proc_dir=proc_dir,
        statistic=statistic,
        restart_heuristic=restart_heuristic,
    )
    result = _scan(config)
    running = _snapshot(config)

    statuses = correlate(
        result.latest_start,
        running,
        result.durations,
        statistic=config.estimate.statistic,
    )
    if not statuses:
        _print(NO_RUNNING_COMPILES)
        return
    _print(tabulate_status(statuses))


@app.command(name="pending")
def pending_cmd(
    log: LogOption = None,
    proc_dir: ProcDirOption = None,
    config_path: ConfigOption = None,
    restart_heuristic: RestartOption = None,
) -> None:
    """Show unfinished compiles from the log that are still running."""
    config = _settings(
        config_path,
        log_path=log,
        proc_dir=proc_dir,
        restart_heuristic=restart_heuristic,
    )
    result = _scan(config)
    running = {build.identifier for build in _snapshot(config)}

    sessions = result.still_running(running)
    if not sessions:
        _print(NO_RUNNING_COMPILES)
        return
    _print(format_pending(sessions, datetime.now(tz=UTC)))


if __name__ == "__main__":
    app()
