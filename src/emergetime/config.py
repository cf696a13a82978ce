"""Unified configuration loaded from .emergetime.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from emergetime.parsers.emerge_log import DEFAULT_LOG_PATH
from emergetime.processes import DEFAULT_PROC_DIR, SANDBOX_MARKER
from emergetime.stats import Statistic

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".emergetime.toml"
CONFIG_SEARCH_PATHS = [Path(".")]

_TRUE_VALUES = ("true", "1", "yes")


class LogConfig(BaseModel):
    """[log] section."""

    path: str = str(DEFAULT_LOG_PATH)
    restart_heuristic: bool = False


class ProcessConfig(BaseModel):
    """[processes] section."""

    proc_dir: str = str(DEFAULT_PROC_DIR)
    sandbox_marker: str = SANDBOX_MARKER


class EstimateConfig(BaseModel):
    """[estimate] section."""

    statistic: Statistic = Statistic.MEDIAN


class EmergeTimeConfig(BaseModel):
    """Top-level configuration model."""

    log: LogConfig = Field(default_factory=LogConfig)
    processes: ProcessConfig = Field(default_factory=ProcessConfig)
    estimate: EstimateConfig = Field(default_factory=EstimateConfig)


def load_config(path: Path | str | None = None) -> EmergeTimeConfig:
    """Load configuration from TOML file + env vars.

    Search order:
    1. Explicit path (if provided)
    2. .emergetime.toml in CWD
    3. ~/.config/emergetime/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged EmergeTimeConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        global_config = Path.home() / ".config" / "emergetime" / "config.toml"
        if not data and global_config.exists():
            data = _load_toml(global_config)
            logger.info("Loaded config from %s", global_config)

    config = EmergeTimeConfig()
    if data:
        try:
            config = EmergeTimeConfig.model_validate(data)
        except ValidationError as exc:
            logger.warning("Invalid configuration, using defaults: %s", exc)

    return _apply_env_vars(config)


def merge_cli_overrides(config: EmergeTimeConfig, **cli_kwargs: object) -> EmergeTimeConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).

    Args:
        config: Base config.
        **cli_kwargs: CLI flag values, e.g. ``log_path``, ``statistic``.

    Returns:
        Updated config with CLI overrides applied.
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "log_path": ("log", "path"),
        "restart_heuristic": ("log", "restart_heuristic"),
        "proc_dir": ("processes", "proc_dir"),
        "sandbox_marker": ("processes", "sandbox_marker"),
        "statistic": ("estimate", "statistic"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = str(value) if isinstance(value, Path) else value

    return EmergeTimeConfig.model_validate(data)


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: EmergeTimeConfig) -> EmergeTimeConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "EMERGETIME_LOG": ("log", "path"),
        "EMERGETIME_PROC_DIR": ("processes", "proc_dir"),
        "EMERGETIME_SANDBOX_MARKER": ("processes", "sandbox_marker"),
        "EMERGETIME_STATISTIC": ("estimate", "statistic"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    restart_raw = os.environ.get("EMERGETIME_RESTART_HEURISTIC")
    if restart_raw is not None:
        data["log"]["restart_heuristic"] = restart_raw.lower() in _TRUE_VALUES

    try:
        return EmergeTimeConfig.model_validate(data)
    except ValidationError as exc:
        logger.warning("Ignoring invalid environment overrides: %s", exc)
        return config
