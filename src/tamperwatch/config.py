"""Configuration loading utilities for the file monitor."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml # type: ignore

from .engine import DEFAULT_MAX_DEPTH

logger = logging.getLogger(__name__)

DEFAULT_PERIOD = 5000
DEFAULT_INITIAL_DELAY_MS = 1000

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(Exception):
    """Raised when the configuration file is missing or invalid."""


class TimeUnit(str, Enum):
    """Units accepted for the scan period."""

    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"

    def to_seconds(self, value: float) -> float:
        return value * _UNIT_SECONDS[self]


_UNIT_SECONDS = {
    TimeUnit.MILLISECONDS: 0.001,
    TimeUnit.SECONDS: 1.0,
    TimeUnit.MINUTES: 60.0,
}


@dataclass
class MonitorConfig:
    """Options describing what to watch and how often."""

    entry_path: Path
    period: float = DEFAULT_PERIOD
    time_unit: TimeUnit = TimeUnit.MILLISECONDS
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    max_depth: int = DEFAULT_MAX_DEPTH

    @property
    def period_seconds(self) -> float:
        return self.time_unit.to_seconds(self.period)

    @property
    def initial_delay_seconds(self) -> float:
        return self.initial_delay_ms / 1000.0


@dataclass
class AppConfig:
    """Top-level configuration structure."""

    monitor: MonitorConfig
    log_level: str = field(default="INFO")


def load_config(path: Path) -> AppConfig:
    """Load and validate the YAML configuration file."""

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML configuration: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError("Configuration root must be a mapping")

    monitor_cfg = parse_monitor_config(data.get("monitor"), base_dir=path.parent)
    log_level = _parse_log_level(data.get("logging"))
    logger.debug("Loaded configuration from %s", path)
    return AppConfig(monitor=monitor_cfg, log_level=log_level)


def parse_monitor_config(raw: Any, *, base_dir: Path) -> MonitorConfig:
    """Validate a ``monitor`` mapping; relative paths resolve against ``base_dir``."""

    if not isinstance(raw, dict):
        raise ConfigError("'monitor' section must be a mapping")

    entry_raw = raw.get("entry_path")
    if not isinstance(entry_raw, str) or not entry_raw:
        raise ConfigError("monitor.entry_path must be a non-empty string")

    entry_path = Path(entry_raw).expanduser()
    if not entry_path.is_absolute():
        entry_path = (base_dir / entry_path).resolve()

    period = _positive_number(raw.get("period", DEFAULT_PERIOD), "monitor.period")

    time_unit_raw = raw.get("time_unit", TimeUnit.MILLISECONDS.value)
    try:
        time_unit = TimeUnit(str(time_unit_raw).lower())
    except ValueError as exc:
        allowed = ", ".join(unit.value for unit in TimeUnit)
        raise ConfigError(f"monitor.time_unit must be one of: {allowed}") from exc

    initial_delay = raw.get("initial_delay_ms", DEFAULT_INITIAL_DELAY_MS)
    if isinstance(initial_delay, bool) or not isinstance(initial_delay, int) or initial_delay < 0:
        raise ConfigError("monitor.initial_delay_ms must be a non-negative integer")

    max_depth = raw.get("max_depth", DEFAULT_MAX_DEPTH)
    if isinstance(max_depth, bool) or not isinstance(max_depth, int) or max_depth <= 0:
        raise ConfigError("monitor.max_depth must be a positive integer")

    return MonitorConfig(
        entry_path=entry_path,
        period=period,
        time_unit=time_unit,
        initial_delay_ms=initial_delay,
        max_depth=max_depth,
    )


def _positive_number(value: Any, field_name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{field_name} must be numeric")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field_name} must be numeric") from exc
    if number <= 0:
        raise ConfigError(f"{field_name} must be positive")
    return number


def _parse_log_level(raw: Any) -> str:
    if raw is None:
        return "INFO"
    if not isinstance(raw, dict):
        raise ConfigError("'logging' section must be a mapping")
    level = str(raw.get("level", "INFO")).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"logging.level must be one of: {', '.join(_LOG_LEVELS)}")
    return level
