"""Load metric settings from YAML (with fallbacks to config constants)."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

import pytz
import yaml

from .config import (
    DEFAULT_SPRINT_DAYS,
    DEFAULT_WORKING_HOURS_PER_DAY,
    FALLBACK_STATUS_COLORS,
    HOUR_EFFICIENCY_TOLERANCE,
    TIMEZONE,
)
from .status import normalize_color

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "metrics.yaml"


@dataclass(slots=True)
class MetricSettings:
    timezone: str = TIMEZONE
    working_hours_per_day: float = DEFAULT_WORKING_HOURS_PER_DAY
    default_sprint_days: int = DEFAULT_SPRINT_DAYS
    hour_efficiency_tolerance: float = HOUR_EFFICIENCY_TOLERANCE
    fallback_status_colors: dict[str, str] = field(default_factory=lambda: dict(FALLBACK_STATUS_COLORS))

    @property
    def tz(self) -> pytz.BaseTzInfo:
        return pytz.timezone(self.timezone)


_CACHE: MetricSettings | None = None


def _positive_number(value, default: float, key: str) -> float:
    if value is None:
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s=%r in %s", key, value, SETTINGS_FILENAME)
        return default
    if number <= 0:
        logger.warning("Ignoring non-positive %s=%r in %s", key, value, SETTINGS_FILENAME)
        return default
    return number


def _timezone_name(value) -> str:
    if not value:
        return TIMEZONE
    try:
        pytz.timezone(str(value))
    except pytz.UnknownTimeZoneError:
        logger.warning("Unknown timezone %r in %s, using %s", value, SETTINGS_FILENAME, TIMEZONE)
        return TIMEZONE
    return str(value)


def parse_settings(data: dict | None) -> MetricSettings:
    """Build MetricSettings from a parsed YAML mapping, key by key."""
    data = data if isinstance(data, dict) else {}
    section = data.get("metrics") if isinstance(data.get("metrics"), dict) else {}
    colors = dict(FALLBACK_STATUS_COLORS)
    extra_colors = data.get("status_colors")
    if isinstance(extra_colors, dict):
        for name, value in extra_colors.items():
            color = normalize_color(value)
            if color is None:
                logger.warning("Ignoring status color %r for %r in %s", value, name, SETTINGS_FILENAME)
                continue
            colors[str(name).strip().lower()] = color
    return MetricSettings(
        timezone=_timezone_name(section.get("timezone")),
        working_hours_per_day=_positive_number(
            section.get("working_hours_per_day"), DEFAULT_WORKING_HOURS_PER_DAY, "working_hours_per_day"
        ),
        default_sprint_days=int(
            _positive_number(section.get("default_sprint_days"), DEFAULT_SPRINT_DAYS, "default_sprint_days")
        ),
        hour_efficiency_tolerance=_positive_number(
            section.get("hour_efficiency_tolerance"), HOUR_EFFICIENCY_TOLERANCE, "hour_efficiency_tolerance"
        ),
        fallback_status_colors=colors,
    )


def load_settings(base_path: str | Path | None = None, *, refresh: bool = False) -> MetricSettings:
    global _CACHE
    if _CACHE is not None and not refresh and base_path is None:
        return _CACHE
    base = Path(base_path or Path(__file__).resolve().parent.parent)
    yaml_path = base / SETTINGS_FILENAME
    if not yaml_path.exists():
        settings = MetricSettings()
    else:
        try:
            settings = parse_settings(yaml.safe_load(yaml_path.read_text()))
        except (yaml.YAMLError, OSError) as exc:
            logger.warning("Failed to read %s: %s", yaml_path, exc)
            settings = MetricSettings()
    if base_path is None:
        _CACHE = settings
    return settings
