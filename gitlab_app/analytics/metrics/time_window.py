"""Sprint time window computation (pure functions).

Dates come from the issue's iteration when it is fully scheduled, otherwise
from the milestone, otherwise a default window is assumed. Computation never
raises for missing scheduling data.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, tzinfo
from typing import Any, Literal

import pytz

from gitlab_app.core.config import DEFAULT_SPRINT_DAYS, DEFAULT_WINDOW_HALF_DAYS, TIMEZONE
from gitlab_app.core.mappers import parse_date

logger = logging.getLogger(__name__)

WindowSource = Literal["iteration", "milestone", "iteration_start", "milestone_start", "default"]

ONE_DAY = timedelta(days=1)
END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(slots=True, frozen=True)
class TimeWindow:
    start: datetime
    end: datetime
    total_days: int
    elapsed_days: int
    remaining_days: int
    elapsed_percentage: float
    source: WindowSource


def resolve_tz(tz: str | tzinfo | None) -> tzinfo:
    if tz is None:
        return pytz.timezone(TIMEZONE)
    if isinstance(tz, str):
        return pytz.timezone(tz)
    return tz


def localize(value: datetime, tz: tzinfo) -> datetime:
    """Attach ``tz`` to a naive datetime, or convert an aware one into ``tz``."""
    if value.tzinfo is None:
        if hasattr(tz, "localize"):
            return tz.localize(value)
        return value.replace(tzinfo=tz)
    return value.astimezone(tz)


def _schedule_dates(container: Any) -> tuple[date | None, date | None]:
    if container is None:
        return None, None
    if isinstance(container, Mapping):
        start = container.get("start_date") or container.get("startDate")
        due = container.get("due_date") or container.get("dueDate")
    else:
        start = getattr(container, "start_date", None)
        due = getattr(container, "due_date", None)
    return parse_date(start), parse_date(due)


def start_of_day(day: date, tz: tzinfo) -> datetime:
    return localize(datetime.combine(day, time.min), tz)


def end_of_day(day: date, tz: tzinfo) -> datetime:
    return localize(datetime.combine(day, END_OF_DAY), tz)


def select_window_dates(
    milestone: Any,
    iteration: Any,
    now: datetime,
    sprint_days: int = DEFAULT_SPRINT_DAYS,
) -> tuple[date, date, WindowSource]:
    """Pick start/due calendar dates by source priority.

    Iteration dates beat milestone dates; a lone start date implies a
    ``sprint_days`` window; with nothing scheduled the window is centred on
    ``now``.
    """
    iteration_start, iteration_due = _schedule_dates(iteration)
    milestone_start, milestone_due = _schedule_dates(milestone)

    if iteration_start and iteration_due:
        return iteration_start, iteration_due, "iteration"
    if milestone_start and milestone_due:
        return milestone_start, milestone_due, "milestone"
    if iteration_start:
        return iteration_start, iteration_start + timedelta(days=sprint_days), "iteration_start"
    if milestone_start:
        return milestone_start, milestone_start + timedelta(days=sprint_days), "milestone_start"

    half = timedelta(days=DEFAULT_WINDOW_HALF_DAYS)
    logger.debug("No iteration or milestone dates, assuming window around %s", now.date())
    return (now - half).date(), (now + half).date(), "default"


def compute_window(
    milestone: Any = None,
    iteration: Any = None,
    now: datetime | None = None,
    *,
    tz: str | tzinfo | None = None,
    sprint_days: int = DEFAULT_SPRINT_DAYS,
) -> TimeWindow:
    """Derive the sprint window and day counts.

    Parameters
    ----------
    milestone, iteration : model, mapping, or None
        Scheduling containers exposing ``start_date`` / ``due_date``.
    now : datetime, optional
        Reference instant; defaults to the current time in ``tz``. Naive
        values are interpreted in ``tz``.
    tz : str or tzinfo, optional
        Timezone whose calendar days bound the window (default from config).
    sprint_days : int
        Window length assumed when only a start date is known.

    Returns
    -------
    TimeWindow
        ``start`` at 00:00:00.000 and ``end`` at 23:59:59.999 of their days,
        with ``total_days >= 1`` and non-negative elapsed/remaining counts.
    """
    zone = resolve_tz(tz)
    current = localize(now, zone) if now is not None else datetime.now(zone)

    start_date, due_date, source = select_window_dates(milestone, iteration, current, sprint_days)
    start = start_of_day(start_date, zone)
    end = end_of_day(due_date, zone)

    raw_total = math.ceil((end - start) / ONE_DAY)
    elapsed_days = max(0, math.floor((current - start) / ONE_DAY))
    remaining_days = max(0, math.ceil((end - current) / ONE_DAY))
    elapsed_percentage = (elapsed_days / raw_total) * 100 if raw_total > 0 else 0.0

    return TimeWindow(
        start=start,
        end=end,
        total_days=max(1, raw_total),
        elapsed_days=elapsed_days,
        remaining_days=remaining_days,
        elapsed_percentage=min(100.0, float(elapsed_percentage)),
        source=source,
    )
