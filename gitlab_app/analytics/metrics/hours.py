"""Hour-based sprint metrics and shared good/poor/neutral indicators."""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from gitlab_app.core.config import HOUR_EFFICIENCY_TOLERANCE, HOUR_METRICS_HOURS_PER_DAY, SECONDS_PER_HOUR
from gitlab_app.core.mappers import coerce_issues, coerce_users
from gitlab_app.core.models import HealthStatus, IssueModel, UserModel


@dataclass(slots=True, frozen=True)
class HourMetrics:
    total_estimated: float
    total_spent: float
    sprint_capacity: float
    utilization_percentage: float
    progress_percentage: float
    efficiency: HealthStatus


def round_tenth(value: float) -> float:
    """Round to one decimal, halves away from zero (``2.25 -> 2.3``)."""
    return math.copysign(math.floor(abs(value) * 10 + 0.5) / 10, value)


def estimated_hours(issues: Iterable[IssueModel]) -> float:
    return sum(i.time_estimate_seconds for i in issues) / SECONDS_PER_HOUR


def spent_hours(issues: Iterable[IssueModel]) -> float:
    return sum(i.time_spent_seconds for i in issues) / SECONDS_PER_HOUR


def compute_hour_metrics(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    roster: Iterable[UserModel | Mapping[str, Any]] | None,
    total_days: int,
    elapsed_percentage: float = 0,
) -> HourMetrics:
    """Estimated vs. spent hours against a fixed 8h/day sprint capacity.

    Parameters
    ----------
    issues : iterable
        Sprint issues.
    roster : iterable or None
        Team members; only the head count matters.
    total_days : int
        Sprint length in days.
    elapsed_percentage : float
        Share of the sprint already elapsed, used for ``efficiency``.

    Returns
    -------
    HourMetrics
        All values rounded to one decimal.
    """
    items = coerce_issues(issues)
    team_size = len(coerce_users(roster))

    total_estimated = estimated_hours(items)
    total_spent = spent_hours(items)
    sprint_capacity = (total_days or 0) * HOUR_METRICS_HOURS_PER_DAY * team_size

    utilization = (total_estimated / sprint_capacity) * 100 if sprint_capacity > 0 else 0.0
    progress = (total_spent / total_estimated) * 100 if total_estimated > 0 else 0.0

    efficiency: HealthStatus = "neutral"
    if total_estimated > 0 and elapsed_percentage > 0:
        efficiency = "good" if progress >= elapsed_percentage else "poor"

    return HourMetrics(
        total_estimated=round_tenth(total_estimated),
        total_spent=round_tenth(total_spent),
        sprint_capacity=round_tenth(sprint_capacity),
        utilization_percentage=round_tenth(utilization),
        progress_percentage=round_tenth(progress),
        efficiency=efficiency,
    )


def completion_status(completion_rate: float, elapsed_percentage: float) -> HealthStatus:
    if elapsed_percentage == 0:
        return "neutral"
    return "good" if completion_rate >= elapsed_percentage else "poor"


def velocity_status(achieved: float, required: float) -> HealthStatus:
    if required == 0:
        return "neutral"
    return "good" if achieved >= required else "poor"


def hour_efficiency_status(
    spent_percentage: float,
    completion_percentage: float,
    tolerance: float = HOUR_EFFICIENCY_TOLERANCE,
) -> HealthStatus:
    """Good when hours spent track issue completion within ``tolerance`` points."""
    if completion_percentage == 0 or spent_percentage == 0:
        return "neutral"
    return "good" if abs(spent_percentage - completion_percentage) <= tolerance else "poor"
