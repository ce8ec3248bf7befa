"""Sprint velocity: achieved vs. required issue throughput."""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from gitlab_app.analytics.metrics.capacity import CapacityBreakdown, compute_capacity
from gitlab_app.analytics.metrics.hours import estimated_hours, round_tenth
from gitlab_app.analytics.metrics.time_window import TimeWindow
from gitlab_app.core.config import DEFAULT_WORKING_HOURS_PER_DAY
from gitlab_app.core.mappers import coerce_issues
from gitlab_app.core.models import HealthStatus, IssueModel, UserModel


@dataclass(slots=True, frozen=True)
class VelocityMetrics:
    achieved_velocity: float
    required_velocity: float
    elapsed_days: int
    remaining_days: int
    status: HealthStatus
    capacity_breakdown: CapacityBreakdown


def compute_velocity(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    window: TimeWindow,
    roster: Iterable[UserModel | Mapping[str, Any]] | None,
    working_hours_per_day: float = DEFAULT_WORKING_HOURS_PER_DAY,
) -> VelocityMetrics:
    """Closed issues per elapsed day against open issues per remaining day.

    ``status`` is neutral once no days remain, otherwise good when the
    achieved pace keeps up with the required one. The capacity breakdown
    carries the estimate utilization of the team's total hours.
    """
    items = coerce_issues(issues)
    completed = sum(1 for i in items if i.is_closed)
    remaining = len(items) - completed

    achieved = completed / window.elapsed_days if window.elapsed_days > 0 else 0.0
    required = remaining / window.remaining_days if window.remaining_days > 0 else 0.0

    status: HealthStatus = "neutral"
    if window.remaining_days > 0:
        status = "good" if achieved >= required else "poor"

    capacity = compute_capacity(roster, window.total_days, working_hours_per_day)
    utilization = (
        (estimated_hours(items) / capacity.total_capacity_hours) * 100 if capacity.total_capacity_hours > 0 else 0.0
    )

    return VelocityMetrics(
        achieved_velocity=achieved,
        required_velocity=required,
        elapsed_days=window.elapsed_days,
        remaining_days=window.remaining_days,
        status=status,
        capacity_breakdown=dataclasses.replace(capacity, utilization_percentage=round_tenth(utilization)),
    )
