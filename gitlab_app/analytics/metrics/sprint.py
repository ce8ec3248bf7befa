"""Sprint-level summary combining window, velocity, and hour metrics."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Any

from gitlab_app.analytics.metrics.hours import compute_hour_metrics
from gitlab_app.analytics.metrics.time_window import compute_window
from gitlab_app.analytics.metrics.velocity import compute_velocity
from gitlab_app.core.mappers import coerce_issues, coerce_users
from gitlab_app.core.models import IssueModel, IterationModel, MilestoneModel, UserModel

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class SprintMetrics:
    total_issues: int
    completed_issues: int
    completion_rate: float
    time_remaining: int
    achieved_velocity: float
    required_velocity: float
    estimated_hours: float
    spent_hours: float
    sprint_capacity_hours: float


def current_iteration(issues: Iterable[IssueModel]) -> IterationModel | None:
    """Iteration of the first issue that has one."""
    return next((i.iteration for i in issues if i.iteration is not None), None)


def completion_rate(issues: list[IssueModel]) -> float:
    if not issues:
        return 0.0
    return sum(1 for i in issues if i.is_closed) / len(issues) * 100


def calculate_sprint_metrics(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    users: Iterable[UserModel | Mapping[str, Any]] | None,
    milestone: MilestoneModel | Mapping[str, Any] | None = None,
    now: datetime | None = None,
    tz: str | tzinfo | None = None,
) -> SprintMetrics:
    items = coerce_issues(issues)
    roster = coerce_users(users)

    iteration = current_iteration(items)
    window = compute_window(milestone, iteration, now, tz=tz)
    logger.debug(
        "Sprint window %s..%s from %s (%d issues, %d members)",
        window.start.date(),
        window.end.date(),
        window.source,
        len(items),
        len(roster),
    )
    velocity = compute_velocity(items, window, roster)
    hours = compute_hour_metrics(items, roster, window.total_days, window.elapsed_percentage)

    return SprintMetrics(
        total_issues=len(items),
        completed_issues=sum(1 for i in items if i.is_closed),
        completion_rate=completion_rate(items),
        time_remaining=window.remaining_days,
        achieved_velocity=velocity.achieved_velocity,
        required_velocity=velocity.required_velocity,
        estimated_hours=hours.total_estimated,
        spent_hours=hours.total_spent,
        sprint_capacity_hours=hours.sprint_capacity,
    )
