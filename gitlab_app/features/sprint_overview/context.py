"""Pure helpers to build the sprint overview context for presentation code."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from gitlab_app.analytics.aggregations.grouping import (
    GroupedResult,
    GroupMetadata,
    get_group_metadata,
    group_issues,
)
from gitlab_app.analytics.metrics.capacity import CapacityBreakdown
from gitlab_app.analytics.metrics.hours import (
    HourMetrics,
    completion_status,
    compute_hour_metrics,
    hour_efficiency_status,
    velocity_status,
)
from gitlab_app.analytics.metrics.sprint import completion_rate, current_iteration
from gitlab_app.analytics.metrics.time_window import TimeWindow, compute_window
from gitlab_app.analytics.metrics.velocity import VelocityMetrics, compute_velocity
from gitlab_app.core.mappers import coerce_issues, coerce_users
from gitlab_app.core.models import HealthStatus, IssueModel, LabelModel, MilestoneModel, ResolvedStatus, UserModel
from gitlab_app.core.settings import MetricSettings, load_settings
from gitlab_app.core.status import build_color_mapping, resolve_all, status_color

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SprintOverviewContext:
    """Everything a sprint dashboard renders, derived from one issue snapshot."""

    issues: list[tuple[IssueModel, ResolvedStatus]]
    color_mapping: dict[str, str]
    window: TimeWindow
    velocity: VelocityMetrics
    hours: HourMetrics
    grouped: GroupedResult
    root_metadata: GroupMetadata
    # Summary metrics
    total_issues: int = 0
    completed_issues: int = 0
    completion_rate: float = 0.0
    completion_status: HealthStatus = "neutral"
    velocity_status: HealthStatus = "neutral"
    hour_efficiency_status: HealthStatus = "neutral"
    # Status legend: resolved name -> display color (None when unknown)
    status_colors: dict[str, str | None] = field(default_factory=dict)

    @property
    def capacity(self) -> CapacityBreakdown:
        return self.velocity.capacity_breakdown

    @property
    def unique_statuses(self) -> list[str]:
        return sorted(self.status_colors)


def build_sprint_context(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    roster: Iterable[UserModel | Mapping[str, Any]] | None,
    *,
    milestone: MilestoneModel | Mapping[str, Any] | None = None,
    labels: Iterable[LabelModel | Mapping[str, Any]] | None = None,
    group_by: Iterable[str] = (),
    resolve_status_groups: bool = False,
    now: datetime | None = None,
    settings: MetricSettings | None = None,
) -> SprintOverviewContext:
    """Build the sprint overview context.

    Parameters
    ----------
    issues : iterable
        Sprint issues as IssueModel instances or raw GitLab payloads.
    roster : iterable or None
        Team members counted for capacity.
    milestone : optional
        Fallback scheduling source when issues carry no iteration dates.
    labels : iterable, optional
        Project label catalog used to color ``Status::`` labels.
    group_by : iterable of str
        Grouping categories; nesting order is canonical regardless of order here.
    resolve_status_groups : bool
        Group the ``status`` level by resolved status name instead of raw state.
    now : datetime, optional
        Reference instant for the window (defaults to current time).
    settings : MetricSettings, optional
        Defaults to ``load_settings()``.

    Returns
    -------
    SprintOverviewContext
        Assembled context data.
    """
    settings = settings or load_settings()
    items = coerce_issues(issues)
    team = coerce_users(roster)

    color_mapping = build_color_mapping(labels)
    resolved = resolve_all(items, color_mapping)

    window = compute_window(
        milestone,
        current_iteration(items),
        now,
        tz=settings.tz,
        sprint_days=settings.default_sprint_days,
    )
    velocity = compute_velocity(items, window, team, settings.working_hours_per_day)
    hours = compute_hour_metrics(items, team, window.total_days, window.elapsed_percentage)
    grouped = group_issues(
        group_by,
        items,
        resolve_status=resolve_status_groups,
        color_mapping=color_mapping,
    )

    completed = sum(1 for i in items if i.is_closed)
    rate = completion_rate(items)
    status_colors: dict[str, str | None] = {}
    for _, status in resolved:
        status_colors.setdefault(status.name, status_color(status, color_mapping, settings.fallback_status_colors))

    logger.debug(
        "Built sprint context: %d issues, %d members, window=%s, groups=%s",
        len(items),
        len(team),
        window.source,
        grouped.hierarchy,
    )

    return SprintOverviewContext(
        issues=resolved,
        color_mapping=color_mapping,
        window=window,
        velocity=velocity,
        hours=hours,
        grouped=grouped,
        root_metadata=get_group_metadata(grouped.data),
        total_issues=len(items),
        completed_issues=completed,
        completion_rate=rate,
        completion_status=completion_status(rate, window.elapsed_percentage),
        velocity_status=velocity_status(velocity.achieved_velocity, velocity.required_velocity),
        hour_efficiency_status=hour_efficiency_status(
            hours.progress_percentage, rate, settings.hour_efficiency_tolerance
        ),
        status_colors=status_colors,
    )
