"""Per-member, per-project, and per-milestone team metrics."""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal
from urllib.parse import urlparse

import pandas as pd
import pytz

from gitlab_app.analytics.metrics.hours import estimated_hours, round_tenth
from gitlab_app.core.config import (
    BEHIND_SCHEDULE_PENDING,
    HIGH_PERFORMING_COMPLETION_RATE,
    HIGH_WORKLOAD_PENDING,
    IN_PROGRESS_LABEL_MARKERS,
    MEDIUM_WORKLOAD_PENDING,
    PRIORITY_LABEL_MARKERS,
    REOPENED_LABEL_MARKERS,
    UNDERPERFORMING_COMPLETION_RATE,
    UNKNOWN_PROJECT,
    UNSPECIFIED_PRIORITY,
)
from gitlab_app.core.mappers import coerce_issues, coerce_users
from gitlab_app.core.models import IssueModel, UserModel

Workload = Literal["low", "medium", "high"]
Performance = Literal["underperforming", "normal", "overloaded", "high-performing"]


@dataclass(slots=True)
class UserMetrics:
    id: int | None
    name: str
    username: str | None
    total_issues: int
    in_progress_issues: int
    completed_issues: int
    pending_issues: int
    overdue_issues: int
    total_estimated_hours: float
    completion_rate: float
    avg_time_to_close: float
    reopen_rate: float
    workload: Workload
    performance: Performance


@dataclass(slots=True)
class WorkloadMetrics:
    user_id: int | None
    user_name: str
    total_tasks: int
    by_project: dict[str, int] = field(default_factory=dict)
    by_sprint: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)


@dataclass(slots=True)
class CompletionMetrics:
    user_id: int | None
    user_name: str
    completion_rate: float
    avg_time_to_close: float
    reopen_rate: float


@dataclass(slots=True)
class ProjectMetrics:
    name: str
    total_issues: int = 0
    in_progress_issues: int = 0
    completed_issues: int = 0
    pending_issues: int = 0
    overdue_issues: int = 0
    completion_rate: float = 0.0


@dataclass(slots=True)
class MilestoneMetrics:
    name: str
    start_date: str
    end_date: str
    total_issues: int
    completed_issues: int
    velocity: int
    completion_rate: float


@dataclass(slots=True)
class Alert:
    user_id: int | None
    user_name: str
    type: Literal["behind-schedule", "overloaded", "high-performing"]
    message: str
    severity: Literal["low", "medium", "high"]


def _has_label_marker(issue: IssueModel, markers: Iterable[str]) -> bool:
    return any(marker in label.lower() for label in issue.labels for marker in markers)


def is_in_progress(issue: IssueModel) -> bool:
    return issue.state == "opened" and _has_label_marker(issue, IN_PROGRESS_LABEL_MARKERS)


def is_overdue(issue: IssueModel, now: datetime) -> bool:
    if issue.is_closed or issue.milestone is None or issue.milestone.due_date is None:
        return False
    return issue.milestone.due_date < now.date()


def project_name(issue: IssueModel) -> str:
    """Project path segment of the issue URL (``/<group>/<project>/-/issues/1``)."""
    if not issue.web_url:
        return UNKNOWN_PROJECT
    segments = urlparse(issue.web_url).path.split("/")
    return segments[2] if len(segments) > 2 and segments[2] else UNKNOWN_PROJECT


def issues_for(user: UserModel, issues: Iterable[IssueModel]) -> list[IssueModel]:
    return [i for i in issues if any(a.id == user.id for a in i.assignees)]


def _rate(part: int, total: int) -> float:
    return (part / total) * 100 if total > 0 else 0.0


def avg_days_to_close(issues: Iterable[IssueModel]) -> float:
    """Mean days from creation to last update over closed issues with both dates."""
    durations = [
        (i.updated_at - i.created_at).total_seconds() / 86400.0
        for i in issues
        if i.is_closed and i.created_at and i.updated_at
    ]
    return sum(durations) / len(durations) if durations else 0.0


def reopen_rate(issues: list[IssueModel]) -> float:
    return _rate(sum(1 for i in issues if _has_label_marker(i, REOPENED_LABEL_MARKERS)), len(issues))


def classify_workload(pending: int) -> Workload:
    if pending > HIGH_WORKLOAD_PENDING:
        return "high"
    if pending > MEDIUM_WORKLOAD_PENDING:
        return "medium"
    return "low"


def classify_performance(completion: float, pending: int) -> Performance:
    if completion < UNDERPERFORMING_COMPLETION_RATE:
        return "underperforming"
    if completion > HIGH_PERFORMING_COMPLETION_RATE and pending > HIGH_WORKLOAD_PENDING:
        return "overloaded"
    if completion > HIGH_PERFORMING_COMPLETION_RATE:
        return "high-performing"
    return "normal"


def calculate_user_metrics(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    users: Iterable[UserModel | Mapping[str, Any]] | None,
    now: datetime | None = None,
) -> list[UserMetrics]:
    """Per-member issue counts, rates, and workload/performance classification."""
    items = coerce_issues(issues)
    now = now or datetime.now(pytz.UTC)
    metrics: list[UserMetrics] = []
    for user in coerce_users(users):
        mine = issues_for(user, items)
        completed = sum(1 for i in mine if i.is_closed)
        in_progress = sum(1 for i in mine if is_in_progress(i))
        pending = sum(1 for i in mine if i.state == "opened" and not is_in_progress(i))
        completion = _rate(completed, len(mine))
        metrics.append(
            UserMetrics(
                id=user.id,
                name=user.name,
                username=user.username,
                total_issues=len(mine),
                in_progress_issues=in_progress,
                completed_issues=completed,
                pending_issues=pending,
                overdue_issues=sum(1 for i in mine if is_overdue(i, now)),
                total_estimated_hours=round_tenth(estimated_hours(mine)),
                completion_rate=completion,
                avg_time_to_close=avg_days_to_close(mine),
                reopen_rate=reopen_rate(mine),
                workload=classify_workload(pending),
                performance=classify_performance(completion, pending),
            )
        )
    return metrics


def _priority_label(issue: IssueModel) -> str:
    for label in issue.labels:
        lowered = label.lower()
        if any(marker in lowered for marker in PRIORITY_LABEL_MARKERS):
            return label
    return UNSPECIFIED_PRIORITY


def calculate_workload_metrics(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    users: Iterable[UserModel | Mapping[str, Any]] | None,
) -> list[WorkloadMetrics]:
    items = coerce_issues(issues)
    out: list[WorkloadMetrics] = []
    for user in coerce_users(users):
        mine = issues_for(user, items)
        out.append(
            WorkloadMetrics(
                user_id=user.id,
                user_name=user.name,
                total_tasks=len(mine),
                by_project=dict(Counter(project_name(i) for i in mine)),
                by_sprint=dict(Counter(i.milestone.title for i in mine if i.milestone and i.milestone.title)),
                by_priority=dict(Counter(_priority_label(i) for i in mine)),
            )
        )
    return out


def calculate_completion_metrics(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    users: Iterable[UserModel | Mapping[str, Any]] | None,
) -> list[CompletionMetrics]:
    items = coerce_issues(issues)
    out: list[CompletionMetrics] = []
    for user in coerce_users(users):
        mine = issues_for(user, items)
        out.append(
            CompletionMetrics(
                user_id=user.id,
                user_name=user.name,
                completion_rate=_rate(sum(1 for i in mine if i.is_closed), len(mine)),
                avg_time_to_close=avg_days_to_close(mine),
                reopen_rate=reopen_rate(mine),
            )
        )
    return out


def calculate_project_metrics(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    now: datetime | None = None,
) -> list[ProjectMetrics]:
    """Issue counts per project, in first-seen project order."""
    now = now or datetime.now(pytz.UTC)
    projects: dict[str, list[IssueModel]] = {}
    for issue in coerce_issues(issues):
        projects.setdefault(project_name(issue), []).append(issue)

    out: list[ProjectMetrics] = []
    for name, members in projects.items():
        completed = sum(1 for i in members if i.is_closed)
        in_progress = sum(1 for i in members if not i.is_closed and _has_label_marker(i, IN_PROGRESS_LABEL_MARKERS))
        out.append(
            ProjectMetrics(
                name=name,
                total_issues=len(members),
                in_progress_issues=in_progress,
                completed_issues=completed,
                pending_issues=len(members) - completed - in_progress,
                overdue_issues=sum(1 for i in members if is_overdue(i, now)),
                completion_rate=_rate(completed, len(members)),
            )
        )
    return out


def calculate_milestone_metrics(issues: Iterable[IssueModel | Mapping[str, Any]]) -> list[MilestoneMetrics]:
    """Totals per milestone; velocity is simply the completed count."""
    milestones: dict[str, list[IssueModel]] = {}
    for issue in coerce_issues(issues):
        if issue.milestone is not None and issue.milestone.title:
            milestones.setdefault(issue.milestone.title, []).append(issue)

    out: list[MilestoneMetrics] = []
    for name, members in milestones.items():
        first = members[0].milestone
        completed = sum(1 for i in members if i.is_closed)
        out.append(
            MilestoneMetrics(
                name=name,
                start_date=first.start_date.isoformat() if first.start_date else "",
                end_date=first.due_date.isoformat() if first.due_date else "",
                total_issues=len(members),
                completed_issues=completed,
                velocity=completed,
                completion_rate=_rate(completed, len(members)),
            )
        )
    return out


def generate_alerts(user_metrics: Iterable[UserMetrics]) -> list[Alert]:
    alerts: list[Alert] = []
    for user in user_metrics:
        if user.completion_rate < UNDERPERFORMING_COMPLETION_RATE and user.pending_issues > BEHIND_SCHEDULE_PENDING:
            alerts.append(
                Alert(
                    user_id=user.id,
                    user_name=user.name,
                    type="behind-schedule",
                    message=(
                        f"{user.name} has a low completion rate ({user.completion_rate:.1f}%) "
                        f"with {user.pending_issues} pending issues"
                    ),
                    severity="high",
                )
            )
        if user.workload == "high":
            alerts.append(
                Alert(
                    user_id=user.id,
                    user_name=user.name,
                    type="overloaded",
                    message=f"{user.name} has a high workload with {user.pending_issues} pending issues",
                    severity="medium",
                )
            )
        if user.performance == "high-performing":
            alerts.append(
                Alert(
                    user_id=user.id,
                    user_name=user.name,
                    type="high-performing",
                    message=f"{user.name} is high-performing with a {user.completion_rate:.1f}% completion rate",
                    severity="low",
                )
            )
    return alerts


def aggregate_by_assignee(df: pd.DataFrame, limit: int = 200) -> pd.DataFrame:
    """Issue count and hours per assignee from ``issues_to_dataframe`` output."""
    if df.empty:
        return df
    out = df.copy()
    out["estimate_hours"] = pd.to_numeric(out.get("estimate_hours"), errors="coerce").fillna(0)
    out["spent_hours"] = pd.to_numeric(out.get("spent_hours"), errors="coerce").fillna(0)
    out["closed"] = out["state"].eq("closed")
    agg = (
        out.groupby("assignee", dropna=False)
        .agg(
            issues=("state", "size"),
            closed=("closed", "sum"),
            estimate_hours=("estimate_hours", "sum"),
            spent_hours=("spent_hours", "sum"),
        )
        .sort_values(by=["estimate_hours", "issues"], ascending=False)
        .head(limit)
    )
    agg["remaining_hours"] = (agg["estimate_hours"] - agg["spent_hours"]).clip(lower=0)
    return agg.reset_index()
