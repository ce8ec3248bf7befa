"""Mapping raw GitLab issue JSON into IssueModel instances."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime
from typing import Any

import pandas as pd

from .config import SECONDS_PER_HOUR
from .errors import InvalidInputError
from .models import (
    EpicModel,
    IssueModel,
    IterationModel,
    LabelModel,
    MilestoneModel,
    ParentModel,
    UserModel,
)

logger = logging.getLogger(__name__)


def parse_dt(val) -> datetime | None:
    if not val:
        return None
    if isinstance(val, datetime):
        ts = pd.Timestamp(val)
        ts = ts.tz_localize("UTC") if ts.tzinfo is None else ts.tz_convert("UTC")
        return ts.to_pydatetime()
    ts = pd.to_datetime(val, utc=True, errors="coerce")
    if ts is None or pd.isna(ts):
        logger.debug("Ignoring unparseable timestamp %r", val)
        return None
    return ts.to_pydatetime()


def parse_date(val) -> date | None:
    """Parse a calendar date (``YYYY-MM-DD`` or a timestamp); None when unusable."""
    if not val:
        return None
    if isinstance(val, datetime):
        return val.date()
    if isinstance(val, date):
        return val
    ts = pd.to_datetime(val, errors="coerce")
    if ts is None or pd.isna(ts):
        logger.debug("Ignoring unparseable date %r", val)
        return None
    return ts.date()


def _to_seconds(value: Any) -> int:
    """Coerce a time-tracking value to non-negative whole seconds (0 if absent)."""
    if value is None or isinstance(value, bool):
        return 0
    try:
        seconds = int(float(value))
    except (TypeError, ValueError):
        return 0
    return max(0, seconds)


def _to_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def map_user(raw: Mapping[str, Any] | None) -> UserModel | None:
    if not raw:
        return None
    name = raw.get("name") or raw.get("username") or ""
    return UserModel(id=_to_int(raw.get("id")), name=str(name), username=raw.get("username"))


def map_label(raw: Mapping[str, Any]) -> LabelModel:
    label_id = raw.get("id")
    return LabelModel(
        id=str(label_id) if label_id is not None else None,
        title=raw.get("title") or raw.get("name") or "",
        color=raw.get("color"),
    )


def map_iteration(raw: Mapping[str, Any] | None) -> IterationModel | None:
    if not raw:
        return None
    return IterationModel(
        title=raw.get("title"),
        start_date=parse_date(raw.get("start_date") or raw.get("startDate")),
        due_date=parse_date(raw.get("due_date") or raw.get("dueDate")),
        state=raw.get("state"),
        id=_to_int(raw.get("id")),
    )


def map_milestone(raw: Mapping[str, Any] | None) -> MilestoneModel | None:
    if not raw:
        return None
    return MilestoneModel(
        title=raw.get("title"),
        start_date=parse_date(raw.get("start_date") or raw.get("startDate")),
        due_date=parse_date(raw.get("due_date") or raw.get("dueDate")),
        state=raw.get("state"),
        id=_to_int(raw.get("id")),
    )


def _map_labels(raw_labels: Any) -> list[str]:
    if not raw_labels or isinstance(raw_labels, (str, bytes)):
        return []
    # GraphQL payloads wrap labels as {"nodes": [...]}
    if isinstance(raw_labels, Mapping):
        raw_labels = raw_labels.get("nodes") or []
    labels: list[str] = []
    for label in raw_labels:
        if isinstance(label, str):
            labels.append(label)
        elif isinstance(label, Mapping):
            title = label.get("title") or label.get("name")
            if isinstance(title, str):
                labels.append(title)
    return labels


def map_issue(raw: Mapping[str, Any]) -> IssueModel:
    """Map a GitLab issue payload to an IssueModel.

    Unknown fields are ignored. Missing ``labels``/``assignees`` become empty
    lists and missing ``time_stats`` become zero.
    """
    time_stats = raw.get("time_stats") or {}
    estimate = raw.get("time_estimate_seconds", time_stats.get("time_estimate"))
    spent = raw.get("time_spent_seconds", time_stats.get("total_time_spent"))

    assignees_raw = raw.get("assignees") or []
    if isinstance(assignees_raw, Mapping):
        assignees_raw = assignees_raw.get("nodes") or []
    assignees = [u for u in (map_user(a) for a in assignees_raw if isinstance(a, Mapping)) if u]

    epic_raw = raw.get("epic")
    parent_raw = raw.get("parent")

    return IssueModel(
        id=_to_int(raw.get("id")),
        iid=_to_int(raw.get("iid")),
        title=raw.get("title"),
        state=raw.get("state"),
        labels=_map_labels(raw.get("labels")),
        assignees=assignees,
        author=map_user(raw.get("author")),
        created_at=parse_dt(raw.get("created_at")),
        updated_at=parse_dt(raw.get("updated_at")),
        time_estimate_seconds=_to_seconds(estimate),
        time_spent_seconds=_to_seconds(spent),
        iteration=map_iteration(raw.get("iteration")),
        milestone=map_milestone(raw.get("milestone")),
        epic=EpicModel(title=epic_raw.get("title"), id=_to_int(epic_raw.get("id"))) if epic_raw else None,
        parent=ParentModel(title=parent_raw.get("title"), iid=_to_int(parent_raw.get("iid"))) if parent_raw else None,
        web_url=raw.get("web_url"),
    )


def _ensure_iterable(value: Any, name: str) -> Iterable[Any]:
    if value is None or isinstance(value, (str, bytes, Mapping)):
        raise InvalidInputError(f"{name} must be an iterable of records, got {type(value).__name__}")
    try:
        return iter(value)
    except TypeError as exc:
        raise InvalidInputError(f"{name} must be an iterable of records, got {type(value).__name__}") from exc


def coerce_issue(item: IssueModel | Mapping[str, Any]) -> IssueModel:
    if isinstance(item, IssueModel):
        return item
    if isinstance(item, Mapping):
        return map_issue(item)
    raise InvalidInputError(f"Unsupported issue record of type {type(item).__name__}")


def coerce_issues(issues: Iterable[IssueModel | Mapping[str, Any]]) -> list[IssueModel]:
    """Accept IssueModel instances or raw payloads; raise InvalidInputError otherwise."""
    return [coerce_issue(item) for item in _ensure_iterable(issues, "issues")]


def coerce_users(roster: Iterable[UserModel | Mapping[str, Any]] | None) -> list[UserModel]:
    """Normalize a roster; a missing roster is an empty team."""
    if roster is None:
        return []
    out: list[UserModel] = []
    for item in _ensure_iterable(roster, "roster"):
        if isinstance(item, UserModel):
            out.append(item)
        elif isinstance(item, Mapping):
            user = map_user(item)
            if user is not None:
                out.append(user)
        else:
            raise InvalidInputError(f"Unsupported roster entry of type {type(item).__name__}")
    return out


def issues_to_dataframe(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    color_mapping: Mapping[str, str] | None = None,
) -> pd.DataFrame:
    from .status import resolve_issue_status, status_color

    rows = []
    for i in coerce_issues(issues):
        status = resolve_issue_status(i, color_mapping)
        rows.append(
            {
                "id": i.id,
                "iid": i.iid,
                "title": i.title,
                "state": i.state,
                "status": status.name,
                "status_source": status.source,
                "status_category": status.category,
                "status_color": status_color(status, color_mapping),
                "assignee": i.assignees[0].name if i.assignees else "Unassigned",
                "author": i.author.name if i.author else "Unknown",
                "labels": ", ".join(i.labels),
                "iteration": i.iteration.title if i.iteration else None,
                "milestone": i.milestone.title if i.milestone else None,
                "epic": i.epic.title if i.epic else None,
                "created_at": i.created_at,
                "updated_at": i.updated_at,
                "estimate_hours": i.time_estimate_seconds / SECONDS_PER_HOUR,
                "spent_hours": i.time_spent_seconds / SECONDS_PER_HOUR,
                "web_url": i.web_url,
            }
        )
    return pd.DataFrame(rows)
