"""Domain data models for GitLab issues, scheduling containers, and resolved status."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Literal

IssueState = Literal["opened", "closed"]
StatusSource = Literal["label", "state"]
HealthStatus = Literal["good", "poor", "neutral"]


@dataclass(slots=True)
class UserModel:
    id: int | None
    name: str
    username: str | None = None


@dataclass(slots=True)
class LabelModel:
    id: str | None
    title: str
    color: str | None = None


@dataclass(slots=True)
class IterationModel:
    title: str | None
    start_date: date | None = None
    due_date: date | None = None
    state: str | None = None
    id: int | None = None


@dataclass(slots=True)
class MilestoneModel:
    title: str | None
    start_date: date | None = None
    due_date: date | None = None
    state: str | None = None
    id: int | None = None


@dataclass(slots=True)
class EpicModel:
    title: str | None
    id: int | None = None


@dataclass(slots=True)
class ParentModel:
    title: str | None
    iid: int | None = None


@dataclass(slots=True)
class IssueModel:
    id: int | None
    iid: int | None
    title: str | None
    state: str | None
    labels: list[str] = field(default_factory=list)
    assignees: list[UserModel] = field(default_factory=list)
    author: UserModel | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    time_estimate_seconds: int = 0
    time_spent_seconds: int = 0
    iteration: IterationModel | None = None
    milestone: MilestoneModel | None = None
    epic: EpicModel | None = None
    parent: ParentModel | None = None
    web_url: str | None = None

    @property
    def is_closed(self) -> bool:
        return self.state == "closed"


@dataclass(slots=True, frozen=True)
class ResolvedStatus:
    name: str
    source: StatusSource
    category: IssueState
    color: str | None = None
    original_label: str | None = None
