"""Team capacity computation."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from gitlab_app.core.config import DEFAULT_WORKING_HOURS_PER_DAY
from gitlab_app.core.mappers import coerce_users
from gitlab_app.core.models import UserModel

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class CapacityBreakdown:
    team_member_count: int
    working_hours_per_day: float
    daily_capacity_hours: float
    total_capacity_hours: float
    total_days: int
    utilization_percentage: float = 0.0


def compute_capacity(
    roster: Iterable[UserModel | Mapping[str, Any]] | None,
    total_days: int,
    working_hours_per_day: float = DEFAULT_WORKING_HOURS_PER_DAY,
) -> CapacityBreakdown:
    """Hours the roster can deliver over ``total_days``.

    An empty roster or a zero-day window yields zero capacity.
    """
    if working_hours_per_day is None or working_hours_per_day <= 0:
        logger.warning(
            "Invalid working_hours_per_day=%r, using %s", working_hours_per_day, DEFAULT_WORKING_HOURS_PER_DAY
        )
        working_hours_per_day = DEFAULT_WORKING_HOURS_PER_DAY
    days = max(0, int(total_days or 0))
    team_member_count = len(coerce_users(roster))
    daily_capacity = team_member_count * working_hours_per_day
    return CapacityBreakdown(
        team_member_count=team_member_count,
        working_hours_per_day=working_hours_per_day,
        daily_capacity_hours=daily_capacity,
        total_capacity_hours=daily_capacity * days,
        total_days=days,
    )
