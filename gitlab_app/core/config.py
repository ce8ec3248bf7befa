"""Central configuration, constants, and lookup tables for sprint analytics."""

from __future__ import annotations

from collections.abc import Sequence

# =============================================================================
# Time Settings
# =============================================================================
TIMEZONE = "UTC"
SECONDS_PER_HOUR = 3600

# =============================================================================
# Status Label Configuration
# =============================================================================
# Scoped labels carrying the workflow stage, e.g. "Status::In Review"
STATUS_LABEL_PREFIX = "Status::"

# Escape sequences GitLab leaves in label titles. Applied in order.
STATUS_NAME_ENTITIES: Sequence[tuple[str, str]] = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("\\u0026", "&"),
)

OPENED_STATUS_NAME = "Opened"
CLOSED_STATUS_NAME = "Closed"

# Default colors for common status names (lowercase keys)
FALLBACK_STATUS_COLORS: dict[str, str] = {
    # To Do variants
    "to do": "#6c757d",
    "todo": "#6c757d",
    "backlog": "#6c757d",
    # In Progress variants
    "in progress": "#0d6efd",
    "in-progress": "#0d6efd",
    "doing": "#0d6efd",
    # Review
    "in review": "#fd7e14",
    "in-review": "#fd7e14",
    "review": "#fd7e14",
    # Testing/QA
    "testing": "#6f42c1",
    "qa": "#6f42c1",
    # Done variants
    "done": "#198754",
    "completed": "#198754",
    "closed": "#6c757d",
    # Stalled
    "blocked": "#dc3545",
    "waiting": "#ffc107",
}

# =============================================================================
# Sprint Window & Capacity Defaults
# =============================================================================
DEFAULT_WORKING_HOURS_PER_DAY: float = 8.0
# Hour metrics always assume a fixed working day, independent of capacity settings
HOUR_METRICS_HOURS_PER_DAY: float = 8.0
DEFAULT_SPRINT_DAYS: int = 14  # Assumed length when only a start date is known
DEFAULT_WINDOW_HALF_DAYS: int = 7  # Window around "now" when no dates exist at all
HOUR_EFFICIENCY_TOLERANCE: float = 15.0  # Percentage points

# =============================================================================
# Grouping Configuration
# =============================================================================
# Canonical nesting order; requested categories are always applied in this order
GROUPING_PRECEDENCE: Sequence[str] = (
    "iteration",
    "status",
    "epic",
    "assignee",
)

NO_ITERATION_GROUP = "No Iteration"
UNASSIGNED_GROUP = "Unassigned"
UNKNOWN_STATE_GROUP = "Unknown"
NO_EPIC_GROUP = "No Epic/Parent"
UNTITLED_EPIC_GROUP = "Epic: No Title"

# =============================================================================
# Team Metrics Thresholds
# =============================================================================
IN_PROGRESS_LABEL_MARKERS: Sequence[str] = ("in progress", "in-progress")
REOPENED_LABEL_MARKERS: Sequence[str] = ("reopened", "re-opened")
PRIORITY_LABEL_MARKERS: Sequence[str] = ("priority", "high", "medium", "low")
UNSPECIFIED_PRIORITY = "unspecified"
UNKNOWN_PROJECT = "Unknown Project"

HIGH_WORKLOAD_PENDING = 10
MEDIUM_WORKLOAD_PENDING = 5
UNDERPERFORMING_COMPLETION_RATE = 50.0
HIGH_PERFORMING_COMPLETION_RATE = 90.0
BEHIND_SCHEDULE_PENDING = 5
