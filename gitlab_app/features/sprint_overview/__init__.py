"""Sprint overview feature module: one-call assembly of sprint analytics."""

from gitlab_app.features.sprint_overview.context import SprintOverviewContext, build_sprint_context

__all__ = [
    "SprintOverviewContext",
    "build_sprint_context",
]
