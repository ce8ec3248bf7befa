"""Hierarchical issue grouping with roll-up metadata.

Issues are partitioned by up to four categories. Whatever order the caller
requests them in, nesting always follows ``GROUPING_PRECEDENCE``
(iteration -> status -> epic -> assignee), so the same selection produces the
same tree.

The tree is a tagged variant: a ``Branch`` maps group keys (first-seen order)
to child nodes, and a ``Leaf`` holds the issues of the innermost group.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from dataclasses import asdict, dataclass
from typing import Any, Literal

import pandas as pd

from gitlab_app.core.config import (
    GROUPING_PRECEDENCE,
    NO_EPIC_GROUP,
    NO_ITERATION_GROUP,
    SECONDS_PER_HOUR,
    UNASSIGNED_GROUP,
    UNKNOWN_STATE_GROUP,
    UNTITLED_EPIC_GROUP,
)
from gitlab_app.core.mappers import coerce_issue, coerce_issues
from gitlab_app.core.models import IssueModel
from gitlab_app.core.status import resolve_issue_status

GroupingCategory = Literal["iteration", "status", "epic", "assignee"]


@dataclass(slots=True, frozen=True)
class Leaf:
    issues: tuple[IssueModel, ...]


@dataclass(slots=True, frozen=True)
class Branch:
    children: Mapping[str, Leaf | Branch]


GroupNode = Leaf | Branch


@dataclass(slots=True, frozen=True)
class GroupMetadata:
    issue_count: int
    total_estimate_hours: float
    total_spent_hours: float
    remaining_hours: float


@dataclass(slots=True, frozen=True)
class GroupedResult:
    data: GroupNode | list[IssueModel]
    hierarchy: tuple[str, ...]
    level: int


def order_categories(categories: Iterable[str] | str | None) -> tuple[str, ...]:
    """Canonical nesting order for the requested categories.

    Duplicates collapse and unknown tokens are dropped.

    >>> order_categories(["assignee", "status", "bogus", "status"])
    ('status', 'assignee')
    """
    if not categories:
        return ()
    requested = {categories} if isinstance(categories, str) else set(categories)
    return tuple(category for category in GROUPING_PRECEDENCE if category in requested)


def _epic_group(issue: IssueModel) -> str:
    if issue.epic is not None:
        return issue.epic.title or UNTITLED_EPIC_GROUP
    if issue.parent is not None:
        if issue.parent.title:
            return issue.parent.title
        if issue.parent.iid is not None:
            return f"Parent: #{issue.parent.iid}"
    return NO_EPIC_GROUP


def group_key(
    issue: IssueModel | Mapping[str, Any],
    category: str,
    color_mapping: Mapping[str, str] | None = None,
    *,
    resolve_status: bool = False,
) -> str:
    """Group name of ``issue`` for one category.

    ``status`` keys on the raw lifecycle state unless ``resolve_status`` is
    set, in which case the label-aware resolved status name is used.
    """
    issue = coerce_issue(issue)
    if category == "iteration":
        return (issue.iteration.title if issue.iteration else None) or NO_ITERATION_GROUP
    if category == "assignee":
        return issue.assignees[0].name if issue.assignees else UNASSIGNED_GROUP
    if category == "status":
        if resolve_status:
            return resolve_issue_status(issue, color_mapping).name
        return issue.state or UNKNOWN_STATE_GROUP
    if category == "epic":
        return _epic_group(issue)
    return UNKNOWN_STATE_GROUP


def partition(issues: Iterable[IssueModel], key: Callable[[IssueModel], str]) -> dict[str, list[IssueModel]]:
    """Stable partition: keys in first-seen order, issues in input order."""
    buckets: dict[str, list[IssueModel]] = {}
    for issue in issues:
        buckets.setdefault(key(issue), []).append(issue)
    return buckets


def _build_tree(
    issues: list[IssueModel],
    categories: tuple[str, ...],
    key_for: Callable[[IssueModel, str], str],
) -> Branch:
    category, rest = categories[0], categories[1:]
    buckets = partition(issues, lambda issue: key_for(issue, category))
    if not rest:
        return Branch({name: Leaf(tuple(members)) for name, members in buckets.items()})
    return Branch({name: _build_tree(members, rest, key_for) for name, members in buckets.items()})


def group_issues(
    categories: Iterable[str] | str | None,
    issues: Iterable[IssueModel | Mapping[str, Any]],
    *,
    resolve_status: bool = False,
    color_mapping: Mapping[str, str] | None = None,
) -> GroupedResult:
    """Group issues into a tree nested by the canonical category order.

    Parameters
    ----------
    categories : iterable of str
        Any of ``iteration``, ``status``, ``epic``, ``assignee``.
    issues : iterable
        IssueModel instances or raw GitLab payloads.
    resolve_status : bool
        Key the ``status`` level on resolved label-aware status names instead
        of the raw ``opened``/``closed`` state.
    color_mapping : Mapping[str, str], optional
        Passed through to status resolution.

    Returns
    -------
    GroupedResult
        ``data`` is the flat issue list when no known category is selected,
        otherwise a ``Branch`` whose depth equals ``level``.
    """
    items = coerce_issues(issues)
    ordered = order_categories(categories)
    if not ordered:
        return GroupedResult(data=items, hierarchy=(), level=0)

    def key_for(issue: IssueModel, category: str) -> str:
        return group_key(issue, category, color_mapping, resolve_status=resolve_status)

    return GroupedResult(data=_build_tree(items, ordered, key_for), hierarchy=ordered, level=len(ordered))


def _metadata(issue_count: int, estimate_seconds: float, spent_seconds: float) -> GroupMetadata:
    return GroupMetadata(
        issue_count=issue_count,
        total_estimate_hours=estimate_seconds / SECONDS_PER_HOUR,
        total_spent_hours=spent_seconds / SECONDS_PER_HOUR,
        remaining_hours=max(0.0, estimate_seconds - spent_seconds) / SECONDS_PER_HOUR,
    )


def get_group_metadata(node: GroupNode | Iterable[IssueModel]) -> GroupMetadata:
    """Aggregate count and hours for a subtree, recomputed bottom-up.

    Branch totals are accumulated in seconds from the children's hours so
    conversion error does not compound with depth.
    """
    if isinstance(node, Branch):
        children = [get_group_metadata(child) for child in node.children.values()]
        return _metadata(
            sum(m.issue_count for m in children),
            sum(m.total_estimate_hours * SECONDS_PER_HOUR for m in children),
            sum(m.total_spent_hours * SECONDS_PER_HOUR for m in children),
        )
    issues = node.issues if isinstance(node, Leaf) else tuple(node)
    return _metadata(
        len(issues),
        sum(i.time_estimate_seconds for i in issues),
        sum(i.time_spent_seconds for i in issues),
    )


def iter_groups(
    node: GroupNode, path: tuple[str, ...] = ()
) -> Iterator[tuple[tuple[str, ...], GroupNode, GroupMetadata]]:
    """Depth-first walk yielding ``(path, node, metadata)`` for every group below ``node``."""
    if isinstance(node, Leaf):
        return
    for name, child in node.children.items():
        child_path = (*path, name)
        yield child_path, child, get_group_metadata(child)
        yield from iter_groups(child, child_path)


def _issue_ref(issue: IssueModel) -> dict[str, Any]:
    return {"id": issue.id, "iid": issue.iid, "title": issue.title, "state": issue.state}


def tree_to_dict(node: GroupNode | Iterable[IssueModel]) -> dict[str, Any]:
    """JSON-compatible form tagged with ``type`` = ``leaf`` | ``branch``."""
    metadata = asdict(get_group_metadata(node))
    if isinstance(node, Branch):
        return {
            "type": "branch",
            "metadata": metadata,
            "children": {name: tree_to_dict(child) for name, child in node.children.items()},
        }
    issues = node.issues if isinstance(node, Leaf) else tuple(node)
    return {"type": "leaf", "metadata": metadata, "issues": [_issue_ref(i) for i in issues]}


def groups_to_dataframe(result: GroupedResult) -> pd.DataFrame:
    """One row per innermost group with a column per hierarchy level."""
    metadata_columns = ["issue_count", "total_estimate_hours", "total_spent_hours", "remaining_hours"]
    if result.level == 0:
        return pd.DataFrame([asdict(get_group_metadata(result.data))], columns=metadata_columns)
    rows = []
    for path, node, metadata in iter_groups(result.data):
        if not isinstance(node, Leaf):
            continue
        row = dict(zip(result.hierarchy, path))
        row.update(asdict(metadata))
        rows.append(row)
    return pd.DataFrame(rows, columns=[*result.hierarchy, *metadata_columns])
