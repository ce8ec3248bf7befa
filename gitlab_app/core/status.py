"""Status resolution for GitLab issues.

An issue's canonical status is derived from two competing signals, checked in
priority order:

1. The first ``Status::`` scoped label on the issue (e.g. ``Status::In Review``).
2. The issue lifecycle state (``opened`` / ``closed``) as a fallback.

A ``Status::`` label always describes a stage of an open issue, so its
category is ``opened`` even when the lifecycle state is ``closed``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from typing import Any

from .config import (
    CLOSED_STATUS_NAME,
    FALLBACK_STATUS_COLORS,
    OPENED_STATUS_NAME,
    STATUS_LABEL_PREFIX,
    STATUS_NAME_ENTITIES,
)
from .mappers import coerce_issue, coerce_issues, map_label
from .models import IssueModel, LabelModel, ResolvedStatus

logger = logging.getLogger(__name__)

_HEX_COLOR = re.compile(r"#[0-9A-Fa-f]{6}")


def extract_status_label(labels: Iterable[Any] | None) -> str | None:
    """Return the first label starting with ``Status::`` or None.

    Labels are scanned in their original order; duplicates and non-string
    entries are tolerated.
    """
    if not labels:
        return None
    for label in labels:
        if isinstance(label, str) and label.startswith(STATUS_LABEL_PREFIX):
            return label
    return None


def format_status_name(status_label: str | None) -> str:
    """Strip the ``Status::`` prefix, trim, and decode escaped characters.

    Examples
    --------
    >>> format_status_name("Status::QA &amp; Testing")
    'QA & Testing'
    >>> format_status_name("Status::  In Progress ")
    'In Progress'
    """
    if not status_label:
        return ""
    text = status_label
    if text.startswith(STATUS_LABEL_PREFIX):
        text = text[len(STATUS_LABEL_PREFIX) :]
    text = text.strip()
    for encoded, decoded in STATUS_NAME_ENTITIES:
        text = text.replace(encoded, decoded)
    return text


def resolve_issue_status(
    issue: IssueModel | Mapping[str, Any],
    color_mapping: Mapping[str, str] | None = None,
) -> ResolvedStatus:
    """Resolve the canonical status of a single issue.

    Parameters
    ----------
    issue : IssueModel or Mapping
        Issue to resolve; raw GitLab payloads are mapped first.
    color_mapping : Mapping[str, str], optional
        Status name -> ``#RRGGBB`` color, usually from ``build_color_mapping``.

    Returns
    -------
    ResolvedStatus
        Label-derived status when a ``Status::`` label exists, otherwise the
        lifecycle-state fallback ("Opened" / "Closed").
    """
    issue = coerce_issue(issue)
    status_label = extract_status_label(issue.labels)
    if status_label is not None:
        name = format_status_name(status_label)
        color = color_mapping.get(name) if color_mapping else None
        return ResolvedStatus(
            name=name,
            source="label",
            category="opened",
            color=color,
            original_label=status_label,
        )

    if issue.state == "closed":
        return ResolvedStatus(name=CLOSED_STATUS_NAME, source="state", category="closed")
    return ResolvedStatus(name=OPENED_STATUS_NAME, source="state", category="opened")


def resolve_all(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    color_mapping: Mapping[str, str] | None = None,
) -> list[tuple[IssueModel, ResolvedStatus]]:
    """Resolve statuses for a batch, returning ``(issue, status)`` pairs in input order."""
    return [(issue, resolve_issue_status(issue, color_mapping)) for issue in coerce_issues(issues)]


def has_status_label(issue: IssueModel | Mapping[str, Any]) -> bool:
    return extract_status_label(coerce_issue(issue).labels) is not None


def unique_statuses(
    issues: Iterable[IssueModel | Mapping[str, Any]],
    color_mapping: Mapping[str, str] | None = None,
) -> list[str]:
    """Sorted, de-duplicated resolved status names across ``issues``."""
    return sorted({status.name for _, status in resolve_all(issues, color_mapping)})


def normalize_color(value: str | None) -> str | None:
    """Normalize a label color to ``#RRGGBB``; return None when it cannot be.

    Bare six-digit hex input gets a ``#`` prefix. Three-digit shorthand,
    named colors, and anything else are rejected.
    """
    if not value or not isinstance(value, str):
        return None
    color = value if value.startswith("#") else f"#{value}"
    if _HEX_COLOR.fullmatch(color):
        return color
    return None


def status_label_catalog(labels: Iterable[LabelModel | Mapping[str, Any]] | None) -> list[LabelModel]:
    """Filter a label catalog down to ``Status::`` labels."""
    if not labels:
        return []
    catalog: list[LabelModel] = []
    for raw in labels:
        if raw is None:
            continue
        label = raw if isinstance(raw, LabelModel) else map_label(raw)
        if isinstance(label.title, str) and label.title.startswith(STATUS_LABEL_PREFIX):
            catalog.append(label)
    return catalog


def build_color_mapping(labels: Iterable[LabelModel | Mapping[str, Any]] | None) -> dict[str, str]:
    """Build a status name -> color mapping from a project label catalog.

    Labels with malformed colors are skipped (logged at debug); ``fallback_color``
    covers them at render time.
    """
    mapping: dict[str, str] = {}
    for label in status_label_catalog(labels):
        name = format_status_name(label.title)
        color = normalize_color(label.color)
        if color is None:
            logger.debug("Dropping unusable color %r for status label %r", label.color, label.title)
            continue
        mapping[name] = color
    return mapping


def fallback_color(status_name: str | None, table: Mapping[str, str] | None = None) -> str | None:
    """Default color for common status names (case-insensitive), or None."""
    if not status_name:
        return None
    return (table if table is not None else FALLBACK_STATUS_COLORS).get(status_name.strip().lower())


def status_color(
    status: ResolvedStatus,
    color_mapping: Mapping[str, str] | None = None,
    fallback_table: Mapping[str, str] | None = None,
) -> str | None:
    """Best available color for a resolved status: explicit, mapped, then fallback."""
    if status.color:
        return status.color
    if color_mapping and status.name in color_mapping:
        return color_mapping[status.name]
    return fallback_color(status.name, fallback_table)
