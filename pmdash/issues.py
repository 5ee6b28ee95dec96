"""Issue board helpers."""

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Dict, Iterable, List, Optional

from .domain import ISSUE_STATUSES, Issue

RESOLVED_AT_FORMAT = "%Y-%m-%d %H:%M"


def group_by_status(issues: Iterable[Issue]) -> Dict[str, List[Issue]]:
    """Return kanban columns keyed by status, in board order.

    Every column is present even when empty. Issues with an unknown status
    are left out.
    """
    columns: Dict[str, List[Issue]] = {status: [] for status in ISSUE_STATUSES}
    for issue in issues:
        if issue.status in columns:
            columns[issue.status].append(issue)
    return columns


def toggle_resolved(issue: Issue, now: Optional[datetime] = None) -> Issue:
    """Return a copy of ``issue`` flipped between resolved and in progress."""
    if issue.is_resolved:
        return replace(issue, status="InProgress", resolved_at=None)
    now = now or datetime.now()
    return replace(issue, status="Resolved", resolved_at=now.strftime(RESOLVED_AT_FORMAT))


__all__ = ["group_by_status", "toggle_resolved"]
