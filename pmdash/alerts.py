"""Dashboard notifications and headline counts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional

from .domain import PROJECT_STATUSES, Project
from .schedule import parse_date

DEADLINE_WINDOW_DAYS = 7
URGENT_PRIORITIES = ("High", "Critical")
KIND_ORDER = {"issue": 0, "overdue": 1, "deadline": 2}


@dataclass
class Notification:
    id: str
    project_id: str
    project_name: str
    message: str
    kind: str
    date: Optional[str] = None


def _issue_alerts(project: Project) -> List[Notification]:
    return [
        Notification(
            id=f"issue-{issue.id}",
            project_id=project.id,
            project_name=project.name,
            message=f"[{issue.priority}] Issue: {issue.title}",
            kind="issue",
            date=issue.created_at,
        )
        for issue in project.issues
        if not issue.is_resolved and issue.priority in URGENT_PRIORITIES
    ]


def _overdue_alerts(project: Project, today: date) -> List[Notification]:
    alerts = []
    for item in project.items:
        planned_end = parse_date(item.plan_end_date)
        if item.status == "Complete" or planned_end is None:
            continue
        delay = (today - planned_end).days
        if delay > 0:
            alerts.append(
                Notification(
                    id=f"item-{item.id}-overdue",
                    project_id=project.id,
                    project_name=project.name,
                    message=f"Item overdue: {item.name} ({delay} days late)",
                    kind="overdue",
                    date=item.plan_end_date,
                )
            )
    return alerts


def _deadline_alert(project: Project, today: date) -> Optional[Notification]:
    end = parse_date(project.end_date)
    if project.status != "Execution" or end is None:
        return None
    if not today < end <= today + timedelta(days=DEADLINE_WINDOW_DAYS):
        return None
    return Notification(
        id=f"proj-{project.id}-end",
        project_id=project.id,
        project_name=project.name,
        message=f"Project ends in {(end - today).days} days",
        kind="deadline",
        date=project.end_date,
    )


def notifications(projects: Iterable[Project], today: Optional[date] = None) -> List[Notification]:
    """Return open urgent issues, overdue items and near deadlines, in that order."""
    today = today or date.today()
    alerts: List[Notification] = []
    for project in projects:
        deadline = _deadline_alert(project, today)
        if deadline is not None:
            alerts.append(deadline)
        alerts.extend(_issue_alerts(project))
        alerts.extend(_overdue_alerts(project, today))
    alerts.sort(key=lambda n: KIND_ORDER[n.kind])
    return alerts


def status_counts(projects: Iterable[Project]) -> Dict[str, int]:
    """Return the number of projects in each lifecycle stage."""
    counts = {status: 0 for status in PROJECT_STATUSES}
    for project in projects:
        counts[project.status] = counts.get(project.status, 0) + 1
    return counts


__all__ = ["Notification", "notifications", "status_counts"]
