from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Any
import json
import yaml


PROJECT_STATUSES = ("Proposal", "Contract", "Execution", "Termination")
ITEM_STATUSES = ("Plan", "Progress", "Complete")
ISSUE_STATUSES = ("Open", "InProgress", "Resolved")
ISSUE_PRIORITIES = ("Low", "Medium", "High", "Critical")

# attribute name -> key used in the dashboard backup file
_ITEM_KEYS = {
    "id": "id",
    "project_id": "projectId",
    "name": "name",
    "status": "status",
    "parent_id": "parentId",
    "sort_order": "sortOrder",
    "planned_quantity": "plannedQuantity",
    "actual_quantity": "actualQuantity",
    "weight": "weight",
    "start_date": "startDate",
    "plan_end_date": "planEndDate",
    "actual_end_date": "actualEndDate",
}

_ISSUE_KEYS = {
    "id": "id",
    "project_id": "projectId",
    "title": "title",
    "status": "status",
    "priority": "priority",
    "description": "description",
    "assignee": "assignee",
    "created_at": "createdAt",
    "resolved_at": "resolvedAt",
}


_DATE_FIELDS = ("start_date", "plan_end_date", "actual_end_date", "end_date", "created_at", "resolved_at")


def _pick(data: dict, attr: str, key: str, default: Any = None) -> Any:
    value = data[key] if key in data else data.get(attr, default)
    # yaml.safe_load turns unquoted ISO dates into date objects
    if attr in _DATE_FIELDS and isinstance(value, date):
        return value.isoformat()
    return value


@dataclass
class WorkItem:
    """One row of a project's execution breakdown."""

    id: str
    project_id: str = ""
    name: str = ""
    status: str = "Plan"
    parent_id: Optional[str] = None
    sort_order: Optional[int] = None
    planned_quantity: Optional[float] = None
    actual_quantity: Optional[float] = None
    weight: Optional[float] = None
    start_date: Optional[str] = None
    plan_end_date: Optional[str] = None
    actual_end_date: Optional[str] = None
    children: Optional[List['WorkItem']] = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def to_dict(self) -> dict:
        data: dict[str, Any] = {}
        for attr, key in _ITEM_KEYS.items():
            value = getattr(self, attr)
            if value is not None:
                data[key] = value
        if self.children:
            data['children'] = [c.to_dict() for c in self.children]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'WorkItem':
        values = {attr: _pick(data, attr, key) for attr, key in _ITEM_KEYS.items()}
        values['id'] = str(values['id'] or '')
        values['project_id'] = values['project_id'] or ''
        values['name'] = values['name'] or ''
        values['status'] = values['status'] or 'Plan'
        children = data.get('children')
        if children is not None:
            values['children'] = [cls.from_dict(c) for c in children]
        return cls(**values)


@dataclass
class Issue:
    """A problem or risk tracked against a project."""

    id: str
    project_id: str = ""
    title: str = ""
    status: str = "Open"
    priority: str = "Medium"
    description: Optional[str] = None
    assignee: Optional[str] = None
    created_at: Optional[str] = None
    resolved_at: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.status == "Resolved"

    def to_dict(self) -> dict:
        return {
            key: getattr(self, attr)
            for attr, key in _ISSUE_KEYS.items()
            if getattr(self, attr) is not None
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Issue':
        values = {attr: _pick(data, attr, key) for attr, key in _ISSUE_KEYS.items()}
        values['id'] = str(values['id'] or '')
        values['project_id'] = values['project_id'] or ''
        values['title'] = values['title'] or ''
        values['status'] = values['status'] or 'Open'
        values['priority'] = values['priority'] or 'Medium'
        return cls(**values)


def _find(records: list, record_id: str) -> int:
    for i, record in enumerate(records):
        if record.id == record_id:
            return i
    raise KeyError(record_id)


def _update(record: Any, changes: dict) -> None:
    for name, value in changes.items():
        if name in ('id', 'children') or not hasattr(record, name):
            raise AttributeError(f"cannot update field '{name}'")
        setattr(record, name, value)


@dataclass
class Project:
    """A project moving through the Proposal to Termination lifecycle."""

    id: str
    name: str = ""
    status: str = "Proposal"
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    items: List[WorkItem] = field(default_factory=list)
    issues: List[Issue] = field(default_factory=list)

    def add_item(self, item: WorkItem) -> None:
        if any(i.id == item.id for i in self.items):
            raise ValueError(f"Duplicate item id: {item.id}")
        if not item.project_id:
            item.project_id = self.id
        self.items.append(item)

    def get_item(self, item_id: str) -> WorkItem:
        return self.items[_find(self.items, item_id)]

    def update_item(self, item_id: str, **changes: Any) -> WorkItem:
        item = self.get_item(item_id)
        _update(item, changes)
        return item

    def remove_item(self, item_id: str) -> List[str]:
        """Remove ``item_id`` and everything below it; return the removed ids."""
        from .tree import descendant_ids

        _find(self.items, item_id)
        doomed = {item_id} | descendant_ids(self.items, item_id)
        self.items = [i for i in self.items if i.id not in doomed]
        return sorted(doomed)

    def add_issue(self, issue: Issue) -> None:
        if any(i.id == issue.id for i in self.issues):
            raise ValueError(f"Duplicate issue id: {issue.id}")
        if not issue.project_id:
            issue.project_id = self.id
        self.issues.append(issue)

    def get_issue(self, issue_id: str) -> Issue:
        return self.issues[_find(self.issues, issue_id)]

    def update_issue(self, issue_id: str, **changes: Any) -> Issue:
        issue = self.get_issue(issue_id)
        _update(issue, changes)
        return issue

    def remove_issue(self, issue_id: str) -> None:
        del self.issues[_find(self.issues, issue_id)]

    def to_dict(self) -> dict:
        data: dict[str, Any] = {'id': self.id, 'name': self.name, 'status': self.status}
        if self.start_date:
            data['startDate'] = self.start_date
        if self.end_date:
            data['endDate'] = self.end_date
        data['items'] = [i.to_dict() for i in self.items]
        data['issues'] = [i.to_dict() for i in self.issues]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Project':
        return cls(
            id=str(data.get('id', '')),
            name=data.get('name', ''),
            status=data.get('status') or 'Proposal',
            start_date=_pick(data, 'start_date', 'startDate'),
            end_date=_pick(data, 'end_date', 'endDate'),
            items=[WorkItem.from_dict(i) for i in data.get('items') or []],
            issues=[Issue.from_dict(i) for i in data.get('issues') or []],
        )


@dataclass
class Portfolio:
    """Container for every project shown on the dashboard."""

    projects: List[Project] = field(default_factory=list)

    def add_project(self, project: Project) -> None:
        if any(p.id == project.id for p in self.projects):
            raise ValueError(f"Duplicate project id: {project.id}")
        self.projects.append(project)

    def get_project(self, project_id: str) -> Project:
        return self.projects[_find(self.projects, project_id)]

    def update_project(self, project_id: str, **changes: Any) -> Project:
        project = self.get_project(project_id)
        if 'items' in changes or 'issues' in changes:
            raise AttributeError("items and issues are updated through the project")
        _update(project, changes)
        return project

    def remove_project(self, project_id: str) -> None:
        del self.projects[_find(self.projects, project_id)]

    def to_dict(self) -> dict:
        return {'projects': [p.to_dict() for p in self.projects]}

    @classmethod
    def from_dict(cls, data: dict) -> 'Portfolio':
        portfolio = cls()
        for p in data.get('projects') or []:
            portfolio.add_project(Project.from_dict(p))
        return portfolio

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2, ensure_ascii=False)

    @classmethod
    def from_json(cls, text: str) -> 'Portfolio':
        return cls.from_dict(json.loads(text))

    def to_yaml(self) -> str:
        return yaml.dump(self.to_dict(), sort_keys=False, allow_unicode=True)

    @classmethod
    def from_yaml(cls, text: str) -> 'Portfolio':
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("portfolio root must be a mapping")
        return cls.from_dict(data)
