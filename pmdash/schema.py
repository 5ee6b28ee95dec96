from __future__ import annotations

from typing import Any, Dict, Iterable, List

from .domain import (
    ISSUE_PRIORITIES,
    ISSUE_STATUSES,
    ITEM_STATUSES,
    PROJECT_STATUSES,
    WorkItem,
)

WEIGHT_TARGET = 100
_NUMERIC_ITEM_FIELDS = ("plannedQuantity", "actualQuantity", "weight", "sortOrder")


class SchemaError(ValueError):
    """Raised when a record does not conform to the expected schema."""


def _require_id(record: Any, kind: str) -> None:
    if not isinstance(record, dict):
        raise SchemaError(f"{kind} must be a dict")
    if not record.get("id") or not isinstance(record["id"], str):
        raise SchemaError(f"{kind} must have an 'id' string")


def _check_choice(record: dict, key: str, choices: Iterable[str], kind: str) -> None:
    if key in record and record[key] not in choices:
        raise SchemaError(f"{kind} {record['id']}: unknown {key} {record[key]!r}")


def validate_item(item: Any) -> None:
    """Validate a raw work item dict.

    Expected keys:
    - id: required string
    - parentId: optional string
    - status: optional, one of Plan / Progress / Complete
    - plannedQuantity, actualQuantity, weight, sortOrder: optional
      non-negative numbers
    - children: optional list of items
    """
    _require_id(item, "item")
    _check_choice(item, "status", ITEM_STATUSES, "item")

    parent = item.get("parentId")
    if parent is not None and not isinstance(parent, str):
        raise SchemaError(f"item {item['id']}: 'parentId' must be a string")

    for key in _NUMERIC_ITEM_FIELDS:
        if key not in item or item[key] is None:
            continue
        value = item[key]
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise SchemaError(f"item {item['id']}: '{key}' must be a number")
        if value < 0:
            raise SchemaError(f"item {item['id']}: '{key}' must not be negative")

    if "children" in item:
        if not isinstance(item["children"], list):
            raise SchemaError(f"item {item['id']}: 'children' must be a list")
        for child in item["children"]:
            validate_item(child)


def validate_issue(issue: Any) -> None:
    _require_id(issue, "issue")
    _check_choice(issue, "status", ISSUE_STATUSES, "issue")
    _check_choice(issue, "priority", ISSUE_PRIORITIES, "issue")
    if not isinstance(issue.get("title", ""), str):
        raise SchemaError(f"issue {issue['id']}: 'title' must be a string")


def validate_project(project: Any) -> None:
    _require_id(project, "project")
    _check_choice(project, "status", PROJECT_STATUSES, "project")
    for key, check in (("items", validate_item), ("issues", validate_issue)):
        records = project.get(key, [])
        if not isinstance(records, list):
            raise SchemaError(f"project {project['id']}: '{key}' must be a list")
        for record in records:
            check(record)


def validate_portfolio(data: Dict[str, Any]) -> None:
    """Validate the root mapping which holds a ``projects`` list."""
    if not isinstance(data, dict):
        raise SchemaError("root must be a mapping")
    projects = data.get("projects", [])
    if not isinstance(projects, list):
        raise SchemaError("'projects' must be a list")
    seen = set()
    for project in projects:
        validate_project(project)
        if project["id"] in seen:
            raise SchemaError(f"duplicate project id {project['id']}")
        seen.add(project["id"])


def weight_warnings(items: Iterable[WorkItem]) -> List[str]:
    """Return a message for every sibling group whose weights miss 100.

    The root items form one group. Aggregation never depends on these
    warnings.
    """
    items = list(items)
    known = {item.id for item in items}
    groups: Dict[str, float] = {}
    for item in items:
        parent = item.parent_id if item.parent_id in known else ""
        groups[parent] = groups.get(parent, 0) + (item.weight or 0)

    warnings = []
    for parent, total in groups.items():
        if abs(total - WEIGHT_TARGET) > 1e-9:
            where = f"children of {parent}" if parent else "root items"
            warnings.append(f"Weights of {where} sum to {total:g}, expected {WEIGHT_TARGET}")
    return warnings
