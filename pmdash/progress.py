"""Progress calculation utilities for the project dashboard.

This module computes completion figures for work items.

A leaf item is measured from its quantities:
    - ``planned_quantity`` of 0 counts as done once any actual work exists
    - otherwise ``actual_quantity / planned_quantity``, capped at 1

An item with children is never measured directly. Its progress is the
mean of its children's progress weighted by each child's ``weight``.
Missing numbers count as 0 and a zero weight total yields 0, so none of
these functions raise on incomplete data.

:func:`rollup` returns a nested dict tree with ``percent`` filled in for
every node, leaving the work items untouched.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List

from .domain import Project, WorkItem
from .tree import build_forest


def _weighted_mean(items: Iterable[WorkItem]) -> float:
    total_progress = 0.0
    total_weight = 0.0
    for item in items:
        weight = item.weight or 0
        total_progress += item_progress(item) * weight
        total_weight += weight
    if total_weight == 0:
        return 0.0
    return total_progress / total_weight


def _leaf_progress(item: WorkItem) -> float:
    planned = item.planned_quantity or 0
    actual = item.actual_quantity or 0
    if planned == 0:
        return 1.0 if actual > 0 else 0.0
    return min(1.0, actual / planned)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def item_progress(item: WorkItem) -> float:
    """Return the completion of ``item`` as a fraction in ``[0, 1]``."""
    if item.children:
        return _weighted_mean(item.children)
    return _leaf_progress(item)


def weighted_progress(items: Iterable[WorkItem]) -> int:
    """Return the weighted completion of ``items`` as a whole percentage.

    Each item is a unit of its own here: no tree is built, so pass leaves or
    roots of an assembled forest, not both. The result is clamped to
    ``[0, 100]`` even for unvalidated negative weights or quantities.
    """
    return max(0, min(100, _round_half_up(_weighted_mean(items) * 100)))


def project_progress(project: Project) -> int:
    """Return the completion percentage of ``project`` from its root items."""
    return weighted_progress(build_forest(project.items))


def rollup(forest: Iterable[WorkItem]) -> List[Dict[str, Any]]:
    """Return new nested dicts with ``percent`` rolled up for every node."""
    nodes = []
    for item in forest:
        nodes.append(
            {
                "id": item.id,
                "name": item.name,
                "weight": item.weight or 0,
                "percent": item_progress(item) * 100,
                "children": rollup(item.children or []),
            }
        )
    return nodes


def progress_bar(percent: float, width: int = 20) -> str:
    """Return a text bar such as ``#####-----`` for ``percent``."""
    percent = max(0.0, min(100.0, float(percent)))
    filled = int(round(width * percent / 100))
    return "#" * filled + "-" * (width - filled)


def render_tree(node: Dict[str, Any], indent: int = 0) -> str:
    """Render a rolled-up node and its children as indented text lines."""
    pad = "  " * indent
    label = node.get("name") or node.get("id", "")
    percent = node.get("percent", 0.0)
    lines = [f"{pad}{label}: [{progress_bar(percent)}] {_round_half_up(percent)}%"]
    for child in node.get("children", []):
        lines.append(render_tree(child, indent + 1))
    return "\n".join(lines)


__all__ = [
    "item_progress",
    "weighted_progress",
    "project_progress",
    "rollup",
    "progress_bar",
    "render_tree",
]
