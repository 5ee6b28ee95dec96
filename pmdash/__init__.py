"""Project dashboard core package."""

from .domain import Issue, Portfolio, Project, WorkItem
from .tree import build_forest, flatten, flatten_with_depth
from .progress import (
    item_progress,
    weighted_progress,
    project_progress,
    progress_bar,
    render_tree,
)

__all__ = [
    "Issue",
    "Portfolio",
    "Project",
    "WorkItem",
    "build_forest",
    "flatten",
    "flatten_with_depth",
    "item_progress",
    "weighted_progress",
    "project_progress",
    "progress_bar",
    "render_tree",
]
