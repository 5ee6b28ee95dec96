"""Tree utilities for work items.

Work items are stored flat, each one pointing at its parent through
``parent_id``. :func:`build_forest` turns such a collection into an ordered
forest with ``children`` populated on every node, and :func:`flatten` walks
a forest back into a pre-order list.

Neither function touches the items it is given. Nodes in the forest are
shallow copies of the input items carrying a fresh ``children`` list.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .domain import WorkItem

logger = logging.getLogger(__name__)


def _sort_key(item: WorkItem) -> int:
    return item.sort_order or 0


def _resolve_parents(items: List[WorkItem], nodes: Dict[str, WorkItem]) -> Dict[str, str]:
    """Return a child -> parent mapping restricted to ids present in ``nodes``.

    Parent cycles are broken by dropping the parent link of the cycle member
    that comes first in ``items``, which makes that member a root.
    """
    position = {}
    for index, item in enumerate(items):
        position.setdefault(item.id, index)

    parent_of: Dict[str, str] = {}
    for node in nodes.values():
        if node.parent_id and node.parent_id in nodes:
            parent_of[node.id] = node.parent_id
        elif node.parent_id:
            logger.debug("Item %s has unknown parent %s; treating it as a root", node.id, node.parent_id)

    settled: Set[str] = set()
    for node_id in nodes:
        path: List[str] = []
        on_path: Dict[str, int] = {}
        current: Optional[str] = node_id
        while current is not None and current not in settled:
            if current in on_path:
                cycle = path[on_path[current]:]
                head = min(cycle, key=position.__getitem__)
                logger.warning("Parent cycle %s; promoting %s to a root", " -> ".join(cycle), head)
                del parent_of[head]
                break
            on_path[current] = len(path)
            path.append(current)
            current = parent_of.get(current)
        settled.update(path)
    return parent_of


def build_forest(items: Iterable[WorkItem]) -> List[WorkItem]:
    """Return the ordered forest of root items built from flat ``items``.

    Items whose parent is missing from ``items`` become roots. Roots and
    every ``children`` list are sorted by ``sort_order`` (``None`` counts as
    0); the sort is stable so ties keep their input order.
    """
    items = list(items)
    nodes: Dict[str, WorkItem] = {}
    for item in items:
        nodes[item.id] = replace(item, children=[])

    parent_of = _resolve_parents(items, nodes)

    roots: List[WorkItem] = []
    for node in nodes.values():
        parent_id = parent_of.get(node.id)
        if parent_id is not None:
            nodes[parent_id].children.append(node)
        else:
            roots.append(node)

    roots.sort(key=_sort_key)
    for node in nodes.values():
        node.children.sort(key=_sort_key)
    return roots


def flatten(forest: Iterable[WorkItem]) -> List[WorkItem]:
    """Return every node of ``forest`` once, in pre-order."""
    return [node for _, node in flatten_with_depth(forest)]


def flatten_with_depth(forest: Iterable[WorkItem]) -> List[Tuple[int, WorkItem]]:
    """Return ``(depth, node)`` pairs in pre-order; roots have depth 0."""
    result: List[Tuple[int, WorkItem]] = []
    stack = [(0, node) for node in reversed(list(forest))]
    while stack:
        depth, node = stack.pop()
        result.append((depth, node))
        for child in reversed(node.children or []):
            stack.append((depth + 1, child))
    return result


def descendant_ids(items: Iterable[WorkItem], item_id: str) -> Set[str]:
    """Return the ids of every item below ``item_id`` in a flat collection."""
    children: Dict[str, List[str]] = {}
    for item in items:
        if item.parent_id:
            children.setdefault(item.parent_id, []).append(item.id)

    found: Set[str] = set()
    pending = list(children.get(item_id, []))
    while pending:
        current = pending.pop()
        if current in found or current == item_id:
            continue
        found.add(current)
        pending.extend(children.get(current, []))
    return found


__all__ = ["build_forest", "flatten", "flatten_with_depth", "descendant_ids"]
