import pytest

from pmdash.domain import Project, WorkItem
from pmdash.progress import (
    item_progress,
    progress_bar,
    project_progress,
    render_tree,
    rollup,
    weighted_progress,
)
from pmdash.tree import build_forest


def test_leaf_zero_plan():
    assert item_progress(WorkItem(id="a", planned_quantity=0, actual_quantity=0)) == 0
    assert item_progress(WorkItem(id="a", planned_quantity=0, actual_quantity=5)) == 1


def test_leaf_missing_quantities():
    assert item_progress(WorkItem(id="a")) == 0


def test_leaf_ratio_and_cap():
    assert item_progress(WorkItem(id="a", planned_quantity=4, actual_quantity=1)) == 0.25
    assert item_progress(WorkItem(id="a", planned_quantity=10, actual_quantity=20)) == 1


def test_parent_rollup():
    parent = WorkItem(
        id="p",
        planned_quantity=1,
        actual_quantity=0,
        children=[
            WorkItem(id="a", weight=30, planned_quantity=10, actual_quantity=5),
            WorkItem(id="b", weight=70, planned_quantity=10, actual_quantity=10),
        ],
    )
    assert item_progress(parent) == pytest.approx(0.85)


def test_parent_with_zero_weights():
    parent = WorkItem(id="p", children=[WorkItem(id="a", planned_quantity=1, actual_quantity=1)])
    assert item_progress(parent) == 0


def test_deep_tree():
    items = [
        WorkItem(id="root"),
        WorkItem(id="a", parent_id="root", weight=40, planned_quantity=10, actual_quantity=10),
        WorkItem(id="b", parent_id="root", weight=60),
        WorkItem(id="b1", parent_id="b", weight=50, planned_quantity=1, actual_quantity=1),
        WorkItem(id="b2", parent_id="b", weight=50, planned_quantity=1, actual_quantity=0),
    ]
    root = build_forest(items)[0]
    child_b = root.children[1]
    assert item_progress(child_b) == pytest.approx(0.5)
    assert item_progress(root) == pytest.approx(0.70)


def test_weighted_progress_empty_and_zero_weight():
    assert weighted_progress([]) == 0
    assert weighted_progress([WorkItem(id="a", weight=0, planned_quantity=10, actual_quantity=5)]) == 0


def test_weighted_progress_end_to_end():
    items = [
        WorkItem(id="a", weight=50, planned_quantity=100, actual_quantity=100),
        WorkItem(id="b", weight=30, planned_quantity=50, actual_quantity=25),
        WorkItem(id="c", weight=20, planned_quantity=0, actual_quantity=0),
    ]
    result = weighted_progress(items)
    assert result == 65
    assert isinstance(result, int)


def test_weighted_progress_rounds_half_up():
    items = [
        WorkItem(id="a", weight=1, planned_quantity=8, actual_quantity=1),
        WorkItem(id="b", weight=1, planned_quantity=8, actual_quantity=0),
    ]
    # 0.0625 -> 6.25%
    assert weighted_progress(items) == 6
    assert weighted_progress([WorkItem(id="a", weight=1, planned_quantity=200, actual_quantity=1)]) == 1


def test_weighted_progress_treats_items_independently():
    items = [
        WorkItem(id="p", weight=50),
        WorkItem(id="c", parent_id="p", weight=50, planned_quantity=1, actual_quantity=1),
    ]
    assert weighted_progress(items) == 50


def test_project_progress_uses_roots():
    project = Project(
        id="prj",
        items=[
            WorkItem(id="p", weight=100, planned_quantity=99, actual_quantity=0),
            WorkItem(id="c1", parent_id="p", weight=50, planned_quantity=2, actual_quantity=2),
            WorkItem(id="c2", parent_id="p", weight=50, planned_quantity=2, actual_quantity=0),
        ],
    )
    assert project_progress(project) == 50
    assert project_progress(Project(id="empty")) == 0


def test_rollup_and_render():
    items = [
        WorkItem(id="p", name="Build", weight=100),
        WorkItem(id="c", name="Walls", parent_id="p", weight=100, planned_quantity=4, actual_quantity=1),
    ]
    nodes = rollup(build_forest(items))
    assert nodes[0]["percent"] == pytest.approx(25.0)
    assert nodes[0]["children"][0]["name"] == "Walls"
    text = render_tree(nodes[0])
    assert text.splitlines()[0].startswith("Build: [")
    assert text.splitlines()[1].startswith("  Walls")
    assert text.endswith("25%")


def test_progress_bar():
    assert progress_bar(50, width=10) == "#####-----"
    assert progress_bar(150, width=4) == "####"
    assert progress_bar(-5, width=4) == "----"


def test_weighted_progress_stays_within_bounds():
    over = [
        WorkItem(id="a", weight=2, planned_quantity=1, actual_quantity=1),
        WorkItem(id="b", weight=-1, planned_quantity=1, actual_quantity=0),
    ]
    assert weighted_progress(over) == 100
    under = [
        WorkItem(id="a", weight=2, planned_quantity=1, actual_quantity=0),
        WorkItem(id="b", weight=-1, planned_quantity=1, actual_quantity=1),
    ]
    assert weighted_progress(under) == 0
    assert weighted_progress([WorkItem(id="a", weight=1, planned_quantity=4, actual_quantity=-2)]) == 0


def test_render_rounds_half_up():
    items = [
        WorkItem(id="p", name="Build", weight=100),
        WorkItem(id="c", name="Walls", parent_id="p", weight=1, planned_quantity=8, actual_quantity=5),
    ]
    text = render_tree(rollup(build_forest(items))[0])
    assert text.splitlines()[0].endswith(" 63%")
    assert text.splitlines()[1].endswith(" 63%")
