"""Tests for task age, staleness and focus selection."""

import random
from datetime import datetime, timedelta

from conftest import NOW, make_root, make_task
from neuroflow.core.age import (
    Staleness,
    age_days,
    focus_candidates,
    pick_focus,
    staleness,
    toggle_focus,
)
from neuroflow.core.models import Client, TrackerContext
from neuroflow.core.tree import TaskSeed, add_child


def _aged(node_id, days, **kwargs):
    return make_task(node_id, created_at=NOW - timedelta(days=days), **kwargs)


def test_age_days_rounds_up():
    assert age_days(NOW - timedelta(hours=1), NOW) == 1
    assert age_days(NOW - timedelta(days=3), NOW) == 3
    assert age_days(NOW - timedelta(days=3, minutes=1), NOW) == 4


def test_age_days_missing_created_at_is_zero():
    assert age_days(None, NOW) == 0


def test_age_days_same_instant_is_zero():
    assert age_days(NOW, NOW) == 0


def test_staleness_thresholds():
    assert staleness(_aged("a", 2), NOW) is Staleness.FRESH
    assert staleness(_aged("b", 3), NOW) is Staleness.FRESH
    assert staleness(_aged("c", 4), NOW) is Staleness.MID_STALE
    assert staleness(_aged("d", 7), NOW) is Staleness.MID_STALE
    assert staleness(_aged("e", 8), NOW) is Staleness.STALE


def test_completed_and_client_nodes_never_stale():
    assert staleness(_aged("a", 30, completed=True), NOW) is Staleness.FRESH
    root = make_root("r", "c1", created_at=NOW - timedelta(days=30))
    assert staleness(root, NOW) is Staleness.FRESH


def test_focus_prefers_overdue_tasks():
    tree = [
        make_root(
            "r",
            "c1",
            children=[
                _aged("fresh", 1),
                _aged("old", 5, children=[_aged("older", 10)]),
                _aged("old-done", 10, completed=True),
            ],
        )
    ]

    candidates = focus_candidates(tree, NOW)

    assert {node.id for node in candidates} == {"old", "older"}


def test_focus_falls_back_to_all_incomplete_tasks():
    tree = [make_root("r", "c1", children=[_aged("a", 1), _aged("b", 2)])]

    assert {node.id for node in focus_candidates(tree, NOW)} == {"a", "b"}


def test_pick_focus_returns_none_when_everything_is_done():
    tree = [make_root("r", "c1", children=[_aged("a", 1, completed=True)])]

    assert pick_focus(tree, NOW) is None


def test_pick_focus_is_deterministic_with_seeded_rng():
    tree = [make_root("r", "c1", children=[_aged(f"t{i}", 5) for i in range(5)])]

    first = pick_focus(tree, NOW, random.Random(7))
    second = pick_focus(tree, NOW, random.Random(7))

    assert first == second
    assert first in {f"t{i}" for i in range(5)}


def test_toggle_focus_sets_then_clears():
    tree = [make_root("r", "c1", children=[_aged("only", 5)])]

    focused = toggle_focus(TrackerContext(), tree, NOW)
    cleared = toggle_focus(focused, tree, NOW)

    assert focused.focus_id == "only"
    assert cleared.focus_id is None


def test_naive_created_at_and_now_are_read_as_utc():
    clients = [Client(id="c1", name="Acme")]
    tree = add_child([], None, TaskSeed(client_id="c1"), clients, now=datetime(2026, 3, 1)).tasks

    assert age_days(datetime(2026, 3, 1), NOW) == 10
    assert pick_focus(tree, datetime(2026, 3, 9)) == tree[0].children[0].id
