"""Tests for the tree mutation engine."""

import copy

import pytest

from conftest import NOW, make_root, make_task
from neuroflow.core.errors import NoAvailableClientError
from neuroflow.core.models import NodePatch, NodeType
from neuroflow.core.tree import (
    TaskSeed,
    add_child,
    contains_node,
    delete_subtree,
    filter_incomplete,
    find_node,
    first_available_client,
    iter_nodes,
    toggle_completed,
    toggle_expanded,
    update_node,
)


def _ids(tasks):
    return [node.id for node, _ in iter_nodes(tasks)]


class TestUpdateNode:
    """Tests for update_node."""

    def test_updates_deeply_nested_node(self, sample_tree):
        updated = update_node(sample_tree, "t1a1", NodePatch(text="Logo set"))

        assert find_node(updated, "t1a1").text == "Logo set"
        assert find_node(sample_tree, "t1a1").text == "Icons"

    def test_only_supplied_fields_change(self, sample_tree):
        updated = update_node(sample_tree, "t2", NodePatch(completed=True))
        node = find_node(updated, "t2")

        assert node.completed is True
        assert node.text == "Build"
        assert node.expanded is True

    def test_reaches_nodes_under_collapsed_and_completed_parents(self, sample_tree):
        tree = update_node(sample_tree, "t1", NodePatch(expanded=False, completed=True))
        tree = update_node(tree, "t1a1", NodePatch(text="Hidden edit"))

        assert find_node(tree, "t1a1").text == "Hidden edit"

    def test_missing_id_returns_equal_tree(self, sample_tree):
        before = copy.deepcopy(sample_tree)

        updated = update_node(sample_tree, "missing", NodePatch(text="x"))

        assert updated == before

    def test_untouched_siblings_are_shared(self, sample_tree):
        updated = update_node(sample_tree, "t1a1", NodePatch(text="x"))

        assert updated[1] is sample_tree[1]
        assert updated[0] is not sample_tree[0]

    def test_client_id_patch_ignored_on_tasks(self, sample_tree):
        updated = update_node(sample_tree, "t2", NodePatch(client_id="c2"))

        assert find_node(updated, "t2").client_id is None

    def test_client_root_can_switch_client(self, sample_tree):
        updated = update_node(sample_tree, "r1", NodePatch(client_id="c3"))

        assert find_node(updated, "r1").client_id == "c3"


class TestAddChild:
    """Tests for add_child."""

    def test_appends_task_and_expands_parent(self, sample_tree):
        collapsed = update_node(sample_tree, "t1", NodePatch(expanded=False))

        result = add_child(collapsed, "t1", TaskSeed(text="Research"), now=NOW)
        parent = find_node(result.tasks, "t1")
        child = parent.children[-1]

        assert result.added
        assert parent.expanded is True
        assert child.id == result.node_id
        assert child.text == "Research"
        assert child.type is NodeType.TASK
        assert child.completed is False
        assert child.expanded is True
        assert child.time_spent == 0
        assert child.sessions == []
        assert child.children == []
        assert child.created_at == NOW

    def test_seed_without_text_gives_empty_task(self, sample_tree):
        result = add_child(sample_tree, "t2")

        assert find_node(result.tasks, result.node_id).text == ""

    def test_missing_parent_is_noop(self, sample_tree):
        before = copy.deepcopy(sample_tree)

        result = add_child(sample_tree, "missing", TaskSeed(text="x"))

        assert not result.added
        assert result.tasks == before

    def test_root_add_reuses_existing_client_root(self, sample_tree, clients):
        result = add_child(sample_tree, None, TaskSeed(text="Invoice", client_id="c1"), clients)

        roots = [node for node in result.tasks if node.is_client]
        assert len(roots) == 2
        assert result.parent_id == "r1"
        assert find_node(result.tasks, "r1").children[-1].text == "Invoice"

    def test_root_add_twice_creates_single_root(self, clients):
        first = add_child([], None, TaskSeed(text="One", client_id="c3"), clients)
        second = add_child(first.tasks, None, TaskSeed(text="Two", client_id="c3"), clients)

        roots = [node for node in second.tasks if node.is_client]
        assert len(roots) == 1
        assert [child.text for child in roots[0].children] == ["One", "Two"]

    def test_root_add_creates_client_root_with_seeded_task(self, sample_tree, clients):
        result = add_child(sample_tree, None, TaskSeed(text="Kickoff", client_id="c3"), clients)
        root = result.tasks[-1]

        assert root.type is NodeType.CLIENT
        assert root.client_id == "c3"
        assert len(root.children) == 1
        assert root.children[0].text == "Kickoff"
        assert root.children[0].id == result.node_id
        assert root.children[0].client_id is None

    def test_root_add_without_text_creates_empty_task(self, clients):
        result = add_child([], None, TaskSeed(client_id="c1"), clients)

        assert len(result.tasks[0].children) == 1
        assert result.tasks[0].children[0].text == ""

    def test_rootless_add_picks_first_unused_client(self, sample_tree, clients):
        result = add_child(sample_tree, None, TaskSeed(text="New"), clients)

        assert result.tasks[-1].client_id == "c3"

    def test_rootless_add_without_free_client_raises(self, sample_tree, clients):
        tree = add_child(sample_tree, None, TaskSeed(client_id="c3"), clients).tasks

        with pytest.raises(NoAvailableClientError):
            add_child(tree, None, TaskSeed(text="Nowhere"), clients)

    def test_rootless_add_with_no_clients_raises(self):
        with pytest.raises(NoAvailableClientError):
            add_child([], None)

    def test_first_available_client_respects_registry_order(self, clients):
        tree = [make_root("r", "c1")]

        assert first_available_client(tree, clients).id == "c2"


class TestDeleteSubtree:
    """Tests for delete_subtree."""

    def test_removes_node_and_descendants(self, sample_tree):
        updated = delete_subtree(sample_tree, "t1")

        assert _ids(updated) == ["r1", "t2", "r2", "t3"]

    def test_siblings_untouched(self, sample_tree):
        updated = delete_subtree(sample_tree, "t1")

        assert find_node(updated, "t2") is find_node(sample_tree, "t2")
        assert updated[1] is sample_tree[1]

    def test_deletes_root(self, sample_tree):
        updated = delete_subtree(sample_tree, "r2")

        assert [node.id for node in updated] == ["r1"]

    def test_missing_id_returns_equal_tree(self, sample_tree):
        before = copy.deepcopy(sample_tree)

        assert delete_subtree(sample_tree, "missing") == before

    def test_input_not_modified(self, sample_tree):
        before = copy.deepcopy(sample_tree)

        delete_subtree(sample_tree, "t1a")

        assert sample_tree == before


class TestToggles:
    """Tests for completion and expansion toggles."""

    def test_toggle_completed_flips_flag(self, sample_tree):
        once = toggle_completed(sample_tree, "t2")
        twice = toggle_completed(once, "t2")

        assert find_node(once, "t2").completed is True
        assert find_node(twice, "t2").completed is False

    def test_toggle_expanded_flips_flag(self, sample_tree):
        updated = toggle_expanded(sample_tree, "t1")

        assert find_node(updated, "t1").expanded is False


class TestQueries:
    """Tests for lookup helpers and the incomplete filter."""

    def test_iter_nodes_depth_first_with_depth(self, sample_tree):
        pairs = [(node.id, depth) for node, depth in iter_nodes(sample_tree)]

        assert pairs == [
            ("r1", 0),
            ("t1", 1),
            ("t1a", 2),
            ("t1a1", 3),
            ("t2", 1),
            ("r2", 0),
            ("t3", 1),
        ]

    def test_contains_node(self, sample_tree):
        assert contains_node(sample_tree[0], "t1a1")
        assert not contains_node(sample_tree[0], "t3")

    def test_filter_incomplete_drops_finished_work(self):
        tree = [
            make_root(
                "r1",
                "c1",
                children=[
                    make_task("done", completed=True),
                    make_task("done-parent", completed=True, children=[make_task("open")]),
                ],
            ),
            make_root("r2", "c2", children=[make_task("all-done", completed=True)]),
        ]

        filtered = filter_incomplete(tree)

        assert _ids(filtered) == ["r1", "done-parent", "open"]
