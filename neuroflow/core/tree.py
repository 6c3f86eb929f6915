"""Pure mutation operations over the task tree.

Every operation takes the current list of root nodes and returns a new one.
Inputs are never modified; only the path from a root down to the changed
node is rebuilt and untouched subtrees are shared. When nothing matches,
the input list itself is returned.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from dataclasses import dataclass, replace
from datetime import datetime

from ..utils import ensure_aware, utc_now
from .errors import NoAvailableClientError
from .ids import generate_id
from .models import Client, Node, NodePatch, NodeType

logger = logging.getLogger(__name__)


@dataclass
class TaskSeed:
    """Initial values for a task created by ``add_child``."""

    text: str = ""
    client_id: str | None = None


@dataclass
class AddChildResult:
    """Outcome of ``add_child``.

    ``node_id`` is the new task's id, or None when the parent was not found
    and the tree is unchanged.
    """

    tasks: list[Node]
    node_id: str | None
    parent_id: str | None

    @property
    def added(self) -> bool:
        return self.node_id is not None


def new_task(text: str = "", now: datetime | None = None) -> Node:
    """Create a fresh, empty task node."""
    return Node(
        id=generate_id(),
        text=text,
        type=NodeType.TASK,
        completed=False,
        expanded=True,
        time_spent=0,
        sessions=[],
        created_at=ensure_aware(now) or utc_now(),
        children=[],
    )


def new_client_root(client_id: str, text: str = "", now: datetime | None = None) -> Node:
    """Create a client root holding one task seeded with ``text``."""
    now = ensure_aware(now) or utc_now()
    return Node(
        id=generate_id(),
        text=text,
        type=NodeType.CLIENT,
        completed=False,
        expanded=True,
        time_spent=0,
        sessions=[],
        client_id=client_id,
        created_at=now,
        children=[new_task(text, now)],
    )


def iter_nodes(tasks: Sequence[Node], depth: int = 0) -> Iterator[tuple[Node, int]]:
    """Yield ``(node, depth)`` pairs depth-first, parents before children."""
    for node in tasks:
        yield node, depth
        yield from iter_nodes(node.children, depth + 1)


def find_node(tasks: Sequence[Node], node_id: str) -> Node | None:
    for node, _ in iter_nodes(tasks):
        if node.id == node_id:
            return node
    return None


def contains_node(node: Node, node_id: str) -> bool:
    """Return whether ``node_id`` is ``node`` or one of its descendants."""
    return node.id == node_id or find_node(node.children, node_id) is not None


def client_roots(tasks: Sequence[Node], client_id: str) -> list[Node]:
    return [node for node in tasks if node.is_client and node.client_id == client_id]


def root_for_client(tasks: Sequence[Node], client_id: str) -> Node | None:
    """Return the first root representing ``client_id``."""
    roots = client_roots(tasks, client_id)
    if len(roots) > 1:
        logger.warning("Client %s is represented by %d root nodes", client_id, len(roots))
    return roots[0] if roots else None


def used_client_ids(tasks: Sequence[Node]) -> list[str]:
    return [node.client_id for node in tasks if node.is_client and node.client_id]


def first_available_client(tasks: Sequence[Node], clients: Iterable[Client]) -> Client | None:
    """Return the first client, in registry order, that has no root node yet."""
    used = set(used_client_ids(tasks))
    for client in clients:
        if client.id not in used:
            return client
    return None


def map_node(
    tasks: list[Node],
    node_id: str,
    transform: Callable[[Node], Node],
) -> list[Node]:
    """Replace every node with ``node_id`` by ``transform(node)``.

    Collapsed and completed nodes are searched like any other.
    """
    result: list[Node] = []
    changed = False
    for node in tasks:
        if node.id == node_id:
            updated = transform(node)
        else:
            children = map_node(node.children, node_id, transform)
            updated = node if children is node.children else replace(node, children=children)
        changed = changed or updated is not node
        result.append(updated)
    return result if changed else tasks


def update_node(tasks: list[Node], node_id: str, patch: NodePatch) -> list[Node]:
    """Merge the supplied fields of ``patch`` into the node with ``node_id``."""
    return map_node(tasks, node_id, patch.apply)


def toggle_completed(tasks: list[Node], node_id: str) -> list[Node]:
    return map_node(tasks, node_id, lambda node: replace(node, completed=not node.completed))


def toggle_expanded(tasks: list[Node], node_id: str) -> list[Node]:
    return map_node(tasks, node_id, lambda node: replace(node, expanded=not node.expanded))


def delete_subtree(tasks: list[Node], node_id: str) -> list[Node]:
    """Remove the node with ``node_id`` and everything beneath it."""
    result: list[Node] = []
    changed = False
    for node in tasks:
        if node.id == node_id:
            changed = True
            continue
        children = delete_subtree(node.children, node_id)
        if children is not node.children:
            node = replace(node, children=children)
            changed = True
        result.append(node)
    return result if changed else tasks


def add_child(
    tasks: list[Node],
    parent_id: str | None,
    seed: TaskSeed | None = None,
    clients: Iterable[Client] = (),
    now: datetime | None = None,
) -> AddChildResult:
    """Add a task under ``parent_id``, or under a client root when it is None.

    A rootless add reuses the existing root of ``seed.client_id`` when there
    is one and creates a new client root otherwise. Without a client id the
    first client lacking a root is used.

    Raises:
        NoAvailableClientError: rootless add without a client id while every
            client already has a root.
    """
    seed = seed or TaskSeed()
    now = ensure_aware(now) or utc_now()

    if parent_id is None:
        client_id = seed.client_id
        if client_id is None:
            client = first_available_client(tasks, clients)
            if client is None:
                raise NoAvailableClientError()
            client_id = client.id
        else:
            existing = root_for_client(tasks, client_id)
            if existing is not None:
                parent_id = existing.id

        if parent_id is None:
            root = new_client_root(client_id, seed.text, now)
            return AddChildResult(
                tasks=[*tasks, root],
                node_id=root.children[0].id,
                parent_id=root.id,
            )

    task = new_task(seed.text, now)
    updated = map_node(
        tasks,
        parent_id,
        lambda node: replace(node, expanded=True, children=[*node.children, task]),
    )
    if updated is tasks:
        logger.debug("Parent %s not found, nothing added", parent_id)
        return AddChildResult(tasks=tasks, node_id=None, parent_id=parent_id)
    return AddChildResult(tasks=updated, node_id=task.id, parent_id=parent_id)


def filter_incomplete(tasks: Sequence[Node]) -> list[Node]:
    """Keep incomplete tasks and the ancestors needed to reach them.

    Completed tasks survive only when they still hold incomplete work, and
    client roots with nothing left under them are dropped.
    """
    result: list[Node] = []
    for node in tasks:
        children = filter_incomplete(node.children)
        if node.is_client:
            if children:
                result.append(replace(node, children=children))
        elif not node.completed or children:
            result.append(replace(node, children=children))
    return result
