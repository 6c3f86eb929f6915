"""Per-node session timers and the tick scheduler that feeds ``time_spent``."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import replace
from datetime import datetime
from enum import Enum

from ..utils import ensure_aware, utc_now
from .models import Node, Session, TrackerContext
from .tree import find_node, iter_nodes, map_node

logger = logging.getLogger(__name__)


class TimerState(Enum):
    """Timer state of a single node."""

    STOPPED = "stopped"
    RUNNING = "running"


def timer_state(node: Node) -> TimerState:
    return TimerState.RUNNING if node.open_session is not None else TimerState.STOPPED


def start_session(tasks: list[Node], node_id: str, now: datetime | None = None) -> list[Node]:
    """Open a new session on the node. A node with an open session is left alone."""
    now = ensure_aware(now) or utc_now()

    def _start(node: Node) -> Node:
        if node.open_session is not None:
            return node
        return replace(node, sessions=[*node.sessions, Session(start=now, end=None)])

    return map_node(tasks, node_id, _start)


def stop_session(tasks: list[Node], node_id: str, now: datetime | None = None) -> list[Node]:
    """Close the node's open session. Without one this is a no-op."""
    now = ensure_aware(now) or utc_now()

    def _stop(node: Node) -> Node:
        if node.open_session is None:
            return node
        return replace(node, sessions=[*node.sessions[:-1], replace(node.sessions[-1], end=now)])

    return map_node(tasks, node_id, _stop)


def toggle_timer(
    tasks: list[Node],
    context: TrackerContext,
    node_id: str,
    now: datetime | None = None,
) -> tuple[list[Node], TrackerContext]:
    """Stop the node's timer if it runs, start it otherwise."""
    if context.is_running(node_id):
        return stop_session(tasks, node_id, now), context.without_running(node_id)
    if find_node(tasks, node_id) is None:
        return tasks, context
    return start_session(tasks, node_id, now), context.with_running(node_id)


def tick(tasks: list[Node], running_ids: frozenset[str] | set[str], seconds: int = 1) -> list[Node]:
    """Add ``seconds`` to every running node in one pass over the whole tree."""
    if not running_ids:
        return tasks

    def _walk(nodes: list[Node]) -> list[Node]:
        result: list[Node] = []
        changed = False
        for node in nodes:
            children = _walk(node.children)
            if node.id in running_ids:
                node = replace(node, time_spent=node.time_spent + seconds, children=children)
                changed = True
            elif children is not node.children:
                node = replace(node, children=children)
                changed = True
            result.append(node)
        return result if changed else nodes

    return _walk(tasks)


def recalculate_time_spent(
    tasks: list[Node],
    node_id: str,
    now: datetime | None = None,
) -> list[Node]:
    """Reset the node's ``time_spent`` to the total length of its sessions."""
    now = ensure_aware(now) or utc_now()

    def _recalculate(node: Node) -> Node:
        total = int(sum(session.duration_seconds(now) for session in node.sessions))
        return replace(node, time_spent=total)

    return map_node(tasks, node_id, _recalculate)


def running_ids_from_tree(tasks: Sequence[Node]) -> frozenset[str]:
    """Ids of nodes whose last session is still open."""
    return frozenset(
        node.id for node, _ in iter_nodes(tasks) if timer_state(node) is TimerState.RUNNING
    )


class Ticker:
    """Calls ``callback`` every ``interval`` seconds on a background timer thread.

    Usage:
        ticker = Ticker(tracker.tick, interval=1.0)
        ticker.start()
        # ... later
        ticker.stop()
    """

    def __init__(self, callback: Callable[[], None], interval: float = 1.0):
        self.callback = callback
        self.interval = interval
        self._timer: threading.Timer | None = None
        self._running = False
        self._lock = threading.Lock()

    def _schedule(self) -> None:
        self._timer = threading.Timer(self.interval, self._run)
        self._timer.daemon = True
        self._timer.start()

    def _run(self) -> None:
        try:
            self.callback()
        except Exception:
            logger.exception("Tick callback failed")
        with self._lock:
            # After a stop()/start() during the callback a newer timer owns the loop.
            if self._running and self._timer is threading.current_thread():
                self._schedule()

    def start(self) -> None:
        with self._lock:
            if self._running:
                return
            self._running = True
            self._schedule()

    def stop(self) -> None:
        with self._lock:
            self._running = False
            if self._timer:
                self._timer.cancel()
                self._timer = None

    def is_running(self) -> bool:
        return self._running
