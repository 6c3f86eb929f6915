"""Stateful tracker wiring the pure core to a store, a ticker and a saver."""

from __future__ import annotations

import logging
import random
import threading
from datetime import date, datetime, tzinfo

from ..utils import utc_now
from .age import toggle_focus
from .clients import ClientCreate, add_client, remove_client
from .export import CalendarEvent, calendar_event
from .models import Client, Node, NodePatch, TrackerContext
from .reports import ALL_CLIENTS, TimeReport, TimeReportBuilder, week_range
from .runtime import TrackerSettings
from .store import THEMES, DebouncedSaver, TrackerDocument, TrackerStore
from .timer import Ticker, running_ids_from_tree, tick, toggle_timer
from .tree import (
    TaskSeed,
    add_child,
    delete_subtree,
    filter_incomplete,
    find_node,
    iter_nodes,
    toggle_completed,
    toggle_expanded,
    update_node,
)

logger = logging.getLogger(__name__)


class Tracker:
    """Single-writer owner of the task tree, client registry and timers.

    Every mutation runs under one lock, so the ticker thread and UI calls
    never observe each other half-applied. Changes are saved through a
    debounced saver when a store is attached.

    Usage:
        tracker = Tracker(store=TrackerStore())
        with tracker:
            node_id = tracker.add_child(None, text="Write report")
            tracker.toggle_timer(node_id)
    """

    def __init__(
        self,
        store: TrackerStore | None = None,
        settings: TrackerSettings | None = None,
        document: TrackerDocument | None = None,
    ):
        self.settings = settings or TrackerSettings.from_env()
        self.store = store
        if document is None:
            document = store.load() if store else TrackerDocument()
        self.tasks: list[Node] = document.tasks
        self.clients: list[Client] = document.clients
        self.week_offset = document.week_offset
        self.theme = document.theme
        self.context = TrackerContext(running_ids=running_ids_from_tree(self.tasks))
        self._lock = threading.RLock()
        self._saver = (
            DebouncedSaver(self._save_now, delay_ms=self.settings.save_debounce_ms)
            if store is not None
            else None
        )
        self._ticker = Ticker(self.tick, interval=self.settings.tick_seconds)

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        self._ticker.start()

    def stop(self) -> None:
        self._ticker.stop()
        if self._saver is not None:
            self._saver.flush()

    def __enter__(self) -> Tracker:
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    # -- persistence -------------------------------------------------------

    def snapshot(self) -> TrackerDocument:
        with self._lock:
            return TrackerDocument(
                tasks=self.tasks,
                clients=list(self.clients),
                week_offset=self.week_offset,
                theme=self.theme,
            )

    def _save_now(self) -> None:
        if self.store is None:
            return
        self.store.save(self.snapshot())

    def _changed(self, restart: bool = True) -> None:
        if self._saver is not None:
            self._saver.schedule(restart=restart)

    # -- tree --------------------------------------------------------------

    def find(self, node_id: str) -> Node | None:
        with self._lock:
            return find_node(self.tasks, node_id)

    def add_child(
        self,
        parent_id: str | None,
        text: str = "",
        client_id: str | None = None,
        now: datetime | None = None,
    ) -> str | None:
        """Add a task and return its id, or None when the parent is gone.

        Raises:
            NoAvailableClientError: see ``tree.add_child``.
        """
        with self._lock:
            result = add_child(
                self.tasks,
                parent_id,
                TaskSeed(text=text, client_id=client_id),
                clients=self.clients,
                now=now,
            )
            if result.added:
                self.tasks = result.tasks
                self._changed()
            return result.node_id

    def update_node(self, node_id: str, patch: NodePatch) -> None:
        with self._lock:
            self._replace_tasks(update_node(self.tasks, node_id, patch))

    def toggle_completed(self, node_id: str) -> None:
        with self._lock:
            self._replace_tasks(toggle_completed(self.tasks, node_id))

    def toggle_expanded(self, node_id: str) -> None:
        with self._lock:
            self._replace_tasks(toggle_expanded(self.tasks, node_id))

    def delete_node(self, node_id: str) -> None:
        """Delete a subtree and forget timers and focus pointing into it."""
        with self._lock:
            doomed = find_node(self.tasks, node_id)
            if doomed is None:
                return
            removed = {node.id for node, _ in iter_nodes([doomed])}
            self.tasks = delete_subtree(self.tasks, node_id)
            context = TrackerContext(
                running_ids=self.context.running_ids - removed,
                focus_id=None if self.context.focus_id in removed else self.context.focus_id,
            )
            self.context = context
            self._changed()

    def _replace_tasks(self, tasks: list[Node]) -> None:
        if tasks is not self.tasks:
            self.tasks = tasks
            self._changed()

    def visible_tasks(self) -> list[Node]:
        """Tree as shown for the selected week; future weeks hide finished work."""
        with self._lock:
            if self.week_offset > 0:
                return filter_incomplete(self.tasks)
            return self.tasks

    # -- timers ------------------------------------------------------------

    def toggle_timer(self, node_id: str, now: datetime | None = None) -> bool:
        """Start or stop the node's timer. Returns whether it now runs."""
        with self._lock:
            tasks, context = toggle_timer(self.tasks, self.context, node_id, now)
            self.context = context
            self._replace_tasks(tasks)
            return context.is_running(node_id)

    def tick(self) -> None:
        """Advance every running timer by one tick."""
        with self._lock:
            if not self.context.running_ids:
                return
            self.tasks = tick(self.tasks, self.context.running_ids)
            self._changed(restart=False)

    # -- focus -------------------------------------------------------------

    def toggle_focus(
        self,
        now: datetime | None = None,
        rng: random.Random | None = None,
    ) -> str | None:
        with self._lock:
            self.context = toggle_focus(self.context, self.tasks, now, rng)
            return self.context.focus_id

    # -- clients -----------------------------------------------------------

    def add_client(self, name: str, color: str = "stone", logo: str | None = None) -> Client:
        """Register a client.

        Raises:
            pydantic.ValidationError: invalid name, colour or logo.
        """
        data = ClientCreate(name=name, color=color, logo=logo)
        with self._lock:
            self.clients, client = add_client(self.clients, data)
            self._changed()
            return client

    def remove_client(self, client_id: str) -> None:
        """Remove a client; its root nodes stay and report as ``Unknown``."""
        with self._lock:
            clients = remove_client(self.clients, client_id)
            if len(clients) != len(self.clients):
                self.clients = clients
                self._changed()

    # -- view settings -----------------------------------------------------

    def shift_week(self, delta: int) -> int:
        with self._lock:
            self.week_offset += delta
            self._changed()
            return self.week_offset

    def current_week(self, today: date | None = None) -> tuple[date, date]:
        return week_range(today, self.week_offset)

    def set_theme(self, theme: str) -> None:
        if theme not in THEMES:
            raise ValueError(f"theme must be one of {', '.join(THEMES)}")
        with self._lock:
            self.theme = theme
            self._changed()

    # -- reports and exports ------------------------------------------------

    def report(
        self,
        start_date: date,
        end_date: date,
        client_filter: str | None = ALL_CLIENTS,
        now: datetime | None = None,
        tz: tzinfo | None = None,
    ) -> TimeReport:
        with self._lock:
            builder = TimeReportBuilder(self.tasks, list(self.clients), tz=tz)
        return builder.build(start_date, end_date, client_filter=client_filter, now=now or utc_now())

    def calendar_event(self, node_id: str, now: datetime | None = None) -> CalendarEvent | None:
        node = self.find(node_id)
        return calendar_event(node, now) if node is not None else None
