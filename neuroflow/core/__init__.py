"""Core business logic for NeuroFlow."""

from .age import MID_STALE_DAYS, STALE_DAYS, Staleness, age_days, pick_focus, staleness, toggle_focus
from .clients import ClientCreate, add_client, migrate_clients, remove_client, resolve_color
from .errors import ClientRegistryError, NoAvailableClientError, TrackerError
from .export import CalendarEvent, calendar_event
from .models import Client, Node, NodePatch, NodeType, Session, TrackerContext, sanitize_tasks
from .reports import (
    ALL_CLIENTS,
    ReportRow,
    TimeReport,
    TimeReportBuilder,
    aggregate_by_client,
    collect_rows,
    default_report_range,
    week_range,
)
from .runtime import TrackerSettings, configure_logging
from .store import DebouncedSaver, TrackerDocument, TrackerStore
from .timer import (
    Ticker,
    TimerState,
    recalculate_time_spent,
    running_ids_from_tree,
    start_session,
    stop_session,
    tick,
    timer_state,
    toggle_timer,
)
from .tracker import Tracker
from .tree import (
    AddChildResult,
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

__all__ = [
    "Node",
    "NodePatch",
    "NodeType",
    "Session",
    "Client",
    "TrackerContext",
    "sanitize_tasks",
    "TaskSeed",
    "AddChildResult",
    "add_child",
    "update_node",
    "delete_subtree",
    "toggle_completed",
    "toggle_expanded",
    "find_node",
    "iter_nodes",
    "filter_incomplete",
    "TimerState",
    "Ticker",
    "timer_state",
    "start_session",
    "stop_session",
    "toggle_timer",
    "tick",
    "recalculate_time_spent",
    "running_ids_from_tree",
    "ALL_CLIENTS",
    "ReportRow",
    "TimeReport",
    "TimeReportBuilder",
    "collect_rows",
    "aggregate_by_client",
    "default_report_range",
    "week_range",
    "Staleness",
    "MID_STALE_DAYS",
    "STALE_DAYS",
    "age_days",
    "staleness",
    "pick_focus",
    "toggle_focus",
    "ClientCreate",
    "resolve_color",
    "migrate_clients",
    "add_client",
    "remove_client",
    "CalendarEvent",
    "calendar_event",
    "TrackerDocument",
    "TrackerStore",
    "DebouncedSaver",
    "TrackerSettings",
    "configure_logging",
    "Tracker",
    "TrackerError",
    "NoAvailableClientError",
    "ClientRegistryError",
]
