"""Task tree, session and client models."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any

from ..utils import ensure_aware, parse_iso, to_iso
from .ids import generate_id

logger = logging.getLogger(__name__)

PALETTE = ("stone", "teal", "indigo", "rose", "amber", "emerald", "cyan", "violet")
DEFAULT_COLOR = "stone"

_NODE_KEYS = frozenset(
    {
        "id",
        "text",
        "type",
        "completed",
        "expanded",
        "timeSpent",
        "sessions",
        "clientId",
        "createdAt",
        "children",
    }
)


class NodeType(Enum):
    """Variant tag of a tree node."""

    CLIENT = "client"
    TASK = "task"


@dataclass(frozen=True)
class Session:
    """One contiguous interval of work on a node. ``end`` is None while open."""

    start: datetime | None
    end: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "start", ensure_aware(self.start))
        object.__setattr__(self, "end", ensure_aware(self.end))

    @property
    def is_open(self) -> bool:
        return self.end is None

    def duration_seconds(self, now: datetime) -> float:
        """Seconds covered by the session, billing an open session up to ``now``."""
        if self.start is None:
            return 0.0
        end = self.end or ensure_aware(now)
        return max(0.0, (end - self.start).total_seconds())

    @classmethod
    def from_dict(cls, data: dict) -> Session:
        """Build a session from persisted data.

        An ``end`` that is present but unreadable closes the session at its
        start, so a corrupt entry never comes back as a running timer.
        """
        start = parse_iso(data.get("start"))
        raw_end = data.get("end")
        end = parse_iso(raw_end)
        if raw_end is not None and end is None:
            logger.warning("Unreadable session end %r, closing session at its start", raw_end)
            end = start
        return cls(start=start, end=end)

    def to_dict(self) -> dict:
        return {"start": to_iso(self.start), "end": to_iso(self.end)}


@dataclass
class Node:
    """A client root or a task anywhere in the tree."""

    id: str
    text: str = ""
    type: NodeType = NodeType.TASK
    completed: bool = False
    expanded: bool = True
    time_spent: int = 0
    sessions: list[Session] = field(default_factory=list)
    client_id: str | None = None  # client roots only
    created_at: datetime | None = None
    children: list[Node] = field(default_factory=list)
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.created_at = ensure_aware(self.created_at)

    @property
    def is_client(self) -> bool:
        return self.type is NodeType.CLIENT

    @property
    def is_task(self) -> bool:
        return self.type is NodeType.TASK

    @property
    def open_session(self) -> Session | None:
        if self.sessions and self.sessions[-1].is_open:
            return self.sessions[-1]
        return None

    @classmethod
    def from_dict(cls, data: dict) -> Node:
        """Build a node from persisted data, coercing malformed fields."""
        node_id = data.get("id")
        if not isinstance(node_id, str) or not node_id:
            node_id = generate_id()
            logger.debug("Assigned id %s to a persisted node without one", node_id)

        try:
            node_type = NodeType(data.get("type", NodeType.TASK.value))
        except ValueError:
            node_type = NodeType.TASK

        text = data.get("text")
        client_id = data.get("clientId") if node_type is NodeType.CLIENT else None

        return cls(
            id=node_id,
            text=text if isinstance(text, str) else "",
            type=node_type,
            completed=bool(data.get("completed", False)),
            expanded=bool(data.get("expanded", True)),
            time_spent=_coerce_seconds(data.get("timeSpent")),
            sessions=_sanitize_sessions(data.get("sessions")),
            client_id=str(client_id) if client_id is not None else None,
            created_at=parse_iso(data.get("createdAt")),
            children=sanitize_tasks(data.get("children")),
            extra={k: v for k, v in data.items() if k not in _NODE_KEYS},
        )

    def to_dict(self) -> dict:
        data = dict(self.extra)
        data.update(
            {
                "id": self.id,
                "text": self.text,
                "type": self.type.value,
                "completed": self.completed,
                "expanded": self.expanded,
                "timeSpent": self.time_spent,
                "sessions": [s.to_dict() for s in self.sessions],
                "createdAt": to_iso(self.created_at),
            }
        )
        if self.is_client:
            data["clientId"] = self.client_id
        data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class NodePatch:
    """Partial update for a node. Fields left as None are not touched."""

    text: str | None = None
    completed: bool | None = None
    expanded: bool | None = None
    time_spent: int | None = None
    client_id: str | None = None
    created_at: datetime | None = None

    def changes(self) -> dict[str, Any]:
        return {name: value for name, value in vars(self).items() if value is not None}

    def apply(self, node: Node) -> Node:
        changes = self.changes()
        if not node.is_client:
            changes.pop("client_id", None)
        if not changes:
            return node
        return replace(node, **changes)


@dataclass
class Client:
    """An entry in the client registry."""

    id: str = field(default_factory=generate_id)
    name: str = ""
    color: str = DEFAULT_COLOR
    logo: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> Client:
        client_id = data.get("id")
        logo = data.get("logo")
        return cls(
            id=str(client_id) if client_id else generate_id(),
            name=str(data.get("name") or ""),
            color=data.get("color") if isinstance(data.get("color"), str) else DEFAULT_COLOR,
            logo=logo if isinstance(logo, str) else None,
        )

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "color": self.color, "logo": self.logo}


@dataclass(frozen=True)
class TrackerContext:
    """Process-wide UI state: which timers run and which node is focused."""

    running_ids: frozenset[str] = frozenset()
    focus_id: str | None = None

    def is_running(self, node_id: str) -> bool:
        return node_id in self.running_ids

    def with_running(self, node_id: str) -> TrackerContext:
        return replace(self, running_ids=self.running_ids | {node_id})

    def without_running(self, node_id: str) -> TrackerContext:
        return replace(self, running_ids=self.running_ids - {node_id})

    def with_focus(self, node_id: str | None) -> TrackerContext:
        return replace(self, focus_id=node_id)


def sanitize_tasks(raw: object) -> list[Node]:
    """Coerce persisted tree data into nodes, dropping non-object entries."""
    if not isinstance(raw, list):
        return []
    return [Node.from_dict(item) for item in raw if isinstance(item, dict)]


def _coerce_seconds(value: object) -> int:
    if isinstance(value, bool):
        return 0
    try:
        seconds = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0
    return max(seconds, 0)


def _sanitize_sessions(raw: object) -> list[Session]:
    """Parse sessions and repair any open entry that is not the last one.

    An open session followed by another one is closed at the start of its
    successor. Open sessions without a readable start are dropped.
    """
    if not isinstance(raw, list):
        return []
    sessions = [Session.from_dict(item) for item in raw if isinstance(item, dict)]
    sessions = [s for s in sessions if not (s.is_open and s.start is None)]
    repaired: list[Session] = []
    for index, session in enumerate(sessions):
        if session.is_open and index < len(sessions) - 1:
            following = sessions[index + 1].start
            logger.debug("Closing open session %d of %d", index + 1, len(sessions))
            session = replace(session, end=following or session.start)
            if session.is_open:
                continue
        repaired.append(session)
    return repaired
