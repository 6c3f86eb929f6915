"""Payloads handed to export collaborators."""

from __future__ import annotations

from datetime import datetime, timedelta

from pydantic import BaseModel, Field

from ..utils import ensure_aware, to_iso, utc_now
from .models import Node

DEFAULT_EVENT_SECONDS = 3600
EVENT_PREFIX = "NeuroFlow"


class CalendarEvent(BaseModel):
    """A calendar entry describing the time tracked on one node."""

    summary: str
    description: str = "Tracked via NeuroFlow."
    start: datetime
    end: datetime
    duration_seconds: int = Field(..., gt=0)

    def to_event_body(self) -> dict:
        """Event body in the shape calendar APIs accept."""
        return {
            "summary": self.summary,
            "description": self.description,
            "start": {"dateTime": to_iso(self.start)},
            "end": {"dateTime": to_iso(self.end)},
        }


def calendar_event(node: Node, now: datetime | None = None) -> CalendarEvent:
    """Describe ``node`` as an event starting now and lasting its tracked time.

    Nodes without tracked time get a one hour event.
    """
    start = ensure_aware(now) or utc_now()
    duration = node.time_spent or DEFAULT_EVENT_SECONDS
    return CalendarEvent(
        summary=f"{EVENT_PREFIX}: {node.text or 'Task'}",
        start=start,
        end=start + timedelta(seconds=duration),
        duration_seconds=duration,
    )
