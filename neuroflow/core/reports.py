"""Time reports reconstructed from recorded work sessions."""

from __future__ import annotations

import calendar
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, tzinfo

from ..utils import ensure_aware, to_iso, utc_now
from .models import Client, Node

ALL_CLIENTS = None  # report filter value meaning every client
UNNAMED_TASK = "Unnamed Task"
UNKNOWN_CLIENT = "Unknown"


@dataclass(frozen=True)
class ReportRow:
    """Worked time of one session clipped to the report window."""

    task_name: str
    client_name: str
    interval_start: datetime
    interval_end: datetime
    duration_seconds: float

    def to_dict(self) -> dict:
        return {
            "taskName": self.task_name,
            "clientName": self.client_name,
            "intervalStart": to_iso(self.interval_start),
            "intervalEnd": to_iso(self.interval_end),
            "durationSeconds": self.duration_seconds,
        }


@dataclass
class TimeReport:
    """Rows and per-client totals for one date window."""

    start_date: date
    end_date: date
    client_filter: str | None
    generated_at: datetime
    rows: list[ReportRow] = field(default_factory=list)
    totals: dict[str, float] = field(default_factory=dict)

    @property
    def total_seconds(self) -> float:
        return sum(self.totals.values())


def report_window(
    start_date: date,
    end_date: date,
    tz: tzinfo | None = None,
) -> tuple[datetime, datetime]:
    """Return the start of ``start_date`` and end of ``end_date`` as aware datetimes.

    Days are taken in ``tz``, or in the local time zone when it is None.
    """
    if tz is None:
        return (
            datetime.combine(start_date, time.min).astimezone(),
            datetime.combine(end_date, time.max).astimezone(),
        )
    return (
        datetime.combine(start_date, time.min, tzinfo=tz),
        datetime.combine(end_date, time.max, tzinfo=tz),
    )


def intersect(
    start: datetime,
    end: datetime,
    window_start: datetime,
    window_end: datetime,
) -> tuple[datetime, datetime] | None:
    """Return the overlap of two intervals, or None when it is empty."""
    overlap_start = max(start, window_start)
    overlap_end = min(end, window_end)
    if overlap_start < overlap_end:
        return overlap_start, overlap_end
    return None


def collect_rows(
    tasks: Sequence[Node],
    clients: Iterable[Client],
    window_start: datetime,
    window_end: datetime,
    client_filter: str | None = ALL_CLIENTS,
    now: datetime | None = None,
) -> list[ReportRow]:
    """Emit one row per (node, session) pair that overlaps the window.

    The effective client is threaded down from each client root before any
    session is looked at. Open sessions are billed up to ``now``.
    """
    now = ensure_aware(now) or utc_now()
    window_start, window_end = ensure_aware(window_start), ensure_aware(window_end)
    names = {client.id: client.name for client in clients}
    rows: list[ReportRow] = []

    def _visit(node: Node, inherited_client: str | None) -> None:
        effective_client = node.client_id if node.is_client else inherited_client
        if client_filter is ALL_CLIENTS or effective_client == client_filter:
            client_name = names.get(effective_client or "", UNKNOWN_CLIENT)
            for session in node.sessions:
                if session.start is None:
                    continue
                overlap = intersect(session.start, session.end or now, window_start, window_end)
                if overlap is None:
                    continue
                rows.append(
                    ReportRow(
                        task_name=node.text or UNNAMED_TASK,
                        client_name=client_name,
                        interval_start=overlap[0],
                        interval_end=overlap[1],
                        duration_seconds=(overlap[1] - overlap[0]).total_seconds(),
                    )
                )
        for child in node.children:
            _visit(child, effective_client)

    for root in tasks:
        _visit(root, None)
    return rows


def aggregate_by_client(rows: Iterable[ReportRow]) -> dict[str, float]:
    """Sum row durations per client name, in first-seen order."""
    totals: dict[str, float] = {}
    for row in rows:
        totals[row.client_name] = totals.get(row.client_name, 0.0) + row.duration_seconds
    return totals


def default_report_range(today: date | None = None) -> tuple[date, date]:
    """First and last day of the month containing ``today``."""
    today = today or date.today()
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def week_range(today: date | None = None, offset: int = 0) -> tuple[date, date]:
    """Sunday-to-Saturday week containing ``today`` shifted by ``offset`` weeks."""
    today = today or date.today()
    shifted = today + timedelta(weeks=offset)
    start = shifted - timedelta(days=(shifted.weekday() + 1) % 7)
    return start, start + timedelta(days=6)


class TimeReportBuilder:
    """Build time reports for a tree and its client registry."""

    def __init__(self, tasks: Sequence[Node], clients: Sequence[Client], tz: tzinfo | None = None):
        self.tasks = tasks
        self.clients = clients
        self.tz = tz

    def build(
        self,
        start_date: date,
        end_date: date,
        client_filter: str | None = ALL_CLIENTS,
        now: datetime | None = None,
    ) -> TimeReport:
        """Build the report for the inclusive range ``[start_date, end_date]``."""
        now = ensure_aware(now) or utc_now()
        window_start, window_end = report_window(start_date, end_date, self.tz)
        rows = collect_rows(
            self.tasks,
            self.clients,
            window_start,
            window_end,
            client_filter=client_filter,
            now=now,
        )
        return TimeReport(
            start_date=start_date,
            end_date=end_date,
            client_filter=client_filter,
            generated_at=now,
            rows=rows,
            totals=aggregate_by_client(rows),
        )
