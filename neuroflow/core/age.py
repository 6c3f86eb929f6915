"""Task age, staleness thresholds and focus selection."""

from __future__ import annotations

import math
import random
from collections.abc import Sequence
from datetime import datetime
from enum import Enum

from ..utils import ensure_aware, utc_now
from .models import Node, TrackerContext
from .tree import iter_nodes

MID_STALE_DAYS = 3
STALE_DAYS = 7

_SECONDS_PER_DAY = 24 * 60 * 60


class Staleness(Enum):
    """How long an incomplete task has been left alone."""

    FRESH = "fresh"
    MID_STALE = "mid_stale"
    STALE = "stale"


def age_days(created_at: datetime | None, now: datetime | None = None) -> int:
    """Whole days since creation, rounded up. Unknown creation time is age 0."""
    if created_at is None:
        return 0
    now = ensure_aware(now) or utc_now()
    elapsed = abs((now - ensure_aware(created_at)).total_seconds())
    return math.ceil(elapsed / _SECONDS_PER_DAY)


def staleness(node: Node, now: datetime | None = None) -> Staleness:
    if not node.is_task or node.completed:
        return Staleness.FRESH
    days = age_days(node.created_at, now)
    if days > STALE_DAYS:
        return Staleness.STALE
    if days > MID_STALE_DAYS:
        return Staleness.MID_STALE
    return Staleness.FRESH


def focus_candidates(tasks: Sequence[Node], now: datetime | None = None) -> list[Node]:
    """Incomplete tasks past the mid-stale threshold, or all incomplete tasks if none are."""
    now = ensure_aware(now) or utc_now()
    open_tasks = [node for node, _ in iter_nodes(tasks) if node.is_task and not node.completed]
    overdue = [node for node in open_tasks if age_days(node.created_at, now) > MID_STALE_DAYS]
    return overdue or open_tasks


def pick_focus(
    tasks: Sequence[Node],
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> str | None:
    """Pick a random task to focus on; None when nothing is left to do."""
    candidates = focus_candidates(tasks, now)
    if not candidates:
        return None
    return (rng or random).choice(candidates).id


def toggle_focus(
    context: TrackerContext,
    tasks: Sequence[Node],
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> TrackerContext:
    """Clear an active focus, or focus a freshly picked task."""
    if context.focus_id is not None:
        return context.with_focus(None)
    return context.with_focus(pick_focus(tasks, now, rng))
