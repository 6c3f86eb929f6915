"""Shared datetime utilities."""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_aware(value: datetime | None) -> datetime | None:
    """Return ``value`` as an aware datetime, reading naive values as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def parse_iso(value: object) -> datetime | None:
    """Parse an ISO 8601 datetime string, returning None on invalid input.

    Handles common variations:
    - Standard ISO format: 2026-02-12T10:30:00
    - With timezone Z suffix: 2026-02-12T10:30:00.000Z
    - With timezone offset: 2026-02-12T10:30:00+02:00

    Returns an aware datetime. Naive input is read as UTC so that
    timestamps from every source compare consistently.
    """
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    return ensure_aware(parsed)


def to_iso(value: datetime | None) -> str | None:
    """Serialize a datetime as a UTC ISO string with a ``Z`` suffix."""
    if value is None:
        return None
    text = ensure_aware(value).astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")
