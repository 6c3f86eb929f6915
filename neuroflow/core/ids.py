"""Opaque node and client identifiers."""

import uuid


def generate_id() -> str:
    """Return a short random identifier."""
    return uuid.uuid4().hex[:10]
