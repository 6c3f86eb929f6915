"""Shared utilities for NeuroFlow."""

from .datetime_utils import ensure_aware, parse_iso, to_iso, utc_now

__all__ = [
    "ensure_aware",
    "parse_iso",
    "to_iso",
    "utc_now",
]
