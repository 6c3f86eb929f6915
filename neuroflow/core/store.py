"""Local JSON persistence for the tracker document, with debounced saving."""

from __future__ import annotations

import json
import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from .clients import migrate_clients
from .models import Client, Node, sanitize_tasks
from .runtime import DEFAULT_SAVE_DEBOUNCE_MS, resolve_runtime_home

logger = logging.getLogger(__name__)

DOCUMENT_FILENAME = "tracker.json"
THEMES = ("light", "dark")


@dataclass
class TrackerDocument:
    """Everything persisted for one user: tree, clients and view settings."""

    tasks: list[Node] = field(default_factory=list)
    clients: list[Client] = field(default_factory=list)
    week_offset: int = 0
    theme: str = "light"

    @classmethod
    def from_dict(cls, data: object) -> TrackerDocument:
        """Build a document from loaded JSON, degrading malformed parts to empty."""
        if not isinstance(data, dict):
            return cls()
        settings = data.get("settings")
        theme = settings.get("theme") if isinstance(settings, dict) else None
        week_offset = data.get("weekOffset", 0)
        return cls(
            tasks=sanitize_tasks(data.get("tasks")),
            clients=migrate_clients(data.get("clients")),
            week_offset=week_offset if isinstance(week_offset, int) else 0,
            theme=theme if theme in THEMES else "light",
        )

    def to_dict(self) -> dict:
        return {
            "tasks": [node.to_dict() for node in self.tasks],
            "clients": [client.to_dict() for client in self.clients],
            "weekOffset": self.week_offset,
            "settings": {"theme": self.theme},
        }


class TrackerStore:
    """Persist the tracker document as a JSON file."""

    def __init__(self, base_dir: Path | None = None, filename: str = DOCUMENT_FILENAME):
        self.data_dir = base_dir or resolve_runtime_home()
        self.data_dir.mkdir(parents=True, exist_ok=True)
        self.path = self.data_dir / filename

    def load(self) -> TrackerDocument:
        """Load the document; a missing or unreadable file yields an empty one."""
        if not self.path.exists():
            return TrackerDocument()
        try:
            raw = json.loads(self.path.read_text())
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load tracker data from %s: %s", self.path, e)
            return TrackerDocument()
        return TrackerDocument.from_dict(raw)

    def save(self, document: TrackerDocument) -> bool:
        """Write the document atomically. Returns False when the write failed."""
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        try:
            tmp_path.write_text(json.dumps(document.to_dict(), indent=2))
            os.replace(tmp_path, self.path)
        except OSError as e:
            logger.warning("Failed to save tracker data to %s: %s", self.path, e)
            return False
        return True


class DebouncedSaver:
    """Run ``save`` once mutations have been quiet for ``delay_ms``.

    Each ``schedule()`` restarts the delay. The save runs on a timer thread
    and its failures are logged, never raised to the caller.
    """

    def __init__(self, save: Callable[[], object], delay_ms: int = DEFAULT_SAVE_DEBOUNCE_MS):
        self.save = save
        self.delay_ms = delay_ms
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self, restart: bool = True) -> None:
        """Start the delay, or restart it when ``restart`` is set.

        With ``restart=False`` an already pending save keeps its deadline, so
        a steady stream of ticks cannot postpone it forever.
        """
        with self._lock:
            if self._timer is not None:
                if not restart:
                    return
                self._timer.cancel()
            self._timer = threading.Timer(self.delay_ms / 1000.0, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> None:
        """Save now if a save is pending."""
        with self._lock:
            if self._timer is None:
                return
            self._timer.cancel()
            self._timer = None
        self._run_save()

    def _fire(self) -> None:
        with self._lock:
            # A timer replaced by a later schedule() leaves the save to its successor.
            if self._timer is not threading.current_thread():
                return
            self._timer = None
        self._run_save()

    def _run_save(self) -> None:
        try:
            self.save()
        except Exception:
            logger.exception("Debounced save failed")
