"""Runtime storage location and tunables resolved from the environment."""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SAVE_DEBOUNCE_MS = 1000
DEFAULT_TICK_SECONDS = 1.0


def _is_writable_dir(path: Path) -> bool:
    """Return whether path exists and accepts create/write/delete operations."""
    try:
        path.mkdir(parents=True, exist_ok=True)
        probe = path / f".nf-write-probe-{uuid.uuid4().hex}"
        probe.write_text("ok")
        probe.unlink(missing_ok=True)
        return True
    except OSError:
        return False


def resolve_runtime_home() -> Path:
    """Resolve the data directory with a writable fallback for restricted envs."""
    configured = os.environ.get("NEUROFLOW_HOME")
    if configured:
        path = Path(configured).expanduser()
        if _is_writable_dir(path):
            return path
        logger.warning("NEUROFLOW_HOME %s is not writable, falling back", path)

    preferred = Path.home() / ".neuroflow"
    if _is_writable_dir(preferred):
        return preferred

    fallback = Path(tempfile.gettempdir()) / "neuroflow-runtime"
    fallback.mkdir(parents=True, exist_ok=True)
    return fallback


def _env_number(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", name, raw)
        return default
    return value if value > 0 else default


@dataclass
class TrackerSettings:
    """Tunables for the tracker's background actors."""

    save_debounce_ms: int = DEFAULT_SAVE_DEBOUNCE_MS
    tick_seconds: float = DEFAULT_TICK_SECONDS

    @classmethod
    def from_env(cls) -> TrackerSettings:
        return cls(
            save_debounce_ms=int(_env_number("NEUROFLOW_SAVE_DEBOUNCE_MS", DEFAULT_SAVE_DEBOUNCE_MS)),
            tick_seconds=_env_number("NEUROFLOW_TICK_SECONDS", DEFAULT_TICK_SECONDS),
        )

    def to_dict(self) -> dict:
        return {
            "save_debounce_ms": self.save_debounce_ms,
            "tick_seconds": self.tick_seconds,
        }


def configure_logging(level: int | str = logging.INFO) -> None:
    """Attach a console handler to the ``neuroflow`` logger.

    Meant for applications embedding the tracker; the library itself never
    configures handlers.
    """
    root = logging.getLogger("neuroflow")
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root.addHandler(handler)
