"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from datetime import datetime, timezone
from pathlib import Path

import pytest

from neuroflow.core.models import Client, Node, NodeType, Session

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)


def make_task(node_id, text="", children=None, sessions=None, **kwargs):
    created_at = kwargs.pop("created_at", NOW)
    return Node(
        id=node_id,
        text=text,
        type=NodeType.TASK,
        sessions=sessions or [],
        children=children or [],
        created_at=created_at,
        **kwargs,
    )


def make_root(node_id, client_id, children=None, **kwargs):
    created_at = kwargs.pop("created_at", NOW)
    return Node(
        id=node_id,
        type=NodeType.CLIENT,
        client_id=client_id,
        children=children or [],
        created_at=created_at,
        **kwargs,
    )


def utc(*args):
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    path = Path(tempfile.mkdtemp())
    yield path
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def clients():
    return [
        Client(id="c1", name="Acme", color="teal"),
        Client(id="c2", name="Globex", color="rose"),
        Client(id="c3", name="Initech", color="stone"),
    ]


@pytest.fixture
def sample_tree():
    """Two client roots; Acme holds a three level deep task chain."""
    icons = make_task(
        "t1a1",
        "Icons",
        sessions=[Session(start=utc(2026, 3, 9, 10, 0), end=utc(2026, 3, 9, 11, 0))],
    )
    wireframes = make_task("t1a", "Wireframes", children=[icons])
    design = make_task("t1", "Design", children=[wireframes])
    build = make_task("t2", "Build")
    audit = make_task(
        "t3",
        "Audit",
        sessions=[Session(start=utc(2026, 3, 9, 14, 0), end=utc(2026, 3, 9, 14, 30))],
    )
    return [
        make_root("r1", "c1", children=[design, build]),
        make_root("r2", "c2", children=[audit]),
    ]
