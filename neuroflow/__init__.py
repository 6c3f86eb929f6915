"""NeuroFlow: task tree, session timers and time reports."""

__version__ = "0.1.0"
