"""Exceptions raised across the tracker core."""


class TrackerError(Exception):
    """Base class for tracker errors."""


class NoAvailableClientError(TrackerError):
    """Every client already has a root node, so a rootless add has no target."""

    def __init__(self, message: str = "No client without a root node is available"):
        super().__init__(message)


class ClientRegistryError(TrackerError):
    """A client registry change would leave the registry invalid."""
