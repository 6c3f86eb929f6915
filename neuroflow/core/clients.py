"""Client registry: colour palette resolution, migration and management."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from pydantic import BaseModel, Field, field_validator

from .errors import ClientRegistryError
from .models import DEFAULT_COLOR, PALETTE, Client

logger = logging.getLogger(__name__)

LOGO_MAX_BYTES = 100 * 1024


def resolve_color(color: object) -> str:
    """Map a stored colour to a palette key, falling back to the default.

    Older documents stored CSS class strings such as ``"bg-teal-100 ..."``;
    those resolve to the first palette key they mention.
    """
    if isinstance(color, str):
        if color in PALETTE:
            return color
        if "bg-" in color:
            for key in PALETTE:
                if key != DEFAULT_COLOR and key in color:
                    return key
    return DEFAULT_COLOR


def migrate_clients(raw: object) -> list[Client]:
    """Parse a persisted client list, dropping invalid entries and fixing colours."""
    if not isinstance(raw, list):
        return []
    clients = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        client = Client.from_dict(item)
        client.color = resolve_color(item.get("color"))
        clients.append(client)
    return clients


def logo_size(logo: str) -> int:
    """Approximate decoded size in bytes of a base64 data URL."""
    _, _, payload = logo.partition(",")
    payload = payload or logo
    return len(payload) * 3 // 4 - payload.count("=")


class ClientCreate(BaseModel):
    """Schema for creating a client."""

    name: str = Field(..., min_length=1, max_length=100)
    color: str = Field(default=DEFAULT_COLOR)
    logo: str | None = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be blank")
        return value

    @field_validator("color")
    @classmethod
    def _known_color(cls, value: str) -> str:
        if value not in PALETTE:
            raise ValueError(f"color must be one of {', '.join(PALETTE)}")
        return value

    @field_validator("logo")
    @classmethod
    def _small_logo(cls, value: str | None) -> str | None:
        if value is not None and logo_size(value) > LOGO_MAX_BYTES:
            raise ValueError("logo must be under 100KB")
        return value


def find_client(clients: Sequence[Client], client_id: str | None) -> Client | None:
    for client in clients:
        if client.id == client_id:
            return client
    return None


def add_client(clients: Sequence[Client], data: ClientCreate) -> tuple[list[Client], Client]:
    """Append a new client built from validated input."""
    client = Client(name=data.name, color=data.color, logo=data.logo)
    return [*clients, client], client


def remove_client(clients: Sequence[Client], client_id: str) -> list[Client]:
    """Remove a client. Root nodes referencing it are left in place.

    Raises:
        ClientRegistryError: ``client_id`` is the only client left.
    """
    remaining = [client for client in clients if client.id != client_id]
    if len(remaining) == len(clients):
        return list(clients)
    if not remaining:
        raise ClientRegistryError("At least one client is required")
    logger.debug("Removed client %s", client_id)
    return remaining
