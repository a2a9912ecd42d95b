"""Shared types for clinicsync.

This module defines the enums and plain records used by the status store,
the reachability monitor and the presentation adapters.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ConnectionMode(str, Enum):
    """Operator-selected policy for which links are active."""

    LOCAL_NODES = "local_nodes"
    CENTRAL_DB = "central_db"
    BOTH = "both"
    OFFLINE = "offline"

    @property
    def display_name(self) -> str:
        """Human readable name shown in menus and tooltips."""
        return _MODE_NAMES[self]

    @property
    def uses_local_nodes(self) -> bool:
        """Whether the local node group is enabled in this mode."""
        return self in (ConnectionMode.LOCAL_NODES, ConnectionMode.BOTH)

    @property
    def uses_central_db(self) -> bool:
        """Whether the central database link is enabled in this mode."""
        return self in (ConnectionMode.CENTRAL_DB, ConnectionMode.BOTH)


_MODE_NAMES = {
    ConnectionMode.LOCAL_NODES: "Local Network Only",
    ConnectionMode.CENTRAL_DB: "Central Database Only",
    ConnectionMode.BOTH: "Full Sync (Nodes + Central)",
    ConnectionMode.OFFLINE: "Offline Mode",
}


class SyncStatus(str, Enum):
    """Status of a single link, or of the aggregate."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"
    SYNCING = "syncing"
    ERROR = "error"


@dataclass(frozen=True)
class Institution:
    """Institution the client is currently working for."""

    id: int
    name: str
    logo_url: str | None = None
    department: str | None = None


@dataclass(frozen=True)
class NodeConnection:
    """A peer node on the local network.

    Attributes:
        id: Node identifier.
        name: Display name.
        ip_address: Last known address.
        connected: Whether the node answered its last heartbeat.
        last_seen: Time of the last heartbeat, if any.
    """

    id: str
    name: str
    ip_address: str
    connected: bool = False
    last_seen: datetime | None = None


@dataclass(frozen=True)
class CentralDbConnection:
    """Description of the upstream database link."""

    host: str
    port: int
    database: str
    connected: bool = False
    last_sync: datetime | None = None
