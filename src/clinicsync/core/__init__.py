"""Core module - Shared status types and configuration."""

from clinicsync.core.config import DEFAULT_PROBE_URL, StatusConfig
from clinicsync.core.types import (
    CentralDbConnection,
    ConnectionMode,
    Institution,
    NodeConnection,
    SyncStatus,
)

__all__ = [
    # Config
    "DEFAULT_PROBE_URL",
    "StatusConfig",
    # Types
    "CentralDbConnection",
    "ConnectionMode",
    "Institution",
    "NodeConnection",
    "SyncStatus",
]
