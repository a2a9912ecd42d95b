"""Client module - Status store, reachability monitor and write tracker."""

from clinicsync.client.reachability import (
    ConnectivityEvents,
    MonitorHandle,
    ReachabilityMonitor,
    check_internet_connection,
)
from clinicsync.client.state import (
    CentralLinkState,
    NodeGroupState,
    SyncState,
    SyncStatusStore,
    calculate_overall_status,
)
from clinicsync.client.tracker import DEFAULT_WRITE_COMMANDS, WriteActivityTracker

__all__ = [
    # State
    "CentralLinkState",
    "NodeGroupState",
    "SyncState",
    "SyncStatusStore",
    "calculate_overall_status",
    # Reachability
    "ConnectivityEvents",
    "MonitorHandle",
    "ReachabilityMonitor",
    "check_internet_connection",
    # Write tracking
    "DEFAULT_WRITE_COMMANDS",
    "WriteActivityTracker",
]
