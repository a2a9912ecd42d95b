"""Connection and sync status store.

This module provides:
- SyncState: Immutable snapshot of every connectivity signal
- calculate_overall_status: Derivation of the single user-facing status
- SyncStatusStore: Thread-safe owner of the current SyncState

Architecture:
    ReachabilityMonitor ──set_online──┐
    node discovery ──update_local_nodes──► SyncStatusStore ──► subscribers
    database link ──update_central_db──┘        ▲
    WriteActivityTracker ──set_syncing / touch_last_edited

Every operation builds a new SyncState, recomputes overall_status and swaps
the published reference under a single lock. Readers never take the lock.
"""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from clinicsync.core.types import (
    CentralDbConnection,
    ConnectionMode,
    Institution,
    NodeConnection,
    SyncStatus,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NodeGroupState:
    """Aggregate reachability of the local peer nodes.

    Counts and nodes are informational; status is what the aggregation uses.
    """

    enabled: bool = False
    connected_count: int = 0
    total_count: int = 0
    status: SyncStatus = SyncStatus.DISCONNECTED
    nodes: tuple[NodeConnection, ...] = ()


@dataclass(frozen=True)
class CentralLinkState:
    """Status of the upstream database link."""

    enabled: bool = False
    status: SyncStatus = SyncStatus.DISCONNECTED
    connection: CentralDbConnection | None = None


@dataclass(frozen=True)
class SyncState:
    """Snapshot of all connectivity signals.

    Attributes:
        mode: Selected connection mode.
        is_online: General internet reachability.
        local_nodes: Local node group state.
        central_db: Central database link state.
        institution: Current institution, if any.
        last_edited: Time of the last successful write.
        overall_status: Derived aggregate status.
        is_syncing: Whether a write is in flight.
    """

    mode: ConnectionMode = ConnectionMode.OFFLINE
    is_online: bool = False
    local_nodes: NodeGroupState = field(default_factory=NodeGroupState)
    central_db: CentralLinkState = field(default_factory=CentralLinkState)
    institution: Institution | None = None
    last_edited: datetime | None = None
    overall_status: SyncStatus = SyncStatus.DISCONNECTED
    is_syncing: bool = False


def calculate_overall_status(state: SyncState) -> SyncStatus:
    """Derive the aggregate status from the other fields of a state.

    Rules are evaluated in order, the first match wins.

    Args:
        state: State to evaluate (its overall_status is ignored).

    Returns:
        The aggregate status.
    """
    if not state.is_online and state.mode != ConnectionMode.OFFLINE:
        return SyncStatus.DISCONNECTED

    if state.mode == ConnectionMode.OFFLINE:
        return SyncStatus.DISCONNECTED

    if state.is_syncing:
        return SyncStatus.SYNCING

    if state.mode == ConnectionMode.LOCAL_NODES:
        return state.local_nodes.status

    if state.mode == ConnectionMode.CENTRAL_DB:
        return state.central_db.status

    if state.mode == ConnectionMode.BOTH:
        statuses = (state.local_nodes.status, state.central_db.status)
        # Green only when both links are up
        if all(s == SyncStatus.CONNECTED for s in statuses):
            return SyncStatus.CONNECTED
        if SyncStatus.ERROR in statuses:
            return SyncStatus.ERROR
        if SyncStatus.SYNCING in statuses:
            return SyncStatus.SYNCING
        return SyncStatus.DISCONNECTED

    return SyncStatus.DISCONNECTED


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _unchanged(state: SyncState) -> SyncStatus:
    return state.overall_status


def _forced(status: SyncStatus) -> Callable[[SyncState], SyncStatus]:
    return lambda _state: status


class SyncStatusStore:
    """Single owner of the current SyncState.

    The store is constructed explicitly and handed to whoever needs it
    (monitor, tracker, tray, CLI). It is mutated only through the
    operations below; each one is atomic with respect to readers and
    subscribers.

    Usage:
        store = SyncStatusStore()
        unsubscribe = store.subscribe(lambda s: print(s.overall_status))

        store.set_mode(ConnectionMode.BOTH)
        store.set_online(True)
        store.update_local_nodes(2, 2, SyncStatus.CONNECTED)
        store.update_central_db(SyncStatus.CONNECTED)
        assert store.overall_status == SyncStatus.CONNECTED

        unsubscribe()
    """

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        """Initialize the store with safe defaults.

        Args:
            clock: Source of "now" for touch_last_edited (UTC by default).
        """
        self._clock = clock or _utcnow
        self._lock = threading.RLock()
        self._state = SyncState()
        self._subscribers: list[Callable[[SyncState], None]] = []
        self._pending: deque[SyncState] = deque()
        self._publishing = False

    # === Read views ===

    @property
    def state(self) -> SyncState:
        """Last published state."""
        return self._state

    @property
    def is_online(self) -> bool:
        return self._state.is_online

    @property
    def connection_mode(self) -> ConnectionMode:
        return self._state.mode

    @property
    def overall_status(self) -> SyncStatus:
        return self._state.overall_status

    @property
    def is_syncing(self) -> bool:
        return self._state.is_syncing

    @property
    def last_edited(self) -> datetime | None:
        return self._state.last_edited

    @property
    def institution(self) -> Institution | None:
        return self._state.institution

    @property
    def local_nodes_status(self) -> NodeGroupState:
        return self._state.local_nodes

    @property
    def central_db_status(self) -> CentralLinkState:
        return self._state.central_db

    def format_last_edited(self) -> str:
        """Format the last edit time for display.

        Returns:
            "Never" if nothing was written yet, otherwise e.g. "3:07:45 PM UTC".
        """
        last_edited = self._state.last_edited
        if last_edited is None:
            return "Never"
        hour = last_edited.hour % 12 or 12
        text = f"{hour}:{last_edited:%M:%S %p}"
        zone = last_edited.tzname()
        return f"{text} {zone}" if zone else text

    # === Subscriptions ===

    def subscribe(self, callback: Callable[[SyncState], None]) -> Callable[[], None]:
        """Register a callback invoked with every newly published state.

        Args:
            callback: Called with the new state after each operation.

        Returns:
            Function that removes the subscription (safe to call twice).
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def watch(
        self,
        selector: Callable[[SyncState], Any],
        callback: Callable[[Any], None],
    ) -> Callable[[], None]:
        """Subscribe to a projection of the state.

        The callback only fires when the selected value changes.

        Args:
            selector: Projection, e.g. ``lambda s: s.overall_status``.
            callback: Called with the new projected value.

        Returns:
            Function that removes the subscription.
        """
        with self._lock:
            last = [selector(self._state)]

            def on_state(state: SyncState) -> None:
                value = selector(state)
                if value != last[0]:
                    last[0] = value
                    callback(value)

            return self.subscribe(on_state)

    # === Operations ===

    def set_online(self, online: bool) -> None:
        """Record general internet reachability."""
        self._transition(lambda s: replace(s, is_online=online))

    def set_mode(self, mode: ConnectionMode) -> None:
        """Switch connection mode and re-derive the enabled flags."""

        def apply(s: SyncState) -> SyncState:
            local_nodes = replace(s.local_nodes, enabled=mode.uses_local_nodes)
            central_db = replace(s.central_db, enabled=mode.uses_central_db)
            if mode == ConnectionMode.OFFLINE:
                local_nodes = replace(local_nodes, status=SyncStatus.DISCONNECTED)
                central_db = replace(central_db, status=SyncStatus.DISCONNECTED)
            return replace(s, mode=mode, local_nodes=local_nodes, central_db=central_db)

        self._transition(apply)

    def set_institution(self, institution: Institution | None) -> None:
        """Set the current institution (no effect on status)."""
        self._transition(lambda s: replace(s, institution=institution), _unchanged)

    def update_local_nodes(
        self,
        connected_count: int,
        total_count: int,
        status: SyncStatus,
        nodes: Iterable[NodeConnection] | None = None,
    ) -> None:
        """Record the local node group as judged by node discovery.

        The status is taken as given; it is not inferred from the counts.

        Args:
            connected_count: Nodes currently reachable.
            total_count: Nodes known.
            status: Status of the node group.
            nodes: Optional per-node details (kept as-is when omitted).
        """

        def apply(s: SyncState) -> SyncState:
            local_nodes = replace(
                s.local_nodes,
                connected_count=connected_count,
                total_count=total_count,
                status=status,
            )
            if nodes is not None:
                local_nodes = replace(local_nodes, nodes=tuple(nodes))
            return replace(s, local_nodes=local_nodes)

        self._transition(apply)

    def update_central_db(
        self,
        status: SyncStatus,
        connection: CentralDbConnection | None = None,
    ) -> None:
        """Record the central database link status.

        Args:
            status: Status of the link.
            connection: Optional new link description. The description's
                connected flag always follows status.
        """

        def apply(s: SyncState) -> SyncState:
            current = connection if connection is not None else s.central_db.connection
            if current is not None:
                current = replace(current, connected=status == SyncStatus.CONNECTED)
            central_db = replace(s.central_db, status=status, connection=current)
            return replace(s, central_db=central_db)

        self._transition(apply)

    def set_syncing(self, syncing: bool) -> None:
        """Toggle the write-in-flight flag.

        Turning syncing on marks every enabled link as syncing. Turning it
        off only clears the flag; link statuses stay as they are until the
        next report from their collaborators.
        """

        def apply(s: SyncState) -> SyncState:
            new = replace(s, is_syncing=syncing)
            if not syncing:
                return new
            if s.local_nodes.enabled:
                new = replace(new, local_nodes=replace(new.local_nodes, status=SyncStatus.SYNCING))
            if s.central_db.enabled:
                new = replace(new, central_db=replace(new.central_db, status=SyncStatus.SYNCING))
            return new

        # Clearing the flag does not recompute
        overall = _forced(SyncStatus.SYNCING) if syncing else _unchanged
        self._transition(apply, overall)

    def touch_last_edited(self) -> None:
        """Stamp the last edit time with the current time.

        The stamp never moves backwards: if the clock has not advanced past
        the previous stamp, the previous stamp plus one microsecond is used.
        """

        def apply(s: SyncState) -> SyncState:
            now = self._clock()
            if s.last_edited is not None and now <= s.last_edited:
                now = s.last_edited + timedelta(microseconds=1)
            return replace(s, last_edited=now)

        self._transition(apply, _unchanged)

    def reset(self) -> None:
        """Restore the startup defaults. Subscriptions are kept."""
        self._transition(lambda s: SyncState())

    # === Internals ===

    def _transition(
        self,
        apply: Callable[[SyncState], SyncState],
        overall: Callable[[SyncState], SyncStatus] = calculate_overall_status,
    ) -> None:
        """Apply a transition, recompute the aggregate and publish."""
        with self._lock:
            previous = self._state
            new = apply(previous)
            new = replace(new, overall_status=overall(new))
            self._state = new

            if new.overall_status != previous.overall_status:
                logger.info(
                    f"Overall status {previous.overall_status.value} -> "
                    f"{new.overall_status.value} (mode={new.mode.value}, "
                    f"online={new.is_online})"
                )

            # Nested transitions from subscribers queue behind the current state
            self._pending.append(new)
            if self._publishing:
                return
            self._publishing = True
            try:
                while self._pending:
                    state = self._pending.popleft()
                    for callback in list(self._subscribers):
                        try:
                            callback(state)
                        except Exception:
                            logger.exception("Status subscriber failed")
            finally:
                self._pending.clear()
                self._publishing = False
