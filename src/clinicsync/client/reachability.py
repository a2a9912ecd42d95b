"""Internet reachability monitoring.

This module provides:
- check_internet_connection: Single bounded-time reachability probe
- ConnectivityEvents: In-process emitter for OS online/offline transitions
- ReachabilityMonitor: Periodic probe loop feeding SyncStatusStore.set_online
- MonitorHandle: Idempotent teardown for a running monitor

Architecture:
    timer thread ──probe──┐
                          ├──► SyncStatusStore.set_online
    ConnectivityEvents ───┘

A failed probe is not an error: it only means "offline".
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING

import httpx

from clinicsync.core.config import DEFAULT_PROBE_URL, StatusConfig

if TYPE_CHECKING:
    from collections.abc import Callable

    from clinicsync.client.state import SyncStatusStore

logger = logging.getLogger(__name__)


def check_internet_connection(
    url: str = DEFAULT_PROBE_URL,
    timeout: float = 5.0,
) -> bool:
    """Probe general internet connectivity.

    Any HTTP response counts as reachable; the content is ignored.

    Args:
        url: Well-known endpoint to probe.
        timeout: Upper bound for the whole request in seconds.

    Returns:
        True if the endpoint answered within the timeout.
    """
    try:
        with httpx.Client(timeout=timeout, follow_redirects=False) as client:
            client.head(url)
        return True
    except (httpx.HTTPError, httpx.InvalidURL, OSError) as e:
        logger.debug(f"Reachability probe to {url} failed: {e}")
        return False


class ConnectivityEvents:
    """Emitter for OS-level connectivity transitions.

    Platform integrations (or the embedding application) call emit_online()
    and emit_offline(); listeners are invoked synchronously.
    """

    ONLINE = "online"
    OFFLINE = "offline"

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[Callable[[], None]]] = {
            self.ONLINE: [],
            self.OFFLINE: [],
        }

    def add_listener(self, kind: str, callback: Callable[[], None]) -> None:
        """Attach a listener for "online" or "offline"."""
        with self._lock:
            self._listeners[kind].append(callback)

    def remove_listener(self, kind: str, callback: Callable[[], None]) -> None:
        """Detach a listener. Unknown listeners are ignored."""
        with self._lock:
            if callback in self._listeners[kind]:
                self._listeners[kind].remove(callback)

    def listener_count(self, kind: str) -> int:
        with self._lock:
            return len(self._listeners[kind])

    def emit_online(self) -> None:
        self._emit(self.ONLINE)

    def emit_offline(self) -> None:
        self._emit(self.OFFLINE)

    def _emit(self, kind: str) -> None:
        with self._lock:
            listeners = list(self._listeners[kind])
        for callback in listeners:
            callback()


class MonitorHandle:
    """Cancellation handle returned by ReachabilityMonitor.start().

    cancel() may be called any number of times; only the first call has an
    effect. The handle can also be used as a context manager.
    """

    def __init__(self, teardown: Callable[[], None]) -> None:
        self._teardown: Callable[[], None] | None = teardown
        self._lock = threading.Lock()

    @property
    def cancelled(self) -> bool:
        return self._teardown is None

    def cancel(self) -> None:
        """Stop the monitor. Subsequent calls are no-ops."""
        with self._lock:
            teardown, self._teardown = self._teardown, None
        if teardown is not None:
            teardown()

    def __enter__(self) -> MonitorHandle:
        return self

    def __exit__(self, *args: object) -> None:
        self.cancel()


class ReachabilityMonitor:
    """Keeps SyncStatusStore.is_online in line with internet reachability.

    Probes once immediately on start, then every poll_interval seconds on a
    daemon thread. OS transitions delivered through ConnectivityEvents set
    the flag immediately, without waiting for the next probe.

    Usage:
        store = SyncStatusStore()
        events = ConnectivityEvents()
        monitor = ReachabilityMonitor(store, StatusConfig(poll_interval=30.0), events)

        handle = monitor.start()
        # ...
        handle.cancel()
    """

    def __init__(
        self,
        store: SyncStatusStore,
        config: StatusConfig | None = None,
        events: ConnectivityEvents | None = None,
        probe: Callable[[], bool] | None = None,
    ) -> None:
        """Initialize the monitor.

        Args:
            store: Store receiving set_online().
            config: Poll interval, probe timeout and probe URL.
            events: Optional source of OS connectivity transitions.
            probe: Replacement probe; defaults to check_internet_connection
                with the configured URL and timeout.
        """
        self._store = store
        self._config = config or StatusConfig()
        self._events = events
        self._probe = probe or self._default_probe

        self._lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    @property
    def running(self) -> bool:
        """Check if the polling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def _default_probe(self) -> bool:
        return check_internet_connection(
            self._config.probe_url,
            timeout=self._config.probe_timeout,
        )

    def check_now(self) -> bool:
        """Run one probe and publish the result.

        Returns:
            True if the network is reachable.
        """
        try:
            online = bool(self._probe())
        except Exception as e:
            logger.debug(f"Reachability probe raised: {e}")
            online = False

        if online != self._store.is_online:
            logger.info(f"Internet {'reachable' if online else 'unreachable'}")
        self._store.set_online(online)
        return online

    def start(self) -> MonitorHandle:
        """Start probing in the background.

        Returns:
            Handle whose cancel() stops the thread and detaches listeners.

        Raises:
            RuntimeError: If the monitor is already running.
        """
        with self._lock:
            if self._thread is not None:
                raise RuntimeError("ReachabilityMonitor already running")

            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run_loop,
                args=(stop_event,),
                name="ReachabilityMonitor",
                daemon=True,
            )

        if self._events is not None:
            self._events.add_listener(ConnectivityEvents.ONLINE, self._on_os_online)
            self._events.add_listener(ConnectivityEvents.OFFLINE, self._on_os_offline)

        self._thread.start()
        logger.info(
            f"ReachabilityMonitor started (every {self._config.poll_interval:.0f}s, "
            f"timeout {self._config.probe_timeout:.0f}s)"
        )
        return MonitorHandle(self._stop)

    def _stop(self) -> None:
        """Stop the thread and detach from OS events."""
        if self._events is not None:
            self._events.remove_listener(ConnectivityEvents.ONLINE, self._on_os_online)
            self._events.remove_listener(ConnectivityEvents.OFFLINE, self._on_os_offline)

        with self._lock:
            thread, self._thread = self._thread, None
            stop_event, self._stop_event = self._stop_event, None

        if stop_event is not None:
            stop_event.set()
        # A probe may be in flight; it is bounded by probe_timeout
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._config.probe_timeout + 1.0)

        logger.info("ReachabilityMonitor stopped")

    def _run_loop(self, stop_event: threading.Event) -> None:
        """Probe immediately, then on every interval until stopped."""
        while not stop_event.is_set():
            self.check_now()
            if stop_event.wait(self._config.poll_interval):
                break

    def _on_os_online(self) -> None:
        logger.info("OS reported network online")
        self._store.set_online(True)

    def _on_os_offline(self) -> None:
        logger.info("OS reported network offline")
        self._store.set_online(False)
