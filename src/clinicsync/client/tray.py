"""System tray indicator for the connection status.

This module provides:
- Tray icon coloured by the overall sync status
- Tooltip with connection mode and last edit time
- Context menu to switch connection mode and re-check reachability

Requires pystray and Pillow for cross-platform tray icon support.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from PIL import Image, ImageDraw

from clinicsync.core.types import ConnectionMode, SyncStatus

# pystray import with fallback
PYSTRAY_AVAILABLE: bool
try:
    import pystray
    from pystray import Icon, Menu, MenuItem

    PYSTRAY_AVAILABLE = True
except ImportError:
    PYSTRAY_AVAILABLE = False
    pystray = None  # type: ignore[assignment]
    Icon = None  # noqa: N806  # type: ignore[misc]
    Menu = None  # noqa: N806  # type: ignore[misc]
    MenuItem = None  # noqa: N806  # type: ignore[misc]

if TYPE_CHECKING:
    from clinicsync.client.reachability import ReachabilityMonitor
    from clinicsync.client.state import SyncState, SyncStatusStore


# Color scheme for status icons
STATUS_COLORS = {
    SyncStatus.CONNECTED: "#4ADE80",  # Green
    SyncStatus.DISCONNECTED: "#9CA3AF",  # Gray
    SyncStatus.SYNCING: "#FACC15",  # Yellow
    SyncStatus.ERROR: "#F87171",  # Red
}

STATUS_LABELS = {
    SyncStatus.CONNECTED: "Connected",
    SyncStatus.DISCONNECTED: "Disconnected",
    SyncStatus.SYNCING: "Syncing...",
    SyncStatus.ERROR: "Error",
}


@dataclass
class TrayCallbacks:
    """Callbacks for tray menu actions.

    Attributes:
        on_mode_change: Called after the connection mode was switched
        on_quit: Called when "Quit" is clicked
    """

    on_mode_change: Callable[[ConnectionMode], None] | None = None
    on_quit: Callable[[], None] | None = None


def create_icon_image(status: SyncStatus, size: int = 64) -> Image.Image:
    """Draw the tray icon for a status.

    Every status is a disc in its colour. Syncing is a ring and
    disconnected a smaller disc.
    """
    image = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    color = STATUS_COLORS.get(status, STATUS_COLORS[SyncStatus.DISCONNECTED])

    margin = size // 4 if status == SyncStatus.DISCONNECTED else size // 8
    box = [margin, margin, size - margin - 1, size - margin - 1]
    if status == SyncStatus.SYNCING:
        draw.ellipse(box, outline=color, width=max(1, size // 8))
    else:
        draw.ellipse(box, fill=color)
    return image


def format_status_text(state: SyncState, last_edited: str) -> str:
    """Build the tooltip text for a state.

    Args:
        state: Current sync state
        last_edited: Pre-formatted last edit time

    Returns:
        e.g. "ClinicSync - Connected | Full Sync (Nodes + Central) | Last edit 3:07:45 PM UTC"
    """
    label = STATUS_LABELS.get(state.overall_status, state.overall_status.value)
    parts = [f"ClinicSync - {label}", state.mode.display_name]
    if state.local_nodes.enabled and state.local_nodes.total_count:
        parts.append(
            f"{state.local_nodes.connected_count}/{state.local_nodes.total_count} nodes"
        )
    parts.append(f"Last edit {last_edited}")
    return " | ".join(parts)


class StatusTray:
    """System tray icon mirroring a SyncStatusStore.

    The icon follows every published state; the menu switches the
    connection mode on the store.
    """

    def __init__(
        self,
        store: SyncStatusStore,
        monitor: ReachabilityMonitor | None = None,
        callbacks: TrayCallbacks | None = None,
    ) -> None:
        """Initialize the tray icon.

        Args:
            store: Store to display and control
            monitor: Optional monitor for "Check Connection Now"
            callbacks: Optional callbacks for menu actions

        Raises:
            ImportError: If pystray is not available
        """
        if not PYSTRAY_AVAILABLE:
            raise ImportError(
                "pystray is required for tray icon. "
                "Install with: pip install clinicsync[tray]"
            )

        self._store = store
        self._monitor = monitor
        self._callbacks = callbacks or TrayCallbacks()
        self._icon: pystray.Icon | None = None
        self._thread: threading.Thread | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def running(self) -> bool:
        return self._icon is not None

    def _get_status_text(self) -> str:
        return format_status_text(self._store.state, self._store.format_last_edited())

    def _on_state(self, state: SyncState) -> None:
        """Update the tray icon for a newly published state."""
        if self._icon is None:
            return
        self._icon.icon = create_icon_image(state.overall_status)
        self._icon.title = format_status_text(state, self._store.format_last_edited())

    def _select_mode(self, mode: ConnectionMode) -> Callable[..., None]:
        def on_click(*_args: object) -> None:
            self._store.set_mode(mode)
            if self._callbacks.on_mode_change:
                self._callbacks.on_mode_change(mode)

        return on_click

    def _is_mode(self, mode: ConnectionMode) -> Callable[..., bool]:
        return lambda *_args: self._store.connection_mode == mode

    def _on_check_now(self) -> None:
        """Handle Check Connection Now menu item."""
        if self._monitor is not None:
            threading.Thread(
                target=self._monitor.check_now,
                name="TrayReachabilityCheck",
                daemon=True,
            ).start()

    def _on_quit(self) -> None:
        """Handle Quit menu item."""
        if self._callbacks.on_quit:
            self._callbacks.on_quit()
        self.stop()

    def _create_menu(self) -> pystray.Menu:
        """Create the context menu."""
        mode_items = [
            MenuItem(
                mode.display_name,
                self._select_mode(mode),
                checked=self._is_mode(mode),
                radio=True,
            )
            for mode in ConnectionMode
        ]
        return Menu(
            MenuItem("Connection Mode", Menu(*mode_items)),
            MenuItem(
                "Check Connection Now",
                self._on_check_now,
                enabled=self._monitor is not None,
            ),
            Menu.SEPARATOR,
            MenuItem("Quit ClinicSync", self._on_quit),
        )

    def start(self, blocking: bool = True) -> None:
        """Start the tray icon.

        Args:
            blocking: If True, blocks until stop() is called.
                     If False, runs in a background thread.
        """
        if self._icon is not None:
            return  # Already running

        self._icon = Icon(
            name="ClinicSync",
            icon=create_icon_image(self._store.overall_status),
            title=self._get_status_text(),
            menu=self._create_menu(),
        )
        self._unsubscribe = self._store.subscribe(self._on_state)

        if blocking:
            self._icon.run()
        else:
            self._thread = threading.Thread(target=self._icon.run, daemon=True)
            self._thread.start()

    def stop(self) -> None:
        """Stop the tray icon."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        if self._icon is not None:
            self._icon.stop()
            self._icon = None
