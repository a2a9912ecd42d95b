"""System tray command for the clinicsync CLI.

Commands:
- tray: Start the system tray status indicator
"""

from __future__ import annotations

import signal
import sys
import threading

import click

from clinicsync.client.cli.config import (
    get_connection_mode,
    get_status_config,
    load_config,
    save_config,
    setup_logging,
)
from clinicsync.core.types import ConnectionMode


@click.command()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def tray(verbose: bool) -> None:
    """Start the system tray status indicator.

    The icon shows the overall connection status and lets you switch the
    connection mode.

    Requires pystray and pillow: pip install clinicsync[tray]
    """
    try:
        from clinicsync.client.tray import PYSTRAY_AVAILABLE, StatusTray, TrayCallbacks
    except ImportError:
        click.echo(
            "Error: Tray dependencies not installed.\n"
            "Install with: pip install clinicsync[tray]",
            err=True,
        )
        sys.exit(1)

    if not PYSTRAY_AVAILABLE:
        click.echo(
            "Error: pystray not available.\n" "Install with: pip install pystray pillow",
            err=True,
        )
        sys.exit(1)

    from clinicsync.client.reachability import ReachabilityMonitor
    from clinicsync.client.state import SyncStatusStore

    setup_logging(verbose)
    try:
        mode, config = get_connection_mode(), get_status_config()
    except ValueError as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(1)

    store = SyncStatusStore()
    store.set_mode(mode)
    monitor = ReachabilityMonitor(store, config)

    def on_mode_change(new_mode: ConnectionMode) -> None:
        saved = load_config()
        saved["mode"] = new_mode.value
        save_config(saved)

    def on_quit() -> None:
        click.echo("ClinicSync tray icon stopped.")

    callbacks = TrayCallbacks(on_mode_change=on_mode_change, on_quit=on_quit)
    tray_icon = StatusTray(store, monitor, callbacks)

    click.echo("Starting ClinicSync tray icon...")
    click.echo(f"Connection mode: {mode.display_name}")
    click.echo("Press Ctrl+C or use tray menu to quit.")

    stop_event = threading.Event()

    def signal_handler(signum: int, frame: object) -> None:
        click.echo("\nStopping tray icon...")
        tray_icon.stop()
        stop_event.set()

    signal.signal(signal.SIGINT, signal_handler)

    handle = monitor.start()
    tray_icon.start(blocking=False)

    # Wait for stop signal or tray to close via menu
    try:
        while not stop_event.is_set() and tray_icon.running:
            stop_event.wait(timeout=0.5)
    except KeyboardInterrupt:
        click.echo("\nStopping tray icon...")
        tray_icon.stop()
    finally:
        handle.cancel()
