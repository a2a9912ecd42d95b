"""Status commands for the clinicsync CLI.

Commands:
- status: Probe reachability once and print the connection status
- watch: Monitor reachability and report every status transition
"""

from __future__ import annotations

import json
import logging
import math
import sys
import threading
from datetime import datetime

import click

from clinicsync.client.cli.config import (
    get_connection_mode,
    get_status_config,
    setup_logging,
)
from clinicsync.client.reachability import ReachabilityMonitor
from clinicsync.client.state import SyncState, SyncStatusStore
from clinicsync.core.config import StatusConfig
from clinicsync.core.types import ConnectionMode, SyncStatus


def _load_settings() -> tuple[ConnectionMode, StatusConfig]:
    """Read mode and status config, exiting on invalid configuration."""
    try:
        return get_connection_mode(), get_status_config()
    except ValueError as e:
        click.echo(f"Error: invalid configuration: {e}", err=True)
        sys.exit(1)


def state_to_dict(state: SyncState) -> dict[str, object]:
    """Convert a state to a JSON-serializable dictionary."""
    return {
        "mode": state.mode.value,
        "is_online": state.is_online,
        "overall_status": state.overall_status.value,
        "is_syncing": state.is_syncing,
        "last_edited": state.last_edited.isoformat() if state.last_edited else None,
        "local_nodes": {
            "enabled": state.local_nodes.enabled,
            "connected_count": state.local_nodes.connected_count,
            "total_count": state.local_nodes.total_count,
            "status": state.local_nodes.status.value,
        },
        "central_db": {
            "enabled": state.central_db.enabled,
            "status": state.central_db.status.value,
        },
    }


@click.command()
@click.option("--json", "as_json", is_flag=True, help="Print the status as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def status(as_json: bool, verbose: bool) -> None:
    """Check internet reachability once and print the connection status."""
    setup_logging(verbose)
    mode, config = _load_settings()

    store = SyncStatusStore()
    store.set_mode(mode)
    ReachabilityMonitor(store, config).check_now()

    state = store.state
    if as_json:
        click.echo(json.dumps(state_to_dict(state), indent=2))
        return

    click.echo(f"Status:    {state.overall_status.value}")
    click.echo(f"Mode:      {state.mode.display_name}")
    click.echo(f"Internet:  {'reachable' if state.is_online else 'unreachable'}")
    click.echo(f"Last edit: {store.format_last_edited()}")


@click.command()
@click.option(
    "--interval",
    type=float,
    default=None,
    help="Seconds between reachability probes (default: from config, 30).",
)
@click.option("--notify", is_flag=True, help="Show desktop notifications on changes.")
@click.option(
    "--duration",
    type=float,
    default=None,
    help="Stop after this many seconds (default: run until interrupted).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
def watch(
    interval: float | None,
    notify: bool,
    duration: float | None,
    verbose: bool,
) -> None:
    """Monitor reachability and print every overall status change.

    Press Ctrl+C to stop.
    """
    setup_logging(verbose, level=logging.INFO)
    mode, config = _load_settings()
    if interval is not None:
        if interval <= 0 or not math.isfinite(interval):
            click.echo("Error: --interval must be positive and finite.", err=True)
            sys.exit(1)
        config.poll_interval = interval

    store = SyncStatusStore()
    store.set_mode(mode)

    def on_status(value: SyncStatus) -> None:
        click.echo(f"[{datetime.now():%H:%M:%S}] {value.value}")

    unsubscribe = store.watch(lambda s: s.overall_status, on_status)

    notifier = None
    if notify:
        from clinicsync.client.notifications import StatusNotifier

        notifier = StatusNotifier(store)
        notifier.start()

    click.echo(f"Watching connection status ({mode.display_name})...")
    click.echo(f"[{datetime.now():%H:%M:%S}] {store.overall_status.value}")

    stop_event = threading.Event()
    handle = ReachabilityMonitor(store, config).start()
    try:
        stop_event.wait(timeout=duration)
    except KeyboardInterrupt:
        click.echo("\nStopping...")
    finally:
        handle.cancel()
        unsubscribe()
        if notifier is not None:
            notifier.stop()
