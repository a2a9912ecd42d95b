"""Command-line interface for clinicsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- status: Probe reachability once and print the connection status
- watch: Monitor reachability and report status transitions
- mode: Show or change the configured connection mode
- tray: Start the system tray status indicator
"""

from __future__ import annotations

import click

from clinicsync.client.cli.config import (
    get_config_dir,
    get_config_file,
    get_connection_mode,
    get_status_config,
    load_config,
    save_config,
    setup_logging,
)
from clinicsync.client.cli.mode import mode
from clinicsync.client.cli.status import status, watch
from clinicsync.client.cli.tray import tray


@click.group()
@click.version_option(package_name="clinicsync")
def cli() -> None:
    """ClinicSync - connection and sync status for the clinical records client."""


# Status commands
cli.add_command(status)
cli.add_command(watch)

# Configuration commands
cli.add_command(mode)

# Tray command
cli.add_command(tray)


def main() -> None:
    """Entry point for the CLI."""
    cli()


__all__ = [
    # Main entry points
    "cli",
    "main",
    # Config utilities
    "get_config_dir",
    "get_config_file",
    "get_connection_mode",
    "get_status_config",
    "load_config",
    "save_config",
    "setup_logging",
]
