"""Connection mode command for the clinicsync CLI.

Commands:
- mode: Show or change the configured connection mode
"""

from __future__ import annotations

import sys

import click

from clinicsync.client.cli.config import get_connection_mode, load_config, save_config
from clinicsync.core.types import ConnectionMode


@click.command()
@click.argument(
    "new_mode",
    required=False,
    type=click.Choice([m.value for m in ConnectionMode]),
)
def mode(new_mode: str | None) -> None:
    """Show or set the connection mode.

    NEW_MODE is one of local_nodes, central_db, both or offline.
    """
    if new_mode is None:
        try:
            current = get_connection_mode()
        except ValueError as e:
            click.echo(f"Error: invalid configuration: {e}", err=True)
            sys.exit(1)
        click.echo(f"{current.value} ({current.display_name})")
        return

    selected = ConnectionMode(new_mode)
    config = load_config()
    config["mode"] = selected.value
    save_config(config)
    click.echo(f"Connection mode set to {selected.value} ({selected.display_name})")
