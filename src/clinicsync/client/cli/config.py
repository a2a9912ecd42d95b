"""Configuration utilities for the clinicsync CLI.

This module provides shared configuration and logging helpers used across
CLI commands. Settings live in ~/.clinicsync/config.json.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Any

from clinicsync.core.config import StatusConfig
from clinicsync.core.types import ConnectionMode

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def get_config_dir() -> Path:
    """Get the configuration directory for clinicsync.

    Returns:
        Path to ~/.clinicsync or equivalent.
    """
    return Path.home() / ".clinicsync"


def get_config_file() -> Path:
    """Get the path to the config file."""
    return get_config_dir() / "config.json"


def load_config() -> dict[str, Any]:
    """Load configuration from config file."""
    config_file = get_config_file()
    if config_file.exists():
        return dict(json.loads(config_file.read_text()))
    return {}


def save_config(config: dict[str, Any]) -> None:
    """Save configuration to config file."""
    config_file = get_config_file()
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps(config, indent=2))


def get_connection_mode() -> ConnectionMode:
    """Get the configured connection mode.

    Returns:
        Configured mode, or offline when none is set.

    Raises:
        ValueError: If the config file holds an unknown mode.
    """
    value = load_config().get("mode")
    if not value:
        return ConnectionMode.OFFLINE
    return ConnectionMode(value)


def get_status_config() -> StatusConfig:
    """Build the monitor/tracker configuration from the config file.

    Raises:
        ValueError: If a configured duration is invalid.
    """
    return StatusConfig.from_dict(load_config())


def setup_logging(verbose: bool = False, level: int = logging.WARNING) -> None:
    """Send clinicsync log records to stderr.

    Args:
        verbose: Log everything down to DEBUG.
        level: Level used when not verbose.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    clinicsync_logger = logging.getLogger("clinicsync")
    for existing in clinicsync_logger.handlers[:]:
        clinicsync_logger.removeHandler(existing)
    clinicsync_logger.addHandler(handler)
    clinicsync_logger.setLevel(logging.DEBUG if verbose else level)
    clinicsync_logger.propagate = False
