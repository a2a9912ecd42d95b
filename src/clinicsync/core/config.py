"""Shared configuration classes for clinicsync.

This module defines the tunables of the status coordinator. All durations
are expressed in seconds.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, fields
from typing import Any

DEFAULT_PROBE_URL = "https://www.google.com/generate_204"


@dataclass
class StatusConfig:
    """Configuration for the reachability monitor and write tracker.

    Attributes:
        poll_interval: Seconds between reachability probes.
        probe_timeout: Upper bound for a single probe.
        syncing_min_visible: Delay before the syncing indicator is cleared
            after a write completes.
        probe_url: Endpoint used for the reachability probe.
    """

    poll_interval: float = 30.0
    probe_timeout: float = 5.0
    syncing_min_visible: float = 0.3
    probe_url: str = DEFAULT_PROBE_URL

    def __post_init__(self) -> None:
        """Validate durations."""
        for name in ("poll_interval", "probe_timeout", "syncing_min_visible"):
            if not math.isfinite(getattr(self, name)):
                raise ValueError(f"{name} must be finite, got {getattr(self, name)}")
        for name in ("poll_interval", "probe_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")
        if self.syncing_min_visible < 0:
            raise ValueError(
                f"syncing_min_visible must not be negative, got {self.syncing_min_visible}"
            )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatusConfig:
        """Create from a configuration dictionary, ignoring unknown keys.

        Raises:
            ValueError: If a duration is not a finite number in range.
        """
        known = {f.name for f in fields(cls)}
        values: dict[str, Any] = {}
        for key, value in data.items():
            if key not in known:
                continue
            if key == "probe_url":
                values[key] = str(value)
                continue
            try:
                values[key] = float(value)
            except (TypeError, ValueError) as e:
                raise ValueError(f"{key} must be a number, got {value!r}") from e
        return cls(**values)
