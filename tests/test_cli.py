"""Tests for CLI commands - status, watch, mode."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from clinicsync.client.cli import cli
from clinicsync.client.cli.config import (
    get_connection_mode,
    get_status_config,
    load_config,
    save_config,
    setup_logging,
)
from clinicsync.core.types import ConnectionMode


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Remove handlers bound to CliRunner streams after each test."""
    yield
    logger = logging.getLogger("clinicsync")
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


@pytest.fixture
def config_dir(tmp_path: Path) -> Iterator[Path]:
    """Point the CLI at a temporary config directory."""
    config = tmp_path / ".clinicsync"
    with patch("clinicsync.client.cli.config.get_config_dir", return_value=config):
        yield config


@pytest.fixture
def probe() -> Iterator[MagicMock]:
    """Replace the network probe."""
    with patch(
        "clinicsync.client.reachability.check_internet_connection",
        return_value=True,
    ) as mock_probe:
        yield mock_probe


class TestConfigHelpers:
    """Tests for config file helpers."""

    def test_load_missing_config(self, config_dir: Path) -> None:
        """Missing config should load as empty."""
        assert load_config() == {}

    def test_save_and_load(self, config_dir: Path) -> None:
        """Saved config should round trip through the file."""
        save_config({"mode": "both", "poll_interval": 10})
        assert (config_dir / "config.json").exists()
        assert load_config() == {"mode": "both", "poll_interval": 10}

    def test_default_mode_is_offline(self, config_dir: Path) -> None:
        """No configured mode should mean offline."""
        assert get_connection_mode() == ConnectionMode.OFFLINE

    def test_invalid_mode(self, config_dir: Path) -> None:
        """An unknown mode should raise ValueError."""
        save_config({"mode": "satellite"})
        with pytest.raises(ValueError):
            get_connection_mode()

    def test_status_config_from_file(self, config_dir: Path) -> None:
        """Durations should be read from the config file."""
        save_config({"poll_interval": 12, "probe_timeout": 3})
        config = get_status_config()
        assert config.poll_interval == 12.0
        assert config.probe_timeout == 3.0

    def test_setup_logging(self) -> None:
        """Should install a single handler on the clinicsync logger."""
        setup_logging(verbose=True)
        setup_logging(verbose=True)
        logger = logging.getLogger("clinicsync")
        assert len(logger.handlers) == 1
        assert logger.level == logging.DEBUG
        assert logger.propagate is False

        setup_logging()
        assert logger.level == logging.WARNING


class TestModeCommand:
    """Tests for 'clinicsync mode' command."""

    def test_show_default(self, runner: CliRunner, config_dir: Path) -> None:
        """Should show offline when nothing is configured."""
        result = runner.invoke(cli, ["mode"])
        assert result.exit_code == 0
        assert "offline (Offline Mode)" in result.output

    def test_set_mode(self, runner: CliRunner, config_dir: Path) -> None:
        """Should persist the selected mode."""
        result = runner.invoke(cli, ["mode", "both"])
        assert result.exit_code == 0
        assert "Full Sync" in result.output
        assert load_config()["mode"] == "both"

        result = runner.invoke(cli, ["mode"])
        assert "both" in result.output

    def test_set_mode_keeps_other_settings(self, runner: CliRunner, config_dir: Path) -> None:
        """Changing the mode should not drop other keys."""
        save_config({"poll_interval": 10})
        runner.invoke(cli, ["mode", "central_db"])
        assert load_config() == {"poll_interval": 10, "mode": "central_db"}

    def test_rejects_unknown_mode(self, runner: CliRunner, config_dir: Path) -> None:
        """Unknown modes should be rejected by click."""
        result = runner.invoke(cli, ["mode", "satellite"])
        assert result.exit_code != 0
        assert not (config_dir / "config.json").exists()

    def test_show_invalid_config(self, runner: CliRunner, config_dir: Path) -> None:
        """A corrupt mode in the config should fail cleanly."""
        save_config({"mode": "satellite"})
        result = runner.invoke(cli, ["mode"])
        assert result.exit_code == 1
        assert "invalid configuration" in result.output


class TestStatusCommand:
    """Tests for 'clinicsync status' command."""

    def test_offline_mode(
        self, runner: CliRunner, config_dir: Path, probe: MagicMock
    ) -> None:
        """Offline mode should report disconnected even when reachable."""
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "Status:    disconnected" in result.output
        assert "Internet:  reachable" in result.output
        assert "Last edit: Never" in result.output

    def test_json_output(
        self, runner: CliRunner, config_dir: Path, probe: MagicMock
    ) -> None:
        """--json should print the full state."""
        save_config({"mode": "central_db"})
        result = runner.invoke(cli, ["status", "--json"])
        assert result.exit_code == 0

        data = json.loads(result.output)
        assert data["mode"] == "central_db"
        assert data["is_online"] is True
        assert data["overall_status"] == "disconnected"
        assert data["central_db"]["enabled"] is True
        assert data["local_nodes"]["enabled"] is False
        assert data["last_edited"] is None

    def test_unreachable(
        self, runner: CliRunner, config_dir: Path, probe: MagicMock
    ) -> None:
        """A failed probe should show as unreachable."""
        probe.return_value = False
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 0
        assert "Internet:  unreachable" in result.output

    def test_uses_configured_probe(
        self, runner: CliRunner, config_dir: Path, probe: MagicMock
    ) -> None:
        """The probe should use the configured URL and timeout."""
        save_config({"probe_url": "http://probe.local/", "probe_timeout": 2})
        runner.invoke(cli, ["status"])
        probe.assert_called_once_with("http://probe.local/", timeout=2.0)

    def test_invalid_config(self, runner: CliRunner, config_dir: Path) -> None:
        """Invalid durations should exit with an error."""
        save_config({"poll_interval": 0})
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 1
        assert "invalid configuration" in result.output

    @pytest.mark.parametrize("value", [None, [30], "often"])
    def test_non_numeric_config(
        self, runner: CliRunner, config_dir: Path, value: object
    ) -> None:
        """Non-numeric durations should report invalid configuration."""
        save_config({"poll_interval": value})
        result = runner.invoke(cli, ["status"])
        assert result.exit_code == 1
        assert "invalid configuration" in result.output
        assert "Traceback" not in result.output


class TestWatchCommand:
    """Tests for 'clinicsync watch' command."""

    def test_runs_for_duration(
        self, runner: CliRunner, config_dir: Path, probe: MagicMock
    ) -> None:
        """Watch should probe, report, and stop after --duration."""
        save_config({"mode": "local_nodes"})
        result = runner.invoke(cli, ["watch", "--duration", "0.2", "--interval", "0.05"])
        assert result.exit_code == 0
        assert "Watching connection status (Local Network Only)" in result.output
        assert "disconnected" in result.output
        assert probe.call_count >= 1

    def test_rejects_bad_interval(self, runner: CliRunner, config_dir: Path) -> None:
        """A non-positive interval should be rejected."""
        result = runner.invoke(cli, ["watch", "--interval", "0", "--duration", "0"])
        assert result.exit_code == 1
        assert "--interval must be positive" in result.output

    def test_rejects_infinite_interval(self, runner: CliRunner, config_dir: Path) -> None:
        """An infinite interval should be rejected."""
        result = runner.invoke(cli, ["watch", "--interval", "inf", "--duration", "0"])
        assert result.exit_code == 1
        assert "--interval must be positive and finite" in result.output

    def test_notify_starts_notifier(
        self, runner: CliRunner, config_dir: Path, probe: MagicMock
    ) -> None:
        """--notify should attach and detach a StatusNotifier."""
        with patch("clinicsync.client.notifications.StatusNotifier") as mock_notifier:
            result = runner.invoke(cli, ["watch", "--notify", "--duration", "0.05"])
        assert result.exit_code == 0
        mock_notifier.return_value.start.assert_called_once_with()
        mock_notifier.return_value.stop.assert_called_once_with()


class TestCli:
    """Tests for the command group."""

    def test_help_lists_commands(self, runner: CliRunner) -> None:
        """Help should list all commands."""
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("status", "watch", "mode", "tray"):
            assert command in result.output
