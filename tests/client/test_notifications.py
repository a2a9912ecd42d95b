"""Tests for notification system."""

from __future__ import annotations

import subprocess
import threading
from unittest.mock import MagicMock, patch

import pytest

from clinicsync.client.notifications import (
    Notification,
    NotificationType,
    StatusNotifier,
    build_notification_command,
    notify_status_change,
    send_notification,
)
from clinicsync.client.state import SyncStatusStore
from clinicsync.core.types import ConnectionMode, SyncStatus


class TestNotification:
    """Tests for Notification dataclass."""

    def test_notification_default_type(self) -> None:
        """Should default to INFO type."""
        notif = Notification(title="Title", message="Message")
        assert notif.type == NotificationType.INFO


class TestNotifyStatusChange:
    """Tests for status transition notifications."""

    @patch("clinicsync.client.notifications.send_notification")
    def test_error(self, mock_send: MagicMock) -> None:
        """Should send an error notification when a link fails."""
        mock_send.return_value = True

        assert notify_status_change(SyncStatus.CONNECTED, SyncStatus.ERROR) is True

        notif = mock_send.call_args[0][0]
        assert "Error" in notif.title
        assert notif.type == NotificationType.ERROR

    @patch("clinicsync.client.notifications.send_notification")
    def test_connection_lost(self, mock_send: MagicMock) -> None:
        """Should warn when a connected client goes offline."""
        mock_send.return_value = True

        notify_status_change(SyncStatus.CONNECTED, SyncStatus.DISCONNECTED)

        notif = mock_send.call_args[0][0]
        assert "Lost" in notif.title
        assert notif.type == NotificationType.WARNING

    @patch("clinicsync.client.notifications.send_notification")
    def test_connection_restored(self, mock_send: MagicMock) -> None:
        """Should announce a restored connection."""
        mock_send.return_value = True

        notify_status_change(SyncStatus.ERROR, SyncStatus.CONNECTED)

        assert "Restored" in mock_send.call_args[0][0].title

    @pytest.mark.parametrize(
        ("previous", "current"),
        [
            (SyncStatus.CONNECTED, SyncStatus.CONNECTED),
            (SyncStatus.CONNECTED, SyncStatus.SYNCING),
            (SyncStatus.SYNCING, SyncStatus.CONNECTED),
            (SyncStatus.ERROR, SyncStatus.DISCONNECTED),
        ],
    )
    @patch("clinicsync.client.notifications.send_notification")
    def test_quiet_transitions(
        self, mock_send: MagicMock, previous: SyncStatus, current: SyncStatus
    ) -> None:
        """Unchanged, syncing and error-to-disconnected transitions stay quiet."""
        assert notify_status_change(previous, current) is False
        mock_send.assert_not_called()


class TestBuildNotificationCommand:
    """Tests for native notifier command lines."""

    def test_linux_normal_urgency(self) -> None:
        """Non-error notifications should use normal urgency."""
        command = build_notification_command("Linux", Notification("Title", "Body"))
        assert command is not None
        assert command[command.index("--urgency") + 1] == "normal"
        assert command[-2:] == ["Title", "Body"]

    def test_macos_escapes_backslashes(self) -> None:
        """Backslashes should not break out of the AppleScript string."""
        command = build_notification_command("Darwin", Notification("Title", "C:\\path"))
        assert command is not None
        assert '"C:\\\\path"' in command[2]

    def test_unknown_platform(self) -> None:
        """Platforms without a notifier should yield None."""
        assert build_notification_command("Plan9", Notification("Title", "Body")) is None


class TestSendNotification:
    """Tests for platform dispatch."""

    @patch("clinicsync.client.notifications.platform.system", return_value="Linux")
    @patch("clinicsync.client.notifications.subprocess.run")
    def test_linux_uses_notify_send(self, mock_run: MagicMock, mock_system: MagicMock) -> None:
        """Should call notify-send with critical urgency for errors."""
        result = send_notification(
            Notification("Title", "Body", NotificationType.ERROR)
        )
        assert result is True
        args = mock_run.call_args[0][0]
        assert args[0] == "notify-send"
        assert "critical" in args

    @patch("clinicsync.client.notifications.platform.system", return_value="Linux")
    @patch(
        "clinicsync.client.notifications.subprocess.run",
        side_effect=FileNotFoundError(),
    )
    def test_linux_missing_binary(self, mock_run: MagicMock, mock_system: MagicMock) -> None:
        """Should return False when notify-send is missing."""
        assert send_notification(Notification("Title", "Body")) is False

    @patch("clinicsync.client.notifications.platform.system", return_value="Darwin")
    @patch("clinicsync.client.notifications.subprocess.run")
    def test_macos_uses_osascript(self, mock_run: MagicMock, mock_system: MagicMock) -> None:
        """Should call osascript on macOS."""
        assert send_notification(Notification('Say "hi"', "Body")) is True
        args = mock_run.call_args[0][0]
        assert args[0] == "osascript"
        assert '\\"hi\\"' in args[2]

    @patch("clinicsync.client.notifications.platform.system", return_value="Windows")
    @patch("clinicsync.client.notifications.subprocess.run")
    def test_windows_passes_text_through_env(
        self, mock_run: MagicMock, mock_system: MagicMock
    ) -> None:
        """Toast text should travel in the environment, not the script."""
        assert send_notification(Notification("Lost $(whoami)", "Body")) is True
        args = mock_run.call_args[0][0]
        env = mock_run.call_args.kwargs["env"]
        assert args[0] == "powershell"
        assert "whoami" not in args[-1]
        assert env["CLINICSYNC_TITLE"] == "Lost $(whoami)"
        assert env["CLINICSYNC_MESSAGE"] == "Body"

    @patch("clinicsync.client.notifications.platform.system", return_value="Linux")
    @patch(
        "clinicsync.client.notifications.subprocess.run",
        side_effect=subprocess.CalledProcessError(1, "notify-send"),
    )
    def test_failed_command(self, mock_run: MagicMock, mock_system: MagicMock) -> None:
        """A non-zero exit should return False."""
        assert send_notification(Notification("Title", "Body")) is False

    @patch("clinicsync.client.notifications.platform.system", return_value="Plan9")
    def test_unsupported_platform(self, mock_system: MagicMock) -> None:
        """Should return False on unknown platforms."""
        assert send_notification(Notification("Title", "Body")) is False


class TestStatusNotifier:
    """Tests for StatusNotifier."""

    def test_notifies_settled_transitions(self) -> None:
        """Should report settled transitions and skip syncing."""
        store = SyncStatusStore()
        store.set_mode(ConnectionMode.CENTRAL_DB)
        store.set_online(True)
        store.update_central_db(SyncStatus.CONNECTED)

        calls: list[tuple[SyncStatus, SyncStatus]] = []
        delivered = threading.Event()

        def notify(previous: SyncStatus, current: SyncStatus) -> bool:
            calls.append((previous, current))
            delivered.set()
            return True

        notifier = StatusNotifier(store, notify=notify)
        notifier.start()

        # A write round trip settles back on connected: nothing to report
        store.set_syncing(True)
        store.set_syncing(False)
        store.update_central_db(SyncStatus.CONNECTED)
        assert not delivered.wait(0.1)

        store.update_central_db(SyncStatus.ERROR)
        assert delivered.wait(2.0)
        assert calls == [(SyncStatus.CONNECTED, SyncStatus.ERROR)]

        notifier.stop()
        delivered.clear()
        store.update_central_db(SyncStatus.CONNECTED)
        assert not delivered.wait(0.1)
