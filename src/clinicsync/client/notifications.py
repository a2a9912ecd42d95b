"""Cross-platform system notifications for connection changes.

This module provides:
- Native OS notifications (Windows toast, macOS notification center, Linux notify-send)
- notify_status_change: Message for an overall status transition
- StatusNotifier: Watches a SyncStatusStore and notifies on transitions
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import threading
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from clinicsync.core.types import SyncStatus

if TYPE_CHECKING:
    from collections.abc import Callable

    from clinicsync.client.state import SyncStatusStore

logger = logging.getLogger(__name__)

APP_NAME = "ClinicSync"


class NotificationType(Enum):
    """Type of notification."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()


@dataclass
class Notification:
    """Represents a notification to display."""

    title: str
    message: str
    type: NotificationType = NotificationType.INFO


_WINDOWS_TOAST = (
    "[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, "
    "ContentType = WindowsRuntime] | Out-Null; "
    "$xml = [Windows.UI.Notifications.ToastNotificationManager]::GetTemplateContent("
    "[Windows.UI.Notifications.ToastTemplateType]::ToastText02); "
    "$text = $xml.GetElementsByTagName('text'); "
    "$text.Item(0).InnerText = $env:CLINICSYNC_TITLE; "
    "$text.Item(1).InnerText = $env:CLINICSYNC_MESSAGE; "
    "$toast = [Windows.UI.Notifications.ToastNotification]::new($xml); "
    "[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier('{app}').Show($toast)"
)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def build_notification_command(system: str, notification: Notification) -> list[str] | None:
    """Build the native notifier command line for a platform.

    Windows reads the title and message from the environment so that no
    user text is interpolated into the PowerShell script.

    Returns:
        Argument list for subprocess.run, or None if the platform has no notifier.
    """
    if system == "Linux":
        urgency = "critical" if notification.type == NotificationType.ERROR else "normal"
        return [
            "notify-send",
            "--urgency", urgency,
            "--app-name", APP_NAME,
            notification.title,
            notification.message,
        ]
    if system == "Darwin":
        script = (
            f"display notification {_applescript_quote(notification.message)} "
            f"with title {_applescript_quote(notification.title)}"
        )
        return ["osascript", "-e", script]
    if system == "Windows":
        return [
            "powershell", "-NoProfile", "-ExecutionPolicy", "Bypass",
            "-Command", _WINDOWS_TOAST.format(app=APP_NAME),
        ]
    return None


def send_notification(notification: Notification) -> bool:
    """Send a system notification.

    Args:
        notification: The notification to send.

    Returns:
        True if notification was sent, False if failed or unavailable.
    """
    system = platform.system()
    command = build_notification_command(system, notification)
    if command is None:
        logger.warning(f"Notifications not supported on {system}")
        return False

    env = None
    if system == "Windows":
        env = {
            **os.environ,
            "CLINICSYNC_TITLE": notification.title,
            "CLINICSYNC_MESSAGE": notification.message,
        }
    try:
        subprocess.run(
            command,
            capture_output=True,
            check=True,
            env=env,
            creationflags=getattr(subprocess, "CREATE_NO_WINDOW", 0),
        )
    except FileNotFoundError:
        logger.debug(f"{command[0]} not found")
        return False
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"{system} notification failed: {e}")
        return False
    return True


def notify_status_change(previous: SyncStatus, current: SyncStatus) -> bool:
    """Notify about an overall status transition worth the user's attention.

    Syncing is transient and never notified.

    Args:
        previous: Status before the transition.
        current: Status after the transition.

    Returns:
        True if a notification was sent.
    """
    if previous == current or SyncStatus.SYNCING in (previous, current):
        return False

    if current == SyncStatus.ERROR:
        notification = Notification(
            title=f"{APP_NAME} - Connection Error",
            message="A sync link reported an error. Changes are kept locally.",
            type=NotificationType.ERROR,
        )
    elif current == SyncStatus.DISCONNECTED and previous == SyncStatus.CONNECTED:
        notification = Notification(
            title=f"{APP_NAME} - Connection Lost",
            message="Working offline until the connection is restored.",
            type=NotificationType.WARNING,
        )
    elif current == SyncStatus.CONNECTED:
        notification = Notification(
            title=f"{APP_NAME} - Connection Restored",
            message="All enabled links are connected.",
        )
    else:
        return False

    return send_notification(notification)


class StatusNotifier:
    """Sends a notification whenever a store's overall status changes.

    Transitions into and out of syncing are skipped, so a write does not
    produce a notification; the status it settles on is compared with the
    last settled one. Notifications are sent from a short-lived thread so
    the store is never blocked on the OS notification service.
    """

    def __init__(
        self,
        store: SyncStatusStore,
        notify: Callable[[SyncStatus, SyncStatus], bool] = notify_status_change,
    ) -> None:
        self._store = store
        self._notify = notify
        self._settled = store.overall_status
        self._unsubscribe: Callable[[], None] | None = None

    def start(self) -> None:
        if self._unsubscribe is None:
            self._settled = self._store.overall_status
            self._unsubscribe = self._store.watch(
                lambda s: s.overall_status, self._on_status
            )

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_status(self, status: SyncStatus) -> None:
        if status == SyncStatus.SYNCING:
            return
        previous, self._settled = self._settled, status
        if previous == status:
            return
        threading.Thread(
            target=self._notify,
            args=(previous, status),
            name="StatusNotifier",
            daemon=True,
        ).start()
