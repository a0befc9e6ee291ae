"""Notification presenters.

This module provides:
- NotificationPresenter: the display/dismiss capability the agent calls
- ConsolePresenter: prints messages to the terminal
- SystemPresenter: native OS notifications (Windows toast, macOS
  notification center, Linux notify-send)

Presenters only render. Visibility bookkeeping belongs to
EligibilityStateMachine, which routes every show and hide.
"""

from __future__ import annotations

import itertools
import logging
import os
import platform
import subprocess
from typing import Any, Protocol

import click

logger = logging.getLogger(__name__)

APP_NAME = "SessionAgent"


class NotificationPresenter(Protocol):
    """Renders and removes on-page messages."""

    def display(self, message: str) -> Any:
        """Render a message and return a handle identifying it."""
        ...

    def dismiss(self, handle: Any) -> None:
        """Remove the message identified by handle."""
        ...


class ConsolePresenter:
    """Presenter writing notifications to stdout."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._shown: set[int] = set()

    def display(self, message: str) -> int:
        handle = next(self._ids)
        self._shown.add(handle)
        click.echo(f"[notification #{handle}] {message}")
        return handle

    def dismiss(self, handle: int) -> None:
        if handle in self._shown:
            self._shown.discard(handle)
            click.echo(f"[notification #{handle} closed]")


# Script text is constant; title and message reach PowerShell only as
# environment variables and are XML-escaped before the toast is built.
_WINDOWS_TOAST_SCRIPT = f'''
[Windows.UI.Notifications.ToastNotificationManager, Windows.UI.Notifications, ContentType = WindowsRuntime] | Out-Null
[Windows.Data.Xml.Dom.XmlDocument, Windows.Data.Xml.Dom.XmlDocument, ContentType = WindowsRuntime] | Out-Null

$title = [System.Security.SecurityElement]::Escape($env:SESSIONAGENT_TITLE)
$message = [System.Security.SecurityElement]::Escape($env:SESSIONAGENT_MESSAGE)
$template = '<toast><visual><binding template="ToastText02">' +
    '<text id="1">' + $title + '</text>' +
    '<text id="2">' + $message + '</text>' +
    '</binding></visual></toast>'

$xml = New-Object Windows.Data.Xml.Dom.XmlDocument
$xml.LoadXml($template)
$toast = New-Object Windows.UI.Notifications.ToastNotification $xml
[Windows.UI.Notifications.ToastNotificationManager]::CreateToastNotifier("{APP_NAME}").Show($toast)
'''

# Title and message are passed as argv items, never as AppleScript source.
_MACOS_SCRIPT = [
    "-e", "on run argv",
    "-e", "display notification (item 1 of argv) with title (item 2 of argv)",
    "-e", "end run",
]


def _notify_windows(title: str, message: str) -> bool:
    """Send notification on Windows using PowerShell toast."""
    try:
        env = dict(os.environ, SESSIONAGENT_TITLE=title, SESSIONAGENT_MESSAGE=message)
        subprocess.run(
            ["powershell", "-ExecutionPolicy", "Bypass", "-Command", _WINDOWS_TOAST_SCRIPT],
            capture_output=True,
            check=False,
            env=env,
            creationflags=subprocess.CREATE_NO_WINDOW if hasattr(subprocess, "CREATE_NO_WINDOW") else 0,
        )
        return True
    except Exception as e:
        logger.debug(f"Windows notification failed: {e}")
        return False


def _notify_macos(title: str, message: str) -> bool:
    """Send notification on macOS using osascript."""
    try:
        subprocess.run(
            ["osascript", *_MACOS_SCRIPT, message, title],
            capture_output=True,
            check=True,
        )
        return True
    except Exception as e:
        logger.debug(f"macOS notification failed: {e}")
        return False


def _notify_linux(title: str, message: str) -> bool:
    """Send notification on Linux using notify-send."""
    try:
        subprocess.run(
            ["notify-send", "--app-name", APP_NAME, title, message],
            capture_output=True,
            check=True,
        )
        return True
    except FileNotFoundError:
        logger.debug("notify-send not found")
        return False
    except Exception as e:
        logger.debug(f"Linux notification failed: {e}")
        return False


def send_notification(title: str, message: str) -> bool:
    """Send a native system notification.

    Returns:
        True if notification was sent, False if failed or unavailable.
    """
    system = platform.system()

    if system == "Windows":
        return _notify_windows(title, message)
    elif system == "Darwin":
        return _notify_macos(title, message)
    elif system == "Linux":
        return _notify_linux(title, message)
    else:
        logger.warning(f"Notifications not supported on {system}")
        return False


class SystemPresenter:
    """Presenter using native OS notifications.

    OS notifications expire on their own and cannot be withdrawn, so
    dismiss only forgets the handle. Falls back to the console when the
    platform has no notification service.
    """

    def __init__(self, title: str = APP_NAME) -> None:
        self._title = title
        self._ids = itertools.count(1)

    def display(self, message: str) -> int:
        handle = next(self._ids)
        if not send_notification(self._title, message):
            click.echo(f"[notification #{handle}] {message}")
        return handle

    def dismiss(self, handle: int) -> None:
        logger.debug("System notification %s left to expire", handle)
