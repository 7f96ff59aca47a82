"""User-facing notifications emitted by the core.

The core only decides what kind of message to send; presentation belongs
to whichever Notifier the application plugs in.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class NotificationType(str, Enum):
    """Severity of a notification."""

    success = "success"
    error = "error"
    info = "info"
    warning = "warning"


@dataclass(frozen=True)
class Notification:
    """A message for the user."""

    type: NotificationType
    title: str
    message: str


class Notifier(Protocol):
    """Presentation layer for notifications."""

    def notify(self, notification: Notification) -> None:
        """Show a notification to the user."""
        ...


_LEVELS = {
    NotificationType.success: logging.INFO,
    NotificationType.info: logging.INFO,
    NotificationType.warning: logging.WARNING,
    NotificationType.error: logging.ERROR,
}


class LoggingNotifier:
    """Notifier that writes notifications to the log."""

    def __init__(self, name: str = "wmsync.notifications") -> None:
        self._logger = logging.getLogger(name)

    def notify(self, notification: Notification) -> None:
        self._logger.log(
            _LEVELS[notification.type],
            "%s: %s",
            notification.title,
            notification.message,
        )


class RecordingNotifier:
    """Notifier that keeps every notification, for headless callers."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def notify(self, notification: Notification) -> None:
        self.notifications.append(notification)

    @property
    def last(self) -> Notification | None:
        return self.notifications[-1] if self.notifications else None


def send(notifier: Notifier | None, notification: Notification) -> None:
    """Deliver a notification, never letting the presentation layer fail a pass."""
    if notifier is None:
        return
    try:
        notifier.notify(notification)
    except Exception as e:
        logger.error("Notifier %s failed: %s", type(notifier).__name__, e)
