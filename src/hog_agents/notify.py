"""Notification hooks for agent lifecycle events."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Notification:
    title: str
    body: str


Notifier = Callable[[Notification], None]


def log_notification(notification: Notification) -> None:
    logger.info(
        "%s: %s",
        notification.title,
        notification.body,
        extra={"notification_title": notification.title},
    )


def build_notifier(*, sound: bool = False) -> Notifier:
    """Return a notifier that logs every event and optionally rings the terminal bell."""

    def _notify(notification: Notification) -> None:
        log_notification(notification)
        if sound:
            sys.stdout.write("\a")
            sys.stdout.flush()

    return _notify


__all__ = ["Notification", "Notifier", "build_notifier", "log_notification"]
