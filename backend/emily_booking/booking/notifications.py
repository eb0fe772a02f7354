from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)

AUTO_HIDE_SECONDS = 10.0


class NotificationKind(Enum):
    INFO = "info"
    SUGGESTION = "suggestion"
    INPUT = "input"
    ERROR = "error"
    EXPIRED = "expired"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    message: str
    title: str = ""
    action_label: str | None = None
    action_url: str | None = None
    requires_input: bool = False
    persistent: bool = False

    @property
    def auto_hide_after(self) -> float | None:
        """Plain messages disappear on their own; prompts and notices stay."""
        if self.persistent or self.requires_input or self.action_label:
            return None
        return AUTO_HIDE_SECONDS


class Notifier(Protocol):
    def show(self, notification: Notification) -> None: ...

    def hide(self) -> None: ...


class Navigator(Protocol):
    def go(self, url: str) -> None: ...


class LoggingNotifier:
    """Notifier used when no UI is attached."""

    def __init__(self) -> None:
        self.current: Notification | None = None

    def show(self, notification: Notification) -> None:
        self.current = notification
        logger.info(
            "NOTIFY kind=%s title=%s message=%s auto_hide=%s",
            notification.kind.value,
            notification.title,
            notification.message,
            notification.auto_hide_after,
        )

    def hide(self) -> None:
        self.current = None


class LoggingNavigator:
    def __init__(self) -> None:
        self.location: str | None = None

    def go(self, url: str) -> None:
        self.location = url
        logger.info("NAVIGATE url=%s", url)


__all__ = [
    "AUTO_HIDE_SECONDS",
    "NotificationKind",
    "Notification",
    "Notifier",
    "Navigator",
    "LoggingNotifier",
    "LoggingNavigator",
]
