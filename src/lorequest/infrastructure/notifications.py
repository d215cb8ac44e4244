from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional

from rich.console import Console
from rich.panel import Panel

from lorequest.domain.notifications import NotificationKind, NotificationSink


_BORDER_BY_KIND = {
    NotificationKind.SUCCESS: "green",
    NotificationKind.WARNING: "yellow",
    NotificationKind.ERROR: "red",
}

_LEVEL_BY_KIND = {
    NotificationKind.SUCCESS: logging.INFO,
    NotificationKind.WARNING: logging.WARNING,
    NotificationKind.ERROR: logging.ERROR,
}


class RichConsoleNotificationSink(NotificationSink):
    """Renders each notification as a small coloured panel."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def notify(self, kind: NotificationKind, title: str, description: str = "") -> None:
        self.console.print(
            Panel(
                description or title,
                title=title if description else None,
                border_style=_BORDER_BY_KIND.get(kind, "white"),
                expand=False,
            )
        )


class LoggingNotificationSink(NotificationSink):
    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._logger = logger or logging.getLogger("lorequest.notifications")

    def notify(self, kind: NotificationKind, title: str, description: str = "") -> None:
        self._logger.log(
            _LEVEL_BY_KIND.get(kind, logging.INFO),
            "%s: %s",
            title,
            description,
            extra={"notification_kind": kind.value},
        )


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    title: str
    description: str = ""


class RecordingNotificationSink(NotificationSink):
    """Keeps notifications in memory; handy for tests and headless hosts."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []

    def notify(self, kind: NotificationKind, title: str, description: str = "") -> None:
        self.notifications.append(Notification(kind, title, description))

    def titles(self, kind: Optional[NotificationKind] = None) -> List[str]:
        return [row.title for row in self.notifications if kind is None or row.kind == kind]

    def clear(self) -> None:
        self.notifications.clear()
