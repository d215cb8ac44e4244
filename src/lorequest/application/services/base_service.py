from __future__ import annotations

import copy
from typing import Optional, TypeVar

from lorequest.domain.notifications import NotificationKind, NotificationSink, notify_safely


T = TypeVar("T")


class BaseService:
    def __init__(self, notifier: Optional[NotificationSink] = None, event_publisher=None) -> None:
        self._notifier = notifier
        self._event_publisher = event_publisher

    def _notify(self, kind: NotificationKind, title: str, description: str = "") -> None:
        notify_safely(self._notifier, kind, title, description)

    def _success(self, title: str, description: str = "") -> None:
        self._notify(NotificationKind.SUCCESS, title, description)

    def _warning(self, title: str, description: str = "") -> None:
        self._notify(NotificationKind.WARNING, title, description)

    def _error(self, title: str, description: str = "") -> None:
        self._notify(NotificationKind.ERROR, title, description)

    def _publish(self, event: object) -> None:
        if callable(self._event_publisher):
            self._event_publisher(event)

    @staticmethod
    def _working_copy(value: T) -> T:
        return copy.deepcopy(value)
