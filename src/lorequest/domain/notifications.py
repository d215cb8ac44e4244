from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from enum import Enum
from typing import Optional


logger = logging.getLogger(__name__)


class NotificationKind(str, Enum):
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


class NotificationSink(ABC):
    @abstractmethod
    def notify(self, kind: NotificationKind, title: str, description: str = "") -> None:
        raise NotImplementedError


def notify_safely(
    sink: Optional[NotificationSink],
    kind: NotificationKind,
    title: str,
    description: str = "",
) -> None:
    """Deliver a notification; a failing sink is logged and never propagates."""
    if sink is None:
        return
    try:
        sink.notify(kind, title, description)
    except Exception:
        logger.exception(
            "Notification sink failed and was isolated",
            extra={"kind": kind.value, "title": title},
        )
