from collections import defaultdict
import logging
from typing import Callable, DefaultDict, List, Type


Handler = Callable[[object], None]


class EventBus:
    """Synchronous dispatcher; handlers run in (priority, subscription) order.

    A handler that raises is logged and skipped so one broken listener never
    blocks the rest or the service that published the event. Instances are
    callable, so a bus can be handed to services as their ``event_publisher``.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[Type[object], List[tuple[int, int, Handler]]] = defaultdict(list)
        self._sequence = 0
        self._errors: List[Exception] = []
        self._logger = logging.getLogger(__name__)

    def subscribe(self, event_type: Type[object], handler: Handler, *, priority: int = 100) -> None:
        rows = self._handlers[event_type]
        rows.append((int(priority), self._sequence, handler))
        self._sequence += 1
        rows.sort(key=lambda row: (row[0], row[1]))

    def unsubscribe(self, event_type: Type[object], handler: Handler) -> bool:
        rows = self._handlers.get(event_type, [])
        kept = [row for row in rows if row[2] is not handler]
        removed = len(kept) != len(rows)
        if removed:
            self._handlers[event_type] = kept
        return removed

    def publish(self, event: object) -> None:
        self._errors = []
        event_type = type(event)
        for priority, _, handler in list(self._handlers.get(event_type, [])):
            try:
                handler(event)
            except Exception as exc:
                self._errors.append(exc)
                self._logger.exception(
                    "Event handler failed and was isolated",
                    extra={
                        "event_type": event_type.__name__,
                        "handler": getattr(handler, "__qualname__", repr(handler)),
                        "priority": priority,
                    },
                )

    __call__ = publish

    def last_publish_errors(self) -> List[Exception]:
        return list(self._errors)
