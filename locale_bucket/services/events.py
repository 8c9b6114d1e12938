from __future__ import annotations

import logging
import threading
from enum import Enum
from typing import Any, Callable


logger = logging.getLogger(__name__)


class BucketEvent(str, Enum):
    REFRESHED = "refreshed"
    LOCALE_CHANGED = "locale_changed"
    CONNECTION_FAILED = "connection_failed"


Unsubscribe = Callable[[], None]


class EventBus:
    """Broadcasts bucket notifications to registered callbacks.

    ``LOCALE_CHANGED`` callbacks receive the new locale identifier; the other
    events carry no payload. Callbacks run synchronously in the emitting
    context, after the state change they announce has been applied.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[BucketEvent, list[Callable[..., Any]]] = {
            event: [] for event in BucketEvent
        }

    def subscribe(self, event: BucketEvent, callback: Callable[..., Any]) -> Unsubscribe:
        with self._lock:
            self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            self.unsubscribe(event, callback)

        return unsubscribe

    def unsubscribe(self, event: BucketEvent, callback: Callable[..., Any]) -> bool:
        with self._lock:
            callbacks = self._subscribers[event]
            if callback not in callbacks:
                return False
            callbacks.remove(callback)
            return True

    def on_refreshed(self, callback: Callable[[], Any]) -> Unsubscribe:
        return self.subscribe(BucketEvent.REFRESHED, callback)

    def on_locale_changed(self, callback: Callable[[str], Any]) -> Unsubscribe:
        return self.subscribe(BucketEvent.LOCALE_CHANGED, callback)

    def on_connection_failed(self, callback: Callable[[], Any]) -> Unsubscribe:
        return self.subscribe(BucketEvent.CONNECTION_FAILED, callback)

    def emit(self, event: BucketEvent, *args: Any) -> None:
        with self._lock:
            callbacks = list(self._subscribers[event])
        for callback in callbacks:
            try:
                callback(*args)
            except Exception:
                logger.exception("Subscriber %r failed while handling %s", callback, event.value)

    def subscriber_count(self, event: BucketEvent) -> int:
        return len(self._subscribers[event])
