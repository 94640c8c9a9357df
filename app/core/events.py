# app/core/events.py
"""
In-process event bus for realtime dashboard updates.

Services call `emit_to_business(...)` after their transaction commits.
Delivery is best-effort: a failing subscriber is logged and skipped, and
nothing is retried or persisted.
"""

import logging
import threading
import uuid
from collections import defaultdict
from typing import Any, Callable

logger = logging.getLogger(__name__)

NEW_ORDER = "new_order"
ORDER_STATUS_CHANGED = "order_status_changed"
# Emitted by the payments service; listed so clients share one vocabulary.
PAYMENT_VERIFIED = "payment_verified"

Subscriber = Callable[[str, dict[str, Any]], None]


class EventBus:
    """
    Fan-out of named events to subscribers grouped by business (tenant).

    Subscribers are plain callables `(event, data) -> None`. They may be
    invoked from worker threads, so async consumers must hop back to their
    own loop (see `app.routers.events`).
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(
        self,
        business_id: uuid.UUID | str,
        callback: Subscriber,
    ) -> Callable[[], None]:
        """Register `callback` for one business. Returns an unsubscribe function."""
        key = str(business_id)
        with self._lock:
            self._subscribers[key].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(key, [])
                if callback in callbacks:
                    callbacks.remove(callback)
                if not callbacks:
                    self._subscribers.pop(key, None)

        return unsubscribe

    def subscriber_count(self, business_id: uuid.UUID | str) -> int:
        with self._lock:
            return len(self._subscribers.get(str(business_id), []))

    def emit_to_business(
        self,
        business_id: uuid.UUID | str,
        event: str,
        data: dict[str, Any],
    ) -> None:
        with self._lock:
            callbacks = list(self._subscribers.get(str(business_id), []))

        logger.debug("Emitting %s to business %s (%d subscribers)", event, business_id, len(callbacks))
        for callback in callbacks:
            try:
                callback(event, data)
            except Exception:
                logger.exception("Subscriber failed while handling %s", event)


# Shared by the routers and the WebSocket endpoint of this process.
event_bus = EventBus()
