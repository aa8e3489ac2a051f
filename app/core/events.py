"""
Process-local event bus.

Subscribers are plain callables invoked synchronously, in registration order,
after the database write that triggered the event has committed. Delivery is
advisory: nothing is persisted, nothing crosses process boundaries, and a
subscriber registered after an emission never sees it. The notifications table
stays the source of truth; clients re-poll it.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from threading import Lock
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

WILDCARD = "*"


class EventType(str, Enum):
    """Event kinds published by the notification subsystem."""
    NOTIFICATION_CREATED = "notification:created"
    NOTIFICATION_READ = "notification:read"


@dataclass
class Event:
    type: str
    data: Dict[str, Any]
    user_id: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


Listener = Callable[[Event], None]


class EventBus:
    """Fan-out of events to in-process listeners."""

    def __init__(self):
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)
        self._lock = Lock()

    def subscribe(self, event_type: str, listener: Listener) -> None:
        """Register a listener for one event type, or for all of them with "*"."""
        with self._lock:
            self._listeners[_key(event_type)].append(listener)

    def unsubscribe(self, event_type: str, listener: Listener) -> None:
        with self._lock:
            listeners = self._listeners.get(_key(event_type), [])
            if listener in listeners:
                listeners.remove(listener)

    def emit(self, event_type: str, data: Dict[str, Any]) -> Event:
        """
        Deliver an event to every listener registered for its type and to the
        wildcard listeners. A failing listener is logged and skipped.
        """
        key = _key(event_type)
        event = Event(type=key, data=data, user_id=data.get("user_id"))

        with self._lock:
            listeners = list(self._listeners.get(key, [])) + list(self._listeners.get(WILDCARD, []))

        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener %r failed for %s", listener, key)

        logger.debug("Event emitted: %s (user_id=%s, listeners=%d)", key, event.user_id, len(listeners))
        return event

    def stats(self) -> dict:
        with self._lock:
            return {
                "event_names": [name for name, items in self._listeners.items() if items],
                "listener_count": {name: len(items) for name, items in self._listeners.items() if items},
            }

    def clear(self) -> None:
        with self._lock:
            self._listeners.clear()


def _key(event_type) -> str:
    return event_type.value if isinstance(event_type, EventType) else str(event_type)


# Default bus, handed explicitly to the services that publish on it.
event_bus = EventBus()
