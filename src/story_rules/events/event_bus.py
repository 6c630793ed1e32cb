import logging
from collections import defaultdict
from dataclasses import dataclass
from threading import RLock
from typing import Any, Callable, DefaultDict, Dict, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Event:
    """Generic event container for broadcasting state changes.

    Attributes:
        name: Event type/name string, typically from EventType.
        payload: Arbitrary payload associated with the event.
    """
    name: str
    payload: Dict[str, Any]


class EventBus:
    """A lightweight thread-safe publish/subscribe event bus.

    Subscribers can register callbacks for specific event names. When an event is
    published, all callbacks registered for that event name will be invoked in
    registration order. Published events are also kept in ``history`` so a UI
    command loop (or a test) can inspect what a resolution produced.
    """

    def __init__(self, history_limit: int = 500) -> None:
        self._subs: DefaultDict[str, List[Callable[[Event], None]]] = defaultdict(list)
        self._lock = RLock()
        self._history_limit = max(0, history_limit)
        self.history: List[Event] = []

    def subscribe(self, event_name: str, callback: Callable[[Event], None]) -> None:
        """Subscribe a callback for a given event name.

        Args:
            event_name: The event name to listen for.
            callback: A function accepting a single Event argument.
        """
        if not callable(callback):
            raise TypeError("callback must be callable")
        with self._lock:
            self._subs[event_name].append(callback)
            logger.debug("Subscribed %s to '%s'", getattr(callback, "__name__", str(callback)), event_name)

    def unsubscribe(self, event_name: str, callback: Callable[[Event], None]) -> None:
        """Unsubscribe a callback from a given event name."""
        with self._lock:
            if event_name in self._subs and callback in self._subs[event_name]:
                self._subs[event_name].remove(callback)
                logger.debug("Unsubscribed %s from '%s'", getattr(callback, "__name__", str(callback)), event_name)

    def publish(self, event_name: str, payload: Dict[str, Any]) -> None:
        """Publish an event to all registered subscribers.

        Subscriber exceptions are logged and do not stop other subscribers.
        """
        event = Event(name=event_name, payload=payload)
        with self._lock:
            subs = list(self._subs.get(event_name, []))
            if self._history_limit:
                self.history.append(event)
                if len(self.history) > self._history_limit:
                    del self.history[: len(self.history) - self._history_limit]
        logger.debug("Publishing event '%s' to %d subscribers with payload: %s", event_name, len(subs), payload)
        for cb in subs:
            try:
                cb(event)
            except Exception:  # pragma: no cover - guard rail
                logger.exception("Unhandled exception in event subscriber for '%s'", event_name)

    def named(self, event_name: str) -> List[Event]:
        """Return recorded events with the given name, oldest first."""
        with self._lock:
            return [e for e in self.history if e.name == event_name]
