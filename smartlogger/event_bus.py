import logging
import threading
from collections import defaultdict
from typing import Callable, DefaultDict, List, Any

logger = logging.getLogger(__name__)

# (message, error) -> None
EVENT_WRITE_FAILURE = "write_failure"


class EventBus:
    """a simple publish/subscribe event bus, safe to publish from several threads."""

    def __init__(self):
        self._subscribers: DefaultDict[str, List[Callable]] = defaultdict(list)
        self._lock = threading.Lock()
        logger.debug("EventBus initialized.")

    def subscribe(self, event_type: str, callback: Callable) -> bool:
        """subscribe a callback function to an event type."""
        if not callable(callback):
            logger.error(f"attempted to subscribe non-callable object to event '{event_type}'")
            return False

        with self._lock:
            self._subscribers[event_type].append(callback)
        logger.debug(f"callback {_name_of(callback)} subscribed to event '{event_type}'")
        return True

    def unsubscribe(self, event_type: str, callback: Callable) -> bool:
        """unsubscribe a callback function from an event type."""
        with self._lock:
            callbacks = self._subscribers.get(event_type)
            if callbacks is None:
                logger.warning(f"attempted to unsubscribe from non-existent event type '{event_type}'")
                return False
            try:
                callbacks.remove(callback)
            except ValueError:
                logger.warning(f"attempted to unsubscribe callback {_name_of(callback)} from event '{event_type}', but it was not found.")
                return False
            # clean up event type if no subscribers left
            if not callbacks:
                del self._subscribers[event_type]
        logger.debug(f"callback {_name_of(callback)} unsubscribed from event '{event_type}'")
        return True

    def has_subscribers(self, event_type: str) -> bool:
        with self._lock:
            return bool(self._subscribers.get(event_type))

    def publish(self, event_type: str, *args: Any, **kwargs: Any) -> int:
        """publish an event to all subscribed callbacks.

        callbacks run on the publishing thread. an exception in one callback is
        logged and does not stop the others. returns how many callbacks ran cleanly.
        """
        with self._lock:
            # copy so callbacks can (un)subscribe while we iterate
            callbacks = list(self._subscribers.get(event_type, ()))

        if not callbacks:
            logger.debug(f"published event '{event_type}' but no subscribers found.")
            return 0

        delivered = 0
        for callback in callbacks:
            try:
                callback(*args, **kwargs)
                delivered += 1
            except Exception as e:
                logger.error(f"error executing callback {_name_of(callback)} for event '{event_type}': {e}", exc_info=True)
        return delivered


def _name_of(callback: Callable) -> str:
    return getattr(callback, "__name__", repr(callback))
