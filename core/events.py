"""
Simple event bus for reporting intake outcomes.
The pipeline emits events; the audit trail and the agent subscribe to them.
"""

import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class Event:
    """Base event with a name and data payload."""

    def __init__(self, name: str, data: dict = None):
        self.name = name
        self.data = data or {}

    def __repr__(self):
        return f"<Event(name='{self.name}')>"


# Standard event names
FILE_SKIPPED = "file_skipped"
FILE_PRINTED = "file_printed"
FILE_FAILED = "file_failed"
MOVE_FAILED = "move_failed"
WATCH_RESTARTED = "watch_restarted"
ERROR_OCCURRED = "error_occurred"


class EventBus:
    """
    Synchronous event bus. Handlers run on the emitting thread, in
    subscription order. Subscriptions may come from any thread.
    """

    def __init__(self):
        self._handlers: dict[str, list[Callable]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, event_name: str, handler: Callable):
        """Register a handler for an event type."""
        with self._lock:
            self._handlers[event_name].append(handler)
        logger.debug(f"Handler {getattr(handler, '__name__', handler)} subscribed to '{event_name}'")

    def emit(self, event: Event):
        """Fire an event. All registered handlers are called in order."""
        with self._lock:
            handlers = list(self._handlers.get(event.name, []))
        logger.debug(f"Event '{event.name}' fired, {len(handlers)} handler(s)")
        for handler in handlers:
            name = getattr(handler, "__name__", repr(handler))
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler {name} failed on '{event.name}': {e}")
                # Emit an error event (but don't recurse)
                if event.name != ERROR_OCCURRED:
                    self.emit(Event(ERROR_OCCURRED, {
                        "original_event": event.name,
                        "handler": name,
                        "error": str(e),
                    }))
