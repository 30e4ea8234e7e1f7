"""
Collapses duplicate notifications for the same path into one in-flight call.

Each key maps to a shared future plus a count of callers waiting on it. The
first caller runs the work; later callers for the same key block on the same
future and see the same result or exception. The entry is dropped once the
last waiter has observed the outcome, so the next wave starts from scratch.
"""

import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Hashable

logger = logging.getLogger(__name__)


class _Call:
    __slots__ = ("future", "waiters")

    def __init__(self):
        self.future = Future()
        self.waiters = 1


class Deduplicator:

    def __init__(self):
        self._lock = threading.Lock()
        self._calls: dict[Hashable, _Call] = {}

    def do(self, key: Hashable, fn: Callable[[], Any]) -> Any:
        """Run fn once per wave of concurrent callers sharing key."""
        with self._lock:
            call = self._calls.get(key)
            leader = call is None
            if leader:
                call = _Call()
                self._calls[key] = call
            else:
                call.waiters += 1
                logger.debug(f"Joining in-flight call for {key} ({call.waiters} waiter(s))")

        if leader:
            try:
                call.future.set_result(fn())
            except BaseException as e:
                # Re-raised to the leader by result() below
                call.future.set_exception(e)

        try:
            return call.future.result()
        finally:
            with self._lock:
                call.waiters -= 1
                if call.waiters == 0 and self._calls.get(key) is call:
                    del self._calls[key]

    def in_flight(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._calls

    def waiters(self, key: Hashable) -> int:
        with self._lock:
            call = self._calls.get(key)
            return call.waiters if call else 0
