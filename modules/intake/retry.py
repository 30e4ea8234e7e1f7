"""
Retry policy for files that are still in upload/ after an attempt.

The poller re-enumerates upload/ on every pass, so a file whose move failed
is seen again. This decides whether to try it again.
"""

import logging
import threading
from pathlib import Path

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Counts attempts per path. max_attempts=0 retries forever; a positive
    value gives up after that many attempts and leaves the file in place.
    """

    def __init__(self, max_attempts: int = 0):
        if max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")
        self.max_attempts = max_attempts
        self._attempts: dict[Path, int] = {}
        self._exhausted: set[Path] = set()
        self._lock = threading.Lock()

    def allow(self, path: Path) -> bool:
        """True if path may be attempted (again)."""
        if not self.max_attempts:
            return True
        with self._lock:
            count = self._attempts.get(path, 0)
            if count < self.max_attempts:
                return True
            if path not in self._exhausted:
                self._exhausted.add(path)
                logger.warning(
                    f"Giving up on {path.name} after {count} attempt(s); it stays in upload/"
                )
            return False

    def record(self, path: Path):
        with self._lock:
            self._attempts[path] = self._attempts.get(path, 0) + 1

    def attempts(self, path: Path) -> int:
        with self._lock:
            return self._attempts.get(path, 0)

    def forget_missing(self, present: set[Path]):
        """Drop counters for files that have left upload/."""
        with self._lock:
            for path in list(self._attempts):
                if path not in present:
                    del self._attempts[path]
                    self._exhausted.discard(path)
