"""
Event-driven notification source.
Watches upload/ (not its sub-folders) for writes and prints each file once
per burst of events, through the deduplicator.
"""

import logging
import os
import threading
from concurrent.futures import ThreadPoolExecutor
from functools import partial
from pathlib import Path

from watchdog.events import (
    FileSystemEventHandler, FileSystemEvent,
    EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_CLOSED, EVENT_TYPE_MOVED,
)
from watchdog.observers import Observer

from core.errors import IntakeError, WatchError
from core.events import EventBus, Event, WATCH_RESTARTED
from modules.intake.dedup import Deduplicator
from modules.intake.layout import WatchRoot
from modules.intake.manager import IntakeManager

logger = logging.getLogger(__name__)

WRITE_EVENTS = {EVENT_TYPE_CREATED, EVENT_TYPE_MODIFIED, EVENT_TYPE_CLOSED}


def path_key(path) -> str:
    """Identity of a candidate path: normalized and absolute."""
    return os.path.abspath(os.path.normpath(os.fsdecode(path)))


class UploadEventHandler(FileSystemEventHandler):
    """Forwards write events for files in upload/ to the watcher."""

    def __init__(self, watcher: "UploadWatcher"):
        self.watcher = watcher

    def on_any_event(self, event: FileSystemEvent):
        if event.is_directory:
            return
        if event.event_type in WRITE_EVENTS:
            self.watcher.notify(event.src_path)
        elif event.event_type == EVENT_TYPE_MOVED:
            # Renamed into upload/ (e.g. a finished temp-file copy)
            if Path(path_key(event.dest_path)).parent == self.watcher.watch_root.upload:
                self.watcher.notify(event.dest_path)


class UploadWatcher:
    """
    Watches the upload directory for new documents.
    Follows module contract (setup/start/stop).
    """

    def __init__(self, manager: IntakeManager, watch_root: WatchRoot,
                 settle_delay: float = 3.0, deduplicator: Deduplicator = None,
                 max_workers: int = 8, observer_factory=Observer):
        self.manager = manager
        self.watch_root = watch_root
        self.settle_delay = settle_delay
        self.dedup = deduplicator or Deduplicator()
        self.max_workers = max_workers
        self._observer_factory = observer_factory
        self._observer = None
        self._executor = None
        self._event_bus = None
        self._stopping = threading.Event()
        self._lock = threading.Lock()

    def setup(self, event_bus: EventBus):
        self._event_bus = event_bus

    def start(self):
        """Start watching and queue whatever is already waiting in upload/."""
        self._stopping.clear()
        self._executor = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="intake")
        try:
            self._start_observer()
        except OSError as e:
            self._executor.shutdown(wait=False)
            self._executor = None
            raise WatchError(f"Cannot watch {self.watch_root.upload}: {e}") from e
        logger.info(f"Watching for documents in: {self.watch_root.upload}")

        for path in sorted(self.watch_root.upload.iterdir()):
            if path.is_file():
                self.notify(path)

    def stop(self):
        """Close the subscription and let in-flight prints finish."""
        self._stopping.set()
        if self._observer:
            self._observer.stop()
            self._observer.join()
            self._observer = None
        with self._lock:
            executor, self._executor = self._executor, None
        if executor:
            executor.shutdown(wait=True)
        logger.info("Upload watcher stopped")

    def ensure_running(self):
        """Re-establish a dead watch. Raises WatchError if that is impossible."""
        if self._stopping.is_set() or self._observer is None:
            return
        if self._observer.is_alive():
            return

        logger.error(f"Watch on {self.watch_root.upload} died; re-establishing")
        try:
            self._start_observer()
        except OSError as e:
            raise WatchError(f"Cannot re-establish watch on {self.watch_root.upload}: {e}") from e
        if self._event_bus:
            self._event_bus.emit(Event(WATCH_RESTARTED, {
                "source": "watcher",
                "path": str(self.watch_root.upload),
            }))

    def _start_observer(self):
        observer = self._observer_factory()
        observer.schedule(UploadEventHandler(self), str(self.watch_root.upload), recursive=False)
        observer.start()
        self._observer = observer

    def notify(self, path):
        """Queue one deduplicated print attempt for path."""
        if self._stopping.is_set():
            return
        key = path_key(path)
        if not self.manager.file_filter.accepts(key):
            logger.debug(f"Ignoring non-document file: {Path(key).name}")
            return

        with self._lock:
            if self._executor is None:
                return
            self._executor.submit(self.dedup.do, key, partial(self._attempt, Path(key)))

    def _attempt(self, path: Path):
        """Runs once per wave of events for path. Errors are logged here, once."""
        if self.settle_delay and self._stopping.wait(self.settle_delay):
            return None
        if not path.exists():
            logger.debug(f"{path.name} left upload/ before it was printed")
            return None

        try:
            return self.manager.handle(path)
        except IntakeError as e:
            logger.error(f"Failed to print {path}: {e}")
            return e.attempt
        except Exception:
            logger.exception(f"Unexpected error while printing {path}")
            return None
