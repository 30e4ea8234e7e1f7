"""
Polling notification source.
Walks upload/ recursively on a fixed interval and hands every file to the
intake manager. Anything still in upload/ on the next pass is seen again,
subject to the retry policy.
"""

import logging
import threading
from datetime import datetime, timedelta

from apscheduler.schedulers.background import BackgroundScheduler

from core.errors import IntakeError, WatchError
from core.events import EventBus
from modules.intake.layout import WatchRoot
from modules.intake.manager import IntakeManager
from modules.intake.retry import RetryPolicy

logger = logging.getLogger(__name__)


class UploadPoller:
    """
    Periodic sweep of the upload folder. Follows module contract
    (setup/start/stop). The next pass is scheduled once the previous one
    finishes, so passes never overlap.
    """

    def __init__(self, manager: IntakeManager, watch_root: WatchRoot,
                 interval: float = 1.0, settle_delay: float = 3.0,
                 retry_policy: RetryPolicy = None):
        self.manager = manager
        self.watch_root = watch_root
        self.interval = interval
        self.settle_delay = settle_delay
        self.retry_policy = retry_policy or RetryPolicy()
        self._stop_event = threading.Event()
        self._scheduler = None
        self._event_bus = None
        self._last_pass = None

    def setup(self, event_bus: EventBus):
        self._event_bus = event_bus

    def start(self):
        self._stop_event.clear()
        self._scheduler = BackgroundScheduler()
        self._scheduler.start()
        self._schedule_next(0)
        logger.info(f"Polling {self.watch_root.upload} every {self.interval}s")

    def stop(self):
        """Stop polling. A file already being printed is allowed to finish."""
        self._stop_event.set()
        if self._scheduler:
            self._scheduler.shutdown(wait=True)
            self._scheduler = None
            logger.info("Upload poller stopped")

    def ensure_running(self):
        if self._stop_event.is_set() or self._scheduler is None:
            return
        if not self._scheduler.running:
            raise WatchError("Upload poll scheduler is no longer running")

    @property
    def last_pass(self) -> datetime | None:
        return self._last_pass

    def _schedule_next(self, delay: float):
        if self._stop_event.is_set() or not self._scheduler:
            return
        self._scheduler.add_job(
            self._tick,
            "date",
            run_date=datetime.now() + timedelta(seconds=delay),
            name="Upload Sweep",
            misfire_grace_time=None,
        )

    def _tick(self):
        try:
            self.run_once()
        except Exception as e:
            logger.error(f"[upload_sweep] {e}")
        finally:
            self._schedule_next(self.interval)

    def run_once(self, settle_delay: float = None) -> int:
        """
        One pass over upload/. Per-file errors are logged and do not abort
        the pass.

        Returns:
            Number of files handed to the intake manager.
        """
        settle = self.settle_delay if settle_delay is None else settle_delay
        files = sorted(p for p in self.watch_root.upload.rglob("*") if p.is_file())
        self.retry_policy.forget_missing(set(files))

        handled = 0
        for path in files:
            if self._stop_event.is_set():
                break
            if not self.manager.file_filter.accepts(path):
                logger.debug(f"Ignoring non-document file: {path.name}")
                continue
            if not self.retry_policy.allow(path):
                continue
            # Let a copy that is still landing finish first
            if settle and self._stop_event.wait(settle):
                break
            if not path.exists():
                continue

            self.retry_policy.record(path)
            handled += 1
            try:
                self.manager.handle(path)
            except IntakeError as e:
                logger.error(f"Failed to print {path}: {e}")
            except Exception:
                logger.exception(f"Unexpected error while printing {path}")

        self._last_pass = datetime.now()
        if handled:
            logger.info(f"[upload_sweep] {handled} file(s) handled")
        return handled
