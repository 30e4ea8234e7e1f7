"""Tests for the event-driven notification source."""

from unittest.mock import MagicMock

import pytest
from watchdog.events import FileCreatedEvent, FileModifiedEvent, FileMovedEvent, DirCreatedEvent, FileDeletedEvent

from core.errors import WatchError
from core.events import EventBus, WATCH_RESTARTED
from modules.intake.manager import IntakeManager
from modules.printing.submitter import PrintSubmitter
from modules.watch.watcher import UploadEventHandler, UploadWatcher, path_key
from conftest import FakePrintClient, drop, wait_for


@pytest.fixture
def observer_factory():
    return MagicMock()


@pytest.fixture
def slow_manager(mover):
    client = FakePrintClient(job_ids=[42], delay=0.2)
    return IntakeManager(PrintSubmitter(client, "Office"), mover), client


# === Event Routing ===

class TestEventHandler:

    def _handler(self, watch_root):
        watcher = MagicMock()
        watcher.watch_root = watch_root
        return UploadEventHandler(watcher), watcher

    def test_write_events_notify(self, watch_root):
        handler, watcher = self._handler(watch_root)
        path = str(watch_root.upload / "a.pdf")

        handler.dispatch(FileCreatedEvent(path))
        handler.dispatch(FileModifiedEvent(path))

        assert watcher.notify.call_count == 2

    def test_moved_into_upload_uses_destination(self, watch_root, tmp_path):
        handler, watcher = self._handler(watch_root)
        dest = str(watch_root.upload / "a.pdf")

        handler.dispatch(FileMovedEvent(str(watch_root.upload / ".a.pdf.tmp"), dest))

        watcher.notify.assert_called_once_with(dest)

    def test_moved_out_of_upload_ignored(self, watch_root, tmp_path):
        handler, watcher = self._handler(watch_root)

        handler.dispatch(FileMovedEvent(str(watch_root.upload / "a.pdf"), str(tmp_path / "a.pdf")))

        watcher.notify.assert_not_called()

    def test_directories_and_deletes_ignored(self, watch_root):
        handler, watcher = self._handler(watch_root)

        handler.dispatch(DirCreatedEvent(str(watch_root.upload / "sub")))
        handler.dispatch(FileDeletedEvent(str(watch_root.upload / "a.pdf")))

        watcher.notify.assert_not_called()


# === Deduplicated Printing ===

class TestNotify:

    def test_burst_of_events_prints_once(self, slow_manager, watch_root, observer_factory):
        manager, client = slow_manager
        watcher = UploadWatcher(manager, watch_root, settle_delay=0.1, observer_factory=observer_factory)
        watcher.start()
        path = drop(watch_root, "big.pdf")
        try:
            watcher.notify(path)
            watcher.notify(path)
            watcher.notify(str(path))
            watcher.notify(watch_root.upload / "." / "big.pdf")
            assert wait_for(lambda: (watch_root.printed / "2024-03-01_42_big.pdf").exists())
        finally:
            watcher.stop()

        assert len(client.calls) == 1
        assert not path.exists()
        assert not watcher.dedup.in_flight(path_key(path))

    def test_files_present_at_start_are_printed(self, manager, client, watch_root, observer_factory):
        drop(watch_root, "waiting.pdf")
        watcher = UploadWatcher(manager, watch_root, settle_delay=0, observer_factory=observer_factory)

        watcher.start()
        try:
            assert wait_for(lambda: len(client.calls) == 1)
        finally:
            watcher.stop()

        observer_factory.return_value.schedule.assert_called_once()
        _, kwargs = observer_factory.return_value.schedule.call_args
        assert kwargs["recursive"] is False

    def test_non_documents_never_queued(self, manager, client, watch_root, observer_factory):
        watcher = UploadWatcher(manager, watch_root, settle_delay=0, observer_factory=observer_factory)
        watcher.start()
        junk = drop(watch_root, "notes.txt")
        try:
            watcher.notify(junk)
        finally:
            watcher.stop()

        assert client.calls == []
        assert junk.exists()

    def test_failed_print_goes_to_failed(self, mover, watch_root, observer_factory):
        client = FakePrintClient(error=RuntimeError("offline"))
        manager = IntakeManager(PrintSubmitter(client, "Office"), mover)
        watcher = UploadWatcher(manager, watch_root, settle_delay=0, observer_factory=observer_factory)
        watcher.start()
        path = drop(watch_root, "report.pdf")
        try:
            watcher.notify(path)
            assert wait_for(lambda: (watch_root.failed / "2024-03-01_report.pdf").exists())
        finally:
            watcher.stop()

        assert len(client.calls) == 1

    def test_notify_after_stop_is_ignored(self, manager, client, watch_root, observer_factory):
        watcher = UploadWatcher(manager, watch_root, settle_delay=0, observer_factory=observer_factory)
        watcher.start()
        watcher.stop()

        watcher.notify(drop(watch_root, "late.pdf"))

        assert client.calls == []


# === Watch Health ===

class TestEnsureRunning:

    def test_restarts_dead_observer(self, manager, watch_root, observer_factory):
        observer_factory.return_value.is_alive.return_value = False
        watcher = UploadWatcher(manager, watch_root, settle_delay=0, observer_factory=observer_factory)
        bus = EventBus()
        watcher.setup(bus)
        restarts = []
        bus.subscribe(WATCH_RESTARTED, restarts.append)

        watcher.start()
        try:
            watcher.ensure_running()
        finally:
            watcher.stop()

        assert observer_factory.call_count == 2
        assert len(restarts) == 1

    def test_unrecoverable_watch_raises(self, manager, watch_root, observer_factory):
        observer = observer_factory.return_value
        observer.is_alive.return_value = False
        observer.start.side_effect = [None, OSError("upload folder is gone")]
        watcher = UploadWatcher(manager, watch_root, settle_delay=0, observer_factory=observer_factory)

        watcher.start()
        try:
            with pytest.raises(WatchError):
                watcher.ensure_running()
        finally:
            watcher.stop()

    def test_start_fails_when_watch_cannot_open(self, manager, watch_root, observer_factory):
        observer_factory.return_value.start.side_effect = OSError("no inotify")
        watcher = UploadWatcher(manager, watch_root, observer_factory=observer_factory)

        with pytest.raises(WatchError):
            watcher.start()

    def test_alive_observer_left_alone(self, manager, watch_root, observer_factory):
        observer_factory.return_value.is_alive.return_value = True
        watcher = UploadWatcher(manager, watch_root, settle_delay=0, observer_factory=observer_factory)
        watcher.start()
        try:
            watcher.ensure_running()
        finally:
            watcher.stop()

        assert observer_factory.call_count == 1
