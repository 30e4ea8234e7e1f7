"""Shared fixtures: a temporary hot folder and a fake print service."""

import threading
import time
from datetime import date
from pathlib import Path

import pytest

from modules.intake.layout import WatchRoot
from modules.intake.manager import IntakeManager
from modules.intake.mover import FileStateMover
from modules.printing.client import PrintClient
from modules.printing.submitter import PrintSubmitter

FIXED_DAY = date(2024, 3, 1)


class FakePrintClient(PrintClient):
    """Records submissions and tracks how many overlap in time."""

    def __init__(self, job_ids=None, error: Exception = None, delay: float = 0.0):
        self.job_ids = list(job_ids or [])
        self.error = error
        self.delay = delay
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._next_id = 100
        self._lock = threading.Lock()

    def submit_document(self, path, printer, attributes):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.calls.append((Path(path), printer, dict(attributes)))
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.error:
                raise self.error
            with self._lock:
                if self.job_ids:
                    return self.job_ids.pop(0)
                self._next_id += 1
                return self._next_id
        finally:
            with self._lock:
                self.active -= 1

    def get_printer_attributes(self, printer):
        return {"printer-name": printer, "printer-state": 3}


@pytest.fixture
def watch_root(tmp_path):
    return WatchRoot(tmp_path / "files").ensure()


@pytest.fixture
def client():
    return FakePrintClient()


@pytest.fixture
def mover(watch_root):
    return FileStateMover(watch_root, today=lambda: FIXED_DAY)


@pytest.fixture
def manager(client, mover):
    submitter = PrintSubmitter(client, printer="Office", default_attributes={"copies": 1})
    return IntakeManager(submitter, mover)


def drop(watch_root: WatchRoot, name: str, content: bytes = b"%PDF-1.4 fake") -> Path:
    """Put a file into upload/ (creating sub-folders as needed)."""
    path = watch_root.upload / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return path


def wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()
