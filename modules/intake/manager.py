"""
Intake manager: turns one candidate path into one resolved print attempt.

Every notification source funnels through handle(). Admission is a single
slot, so at most one submission is in flight across the whole process.
"""

import logging
import threading
from pathlib import Path

from core.errors import MoveError, SubmissionError
from core.events import EventBus, Event, FILE_PRINTED, FILE_FAILED, FILE_SKIPPED, MOVE_FAILED
from core.models import AttemptState, PrintAttempt
from modules.intake.filters import ExtensionFilter
from modules.intake.mover import FileStateMover
from modules.printing.submitter import PrintSubmitter

logger = logging.getLogger(__name__)


class IntakeManager:
    """
    Filter -> submit -> move, under one admission slot.
    Follows module contract (setup).
    """

    def __init__(self, submitter: PrintSubmitter, mover: FileStateMover,
                 file_filter: ExtensionFilter = None):
        self.submitter = submitter
        self.mover = mover
        self.file_filter = file_filter or ExtensionFilter()
        self._admission = threading.BoundedSemaphore(1)
        self._event_bus = None

    def setup(self, event_bus: EventBus):
        self._event_bus = event_bus

    def handle(self, path) -> PrintAttempt:
        """
        Print one file and move it to printed/ or failed/.

        Returns:
            The attempt. State SKIPPED means the file was not printable and
            nothing changed on disk.

        Raises:
            SubmissionError: printing failed; the file was routed to failed/
                if the move succeeded.
            MoveError: printing succeeded but the file could not be moved.
        """
        attempt = PrintAttempt(path=Path(path))

        with self._admission:
            attempt.state = AttemptState.FILTERING
            if not self.file_filter.accepts(attempt.path):
                attempt.state = AttemptState.SKIPPED
                logger.debug(f"Ignoring non-document file: {attempt.path.name}")
                self._emit(FILE_SKIPPED, attempt)
                return attempt

            attempt.state = AttemptState.SUBMITTING
            try:
                attempt.job_id = self.submitter.submit(attempt.path)
            except SubmissionError as e:
                self._resolve_failure(attempt, e)
                e.attempt = attempt
                raise

            try:
                attempt.destination = self.mover.resolve_success(attempt.path, attempt.job_id)
            except MoveError as e:
                attempt.error = e
                e.attempt = attempt
                logger.error(f"Printed {attempt.path.name} (job {attempt.job_id}) but could not move it: {e}")
                self._emit(MOVE_FAILED, attempt)
                raise

            attempt.state = AttemptState.PRINTED
            self._emit(FILE_PRINTED, attempt)
            return attempt

    def _resolve_failure(self, attempt: PrintAttempt, error: SubmissionError):
        attempt.state = AttemptState.FAILED
        attempt.error = error
        try:
            attempt.destination = self.mover.resolve_failure(attempt.path)
        except MoveError as move_error:
            logger.error(f"Could not move failed file {attempt.path.name}: {move_error}")
            self._emit(MOVE_FAILED, attempt, move_error=str(move_error))
        self._emit(FILE_FAILED, attempt)

    def _emit(self, name: str, attempt: PrintAttempt, **extra):
        if not self._event_bus:
            return
        data = attempt.to_dict()
        data.update(extra)
        self._event_bus.emit(Event(name, data))
