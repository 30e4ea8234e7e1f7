"""
Exception hierarchy for the intake pipeline.
Component errors bubble up to the IntakeManager, which resolves the file on
disk before re-raising for the caller to log.
"""


class IntakeError(Exception):
    """Base class for per-file pipeline failures."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
        self.attempt = None


class SubmissionError(IntakeError):
    """The file could not be opened, pre-processed, or sent to the print service."""


class MoveError(IntakeError):
    """The file could not be renamed into printed/ or failed/."""


class WatchError(Exception):
    """The filesystem notification channel could not be (re-)established."""
