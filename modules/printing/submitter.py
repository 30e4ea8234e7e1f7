"""
Submits one file to the print service and returns its job id.
Does not move files; that is the FileStateMover's job.
"""

import logging
import tempfile
from pathlib import Path

from core.errors import SubmissionError
from modules.printing.banner import add_banner_pages
from modules.printing.client import PrintClient

logger = logging.getLogger(__name__)

JOB_NAME = "job-name"

# Paginated formats that get banner pages
BANNER_EXTENSIONS = {".pdf"}


def build_job_attributes(path: Path, defaults: dict = None, overrides: dict = None) -> dict:
    """
    Merge configured defaults with per-call overrides. The job name always
    comes from the file name; every other key passes through untouched.
    """
    attrs = dict(defaults or {})
    attrs.update(overrides or {})
    attrs[JOB_NAME] = Path(path).name
    return attrs


class PrintSubmitter:
    """Wraps a PrintClient with attribute merging and optional banner pages."""

    def __init__(self, client: PrintClient, printer: str, default_attributes: dict = None,
                 banner_pages: bool = False):
        self.client = client
        self.printer = printer
        self.default_attributes = dict(default_attributes or {})
        self.banner_pages = banner_pages

    def submit(self, path, job_attributes: dict = None) -> int:
        """
        Send the file to the printer.

        Returns:
            The job id assigned by the print service.

        Raises:
            SubmissionError: the file is unreadable, pre-processing failed,
                or the print service rejected the job.
        """
        path = Path(path)
        try:
            with open(path, "rb") as f:
                f.read(1)
        except OSError as e:
            raise SubmissionError(f"Cannot open {path}: {e}", path=path) from e

        attrs = build_job_attributes(path, self.default_attributes, job_attributes)

        if self.banner_pages and path.suffix.lower() in BANNER_EXTENSIONS:
            # Cleanup errors are ignored: once sent, the job must count as printed
            try:
                work_dir = tempfile.TemporaryDirectory(prefix="print-intake-", ignore_cleanup_errors=True)
            except OSError as e:
                raise SubmissionError(f"Cannot create a work directory for {path.name}: {e}", path=path) from e

            with work_dir as tmp:
                try:
                    derived = add_banner_pages(path, Path(tmp) / path.name)
                except Exception as e:
                    raise SubmissionError(f"Failed to add banner pages to {path.name}: {e}", path=path) from e
                return self._send(path, derived, attrs)

        return self._send(path, path, attrs)

    def _send(self, original: Path, document: Path, attrs: dict) -> int:
        try:
            job_id = self.client.submit_document(document, self.printer, attrs)
        except Exception as e:
            raise SubmissionError(f"Print service rejected {original.name}: {e}", path=original) from e
        logger.info(f"Printed {original.name} as job {job_id} on {self.printer}")
        return job_id
