"""
Print protocol client.
The pipeline only needs two operations (submit a document, read printer
attributes); CupsPrintClient provides them over IPP through pycups.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

logger = logging.getLogger(__name__)


class PrintClient(ABC):
    """Interface to the print service. Implementations may block on network I/O."""

    @abstractmethod
    def submit_document(self, path: Path, printer: str, attributes: dict) -> int:
        """Send one document as a new job and return the service-assigned job id."""

    @abstractmethod
    def get_printer_attributes(self, printer: str) -> dict:
        """Return the printer's IPP attributes."""


def _option_value(value) -> str:
    """CUPS job options are plain strings."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_option_value(v) for v in value)
    return str(value)


class CupsPrintClient(PrintClient):
    """
    IPP client backed by pycups. Connection parameters are fixed at
    construction; a fresh connection is opened for every call so a restarted
    print server does not wedge the daemon.
    """

    def __init__(self, host: str = "localhost", port: int = 631, user: str = "",
                 password: str = "", tls: bool = False):
        import cups

        self._cups = cups
        self.host = host
        self.port = port
        self.tls = tls

        if user:
            cups.setUser(user)
        if password:
            cups.setPasswordCB(lambda prompt: password)

    def _connect(self):
        encryption = (
            self._cups.HTTP_ENCRYPT_REQUIRED if self.tls else self._cups.HTTP_ENCRYPT_IF_REQUESTED
        )
        return self._cups.Connection(host=self.host, port=self.port, encryption=encryption)

    def submit_document(self, path: Path, printer: str, attributes: dict) -> int:
        attributes = dict(attributes)
        title = str(attributes.pop("job-name", Path(path).name))
        options = {str(k): _option_value(v) for k, v in attributes.items()}

        conn = self._connect()
        job_id = conn.printFile(printer, str(path), title, options)
        logger.debug(f"CUPS accepted {title} on {printer} as job {job_id}")
        return int(job_id)

    def get_printer_attributes(self, printer: str) -> dict:
        conn = self._connect()
        return conn.getPrinterAttributes(printer)
