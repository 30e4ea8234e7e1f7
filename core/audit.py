"""
Audit logging for the print intake daemon.
Records every resolved attempt to an append-only log file. The file system
layout stays the source of truth; this is the human-readable history.
"""

import logging

from core.events import (
    EventBus, Event,
    FILE_PRINTED, FILE_FAILED, FILE_SKIPPED, MOVE_FAILED, WATCH_RESTARTED,
)
from config.settings import LOG_DIR

# Set up file-based audit logger (append-only)
audit_file_logger = logging.getLogger("audit")
audit_file_logger.setLevel(logging.INFO)
_handler = logging.FileHandler(LOG_DIR / "audit.log", encoding="utf-8")
_handler.setFormatter(logging.Formatter("%(asctime)s | %(message)s"))
audit_file_logger.addHandler(_handler)


def log_action(
    module: str,
    action: str,
    detail: dict = None,
    severity: str = "info",
):
    """
    Record an audit event to the audit log file.

    Args:
        module: Which module performed the action (e.g., "intake", "watcher")
        action: What happened (e.g., "file_printed", "move_failed")
        detail: Additional context as a dict
        severity: "info", "warning", or "error"
    """
    if severity not in ("info", "warning", "error"):
        raise ValueError(f"Unknown audit severity: {severity}")

    msg = f"[{severity.upper()}] [{module}] {action}"
    if detail:
        msg += f" | {detail}"
    audit_file_logger.log(getattr(logging, severity.upper()), msg)


class AuditTrail:
    """Subscribes to intake outcome events and records them."""

    _SEVERITIES = {
        FILE_PRINTED: "info",
        FILE_SKIPPED: "info",
        FILE_FAILED: "error",
        MOVE_FAILED: "error",
        WATCH_RESTARTED: "warning",
    }

    def setup(self, event_bus: EventBus):
        for event_name in self._SEVERITIES:
            event_bus.subscribe(event_name, self.record)

    def record(self, event: Event):
        log_action(
            module=event.data.get("source", "intake"),
            action=event.name,
            detail={k: v for k, v in event.data.items() if k != "source" and v is not None},
            severity=self._SEVERITIES.get(event.name, "info"),
        )
