"""
In-memory model of a single print attempt.
The durable record is the file's location on disk; this only tracks an
attempt while it is being resolved.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path


class AttemptState(str, enum.Enum):
    OBSERVED = "observed"
    FILTERING = "filtering"
    SUBMITTING = "submitting"
    PRINTED = "printed"
    FAILED = "failed"
    SKIPPED = "skipped"


TERMINAL_STATES = {AttemptState.PRINTED, AttemptState.FAILED, AttemptState.SKIPPED}


@dataclass
class PrintAttempt:
    path: Path
    started_at: datetime = field(default_factory=datetime.now)
    state: AttemptState = AttemptState.OBSERVED
    job_id: int | None = None
    destination: Path | None = None
    error: Exception | None = None

    @property
    def finished(self) -> bool:
        return self.state in TERMINAL_STATES

    def to_dict(self) -> dict:
        """Flatten for event payloads and audit records."""
        return {
            "path": str(self.path),
            "filename": self.path.name,
            "state": self.state.value,
            "job_id": self.job_id,
            "destination": str(self.destination) if self.destination else None,
            "error": str(self.error) if self.error else None,
            "started_at": self.started_at.isoformat(),
        }
