"""
Hot-folder layout: a root directory with upload/, printed/ and failed/.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

UPLOAD = "upload"
PRINTED = "printed"
FAILED = "failed"


class WatchRoot:
    """The three well-known sub-trees under a single root."""

    def __init__(self, root: Path | str):
        self.root = Path(root).resolve()
        self.upload = self.root / UPLOAD
        self.printed = self.root / PRINTED
        self.failed = self.root / FAILED

    def __repr__(self):
        return f"<WatchRoot(root='{self.root}')>"

    def ensure(self) -> "WatchRoot":
        """Create any missing directories. Safe to call repeatedly."""
        for d in (self.upload, self.printed, self.failed):
            if not d.is_dir():
                logger.info(f"Creating {d}")
            d.mkdir(parents=True, exist_ok=True)
        return self

    def counts(self) -> dict[str, int]:
        """Number of regular files under each sub-tree, for status output."""
        result = {}
        for name, d in ((UPLOAD, self.upload), (PRINTED, self.printed), (FAILED, self.failed)):
            result[name] = sum(1 for p in d.rglob("*") if p.is_file()) if d.is_dir() else 0
        return result
