"""
Moves resolved files out of upload/ into printed/ or failed/.
Naming: printed/{YYYY-MM-DD}_{job_id}_{filename}, failed/{YYYY-MM-DD}_{filename}.
Sub-folders below upload/ are kept below the destination root.
"""

import logging
import os
from datetime import date
from pathlib import Path
from typing import Callable

from core.errors import MoveError
from modules.intake.layout import WatchRoot

logger = logging.getLogger(__name__)


def _dedupe(dest_path: Path) -> Path:
    """Append _1, _2, ... before the suffix until the name is free."""
    if not dest_path.exists():
        return dest_path
    stem = dest_path.stem
    suffix = dest_path.suffix
    counter = 1
    while dest_path.exists():
        dest_path = dest_path.with_name(f"{stem}_{counter}{suffix}")
        counter += 1
    return dest_path


class FileStateMover:
    """
    Performs the upload -> printed/failed state transition as a single rename.
    Never deletes or overwrites anything.
    """

    def __init__(self, watch_root: WatchRoot, today: Callable[[], date] = date.today):
        self.watch_root = watch_root
        self._today = today

    def _relative_to_upload(self, path: Path) -> Path:
        src = Path(os.path.abspath(path))
        for candidate in (src, src.parent.resolve() / src.name):
            try:
                return candidate.relative_to(self.watch_root.upload)
            except ValueError:
                continue
        raise MoveError(f"{path} is not inside {self.watch_root.upload}", path=path)

    def destination_for(self, path, job_id: int | None = None) -> Path:
        """
        Compute where a file lands. A job id means success (printed/),
        no job id means failure (failed/).
        """
        rel = self._relative_to_upload(Path(path))
        stamp = self._today().strftime("%Y-%m-%d")
        if job_id is None:
            base = self.watch_root.failed
            name = f"{stamp}_{rel.name}"
        else:
            base = self.watch_root.printed
            name = f"{stamp}_{job_id}_{rel.name}"
        return base / rel.parent / name

    def resolve_success(self, path, job_id: int) -> Path:
        return self._move(Path(path), self.destination_for(path, job_id))

    def resolve_failure(self, path) -> Path:
        return self._move(Path(path), self.destination_for(path))

    def _move(self, src: Path, dest: Path) -> Path:
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            dest = _dedupe(dest)
            os.rename(src, dest)
        except OSError as e:
            raise MoveError(f"Failed to move {src} -> {dest}: {e}", path=src) from e
        logger.info(f"Moved {src.name} -> {dest}")
        return dest
