"""
Decides whether a file in the upload folder is a printable document.
"""

from pathlib import Path

# File extensions the print service accepts
DEFAULT_EXTENSIONS = {".pdf", ".png", ".jpg", ".jpeg", ".pwg", ".pcl"}


class ExtensionFilter:
    """Case-insensitive allow-list on the file suffix. Directories never match."""

    def __init__(self, extensions: set[str] = None):
        self.extensions = {e.lower() for e in (extensions or DEFAULT_EXTENSIONS)}

    def accepts(self, path) -> bool:
        path = Path(path)
        if path.is_dir():
            return False
        return path.suffix.lower() in self.extensions
