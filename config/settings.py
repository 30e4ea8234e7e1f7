"""
Central configuration for the print intake daemon.
Loads from environment variables with sensible defaults.
"""

import json
import logging
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# Base directory (project root)
BASE_DIR = Path(__file__).resolve().parent.parent


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def parse_job_attrs(raw: str) -> dict:
    """
    Decode the default IPP job attributes from a JSON object string.
    Anything unparsable is logged and treated as an empty mapping.
    """
    try:
        attrs = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse job attributes: {e}")
        return {}
    if not isinstance(attrs, dict):
        logger.warning(f"Job attributes must be a JSON object, got {type(attrs).__name__}")
        return {}
    return attrs


def parse_extensions(raw: str) -> set[str]:
    """Turn 'pdf, .PNG,jpg' into {'.pdf', '.png', '.jpg'}."""
    exts = set()
    for part in raw.split(","):
        part = part.strip().lower()
        if part:
            exts.add(part if part.startswith(".") else f".{part}")
    return exts


# Print service (IPP via CUPS)
PRINTER_HOST = os.getenv("PRINTER_HOST", "localhost")
PRINTER_PORT = int(os.getenv("PRINTER_PORT", "631"))
PRINTER_USER = os.getenv("PRINTER_USER", "")
PRINTER_PASS = os.getenv("PRINTER_PASS", "")
PRINTER_TLS = _as_bool(os.getenv("PRINTER_TLS", "false"))
PRINTER_NAME = os.getenv("PRINTER_NAME", "Printer")
PRINTER_JOB_ATTRS = parse_job_attrs(os.getenv("PRINTER_JOB_ATTRS", "{}"))

# Hot folder
FILE_ROOT_PATH = Path(os.getenv("FILE_ROOT_PATH", "./files"))
PRINTABLE_EXTENSIONS = parse_extensions(os.getenv("PRINTABLE_EXTENSIONS", "pdf,png,jpg,jpeg,pwg,pcl"))

# Intake
WATCH_STRATEGY = os.getenv("WATCH_STRATEGY", "poll").lower()  # "poll" or "events"
POLL_INTERVAL = float(os.getenv("POLL_INTERVAL", "1"))
SETTLE_DELAY = float(os.getenv("SETTLE_DELAY", "3"))  # let in-progress copies land
MAX_ATTEMPTS = int(os.getenv("MAX_ATTEMPTS", "0"))  # 0 = retry forever
PRINT_BANNER_PAGES = _as_bool(os.getenv("PRINT_BANNER_PAGES", "true"))

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_DIR = Path(os.getenv("LOG_DIR", str(BASE_DIR / "logs")))

LOG_DIR.mkdir(parents=True, exist_ok=True)
