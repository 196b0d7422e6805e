"""Filename sanitization, slugification, and date stamps."""

import re
import sys
from datetime import datetime

from loguru import logger

log = logger.bind(stage="sanitize")

_SLUG_RE = re.compile(r"[^a-z0-9]+")
_WINDOWS_BAD_CHARS = re.compile(r'[<>:"/\\|?*]')
_WINDOWS_RESERVED: frozenset[str] = frozenset(
    ["CON", "PRN", "AUX", "NUL"]
    + [f"COM{i}" for i in range(1, 10)]
    + [f"LPT{i}" for i in range(1, 10)]
)


def slugify(title: str) -> str:
    """Lower-case ``title`` and collapse non-alphanumeric runs to single dashes.

    Leading/trailing dashes are trimmed; empty input yields empty output.
    """
    if not title:
        return ""
    s = title.strip().lower()
    s = _SLUG_RE.sub("-", s)
    return s.strip("-")


def _is_windows(platform: str) -> bool:
    return platform in ("win32", "windows", "cygwin")


def sanitize_filename(name: str, platform: str | None = None) -> str:
    """Replace characters that are unsafe in a filename on ``platform``.

    Path separators are always replaced with underscores. On macOS ``:`` is
    replaced too; on Windows the full reserved character set is replaced and
    reserved device names collapse to ``_``. Case and spaces are preserved.
    """
    if not name:
        return ""
    platform = platform or sys.platform

    s = name.strip()
    s = s.replace("/", "_").replace("\\", "_")

    if platform == "darwin":
        s = s.replace(":", "_")

    if _is_windows(platform):
        s = _WINDOWS_BAD_CHARS.sub("_", s)
        if s.upper() in _WINDOWS_RESERVED:
            log.debug(f"Reserved device name '{s}' replaced")
            s = "_"

    return s


def format_date(now: datetime | None = None) -> str:
    """Current date as YYYY-MM-DD."""
    return (now or datetime.now()).strftime("%Y-%m-%d")


def format_time(now: datetime | None = None) -> str:
    """Current local time as HH-MM-SS."""
    return (now or datetime.now()).strftime("%H-%M-%S")
