"""Time and size formatting shared by the core, CLI and web surface."""
import math
import re
from typing import Optional, Union

_SEEK_RE = re.compile(r"^(\d+:\d\d|\d+)$")

ONE_MINUTE_MS = 60 * 1000


def parse_duration_ms(value: Union[int, float, str, None]) -> Optional[float]:
    """Numbers are taken as milliseconds; "M:SS" strings are converted."""
    if isinstance(value, (int, float)):
        return value
    if not value:
        return None
    minutes, seconds = (int(x) for x in value.split(":")[:2])
    return (minutes * 60 * 1000) + (seconds * 1000)


def pretty_duration_ms(ms: Optional[float]) -> str:
    """Zero-padded MM:SS. Seconds are floored so we never show xx:60."""
    if ms is None or (isinstance(ms, float) and math.isnan(ms)):
        return "…"
    minutes = int(ms // ONE_MINUTE_MS)
    seconds = int((ms - minutes * ONE_MINUTE_MS) // 1000)
    return f"{minutes:02d}:{seconds:02d}"


def pretty_duration_s(seconds: Optional[float]) -> str:
    if seconds is None:
        return pretty_duration_ms(None)
    return pretty_duration_ms(seconds * 1000)


def pretty_filesize(size: Optional[int]) -> str:
    if size is None:
        return ""
    kb = 1024
    mb = kb * 1024
    if size < kb * 10:
        return f"{size / kb:.2f}KB"
    if size < mb:
        return f"{round(size / kb)}KB"
    if size < mb * 10:
        return f"{size / mb:.2f}MB"
    return f"{round(size / mb)}MB"


def parse_seek_time(value: Optional[str]) -> Optional[int]:
    """Parse a shared-link time: bare seconds ("95") or "M:SS" ("1:35"). Returns ms."""
    if not value or not _SEEK_RE.match(value):
        return None
    if ":" not in value:
        return int(value) * 1000
    minutes, seconds = value.split(":")
    return (int(minutes) * 60 + int(seconds)) * 1000


def join_writers(writers: list[str]) -> str:
    if not writers:
        return ""
    if len(writers) == 1:
        return f"written by {writers[0]}"
    return "written by " + ", ".join(writers[:-1]) + " and " + writers[-1]
