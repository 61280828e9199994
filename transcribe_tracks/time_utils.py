"""Wall-clock time helpers.

Object keys carry times either as "HH-MM-SS" or in the localized
"H時M分S秒" notation. Both parse to a naive datetime.time, which is what
track ordering, meeting ordering and segment anchoring compare on.
"""

import functools
import math
import re
from datetime import datetime, time, timezone
from typing import Optional


_LOCALIZED_MARKERS = ("時", "分", "秒")
_LOCALIZED_RE = re.compile(r"^(\d+)時(\d+)分(\d+)秒$")
_HYPHEN_RE = re.compile(r"^(\d+)-(\d+)-(\d+)$")


def _build_time(hour: str, minute: str, second: str) -> Optional[time]:
    try:
        return time(int(hour), int(minute), int(second))
    except ValueError:
        return None


def parse_localized_time(value: str) -> Optional[time]:
    """Parse "14時5分9秒"."""
    match = _LOCALIZED_RE.match(value.strip())
    if not match:
        return None
    return _build_time(*match.groups())


def parse_hyphen_time(value: str) -> Optional[time]:
    """Parse "14-05-09"."""
    match = _HYPHEN_RE.match(value)
    if not match:
        return None
    return _build_time(*match.groups())


def parse_time(value: str) -> Optional[time]:
    """Parse a time string in any supported notation.

    Returns:
        The wall-clock time, or None when no notation matches or a field is
        out of range.
    """
    if any(marker in value for marker in _LOCALIZED_MARKERS):
        parsed = parse_localized_time(value)
        if parsed is not None:
            return parsed
    return parse_hyphen_time(value)


def compare_time_strings(a: str, b: str) -> int:
    """Order two time strings.

    Parseable strings compare by wall-clock value and sort before
    unparseable ones; two unparseable strings compare lexicographically.
    """
    a_time = parse_time(a)
    b_time = parse_time(b)
    if a_time is not None and b_time is not None:
        return (a_time > b_time) - (a_time < b_time)
    if a_time is not None:
        return -1
    if b_time is not None:
        return 1
    return (a > b) - (a < b)


time_sort_key = functools.cmp_to_key(compare_time_strings)


def format_time_localized(value: str) -> Optional[str]:
    """Reformat a time string as "H時M分S秒" (no zero padding)."""
    parsed = parse_time(value)
    if parsed is None:
        return None
    return f"{parsed.hour}時{parsed.minute}分{parsed.second}秒"


def seconds_since_midnight(value: time) -> float:
    return float(value.hour * 3600 + value.minute * 60 + value.second)


def format_seconds(value: float) -> str:
    """Format seconds as HH:MM:SS, rounded and clamped at zero."""
    # half-up, not banker's rounding
    total = max(int(math.floor(value + 0.5)), 0)
    hours = total // 3600
    minutes = (total % 3600) // 60
    secs = total % 60
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def parse_timestamp_to_seconds(value: str) -> Optional[float]:
    """Parse a whisper.cpp "HH:MM:SS,mmm" timestamp into seconds."""
    parts = value.strip().split(":")
    if len(parts) < 3:
        return None
    seconds_part, _, millis_part = parts[2].partition(",")
    try:
        hours = float(parts[0])
        minutes = float(parts[1])
        seconds = float(seconds_part)
    except ValueError:
        return None
    try:
        millis = float(millis_part) if millis_part else 0.0
    except ValueError:
        millis = 0.0
    return hours * 3600 + minutes * 60 + seconds + millis / 1000


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def format_local_iso(dt: Optional[datetime]) -> Optional[str]:
    """Format a UTC datetime as a local-time ISO string for API responses."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone().isoformat()
