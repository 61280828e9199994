"""Parsing of whisper.cpp output files.

Different whisper.cpp builds write different JSON layouts (and some print
banner text into the file). Each known layout is handled by one strategy in
STRATEGIES; the first strategy that yields segments wins. When no strategy
matches, the plain-text output is used as one untimed segment.
"""

from __future__ import annotations

import json
import math
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Optional

from .errors import ParseError
from .models import RecognizedSegment
from .time_utils import parse_timestamp_to_seconds


TXT_FALLBACK = "txt-fallback"

Strategy = Callable[[str], Optional[list[RecognizedSegment]]]


@dataclass
class ParsedOutput:
    """Segments for one track plus the strategy that produced them."""

    segments: list[RecognizedSegment]
    source: str


def normalize_json_contents(contents: str) -> str:
    """Strip a BOM and clip to the outermost {...} or [...] span."""
    trimmed = contents.lstrip("\ufeff").strip()
    if not trimmed:
        return ""

    starts = [i for i in (trimmed.find("{"), trimmed.find("[")) if i >= 0]
    end = max(trimmed.rfind("}"), trimmed.rfind("]"))
    if starts and end >= min(starts):
        return trimmed[min(starts):end + 1]
    return trimmed


def _reject_constant(name: str) -> Any:
    raise ValueError(f"Non-standard JSON constant: {name}")


def _load(contents: str) -> Any:
    try:
        return json.loads(contents, parse_constant=_reject_constant)
    except ValueError:
        return None


def _is_number(value: Any) -> bool:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:  # int too large for a float
        return False


def _strict_segments(items: Any) -> Optional[list[RecognizedSegment]]:
    """Read a list of exactly {start: number, text: str} objects."""
    if not isinstance(items, list):
        return None
    segments = []
    for item in items:
        if not isinstance(item, dict):
            return None
        start = item.get("start")
        text = item.get("text")
        if not _is_number(start) or not isinstance(text, str):
            return None
        segments.append(RecognizedSegment(start=float(start), text=text))
    return segments or None


def segment_from_value(value: Any) -> Optional[RecognizedSegment]:
    """Coerce one loosely-shaped JSON object into a segment.

    The start time is taken from the first of: "start" (seconds),
    "offsets.from" (milliseconds), "timestamps.from" ("HH:MM:SS,mmm")
    or "t0" (centiseconds).
    """
    if not isinstance(value, dict):
        return None
    text = value.get("text")
    if not isinstance(text, str) or not text.strip():
        return None

    start = 0.0
    offsets = value.get("offsets")
    timestamps = value.get("timestamps")
    if _is_number(value.get("start")):
        start = float(value["start"])
    elif "offsets" in value:
        raw = offsets.get("from") if isinstance(offsets, dict) else None
        start = float(raw) / 1000 if _is_number(raw) else 0.0
    elif "timestamps" in value:
        raw = timestamps.get("from") if isinstance(timestamps, dict) else None
        parsed = parse_timestamp_to_seconds(raw) if isinstance(raw, str) else None
        start = parsed if parsed is not None else 0.0
    elif _is_number(value.get("t0")):
        start = float(value["t0"]) / 100

    return RecognizedSegment(start=start, text=text)


def _segments_from_array(items: Any) -> Optional[list[RecognizedSegment]]:
    if not isinstance(items, list):
        return None
    segments = [s for s in (segment_from_value(item) for item in items) if s is not None]
    return segments or None


def extract_segments_from_value(value: Any) -> Optional[list[RecognizedSegment]]:
    """Find the segment list in a parsed JSON value by its known locations."""
    if isinstance(value, dict):
        if "segments" in value:
            return _segments_from_array(value["segments"])
        if "transcription" in value:
            return _segments_from_array(value["transcription"])
        results = value.get("results")
        if isinstance(results, dict) and "segments" in results:
            return _segments_from_array(results["segments"])
        return None
    if isinstance(value, list):
        return _segments_from_array(value)
    return None


def parse_segments_object(contents: str) -> Optional[list[RecognizedSegment]]:
    value = _load(contents)
    if not isinstance(value, dict):
        return None
    return _strict_segments(value.get("segments"))


def parse_segments_array(contents: str) -> Optional[list[RecognizedSegment]]:
    return _strict_segments(_load(contents))


def parse_json_lines(contents: str) -> Optional[list[RecognizedSegment]]:
    """Parse newline-delimited JSON; lines that are not JSON are skipped."""
    segments: list[RecognizedSegment] = []
    for line in contents.splitlines():
        line = line.strip()
        if not line:
            continue
        value = _load(line)
        if value is None:
            continue
        found = extract_segments_from_value(value)
        if found:
            segments.extend(found)
            continue
        single = segment_from_value(value)
        if single is not None:
            segments.append(single)
    return segments or None


def parse_structural(contents: str) -> Optional[list[RecognizedSegment]]:
    value = _load(contents)
    if value is None:
        return None
    return extract_segments_from_value(value)


# Ranked: the first strategy returning segments wins. json_lines runs again
# after the structural pass, mirroring how recognizer builds were probed.
STRATEGIES: list[tuple[str, Strategy]] = [
    ("segments-object", parse_segments_object),
    ("segments-array", parse_segments_array),
    ("json-lines", parse_json_lines),
    ("structural", parse_structural),
    ("json-lines-retry", parse_json_lines),
]


def register_strategy(name: str, strategy: Strategy, before: Optional[str] = None) -> None:
    """Add a parser for a new output layout, optionally ahead of an existing one."""
    if before is None:
        STRATEGIES.append((name, strategy))
        return
    for index, (existing, _) in enumerate(STRATEGIES):
        if existing == before:
            STRATEGIES.insert(index, (name, strategy))
            return
    raise ValueError(f"Unknown strategy: {before}")


def parse_recognizer_text(contents: str) -> tuple[Optional[list[RecognizedSegment]], Optional[str]]:
    """Run the strategy table over raw recognizer JSON output.

    Returns:
        (segments, strategy name), or (None, None) if nothing matched.
    """
    normalized = normalize_json_contents(contents)
    if not normalized:
        return None, None
    for name, strategy in STRATEGIES:
        segments = strategy(normalized)
        if segments:
            return segments, name
    return None, None


def read_text_fallback(txt_path: Path) -> Optional[RecognizedSegment]:
    """Join the non-empty lines of the plain-text output into one segment."""
    try:
        text = txt_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None
    cleaned = " ".join(line.strip() for line in text.splitlines() if line.strip())
    if not cleaned:
        return None
    return RecognizedSegment(start=0.0, text=cleaned)


def parse_recognizer_output(json_path: Path, txt_path: Path) -> ParsedOutput:
    """Read one track's recognizer output.

    Raises:
        ParseError: Neither the JSON nor the text output is usable.
    """
    try:
        contents = json_path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        contents = ""

    segments, source = parse_recognizer_text(contents)
    if segments:
        return ParsedOutput(segments=segments, source=source)

    fallback = read_text_fallback(txt_path)
    if fallback is not None:
        print("Warning: whisper JSON parse failed; using txt fallback", file=sys.stderr)
        return ParsedOutput(segments=[fallback], source=TXT_FALLBACK)

    raise ParseError(f"Failed to parse whisper JSON output: {json_path}")
