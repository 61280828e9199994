"""Placing per-track segments on the meeting timeline and rendering text."""

from typing import Iterable

from .models import RecognizedSegment, TranscriptSegment
from .time_utils import format_seconds, parse_time, seconds_since_midnight


SPEAKER_SEPARATOR = "："  # full-width colon


def track_start_seconds(track_time: str) -> float:
    """Seconds since midnight for a track start; 0 if the time is unreadable."""
    parsed = parse_time(track_time)
    if parsed is None:
        return 0.0
    return seconds_since_midnight(parsed)


def anchor_segments(
    segments: Iterable[RecognizedSegment],
    speaker: str,
    track_time: str,
) -> list[TranscriptSegment]:
    """Shift one track's segments onto the meeting timeline.

    Blank segments are dropped and text is trimmed. The result is sorted by
    start; sorting is stable so equal starts keep recognizer order.
    """
    offset = track_start_seconds(track_time)
    anchored = []
    for seg in segments:
        text = seg.text.strip()
        if not text:
            continue
        anchored.append(TranscriptSegment(start=offset + seg.start, speaker=speaker, text=text))
    anchored.sort(key=lambda s: s.start)
    return anchored


def merge_segments(tracks: Iterable[list[TranscriptSegment]]) -> list[TranscriptSegment]:
    """Merge track segment lists into one timeline.

    Ties keep the order the tracks were given in, then in-track order.
    """
    merged: list[TranscriptSegment] = []
    for segments in tracks:
        merged.extend(segments)
    merged.sort(key=lambda s: s.start)
    return merged


def format_line(
    segment: TranscriptSegment,
    include_timestamps: bool = False,
    include_speaker: bool = True,
) -> str:
    body = f"{segment.speaker}{SPEAKER_SEPARATOR}{segment.text}" if include_speaker else segment.text
    if include_timestamps:
        return f"{format_seconds(segment.start)} {body}"
    return body


def render_transcript(
    segments: Iterable[TranscriptSegment],
    include_timestamps: bool = False,
    include_speaker: bool = True,
) -> str:
    """Convert segments to the transcript file contents.

    Args:
        segments: Merged segments in timeline order.
        include_timestamps: Prefix each line with HH:MM:SS.
        include_speaker: Prefix the text with "speaker：".

    Returns:
        One newline-terminated line per segment.
    """
    return "".join(
        format_line(seg, include_timestamps, include_speaker) + "\n"
        for seg in segments
    )
