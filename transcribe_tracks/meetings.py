"""Discovery of recording dates, meetings and tracks in the bucket."""

from typing import Optional

from .keys import date_prefix, extract_room_label, meeting_prefix, parse_key
from .models import MeetingSummary, TrackEntry
from .store import ObjectStore
from .time_utils import time_sort_key


def list_dates(store: ObjectStore) -> list[str]:
    """List recording dates (top-level prefixes), ascending and deduplicated.

    Some backends do not group by delimiter; when no common prefixes come
    back, the first segment of every key is used instead.
    """
    dates = set()
    for prefix in store.list_common_prefixes(delimiter="/"):
        value = prefix.rstrip("/")
        if value:
            dates.add(value)

    if not dates:
        for key in store.list_keys():
            value = key.split("/", 1)[0]
            if value:
                dates.add(value)

    return sorted(dates)


def list_meetings(store: ObjectStore, date: str) -> list[MeetingSummary]:
    """Group the tracks under a date into meetings, most recent first."""
    grouped: dict[str, dict] = {}
    for key in store.list_keys(date_prefix(date)):
        parsed = parse_key(key)
        if parsed is None:
            continue
        entry = grouped.setdefault(
            parsed.meeting_id,
            {"key": parsed, "speakers": set(), "tracks": 0},
        )
        entry["speakers"].add(parsed.speaker)
        entry["tracks"] += 1

    meetings = [
        MeetingSummary(
            id=meeting_id,
            date=entry["key"].date,
            room_id=entry["key"].room_id,
            room_label=extract_room_label(entry["key"].room_id),
            meeting_time=entry["key"].meeting_time,
            speaker_count=len(entry["speakers"]),
            track_count=entry["tracks"],
        )
        for meeting_id, entry in grouped.items()
    ]
    meetings.sort(key=lambda m: time_sort_key(m.meeting_time), reverse=True)
    return meetings


def list_tracks(store: ObjectStore, meeting_id: str) -> list[TrackEntry]:
    """List a meeting's tracks in track-time order."""
    tracks = []
    for key in store.list_keys(meeting_prefix(meeting_id)):
        parsed = parse_key(key)
        if parsed is None:
            continue
        tracks.append(TrackEntry(key=key, speaker=parsed.speaker, track_time=parsed.track_time))

    tracks.sort(key=lambda t: time_sort_key(t.track_time))
    return tracks


def find_meeting(store: ObjectStore, meeting_id: str) -> Optional[MeetingSummary]:
    """Look up a single meeting summary by id."""
    date = meeting_id.split("/", 1)[0]
    for meeting in list_meetings(store, date):
        if meeting.id == meeting_id:
            return meeting
    return None
