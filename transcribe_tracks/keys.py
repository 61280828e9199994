"""Object key parsing and naming.

Track audio is stored as::

    {date}/{room_id}/{meeting_time}/{speaker}/{track_time}_{suffix}.ogg

Anything that does not split into exactly five segments is not a track and
is ignored by listings.
"""

from typing import Optional

from .models import ObjectKey
from .time_utils import format_time_localized


AUDIO_EXTENSION = ".ogg"
ROOM_PREFIX = "localWorld."
TRANSCRIPT_EXTENSION = ".txt"


def parse_key(key: str) -> Optional[ObjectKey]:
    """Split an object key into its fields, or None if it is not a track key."""
    parts = key.split("/")
    if len(parts) != 5:
        return None

    date, room_id, meeting_time, speaker, file_name = parts
    if file_name.endswith(AUDIO_EXTENSION):
        file_name = file_name[: -len(AUDIO_EXTENSION)]
    track_time = file_name.split("_", 1)[0]

    return ObjectKey(
        date=date,
        room_id=room_id,
        meeting_time=meeting_time,
        speaker=speaker,
        track_time=track_time,
    )


def extract_room_label(room_id: str) -> str:
    """Return the human part of a room id.

    "localWorld.abc123-Main Hall" -> "Main Hall". Ids without the prefix,
    or without text after the hyphen, are returned unchanged.
    """
    if not room_id.startswith(ROOM_PREFIX):
        return room_id
    rest = room_id[len(ROOM_PREFIX):]
    _, sep, label = rest.partition("-")
    if sep and label:
        return label
    return room_id


def make_meeting_id(date: str, room_id: str, meeting_time: str) -> str:
    return f"{date}/{room_id}/{meeting_time}"


def date_prefix(date: str) -> str:
    return f"{date}/"


def meeting_prefix(meeting_id: str) -> str:
    return f"{meeting_id}/"


def output_file_name(meeting_id: str) -> str:
    """Name the transcript file after the meeting's start time.

    "2024-05-01/room/14-05-09" -> "14時5分9秒.txt"; unparseable times are
    used as-is.
    """
    time_only = meeting_id.rsplit("/", 1)[-1].replace("\\", "_")
    stem = format_time_localized(time_only) or time_only
    return f"{stem}{TRANSCRIPT_EXTENSION}"
