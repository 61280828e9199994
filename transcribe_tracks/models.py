"""Data classes for meetings, tracks and transcript segments."""

from dataclasses import dataclass


@dataclass(frozen=True)
class ObjectKey:
    """The five fields encoded in a track's object key.

    Keys look like ``{date}/{room_id}/{meeting_time}/{speaker}/{track_time}_{suffix}.ogg``.
    """

    date: str
    room_id: str
    meeting_time: str
    speaker: str
    track_time: str

    @property
    def meeting_id(self) -> str:
        return f"{self.date}/{self.room_id}/{self.meeting_time}"


@dataclass
class MeetingSummary:
    """One meeting found under a date prefix."""

    id: str
    date: str
    room_id: str
    room_label: str
    meeting_time: str
    speaker_count: int
    track_count: int

    def to_dict(self) -> dict:
        """Convert to the camelCase shape the UI expects."""
        return {
            "id": self.id,
            "date": self.date,
            "roomId": self.room_id,
            "roomLabel": self.room_label,
            "meetingTime": self.meeting_time,
            "speakerCount": self.speaker_count,
            "trackCount": self.track_count,
        }


@dataclass
class TrackEntry:
    """One speaker's audio object within a meeting."""

    key: str
    speaker: str
    track_time: str


@dataclass
class RecognizedSegment:
    """An utterance as emitted by the recognizer, relative to its track."""

    start: float
    text: str


@dataclass
class TranscriptSegment:
    """A segment placed on the meeting timeline (seconds since midnight)."""

    start: float
    speaker: str
    text: str
