"""
Tests for anchoring, merging and rendering transcript segments.
"""

import pytest

from transcribe_tracks.models import RecognizedSegment, TranscriptSegment
from transcribe_tracks.transcript import (
    anchor_segments,
    merge_segments,
    render_transcript,
    track_start_seconds,
)


@pytest.fixture
def segments() -> list[TranscriptSegment]:
    return [
        TranscriptSegment(start=36002.0, speaker="bob", text="hello"),
        TranscriptSegment(start=36005.4, speaker="alice", text="hi"),
    ]


class TestAnchor:
    """Tests for anchor_segments."""

    def test_adds_track_start(self) -> None:
        anchored = anchor_segments([RecognizedSegment(5.0, "hi")], "alice", "10-00-00")
        assert anchored == [TranscriptSegment(start=36005.0, speaker="alice", text="hi")]

    def test_drops_blank_and_trims(self) -> None:
        anchored = anchor_segments(
            [RecognizedSegment(1.0, "  "), RecognizedSegment(2.0, "  ok  ")], "bob", "00-00-10"
        )
        assert [(s.start, s.text) for s in anchored] == [(12.0, "ok")]

    def test_sorted_stably(self) -> None:
        anchored = anchor_segments(
            [RecognizedSegment(3.0, "c"), RecognizedSegment(1.0, "a"), RecognizedSegment(1.0, "b")],
            "bob",
            "00-00-00",
        )
        assert [s.text for s in anchored] == ["a", "b", "c"]

    def test_unparseable_track_time(self) -> None:
        assert track_start_seconds("whenever") == 0.0
        anchored = anchor_segments([RecognizedSegment(4.0, "x")], "bob", "whenever")
        assert anchored[0].start == 4.0


class TestMerge:
    """Tests for merge_segments."""

    def test_interleaves_overlapping_tracks(self) -> None:
        first = [TranscriptSegment(10.0, "a", "1"), TranscriptSegment(30.0, "a", "3")]
        second = [TranscriptSegment(20.0, "b", "2"), TranscriptSegment(40.0, "b", "4")]

        merged = merge_segments([first, second])

        assert [s.text for s in merged] == ["1", "2", "3", "4"]
        starts = [s.start for s in merged]
        assert starts == sorted(starts)

    def test_ties_keep_track_then_in_track_order(self) -> None:
        first = [TranscriptSegment(5.0, "a", "a1"), TranscriptSegment(5.0, "a", "a2")]
        second = [TranscriptSegment(5.0, "b", "b1")]

        merged = merge_segments([first, second])

        assert [s.text for s in merged] == ["a1", "a2", "b1"]


class TestRender:
    """Tests for render_transcript."""

    @pytest.mark.parametrize(
        "timestamps,speaker,expected",
        [
            (True, True, "10:00:02 bob：hello\n10:00:05 alice：hi\n"),
            (True, False, "10:00:02 hello\n10:00:05 hi\n"),
            (False, True, "bob：hello\nalice：hi\n"),
            (False, False, "hello\nhi\n"),
        ],
    )
    def test_flag_combinations(self, segments, timestamps: bool, speaker: bool, expected: str) -> None:
        assert render_transcript(segments, timestamps, speaker) == expected

    def test_idempotent(self, segments) -> None:
        first = render_transcript(segments, True, True)
        second = render_transcript(segments, True, True)
        assert first.encode("utf-8") == second.encode("utf-8")

    def test_empty(self) -> None:
        assert render_transcript([], True, True) == ""
