"""Meeting transcription pipeline.

For one meeting: list its tracks, then for each track (one at a time)
download the audio, convert it to 16 kHz mono WAV, run whisper.cpp, and
shift the recognized segments onto the meeting timeline. The merged
segments are written as a single text file. Progress and tool output go to
the job's log in the JobRegistry.
"""

import asyncio
import shutil
import sys
import traceback
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import ConfigError, PipelineError
from .keys import AUDIO_EXTENSION, output_file_name
from .meetings import list_tracks
from .models import TrackEntry, TranscriptSegment
from .paths import (
    WHISPER_BINARY_CANDIDATES,
    find_ffmpeg,
    find_in_path,
    find_whisper_binary,
    resolve_model_path,
)
from .recognizer_output import TXT_FALLBACK, parse_recognizer_output
from .store import ObjectStore
from .tools import convert_to_wav, is_wav, run_whisper
from .transcript import anchor_segments, merge_segments, render_transcript
from .web.config import Settings
from .web.jobs import JobRegistry


@dataclass
class Resources:
    """Local executables and model a run needs."""
    binary: Path
    model: Path
    ffmpeg: Path


def resolve_resources(settings: Settings) -> Resources:
    """Locate whisper.cpp, its model and ffmpeg.

    Raises:
        ConfigError: Something is missing; the message says how to fix it.
    """
    requested_binary = settings.binary_path.strip()
    if requested_binary:
        binary = Path(requested_binary).expanduser()
        if not binary.is_absolute() and not binary.exists():
            # a bare name like "whisper-cli" is looked up on PATH
            binary = find_in_path(requested_binary) or binary
        hint = "Set WHISPER_BINARY to a valid local path."
    else:
        binary = find_whisper_binary()
        hint = f"Install whisper.cpp and ensure one of {WHISPER_BINARY_CANDIDATES} is in PATH."
        if binary is None:
            raise ConfigError(f"whisper binary not found in PATH. {hint}")
    if not binary.exists():
        raise ConfigError(f"Whisper binary not found at {binary}. {hint}")

    model = resolve_model_path(settings.model_path)
    if not model.exists():
        raise ConfigError(
            f"Whisper model not found at {model}. Set WHISPER_MODEL to a local model file."
        )

    ffmpeg = find_ffmpeg(settings.ffmpeg_path)
    if ffmpeg is None:
        raise ConfigError("ffmpeg not found. Install ffmpeg or set FFMPEG_BINARY.")

    return Resources(binary=binary, model=model, ffmpeg=ffmpeg)


# Running jobs; the event loop only keeps weak references to tasks
_background_tasks: set[asyncio.Task] = set()


class TranscriptionPipeline:
    """Runs transcription jobs and reports through a JobRegistry."""

    def __init__(
        self,
        settings: Settings,
        store: ObjectStore,
        registry: JobRegistry,
        temp_root: Optional[Path] = None,
    ):
        self.settings = settings
        self.store = store
        self.registry = registry
        self.temp_root = temp_root or settings.temp_root()

    def start(self, meeting_id: str) -> str:
        """Register a job and run it in the background.

        Must be called from a running event loop. Returns immediately.
        """
        job_id = self.registry.create(meeting_id)
        task = asyncio.create_task(self.execute(meeting_id, job_id))
        _background_tasks.add(task)
        task.add_done_callback(_background_tasks.discard)
        return job_id

    async def execute(self, meeting_id: str, job_id: str) -> bool:
        """Run a job, recording any failure on the job instead of raising."""
        try:
            await self.run(meeting_id, job_id)
            return True
        except Exception as e:
            print(f"ERROR transcribing {meeting_id}: {e}", file=sys.stderr)
            traceback.print_exc()
            self.registry.mark_failed(job_id, str(e))
            return False

    def _log(self, job_id: str, line: str) -> None:
        self.registry.append_log(job_id, line)

    async def run(self, meeting_id: str, job_id: str) -> Path:
        """Transcribe one meeting.

        Returns:
            Path of the written transcript.

        Raises:
            TranscribeError: Any step failed; no transcript is written.
        """
        resources = resolve_resources(self.settings)

        tracks = await asyncio.to_thread(list_tracks, self.store, meeting_id)
        print(f"run_transcription meeting_id={meeting_id} tracks_found={len(tracks)}", file=sys.stderr)
        self.registry.update_progress(job_id, completed=0, total=len(tracks))
        if not tracks:
            raise PipelineError(f"No tracks found for meeting: {meeting_id}")

        output_path = self.settings.output_root() / output_file_name(meeting_id)
        work_dir = self.temp_root / job_id
        work_dir.mkdir(parents=True, exist_ok=True)

        per_track: list[list[TranscriptSegment]] = []
        for index, track in enumerate(tracks):
            segments = await self._transcribe_track(
                job_id, track, index, len(tracks), work_dir, resources
            )
            per_track.append(segments)
            self.registry.update_progress(job_id, completed=index + 1)

        merged = merge_segments(per_track)
        text = render_transcript(
            merged,
            include_timestamps=self.settings.include_timestamps,
            include_speaker=self.settings.include_speaker,
        )

        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text, encoding="utf-8")

        if not self.settings.keep_temp:
            shutil.rmtree(work_dir, ignore_errors=True)

        self._log(job_id, "")
        self._log(job_id, "Done")
        self.registry.mark_done(job_id, str(output_path))
        return output_path

    async def _transcribe_track(
        self,
        job_id: str,
        track: TrackEntry,
        index: int,
        total: int,
        work_dir: Path,
        resources: Resources,
    ) -> list[TranscriptSegment]:
        """Download, normalize and recognize one track."""
        label = f"Track {index + 1}/{total}"

        def sink(line: str) -> None:
            self._log(job_id, line)

        self._log(job_id, f"{label}: downloading audio")
        suffix = Path(track.key).suffix or AUDIO_EXTENSION
        local_file = work_dir / f"track_{index}{suffix}"
        await asyncio.to_thread(self.store.download, track.key, local_file)

        audio = local_file
        if not is_wav(local_file):
            self._log(job_id, f"{label}: converting to wav")
            audio = await convert_to_wav(
                resources.ffmpeg, local_file, work_dir / f"track_{index}.wav", sink
            )

        self._log(job_id, f"{label}: transcribing")
        output_base = work_dir / f"out_{index}"
        await run_whisper(
            resources.binary,
            resources.model,
            audio,
            output_base,
            sink,
            language=self.settings.language,
        )

        parsed = parse_recognizer_output(
            output_base.with_suffix(".json"), output_base.with_suffix(".txt")
        )
        if parsed.source == TXT_FALLBACK:
            self._log(job_id, f"{label}: whisper JSON parse failed; using txt fallback")

        return anchor_segments(parsed.segments, track.speaker, track.track_time)
