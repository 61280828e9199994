"""
Tests for running external tools.

The real interpreter stands in for ffmpeg and whisper.cpp.
"""

import asyncio
import sys
import time
from pathlib import Path

import pytest

from transcribe_tracks.errors import ToolError
from transcribe_tracks.tools import (
    convert_to_wav,
    ffmpeg_command,
    is_wav,
    run_tool,
    run_whisper,
    whisper_command,
)


SCRIPT = """
import sys
import time
print("out line")
print("", file=sys.stderr)
print("err first", file=sys.stderr)
print("err last", file=sys.stderr)
sys.exit(3)
"""


def collect(cmd):
    lines = []
    returncode, detail = asyncio.run(run_tool(cmd, lines.append))
    return returncode, detail, lines


class TestRunTool:
    """Tests for run_tool."""

    def test_streams_both_pipes(self) -> None:
        returncode, detail, lines = collect([sys.executable, "-c", SCRIPT])

        assert returncode == 3
        assert detail == "err last"
        assert sorted(lines) == ["err first", "err last", "out line"]

    def test_success(self) -> None:
        returncode, detail, lines = collect([sys.executable, "-c", "print('ok')"])
        assert (returncode, detail, lines) == (0, None, ["ok"])

    def test_lines_arrive_while_running(self) -> None:
        script = (
            "import sys, time\n"
            "print('first', flush=True)\n"
            "time.sleep(1.0)\n"
            "print('second', flush=True)\n"
        )
        arrivals = []

        def sink(line):
            arrivals.append((line, time.monotonic()))

        returncode, _ = asyncio.run(run_tool([sys.executable, "-c", script], sink))

        assert returncode == 0
        assert [line for line, _ in arrivals] == ["first", "second"]
        assert arrivals[1][1] - arrivals[0][1] >= 0.5

    def test_missing_executable(self, tmp_path: Path) -> None:
        with pytest.raises(ToolError, match="Failed to execute nope"):
            collect([str(tmp_path / "nope")])


class TestCommands:
    """Tests for the ffmpeg and whisper.cpp wrappers."""

    def test_ffmpeg_command(self) -> None:
        cmd = ffmpeg_command(Path("ffmpeg"), Path("in.ogg"), Path("out.wav"))
        assert cmd == ["ffmpeg", "-y", "-nostdin", "-i", "in.ogg", "-ar", "16000", "-ac", "1", "out.wav"]

    def test_whisper_command(self) -> None:
        cmd = whisper_command(Path("whisper-cli"), Path("m.bin"), Path("a.wav"), Path("out_0"), "ja")
        assert cmd == ["whisper-cli", "-m", "m.bin", "-f", "a.wav", "-l", "ja", "-oj", "-otxt", "-of", "out_0"]

    def test_is_wav(self) -> None:
        assert is_wav(Path("a.WAV"))
        assert not is_wav(Path("a.ogg"))

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script")
    def test_ffmpeg_failure(self, tmp_path: Path) -> None:
        fake = tmp_path / "ffmpeg"
        fake.write_text("#!/bin/sh\necho 'bad input' >&2\nexit 1\n")
        fake.chmod(0o755)

        with pytest.raises(ToolError, match=r"ffmpeg failed \(exit 1\): bad input"):
            asyncio.run(convert_to_wav(fake, tmp_path / "a.ogg", tmp_path / "a.wav", lambda line: None))

    @pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script")
    def test_whisper_failure(self, tmp_path: Path) -> None:
        fake = tmp_path / "whisper-cli"
        fake.write_text("#!/bin/sh\nexit 2\n")
        fake.chmod(0o755)

        with pytest.raises(ToolError, match=r"Whisper command failed \(exit 2\)"):
            asyncio.run(run_whisper(fake, tmp_path / "m.bin", tmp_path / "a.wav", tmp_path / "out", lambda line: None))
