"""Running ffmpeg and whisper.cpp as subprocesses.

Both output pipes are read line by line while the process runs, so a
chatty tool cannot fill a pipe buffer and stall, and a watcher sees log
lines as they are produced.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable, Optional

from .errors import ToolError


LineSink = Callable[[str], None]

NORMALIZED_SAMPLE_RATE = 16000


async def _drain(stream: Optional[asyncio.StreamReader], sink: LineSink, tail: list[str]) -> None:
    if stream is None:
        return
    while True:
        raw = await stream.readline()
        if not raw:
            return
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
        if line.strip():
            sink(line)
            tail[:] = [line]


async def run_tool(cmd: list[str], sink: LineSink) -> tuple[int, Optional[str]]:
    """Run a command, feeding each non-blank stdout/stderr line to ``sink``.

    Returns:
        (exit code, last non-blank stderr line or None).

    Raises:
        ToolError: The executable could not be started.
    """
    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise ToolError(f"Failed to execute {Path(cmd[0]).name}: {e}") from e

    stdout_tail: list[str] = []
    stderr_tail: list[str] = []
    _, _, returncode = await asyncio.gather(
        _drain(process.stdout, sink, stdout_tail),
        _drain(process.stderr, sink, stderr_tail),
        process.wait(),
    )
    return returncode, (stderr_tail[0] if stderr_tail else None)


def _failure(tool: str, returncode: int, detail: Optional[str]) -> ToolError:
    message = f"{tool} failed (exit {returncode})"
    if detail:
        message = f"{message}: {detail}"
    return ToolError(message)


def ffmpeg_command(ffmpeg: Path, source: Path, dest: Path) -> list[str]:
    """Build the command that converts any input to 16 kHz mono WAV."""
    return [
        str(ffmpeg),
        "-y",
        "-nostdin",
        "-i", str(source),
        "-ar", str(NORMALIZED_SAMPLE_RATE),
        "-ac", "1",  # Mono
        str(dest),
    ]


def whisper_command(binary: Path, model: Path, audio: Path, output_base: Path, language: str) -> list[str]:
    """Build the whisper.cpp command writing <output_base>.json and .txt."""
    return [
        str(binary),
        "-m", str(model),
        "-f", str(audio),
        "-l", language,
        "-oj",
        "-otxt",
        "-of", str(output_base),
    ]


async def convert_to_wav(ffmpeg: Path, source: Path, dest: Path, sink: LineSink) -> Path:
    """Normalize audio for whisper.cpp.

    Raises:
        ToolError: ffmpeg could not start or exited non-zero.
    """
    dest.parent.mkdir(parents=True, exist_ok=True)
    returncode, detail = await run_tool(ffmpeg_command(ffmpeg, source, dest), sink)
    if returncode != 0:
        raise _failure("ffmpeg", returncode, detail)
    return dest


async def run_whisper(
    binary: Path,
    model: Path,
    audio: Path,
    output_base: Path,
    sink: LineSink,
    language: str = "ja",
) -> None:
    """Run whisper.cpp on one normalized track.

    Raises:
        ToolError: whisper.cpp could not start or exited non-zero.
    """
    cmd = whisper_command(binary, model, audio, output_base, language)
    returncode, detail = await run_tool(cmd, sink)
    if returncode != 0:
        raise _failure("Whisper command", returncode, detail)


def is_wav(path: Path) -> bool:
    return path.suffix.lower() == ".wav"
