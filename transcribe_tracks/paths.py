"""Path helpers for transcribe-tracks.

Locates the data directory, the default transcript output directory and the
local whisper.cpp / ffmpeg installs. Lookups only inspect the filesystem and
PATH; nothing here runs the tools.
"""

from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import Optional


DEFAULT_HOME_DIRNAME = ".transcribe_tracks"
TRANSCRIBE_HOME_ENV = "TRANSCRIBE_TRACKS_HOME"
FFMPEG_BINARY_ENV = "FFMPEG_BINARY"

DEFAULT_MODEL_NAME = "ggml-large-v3.bin"

if sys.platform == "win32":
    WHISPER_BINARY_CANDIDATES = ["whisper-cli.exe", "whisper.exe", "whisper-cpp.exe", "main.exe"]
    FFMPEG_NAME = "ffmpeg.exe"
else:
    WHISPER_BINARY_CANDIDATES = ["whisper-cli", "whisper", "whisper-cpp", "main"]
    FFMPEG_NAME = "ffmpeg"

# Homebrew installs; nothing extra is searched on other platforms
if sys.platform == "darwin":
    KNOWN_WHISPER_PATHS = [Path("/opt/homebrew/bin/whisper-cli"), Path("/usr/local/bin/whisper-cli")]
    KNOWN_FFMPEG_PATHS = [Path("/opt/homebrew/bin/ffmpeg"), Path("/usr/local/bin/ffmpeg")]
else:
    KNOWN_WHISPER_PATHS = []
    KNOWN_FFMPEG_PATHS = []


def get_data_dir() -> Path:
    """Return the transcribe-tracks data directory."""
    custom_home = os.environ.get(TRANSCRIBE_HOME_ENV)
    if custom_home:
        return Path(custom_home).expanduser().resolve()
    return (Path.home() / DEFAULT_HOME_DIRNAME).resolve()


def get_env_path() -> Path:
    """Return the expected .env file path."""
    return get_data_dir() / ".env"


def get_config_path() -> Path:
    """Return the saved settings path."""
    return get_data_dir() / "config.json"


def default_output_dir() -> Path:
    """Return the directory transcripts go to when none is configured."""
    downloads = Path.home() / "Downloads"
    if downloads.is_dir():
        return downloads
    return get_data_dir() / "transcripts"


def default_model_root() -> Path:
    """Return the directory relative model paths are resolved against."""
    return get_data_dir() / "whisper" / "models"


def find_in_path(binary: str) -> Optional[Path]:
    """Look up an executable name on PATH."""
    found = shutil.which(binary)
    return Path(found) if found else None


def find_whisper_binary() -> Optional[Path]:
    """Find a whisper.cpp CLI on PATH or in a known install location."""
    for candidate in WHISPER_BINARY_CANDIDATES:
        found = find_in_path(candidate)
        if found:
            return found
    for candidate in KNOWN_WHISPER_PATHS:
        if candidate.is_file():
            return candidate
    return None


def find_ffmpeg(requested: str = "") -> Optional[Path]:
    """Find ffmpeg.

    Priority:
    1) The requested value, as a file path or as a name on PATH
    2) FFMPEG_BINARY, as a file path or as a name on PATH
    3) ffmpeg on PATH
    4) Known install locations
    """
    for value in (requested.strip(), os.environ.get(FFMPEG_BINARY_ENV, "").strip()):
        if not value:
            continue
        path = Path(value).expanduser()
        if path.is_file():
            return path
        found = find_in_path(value)
        if found:
            return found

    found = find_in_path(FFMPEG_NAME)
    if found:
        return found
    for candidate in KNOWN_FFMPEG_PATHS:
        if candidate.is_file():
            return candidate
    return None


def resolve_model_path(requested: str, model_root: Optional[Path] = None) -> Path:
    """Resolve a configured model path to a concrete file path.

    Relative paths live under the model root; a leading "models/" is dropped
    so values copied from a whisper.cpp checkout still resolve.
    """
    root = model_root or default_model_root()
    requested = requested.strip()
    if not requested:
        return root / DEFAULT_MODEL_NAME

    path = Path(requested).expanduser()
    if path.is_absolute():
        return path

    for prefix in ("models/", "models\\"):
        if requested.startswith(prefix):
            requested = requested[len(prefix):]
            break
    return root / requested
