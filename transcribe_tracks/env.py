"""Environment loading helpers for transcribe-tracks."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .paths import get_env_path


TRANSCRIBE_ENV_FILE_ENV = "TRANSCRIBE_TRACKS_ENV_FILE"


def load_transcribe_env(override: bool = False) -> bool:
    """Load a .env file into the process environment.

    Lookup order:
    1) TRANSCRIBE_TRACKS_ENV_FILE, when it names an existing file
    2) <TRANSCRIBE_TRACKS_HOME>/.env or ~/.transcribe_tracks/.env
    3) python-dotenv's own search from the working directory
    """
    explicit = os.environ.get(TRANSCRIBE_ENV_FILE_ENV)
    if explicit:
        env_path = Path(explicit).expanduser()
        if env_path.is_file():
            return load_dotenv(dotenv_path=env_path, override=override)

    home_env = get_env_path()
    if home_env.is_file():
        return load_dotenv(dotenv_path=home_env, override=override)

    return load_dotenv(override=override)


def env_value(name: str) -> Optional[str]:
    """Return a stripped environment value, treating blanks as unset."""
    value = os.environ.get(name)
    if value is None:
        return None
    value = value.strip()
    return value or None
