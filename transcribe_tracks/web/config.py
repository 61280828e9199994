"""Configuration management for transcribe-tracks."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from ..env import env_value
from ..paths import default_output_dir, get_config_path, get_data_dir
from ..store import StoreConfig


# Environment variables override whatever the saved config says
STORE_ENV = {
    "url": "MINIO_URL",
    "access_key": "MINIO_ACCESS_KEY",
    "secret_key": "MINIO_SECRET_KEY",
    "bucket": "MINIO_BUCKET",
    "region": "MINIO_REGION",
}
WHISPER_ENV = {
    "binary_path": "WHISPER_BINARY",
    "model_path": "WHISPER_MODEL",
    "ffmpeg_path": "FFMPEG_BINARY",
    "output_dir": "TRANSCRIPT_OUTPUT_DIR",
}

SECRET_MASK = "********"

# attribute -> (camelCase key, snake_case key)
WHISPER_FIELDS = {
    "binary_path": ("binaryPath", "binary_path"),
    "ffmpeg_path": ("ffmpegPath", "ffmpeg_path"),
    "model_path": ("modelPath", "model_path"),
    "output_dir": ("outputDir", "output_dir"),
    "include_timestamps": ("includeTimestamps", "include_timestamps"),
    "include_speaker": ("includeSpeaker", "include_speaker"),
    "language": ("language", "language"),
    "keep_temp": ("keepTemp", "keep_temp"),
}


@dataclass
class Settings:
    """Application settings."""

    # Paths
    data_dir: Path = field(default_factory=get_data_dir)
    config_path: Path = field(default_factory=get_config_path)

    # Object store
    store: StoreConfig = field(default_factory=StoreConfig)

    # Recognizer and output
    binary_path: str = ""
    ffmpeg_path: str = ""
    model_path: str = ""
    output_dir: str = ""
    include_timestamps: bool = False
    include_speaker: bool = True
    language: str = "ja"
    keep_temp: bool = False

    # Server settings
    host: str = "127.0.0.1"
    port: int = 8000

    def output_root(self) -> Path:
        """Directory transcripts are written to."""
        if self.output_dir.strip():
            return Path(self.output_dir.strip()).expanduser()
        return default_output_dir()

    def temp_root(self) -> Path:
        """Directory holding per-job working directories."""
        return self.data_dir / "tmp"

    def _whisper_dict(self) -> dict[str, Any]:
        return {camel: getattr(self, attr) for attr, (camel, _) in WHISPER_FIELDS.items()}

    def _json_dict(self) -> dict[str, Any]:
        return {
            "minio": self.store.to_dict(),
            "whisper": self._whisper_dict(),
            "server": {"host": self.host, "port": self.port},
        }

    def to_public_dict(self) -> dict[str, Any]:
        """Settings for the API, with the secret key masked."""
        data = self._json_dict()
        if data["minio"]["secretKey"]:
            data["minio"]["secretKey"] = SECRET_MASK
        return data

    def save(self) -> None:
        """Save settings to config file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self._json_dict(), f, indent=2, ensure_ascii=False)

    def update_from_dict(self, data: dict[str, Any]) -> None:
        """Apply a {"minio": {...}, "whisper": {...}} payload."""
        minio = data.get("minio")
        if isinstance(minio, dict):
            incoming = StoreConfig.from_dict(minio)
            if incoming.secret_key == SECRET_MASK:
                incoming.secret_key = ""
            # blank fields keep the current value
            for attr in STORE_ENV:
                value = getattr(incoming, attr).strip()
                if value:
                    setattr(self.store, attr, value)

        whisper = data.get("whisper")
        if isinstance(whisper, dict):
            for attr, (camel, snake) in WHISPER_FIELDS.items():
                for key in (camel, snake):
                    if key in whisper and whisper[key] is not None:
                        current = getattr(self, attr)
                        value = whisper[key]
                        setattr(self, attr, bool(value) if isinstance(current, bool) else str(value))
                        break

        server = data.get("server")
        if isinstance(server, dict):
            self.host = server.get("host", self.host)
            self.port = int(server.get("port", self.port))

    def apply_env(self) -> None:
        """Let MINIO_* / WHISPER_* / FFMPEG_BINARY environment values win."""
        for attr, name in STORE_ENV.items():
            value = env_value(name)
            if value:
                setattr(self.store, attr, value)
        for attr, name in WHISPER_ENV.items():
            value = env_value(name)
            if value:
                setattr(self, attr, value)

    @classmethod
    def load(cls, config_path: Optional[Path] = None, use_env: bool = True) -> "Settings":
        """Load settings from config file.

        A missing, empty or unreadable file yields defaults.
        """
        settings = cls()
        if config_path:
            settings.config_path = config_path

        if settings.config_path.exists():
            try:
                with open(settings.config_path, encoding="utf-8") as f:
                    raw = f.read().strip()
                data = json.loads(raw) if raw else {}
            except (json.JSONDecodeError, OSError):
                data = {}
            if isinstance(data, dict):
                settings.update_from_dict(data)

        if use_env:
            settings.apply_env()
        return settings


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.load()
    return _settings


def reset_settings() -> None:
    """Drop the cached instance so the next get_settings() reloads from disk."""
    global _settings
    _settings = None
