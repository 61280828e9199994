"""
Pytest configuration and shared fixtures.

Provides an in-memory S3 client that paginates like list_objects_v2, and
keeps every test away from the real home directory and MINIO_*/WHISPER_*
environment.
"""

import io
import sys
from pathlib import Path
from typing import Optional

import pytest
from botocore.exceptions import ClientError

# Add project root to Python path so the package imports without installing
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from transcribe_tracks.store import ObjectStore, StoreConfig  # noqa: E402
from transcribe_tracks.web.config import Settings  # noqa: E402


ENV_VARS = [
    "MINIO_URL",
    "MINIO_ACCESS_KEY",
    "MINIO_SECRET_KEY",
    "MINIO_BUCKET",
    "MINIO_REGION",
    "WHISPER_BINARY",
    "WHISPER_MODEL",
    "FFMPEG_BINARY",
    "TRANSCRIPT_OUTPUT_DIR",
    "TRANSCRIBE_TRACKS_ENV_FILE",
]


class FakeS3Client:
    """Just enough of boto3's S3 client for listing and downloads."""

    def __init__(
        self,
        objects: Optional[dict] = None,
        page_size: int = 2,
        supports_delimiter: bool = True,
    ):
        self.objects = dict(objects or {})
        self.page_size = page_size
        self.supports_delimiter = supports_delimiter
        self.list_calls: list[dict] = []
        self.fail_with: Optional[str] = None

    def _error(self, operation: str, code: Optional[str] = None) -> ClientError:
        return ClientError(
            {"Error": {"Code": code or self.fail_with, "Message": "simulated failure"}},
            operation,
        )

    def list_objects_v2(self, **params):
        self.list_calls.append(params)
        if self.fail_with:
            raise self._error("ListObjectsV2")

        prefix = params.get("Prefix", "")
        delimiter = params.get("Delimiter") if self.supports_delimiter else None
        keys = sorted(k for k in self.objects if k.startswith(prefix))

        entries = []
        seen_prefixes = set()
        for key in keys:
            rest = key[len(prefix):]
            if delimiter and delimiter in rest:
                common = prefix + rest.split(delimiter, 1)[0] + delimiter
                if common not in seen_prefixes:
                    seen_prefixes.add(common)
                    entries.append(("prefix", common))
            else:
                entries.append(("key", key))

        limit = params.get("MaxKeys", self.page_size)
        start = int(params.get("ContinuationToken", "0"))
        page = entries[start:start + limit]
        truncated = start + limit < len(entries)

        response = {
            "IsTruncated": truncated,
            "Contents": [{"Key": v} for kind, v in page if kind == "key"],
            "CommonPrefixes": [{"Prefix": v} for kind, v in page if kind == "prefix"],
        }
        if truncated:
            response["NextContinuationToken"] = str(start + limit)
        return response

    def get_object(self, Bucket, Key):
        if self.fail_with:
            raise self._error("GetObject")
        if Key not in self.objects:
            raise self._error("GetObject", "NoSuchKey")
        return {"Body": io.BytesIO(self.objects[Key])}


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point the data dir at tmp_path and clear config environment variables."""
    home = tmp_path / "home"
    monkeypatch.setenv("TRANSCRIBE_TRACKS_HOME", str(home))
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return home


@pytest.fixture
def store_config() -> StoreConfig:
    return StoreConfig(
        url="http://minio.local:9000",
        access_key="access",
        secret_key="secret",
        bucket="recordings",
    )


@pytest.fixture
def fake_client() -> FakeS3Client:
    return FakeS3Client()


@pytest.fixture
def store(store_config: StoreConfig, fake_client: FakeS3Client) -> ObjectStore:
    return ObjectStore(store_config, client=fake_client)


@pytest.fixture
def settings(tmp_path: Path, store_config: StoreConfig) -> Settings:
    """Settings rooted in tmp_path, with no saved config file."""
    return Settings(
        data_dir=tmp_path / "data",
        config_path=tmp_path / "data" / "config.json",
        store=store_config,
        output_dir=str(tmp_path / "out"),
    )
