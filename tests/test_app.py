"""
Tests for the HTTP API.
"""

import pytest
from fastapi.testclient import TestClient

from transcribe_tracks.store import ObjectStore
from transcribe_tracks.web import app as app_module
from transcribe_tracks.web.config import SECRET_MASK, Settings
from transcribe_tracks.web.jobs import JobRegistry

from .conftest import FakeS3Client


OBJECTS = {
    "2024-05-01/localWorld.r1-Hall/10-00-00/alice/10-00-03_a.ogg": b"a",
    "2024-05-01/localWorld.r1-Hall/10-00-00/bob/10-00-00_b.ogg": b"b",
    "2024-05-02/room/09-00-00/carol/09-00-00_c.ogg": b"c",
}


class FakePipeline:
    """Registers the job without running anything."""

    def __init__(self, settings, store, registry, temp_root=None):
        self.registry = registry

    def start(self, meeting_id):
        return self.registry.create(meeting_id)


@pytest.fixture
def fake_client() -> FakeS3Client:
    return FakeS3Client(OBJECTS)


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, settings: Settings, store: ObjectStore) -> TestClient:
    monkeypatch.setattr(app_module, "registry", JobRegistry())
    monkeypatch.setattr(app_module, "load_settings", lambda: settings)
    monkeypatch.setattr(app_module, "open_store", lambda s: store)
    monkeypatch.setattr(app_module, "TranscriptionPipeline", FakePipeline)
    return TestClient(app_module.app)


class TestDiscovery:
    """Tests for the listing endpoints."""

    def test_dates(self, client: TestClient) -> None:
        response = client.get("/api/dates")
        assert response.status_code == 200
        assert response.json() == {"dates": ["2024-05-01", "2024-05-02"]}

    def test_meetings(self, client: TestClient) -> None:
        response = client.get("/api/meetings", params={"date": "2024-05-01"})

        assert response.status_code == 200
        meetings = response.json()["meetings"]
        assert len(meetings) == 1
        assert meetings[0]["roomLabel"] == "Hall"
        assert meetings[0]["speakerCount"] == 2

    def test_store_error(self, client: TestClient, fake_client: FakeS3Client) -> None:
        fake_client.fail_with = "AccessDenied"

        response = client.get("/api/dates")
        assert response.status_code == 502
        assert "AccessDenied" in response.json()["detail"]

    def test_store_check(self, client: TestClient) -> None:
        assert client.get("/api/store/check").json() == {"status": "ok"}

    def test_incomplete_config(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(app_module, "load_settings", lambda: Settings())
        response = TestClient(app_module.app).get("/api/dates")

        assert response.status_code == 400
        assert response.json()["detail"] == "Object store config is incomplete"


class TestJobs:
    """Tests for starting and polling jobs."""

    def test_start_and_poll(self, client: TestClient) -> None:
        response = client.post("/api/transcribe", data={"meeting_id": "2024-05-01/localWorld.r1-Hall/10-00-00"})
        assert response.status_code == 200
        job_id = response.json()["job_id"]

        job = client.get(f"/api/jobs/{job_id}").json()
        assert job["state"] == "running"
        assert job["meetingId"] == "2024-05-01/localWorld.r1-Hall/10-00-00"

        jobs = client.get("/api/jobs").json()["jobs"]
        assert [j["id"] for j in jobs] == [job_id]

    def test_blank_meeting_id(self, client: TestClient) -> None:
        response = client.post("/api/transcribe", data={"meeting_id": " / "})
        assert response.status_code == 400

    def test_unknown_job(self, client: TestClient) -> None:
        response = client.get("/api/jobs/nope")
        assert response.status_code == 404
        assert response.json()["detail"] == "Job not found"


class TestSettingsApi:
    """Tests for reading and saving settings."""

    def test_save_then_read(self) -> None:
        client = TestClient(app_module.app)
        response = client.post("/api/settings", json={
            "minio": {"url": "http://minio:9000", "secretKey": "s3cr3t"},
            "whisper": {"includeTimestamps": True},
        })
        assert response.status_code == 200

        data = client.get("/api/settings").json()
        assert data["minio"]["url"] == "http://minio:9000"
        assert data["minio"]["secretKey"] == SECRET_MASK
        assert data["whisper"]["includeTimestamps"] is True

        client.post("/api/settings", json={"minio": {"secretKey": SECRET_MASK}})
        assert Settings.load().store.secret_key == "s3cr3t"

    def test_rejects_non_object(self) -> None:
        response = TestClient(app_module.app).post("/api/settings", json=[1, 2])
        assert response.status_code == 400
