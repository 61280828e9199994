"""FastAPI application exposing meeting discovery and transcription jobs."""

import asyncio
from typing import Optional

from fastapi import FastAPI, Form, HTTPException, Request

from ..env import load_transcribe_env
from ..errors import ConfigError, StoreError
from ..meetings import list_dates, list_meetings
from ..paths import default_model_root, default_output_dir, find_ffmpeg, find_whisper_binary
from ..pipeline import TranscriptionPipeline
from ..store import ObjectStore
from .config import Settings, get_settings, reset_settings
from .jobs import JobRegistry

# Initialize app
app = FastAPI(title="Transcribe Tracks", description="Merge per-speaker meeting tracks into one transcript")

# Global instances (initialized on startup)
registry: Optional[JobRegistry] = None


@app.on_event("startup")
async def startup():
    """Load the environment and create the job registry."""
    global registry
    load_transcribe_env()
    if registry is None:
        registry = JobRegistry()


def load_settings() -> Settings:
    """Fresh settings snapshot for one operation."""
    return Settings.load()


def open_store(settings: Settings) -> ObjectStore:
    """Open the configured bucket; incomplete config is a 400."""
    try:
        return ObjectStore(settings.store)
    except ConfigError as e:
        raise HTTPException(status_code=400, detail=str(e))


def get_registry() -> JobRegistry:
    global registry
    if registry is None:
        registry = JobRegistry()
    return registry


# ============== Discovery ==============

@app.get("/api/dates")
async def api_list_dates():
    """List recording dates in the bucket."""
    store = open_store(load_settings())
    try:
        dates = await asyncio.to_thread(list_dates, store)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"dates": dates}


@app.get("/api/meetings")
async def api_list_meetings(date: str):
    """List meetings recorded on a date, most recent first."""
    store = open_store(load_settings())
    try:
        meetings = await asyncio.to_thread(list_meetings, store, date)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"meetings": [m.to_dict() for m in meetings]}


@app.get("/api/store/check")
async def api_check_store():
    """Validate the stored endpoint and credentials."""
    store = open_store(load_settings())
    try:
        await asyncio.to_thread(store.check)
    except StoreError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {"status": "ok"}


# ============== Jobs ==============

@app.post("/api/transcribe")
async def start_transcription(meeting_id: str = Form(...)):
    """Start a background transcription job for a meeting."""
    meeting_id = meeting_id.strip().strip("/")
    if not meeting_id:
        raise HTTPException(status_code=400, detail="meeting_id is required")

    settings = load_settings()
    store = open_store(settings)
    pipeline = TranscriptionPipeline(settings, store, get_registry())
    job_id = pipeline.start(meeting_id)
    return {"job_id": job_id}


@app.get("/api/jobs")
async def list_jobs():
    """List all transcription jobs."""
    jobs = get_registry().list_jobs()
    return {"jobs": [j.to_dict() for j in jobs]}


@app.get("/api/jobs/{job_id}")
async def get_job(job_id: str):
    """Get job status."""
    job = get_registry().get(job_id)
    if not job:
        raise HTTPException(status_code=404, detail="Job not found")
    return job.to_dict()


# ============== Settings ==============

@app.get("/api/settings")
async def read_settings():
    """Return the saved settings (secret key masked)."""
    return load_settings().to_public_dict()


@app.post("/api/settings")
async def update_settings(request: Request):
    """Update and save settings from a {"minio": ..., "whisper": ...} body."""
    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Body must be JSON")
    if not isinstance(payload, dict):
        raise HTTPException(status_code=400, detail="Body must be a JSON object")

    # Saved values only; environment overrides are not written back
    settings = Settings.load(use_env=False)
    try:
        settings.update_from_dict(payload)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid settings: {e}")
    settings.save()
    reset_settings()
    return {"status": "saved"}


@app.get("/api/defaults")
async def read_defaults():
    """Where things go, or are looked for, when left unconfigured."""
    whisper = find_whisper_binary()
    ffmpeg = find_ffmpeg()
    return {
        "outputDir": str(default_output_dir()),
        "whisperBinary": str(whisper) if whisper else None,
        "whisperModelRoot": str(default_model_root()),
        "ffmpegBinary": str(ffmpeg) if ffmpeg else None,
    }


def run_server(host: Optional[str] = None, port: Optional[int] = None):
    """Run the web server."""
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=host or settings.host, port=port or settings.port)
