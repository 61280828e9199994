"""Job tracking for background transcription runs.

The registry is the only state shared between the pipeline task and the
callers polling it. Every read and write goes through one lock, held only
for the dictionary update itself.
"""

import copy
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional

from ..time_utils import format_local_iso, utc_now


DEFAULT_RETENTION = timedelta(hours=24)


class JobState(str, Enum):
    """Job state enum."""
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class JobNotFoundError(KeyError):
    """No job with the given id (never created, or already evicted)."""


@dataclass
class JobStatus:
    """Progress of one transcription job."""
    id: str
    meeting_id: str = ""
    state: JobState = JobState.RUNNING
    completed: int = 0
    total: int = 0
    output_path: Optional[str] = None
    error: Optional[str] = None
    log: str = ""

    created_at: datetime = field(default_factory=utc_now)
    finished_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.state != JobState.RUNNING

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "id": self.id,
            "meetingId": self.meeting_id,
            "state": self.state.value,
            "completed": self.completed,
            "total": self.total,
            "outputPath": self.output_path,
            "error": self.error,
            "log": self.log,
            "createdAt": format_local_iso(self.created_at),
            "finishedAt": format_local_iso(self.finished_at),
        }


class JobRegistry:
    """Process-wide map of job id to JobStatus."""

    def __init__(self, retention: timedelta = DEFAULT_RETENTION):
        self.retention = retention
        self._jobs: dict[str, JobStatus] = {}
        self._lock = threading.Lock()

    def create(self, meeting_id: str = "") -> str:
        """Register a new running job and return its id."""
        self.prune()
        job_id = str(uuid.uuid4())
        with self._lock:
            self._jobs[job_id] = JobStatus(id=job_id, meeting_id=meeting_id)
        return job_id

    def get(self, job_id: str) -> Optional[JobStatus]:
        """Return a snapshot of a job, or None if unknown."""
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.copy(job) if job else None

    def require(self, job_id: str) -> JobStatus:
        job = self.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list_jobs(self) -> list[JobStatus]:
        """List all jobs, most recent first."""
        with self._lock:
            jobs = [copy.copy(j) for j in self._jobs.values()]
        return sorted(jobs, key=lambda j: j.created_at, reverse=True)

    def append_log(self, job_id: str, line: str) -> None:
        """Append one line to a job's log; unknown ids are ignored."""
        with self._lock:
            job = self._jobs.get(job_id)
            if job:
                job.log += line + "\n"

    def update_progress(
        self,
        job_id: str,
        completed: Optional[int] = None,
        total: Optional[int] = None,
    ) -> None:
        """Update track counters. ``completed`` never goes backwards."""
        with self._lock:
            job = self._jobs.get(job_id)
            if not job:
                return
            if total is not None:
                job.total = total
            if completed is not None and completed > job.completed:
                job.completed = completed

    def mark_done(self, job_id: str, output_path: str) -> bool:
        """Finish a running job successfully.

        Returns:
            False if the job is unknown or already finished.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if not job or job.is_terminal:
                return False
            job.state = JobState.DONE
            job.completed = job.total
            job.output_path = output_path
            job.finished_at = utc_now()
            return True

    def mark_failed(self, job_id: str, error: str) -> bool:
        """Fail a running job.

        Returns:
            False if the job is unknown or already finished.
        """
        with self._lock:
            job = self._jobs.get(job_id)
            if not job or job.is_terminal:
                return False
            job.state = JobState.FAILED
            job.error = error
            job.finished_at = utc_now()
            return True

    def prune(self, now: Optional[datetime] = None) -> int:
        """Evict finished jobs older than the retention window.

        Returns:
            Number of jobs removed.
        """
        cutoff = (now or utc_now()) - self.retention
        with self._lock:
            expired = [
                job_id for job_id, job in self._jobs.items()
                if job.finished_at is not None and job.finished_at < cutoff
            ]
            for job_id in expired:
                del self._jobs[job_id]
        return len(expired)
