"""
Job Registry - In-memory store of montage jobs.

The registry is the single source of truth for job status and progress.
Callers only ever receive copies of stored jobs; all changes go through
JobRegistry.update(), which applies a mutation to a private copy and swaps
it in atomically so readers never observe a half-applied change.
"""

import copy
import logging
import threading
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class JobStatus(str, Enum):
    """Status of a montage job."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


TERMINAL_STATUSES = {JobStatus.COMPLETED, JobStatus.FAILED}

ALLOWED_TRANSITIONS = {
    JobStatus.QUEUED: {JobStatus.PROCESSING, JobStatus.FAILED},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class InvalidJobTransition(Exception):
    """Raised when a job is moved to a status it cannot reach."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class MontageParams:
    """Request parameters of a montage job."""

    video_urls: list[str]
    interval: float
    montage_length: float
    resolution: str = "720p"
    overlay_text: Optional[str] = None
    font_size: Optional[int] = None
    custom_filename: Optional[str] = None


@dataclass
class Job:
    """Lifecycle record of one montage request."""

    id: str
    params: MontageParams
    type: str = "montage"
    status: JobStatus = JobStatus.QUEUED
    progress: int = 0
    current_step: str = "Queued for processing"
    clips_needed: int = 0
    clips_downloaded: int = 0
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None
    output_file: Optional[str] = None
    download_url: Optional[str] = None
    workspace: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def _transition(self, status: JobStatus) -> None:
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidJobTransition(
                f"Job {self.id} cannot move from {self.status.value} to {status.value}"
            )
        self.status = status
        self.updated_at = utcnow()

    def advance(self, progress: int, step: Optional[str] = None) -> None:
        """Raise progress (never lowers it) and optionally relabel the step."""
        self.progress = max(self.progress, min(int(progress), 99))
        if step:
            self.current_step = step
        self.updated_at = utcnow()

    def start(self, progress: int, step: str) -> None:
        self._transition(JobStatus.PROCESSING)
        self.advance(progress, step)

    def complete(self, output_file: str, download_url: str) -> None:
        self._transition(JobStatus.COMPLETED)
        self.progress = 100
        self.current_step = "Completed"
        self.completed_at = self.updated_at
        self.output_file = output_file
        self.download_url = download_url

    def fail(self, error: str) -> None:
        self._transition(JobStatus.FAILED)
        self.current_step = "Failed"
        self.error = error or "Unknown error"


class JobRegistry:
    """
    Thread-safe mapping from job ID to Job.

    Jobs are never removed unless evict_finished() is called explicitly.
    """

    def __init__(self):
        self._jobs: dict[str, Job] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._jobs)

    def create(self, params: MontageParams) -> str:
        """
        Register a new queued job.

        Args:
            params: Request parameters for the montage

        Returns:
            The new job ID
        """
        with self._lock:
            job_id = str(uuid.uuid4())
            while job_id in self._jobs:
                job_id = str(uuid.uuid4())
            self._jobs[job_id] = Job(id=job_id, params=copy.deepcopy(params))

        logger.info(f"Job {job_id} created")
        return job_id

    def get(self, job_id: str) -> Optional[Job]:
        """Return a snapshot of the job, or None if it does not exist."""
        with self._lock:
            job = self._jobs.get(job_id)
            return copy.deepcopy(job) if job is not None else None

    def list_jobs(self) -> list[Job]:
        """Return snapshots of every job, oldest first."""
        with self._lock:
            jobs = [copy.deepcopy(job) for job in self._jobs.values()]
        return sorted(jobs, key=lambda j: j.created_at)

    def update(self, job_id: str, mutation: Callable[[Job], None]) -> Optional[Job]:
        """
        Apply a mutation to a job atomically.

        The mutation runs against a copy; the stored job is replaced only if
        the mutation returns without raising.

        Args:
            job_id: Job to change
            mutation: Callable that modifies the job in place

        Returns:
            Snapshot of the updated job, or None if the job does not exist
        """
        with self._lock:
            current = self._jobs.get(job_id)
            if current is None:
                logger.debug(f"Ignoring update for unknown job {job_id}")
                return None

            updated = copy.deepcopy(current)
            mutation(updated)
            self._jobs[job_id] = updated
            return copy.deepcopy(updated)

    def evict_finished(self, max_age_seconds: float) -> list[Job]:
        """
        Remove terminal jobs last updated more than max_age_seconds ago.

        Returns:
            The evicted jobs
        """
        now = utcnow()
        with self._lock:
            expired = [
                job_id
                for job_id, job in self._jobs.items()
                if job.is_terminal and (now - job.updated_at).total_seconds() > max_age_seconds
            ]
            evicted = [self._jobs.pop(job_id) for job_id in expired]

        if evicted:
            logger.info(f"Evicted {len(evicted)} finished jobs")
        return evicted
