"""
Services for the montage backend.

Includes:
- Job registry (in-memory job state)
- Media tools (yt-dlp / FFmpeg process wrappers)
- Workspace manager and job janitor
- Montage pipeline (the job state machine)
"""

from montage_maker.services.job_janitor import run_janitor, sweep_finished_jobs
from montage_maker.services.job_registry import Job, JobRegistry, JobStatus, MontageParams
from montage_maker.services.media_tools import MediaToolError, MediaTools, parse_duration
from montage_maker.services.montage_pipeline import MontageError, MontagePipeline
from montage_maker.services.workspace import WorkspaceManager

__all__ = [
    # Jobs
    "Job",
    "JobRegistry",
    "JobStatus",
    "MontageParams",
    "run_janitor",
    "sweep_finished_jobs",
    # Media
    "MediaTools",
    "MediaToolError",
    "parse_duration",
    "WorkspaceManager",
    # Pipeline
    "MontagePipeline",
    "MontageError",
]
