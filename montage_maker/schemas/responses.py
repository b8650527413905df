"""
Response schemas for the montage API.

Field names are serialized in camelCase to match the public JSON contract.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from montage_maker.services.job_registry import Job


class CamelModel(BaseModel):
    """Base model that serializes field names in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ErrorResponse(BaseModel):
    """Error body returned for every non-2xx response."""

    error: str = Field(..., description="Human-readable error message")


class JobSubmitResponse(CamelModel):
    """Response after submitting a montage job."""

    job_id: str
    status: str


class MontageData(CamelModel):
    """Echo of the parameters a job was created with."""

    video_urls: list[str]
    interval: float
    montage_length: float
    resolution: str
    overlay_text: Optional[str] = None
    font_size: Optional[int] = None
    custom_filename: Optional[str] = None


class JobStatusResponse(CamelModel):
    """Snapshot of a montage job."""

    id: str
    type: str
    status: str
    progress: int
    current_step: str
    clips_needed: int
    clips_downloaded: int
    created_at: datetime
    updated_at: datetime
    completed_at: Optional[datetime] = None
    data: MontageData
    error: Optional[str] = None
    download_url: Optional[str] = None
    output_file: Optional[str] = None

    @classmethod
    def from_job(cls, job: Job) -> "JobStatusResponse":
        params = job.params
        return cls(
            id=job.id,
            type=job.type,
            status=job.status.value,
            progress=job.progress,
            current_step=job.current_step,
            clips_needed=job.clips_needed,
            clips_downloaded=job.clips_downloaded,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            data=MontageData(
                video_urls=params.video_urls,
                interval=params.interval,
                montage_length=params.montage_length,
                resolution=params.resolution,
                overlay_text=params.overlay_text,
                font_size=params.font_size,
                custom_filename=params.custom_filename,
            ),
            error=job.error,
            download_url=job.download_url,
            output_file=job.output_file,
        )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    timestamp: str = Field(..., description="Current server time (ISO 8601)")
    message: str = Field(..., description="Human-readable status message")


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool = Field(..., description="Whether jobs can currently succeed")
    tools: dict[str, bool] = Field(..., description="Availability of each external tool")
    active_jobs: int = Field(..., description="Jobs queued or processing")
