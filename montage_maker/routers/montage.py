"""
Montage API Router - Endpoints for submitting, polling and downloading montage jobs.
"""

import asyncio
import logging
import os
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse

from montage_maker.schemas.requests import MontageRequest
from montage_maker.schemas.responses import ErrorResponse, JobStatusResponse, JobSubmitResponse
from montage_maker.services.job_registry import JobRegistry, JobStatus, MontageParams
from montage_maker.services.montage_pipeline import MontagePipeline, build_output_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Montage"])


# ============================================================================
# Dependencies
# ============================================================================


def get_job_registry(request: Request) -> JobRegistry:
    """Get the job registry from app state (initialized at startup)."""
    registry = getattr(request.app.state, "job_registry", None)
    if registry is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Job registry not initialized",
        )
    return registry


def get_montage_pipeline(
    request: Request,
    registry: JobRegistry = Depends(get_job_registry),
) -> MontagePipeline:
    """Build a pipeline wired to the shared registry and media tools."""
    return MontagePipeline(
        registry=registry,
        media_tools=getattr(request.app.state, "media_tools", None),
        workspace_manager=getattr(request.app.state, "workspace_manager", None),
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.post(
    "/generate-montage",
    response_model=JobSubmitResponse,
    responses={400: {"model": ErrorResponse}},
)
async def generate_montage(
    body: MontageRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    registry: JobRegistry = Depends(get_job_registry),
    pipeline: MontagePipeline = Depends(get_montage_pipeline),
) -> JobSubmitResponse:
    """
    Submit a new montage job.

    The job is processed asynchronously. Use GET /api/job-status/{job_id}
    to follow its progress.
    """
    video_urls = body.source_urls()
    if not video_urls:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one video URL is required",
        )

    if len(video_urls) > 1:
        logger.info(f"{len(video_urls)} URLs supplied; clips are taken from the first one only")

    job_id = registry.create(
        MontageParams(
            video_urls=video_urls,
            interval=body.interval,
            montage_length=body.montage_length,
            resolution=body.resolution,
            overlay_text=body.overlay_text,
            font_size=body.font_size,
            custom_filename=body.custom_filename,
        )
    )

    background_tasks.add_task(
        _process_job_background,
        pipeline,
        job_id,
        getattr(request.app.state, "job_semaphore", None),
    )
    logger.info(f"Job {job_id} queued for {video_urls[0][:100]}")

    return JobSubmitResponse(job_id=job_id, status=JobStatus.QUEUED.value)


@router.get(
    "/job-status/{job_id}",
    response_model=JobStatusResponse,
    response_model_exclude_none=True,
    responses={404: {"model": ErrorResponse}},
)
async def get_job_status(
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
) -> JobStatusResponse:
    """Get the current snapshot of a montage job."""
    job = registry.get(job_id)
    if job is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Job not found",
        )
    return JobStatusResponse.from_job(job)


@router.get(
    "/download/{job_id}",
    response_class=FileResponse,
    responses={404: {"model": ErrorResponse}},
)
async def download_montage(
    job_id: str,
    registry: JobRegistry = Depends(get_job_registry),
) -> FileResponse:
    """Stream the finished montage as a file attachment."""
    job = registry.get(job_id)
    if job is None or job.status != JobStatus.COMPLETED or not job.output_file:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )

    if not os.path.isfile(job.output_file):
        logger.warning(f"Job {job_id}: output missing on disk: {job.output_file}")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found on disk",
        )

    return FileResponse(
        job.output_file,
        media_type="video/mp4",
        filename=build_output_filename(job.params.custom_filename),
    )


# ============================================================================
# Background Processing
# ============================================================================


async def _process_job_background(
    pipeline: MontagePipeline,
    job_id: str,
    semaphore: Optional[asyncio.Semaphore] = None,
) -> None:
    """
    Process a montage job in the background with concurrency control.
    """
    if semaphore is None:
        await pipeline.run(job_id)
        return

    async with semaphore:
        await pipeline.run(job_id)
