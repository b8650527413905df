"""
Health check endpoints for the montage backend.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Request

from montage_maker.schemas.responses import HealthResponse, ReadinessResponse
from montage_maker.services.media_tools import MediaTools

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Basic health check endpoint.

    Returns 200 if the service is running.
    """
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        message="Montage Maker Backend is running",
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check(request: Request):
    """
    Readiness check endpoint.

    Reports whether yt-dlp and FFmpeg can be resolved, i.e. whether newly
    submitted jobs can get past the dependency check.
    """
    media_tools = getattr(request.app.state, "media_tools", None) or MediaTools()
    registry = getattr(request.app.state, "job_registry", None)
    jobs = registry.list_jobs() if registry is not None else []

    settings = media_tools.settings
    tools = {
        settings.ytdlp_path: media_tools.tool_available(settings.ytdlp_path),
        settings.ffmpeg_path: media_tools.tool_available(settings.ffmpeg_path),
    }

    return ReadinessResponse(
        ready=all(tools.values()),
        tools=tools,
        active_jobs=sum(1 for job in jobs if not job.is_terminal),
    )
