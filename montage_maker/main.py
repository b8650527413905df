"""
FastAPI application entry point for Montage Maker.

Montage Maker turns video URLs into a short compilation video:
1. Random sub-clips are cut from the source video (yt-dlp + FFmpeg)
2. Clips are concatenated, scaled and optionally captioned (FFmpeg)
3. Progress is tracked as an asynchronous job with polling and download endpoints
"""

import asyncio
import logging
import os
import shutil
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from montage_maker import __version__
from montage_maker.config import get_available_resolutions, get_settings
from montage_maker.routers import health, montage
from montage_maker.services.job_janitor import run_janitor
from montage_maker.services.job_registry import JobRegistry
from montage_maker.services.media_tools import MediaTools
from montage_maker.services.workspace import WorkspaceManager

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Lifespan context manager for startup and shutdown events.
    Creates the shared job registry and tool wrappers on startup.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name}...")

    # Create temp directory
    os.makedirs(settings.temp_directory, exist_ok=True)
    logger.info(f"Temp directory: {settings.temp_directory}")

    # Limits how many montage pipelines can run simultaneously
    job_semaphore = asyncio.Semaphore(settings.max_concurrent_jobs)
    logger.info(f"Max concurrent jobs: {settings.max_concurrent_jobs}")

    # Store in app state for dependency injection (tests may pre-populate these)
    if getattr(app.state, "job_registry", None) is None:
        app.state.job_registry = JobRegistry()
    if getattr(app.state, "media_tools", None) is None:
        app.state.media_tools = MediaTools(settings)
    if getattr(app.state, "workspace_manager", None) is None:
        app.state.workspace_manager = WorkspaceManager(settings)
    app.state.job_semaphore = job_semaphore

    # Verify external tools
    _verify_external_tools(settings.ytdlp_path, settings.ffmpeg_path)

    janitor_task: Optional[asyncio.Task] = None
    if settings.job_ttl_seconds:
        janitor_task = asyncio.create_task(
            run_janitor(
                app.state.job_registry,
                app.state.workspace_manager,
                settings.job_ttl_seconds,
                settings.janitor_interval_seconds,
            )
        )

    logger.info("Montage Maker ready to accept requests.")

    yield

    # Cleanup on shutdown
    logger.info("Shutting down Montage Maker...")
    if janitor_task is not None:
        janitor_task.cancel()
        try:
            await janitor_task
        except asyncio.CancelledError:
            pass
    app.state.job_semaphore = None
    logger.info("Shutdown complete")


def _verify_external_tools(ytdlp_path: str, ffmpeg_path: str) -> None:
    """Log whether the required external tools are available."""
    tools = {
        ytdlp_path: "yt-dlp for duration probing and clip downloads",
        ffmpeg_path: "FFmpeg for clip extraction and encoding",
    }

    for tool, description in tools.items():
        if shutil.which(tool):
            logger.info(f"✓ {description} available")
        else:
            logger.warning(f"✗ {description} NOT FOUND - montage jobs will fail")


# Create FastAPI application
app = FastAPI(
    title="Montage Maker",
    description="""
Montage Maker - builds short compilation videos from randomized clips.

## Usage

1. Submit a job: `POST /api/generate-montage`
2. Poll status: `GET /api/job-status/{job_id}`
3. Download the result: `GET /api/download/{job_id}`
    """,
    version=__version__,
    debug=get_settings().debug,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Render HTTP errors as {"error": message}."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render request validation failures as 400 {"error": message}."""
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "; ".join(messages) or "Invalid request"},
    )


# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(montage.router)


@app.get("/")
async def root():
    """Root endpoint with basic info."""
    return {
        "message": "Montage Maker Backend API",
        "version": __version__,
        "endpoints": [
            "POST /api/generate-montage",
            "GET /api/job-status/:jobId",
            "GET /api/download/:jobId",
        ],
        "resolutions": get_available_resolutions(),
    }


def run() -> None:
    """Serve the application with uvicorn on the configured port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    run()
