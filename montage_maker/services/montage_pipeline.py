"""
Montage Pipeline - Orchestrates one montage job from request to finished video.

Stages (progress milestones in brackets):
1. Dependency check - yt-dlp and FFmpeg must be resolvable [10]
2. Workspace allocation and planning [20]
3. Clip acquisition - probe + random-offset extraction per clip [20 -> 60]
4. Manifest assembly - FFmpeg concat list [70]
5. Encode - scale and optional text overlay [90]
6. Publish - record output path and download URL [100]

A failing clip is logged and skipped. Any other failure moves the job to
FAILED with the error message, leaving progress where it was.
"""

import asyncio
import logging
import math
import os
import random
import re
from dataclasses import dataclass
from typing import Optional

from montage_maker.config import Settings, get_resolution_dims, get_settings
from montage_maker.services.job_registry import Job, JobRegistry, MontageParams
from montage_maker.services.media_tools import MediaToolError, MediaTools, parse_duration
from montage_maker.services.workspace import WorkspaceManager

logger = logging.getLogger(__name__)


MANIFEST_FILENAME = "clip_list.txt"

PROGRESS_STARTED = 10
PROGRESS_WORKSPACE_READY = 20
PROGRESS_CLIPS_DONE = 60
PROGRESS_MANIFEST_WRITTEN = 70
PROGRESS_ENCODED = 90


class MontageError(Exception):
    """Exception raised when a montage cannot be produced."""
    pass


@dataclass
class Clip:
    """A downloaded sub-segment of a source video."""

    source_url: str
    start_seconds: int
    duration_seconds: float
    path: str


def calculate_clips_needed(montage_length: float, interval: float) -> int:
    """Number of whole intervals that fit in the requested montage length."""
    if interval <= 0 or montage_length <= 0:
        return 0
    return int(math.floor(montage_length / interval))


def build_output_filename(custom_filename: Optional[str], settings: Optional[Settings] = None) -> str:
    """
    Build the montage file name, e.g. ``my_trip_v01.mp4``.

    The custom name is reduced to a safe base name; an empty result falls
    back to the default output name.
    """
    settings = settings or get_settings()
    base = re.sub(r"[^A-Za-z0-9._-]+", "_", custom_filename or "").strip("._")
    if base.lower().endswith(".mp4"):
        base = base[:-4]
    return f"{base or settings.default_output_name}_{settings.output_version_tag}.mp4"


def download_url_for(job_id: str) -> str:
    return f"/api/download/{job_id}"


def write_manifest(clips: list[Clip], manifest_path: str) -> None:
    """Write an FFmpeg concat demuxer list, one clip per line, in order."""
    lines = []
    for clip in clips:
        escaped = clip.path.replace("'", "'\\''")
        lines.append(f"file '{escaped}'")

    with open(manifest_path, "w", encoding="utf-8") as f:
        f.write("\n".join(lines))


class MontagePipeline:
    """
    Runs the montage workflow for a single job, reporting every step to the
    job registry.
    """

    def __init__(
        self,
        registry: JobRegistry,
        media_tools: Optional[MediaTools] = None,
        workspace_manager: Optional[WorkspaceManager] = None,
        rng: Optional[random.Random] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.registry = registry
        self.media_tools = media_tools or MediaTools(self.settings)
        self.workspace_manager = workspace_manager or WorkspaceManager(self.settings)
        self.rng = rng or random.Random()

    async def run(self, job_id: str) -> Optional[Job]:
        """
        Process a queued job to completion or failure.

        Args:
            job_id: ID of a job previously created in the registry

        Returns:
            Final snapshot of the job, or None if the job is unknown
        """
        job = self.registry.get(job_id)
        if job is None:
            logger.warning(f"Job {job_id} not found, nothing to process")
            return None

        params = job.params
        logger.info(f"Starting montage job: {job_id}")
        logger.info(
            f"Sources: {len(params.video_urls)} URL(s), interval: {params.interval}s, "
            f"length: {params.montage_length}s, resolution: {params.resolution}"
        )

        try:
            # Step 1: Dependency check
            missing = self.media_tools.missing_tools()
            if missing:
                error = (
                    f"Missing dependencies: {', '.join(missing)} "
                    "(FFmpeg and yt-dlp are required)"
                )
                logger.error(f"Job {job_id}: {error}")
                return self.registry.update(job_id, lambda j: j.fail(error))

            self.registry.update(
                job_id, lambda j: j.start(PROGRESS_STARTED, "Preparing workspace")
            )

            # Step 2: Workspace and plan
            loop = asyncio.get_event_loop()
            workspace = await loop.run_in_executor(None, self.workspace_manager.create)
            resolution_dims = get_resolution_dims(params.resolution)
            clips_needed = calculate_clips_needed(params.montage_length, params.interval)
            logger.info(
                f"Job {job_id}: workspace {workspace}, {clips_needed} clips needed, "
                f"target {resolution_dims}"
            )

            def record_plan(j: Job) -> None:
                j.workspace = workspace
                j.clips_needed = clips_needed
                j.advance(PROGRESS_WORKSPACE_READY, "Downloading clips")

            self.registry.update(job_id, record_plan)

            # Step 3: Clips
            clips = await self._download_clips(job_id, params, workspace, clips_needed)
            logger.info(f"Job {job_id}: {len(clips)}/{clips_needed} clips downloaded")
            self.registry.update(
                job_id, lambda j: j.advance(PROGRESS_CLIPS_DONE, "Building clip list")
            )

            # Step 4: Manifest
            manifest_path = os.path.join(workspace, MANIFEST_FILENAME)
            await loop.run_in_executor(None, write_manifest, clips, manifest_path)
            self.registry.update(
                job_id, lambda j: j.advance(PROGRESS_MANIFEST_WRITTEN, "Encoding montage")
            )

            # Step 5: Encode
            if not clips:
                raise MontageError("No clips were downloaded; nothing to encode")

            output_file = os.path.join(
                workspace, build_output_filename(params.custom_filename, self.settings)
            )
            await self.media_tools.encode(
                manifest_path=manifest_path,
                dest_path=output_file,
                resolution_dims=resolution_dims,
                overlay_text=params.overlay_text,
                font_size=params.font_size or self.settings.default_font_size,
            )
            self.registry.update(
                job_id, lambda j: j.advance(PROGRESS_ENCODED, "Publishing montage")
            )

            # Step 6: Publish
            download_url = download_url_for(job_id)
            final = self.registry.update(
                job_id, lambda j: j.complete(output_file, download_url)
            )
            logger.info(f"Job {job_id}: montage ready at {output_file}")
            return final

        except Exception as e:
            logger.exception(f"Job {job_id} failed: {e}")
            error = str(e) or e.__class__.__name__

            def mark_failed(j: Job) -> None:
                if not j.is_terminal:
                    j.fail(error)

            return self.registry.update(job_id, mark_failed)

    async def _download_clips(
        self,
        job_id: str,
        params: MontageParams,
        workspace: str,
        clips_needed: int,
    ) -> list[Clip]:
        """Download clips one at a time, skipping any that fail."""
        clips: list[Clip] = []
        interval = params.interval

        for i in range(clips_needed):
            url = params.video_urls[0]
            clip_path = os.path.join(workspace, f"clip_{i + 1:02d}.mp4")

            try:
                clip = await self._download_clip(url, interval, clip_path)
                clips.append(clip)
                logger.info(
                    f"Job {job_id}: clip {i + 1}/{clips_needed} from {clip.start_seconds}s"
                )
            except Exception as e:
                logger.warning(f"Job {job_id}: failed to download clip {i + 1}: {e}")

            progress = PROGRESS_WORKSPACE_READY + (
                (PROGRESS_CLIPS_DONE - PROGRESS_WORKSPACE_READY) * (i + 1) // clips_needed
            )
            downloaded = len(clips)

            def record_attempt(j: Job) -> None:
                j.clips_downloaded = downloaded
                j.advance(progress)

            self.registry.update(job_id, record_attempt)

        return clips

    async def _download_clip(self, url: str, interval: float, clip_path: str) -> Clip:
        duration = await self.media_tools.probe_duration(url)
        duration_seconds = parse_duration(duration)
        max_start = max(0, math.floor(duration_seconds - interval))
        start = self.rng.randint(0, max_start)

        await self.media_tools.extract_clip(url, start, interval, clip_path)

        if not os.path.isfile(clip_path):
            raise MediaToolError(f"Clip download completed but output file not found: {clip_path}")

        return Clip(
            source_url=url,
            start_seconds=start,
            duration_seconds=interval,
            path=clip_path,
        )
