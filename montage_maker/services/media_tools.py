"""
Media Tools - Thin wrappers around the yt-dlp and FFmpeg executables.

Every call runs the tool as a separate process in the default thread pool
executor so the event loop is never blocked, and raises MediaToolError when
the process cannot be started or exits non-zero.
"""

import asyncio
import logging
import shutil
import subprocess
from typing import Optional

from montage_maker.config import Settings, get_settings

logger = logging.getLogger(__name__)


# Characters with special meaning inside a drawtext value or a filtergraph
DRAWTEXT_SPECIAL_CHARS = ("\\", ":", "'", "%", ",", ";", "[", "]")


class MediaToolError(Exception):
    """Exception raised when an external media tool fails."""
    pass


def parse_duration(duration: str) -> int:
    """
    Convert a human-readable duration to whole seconds.

    Supports the forms printed by ``yt-dlp --get-duration``:
    ``H:MM:SS``, ``MM:SS`` and bare seconds. Fractional seconds are dropped.

    Args:
        duration: Duration string (e.g. "1:02:03")

    Returns:
        Duration in seconds

    Raises:
        ValueError: If the string is not a recognizable duration
    """
    parts = [p.strip() for p in duration.strip().split(":")]
    if not parts or len(parts) > 3 or any(not p for p in parts):
        raise ValueError(f"Unrecognized duration: {duration!r}")

    seconds = 0
    for part in parts:
        seconds = seconds * 60 + int(float(part))
    return seconds


def escape_drawtext(text: str) -> str:
    """Escape overlay text for use as an unquoted drawtext value."""
    escaped = text
    for char in DRAWTEXT_SPECIAL_CHARS:
        escaped = escaped.replace(char, "\\" + char)
    return escaped


class MediaTools:
    """
    Command contracts for the external media tools.

    - Duration probe: ``yt-dlp --get-duration``
    - Clip extraction: yt-dlp with FFmpeg as external downloader
    - Encoding: FFmpeg concat demuxer with scale (and optional drawtext)
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def tool_available(self, name: str) -> bool:
        """Check whether an executable can be resolved on PATH."""
        return shutil.which(name) is not None

    def missing_tools(self) -> list[str]:
        """Return the required tools that cannot be resolved."""
        required = [self.settings.ytdlp_path, self.settings.ffmpeg_path]
        return [tool for tool in required if not self.tool_available(tool)]

    async def probe_duration(self, url: str) -> str:
        """Return the duration string reported by yt-dlp for a video URL."""
        cmd = [self.settings.ytdlp_path, "--get-duration", url]
        stdout = await self._run_cmd(cmd)
        return stdout.strip()

    async def extract_clip(
        self,
        url: str,
        start_seconds: int,
        duration_seconds: float,
        dest_path: str,
    ) -> None:
        """Download a single sub-segment of a remote video to dest_path."""
        cmd = self.build_extract_command(url, start_seconds, duration_seconds, dest_path)
        await self._run_cmd(cmd)

    async def encode(
        self,
        manifest_path: str,
        dest_path: str,
        resolution_dims: str,
        overlay_text: Optional[str] = None,
        font_size: Optional[int] = None,
    ) -> None:
        """Concatenate the clips listed in the manifest into a single video."""
        cmd = self.build_encode_command(
            manifest_path, dest_path, resolution_dims, overlay_text, font_size
        )
        await self._run_cmd(cmd)

    def build_extract_command(
        self,
        url: str,
        start_seconds: int,
        duration_seconds: float,
        dest_path: str,
    ) -> list[str]:
        return [
            self.settings.ytdlp_path,
            "-f", self.settings.clip_format_selector,
            "--external-downloader", "ffmpeg",
            "--external-downloader-args", f"ffmpeg_i:-ss {start_seconds} -t {duration_seconds}",
            "-o", dest_path,
            url,
        ]

    def build_encode_command(
        self,
        manifest_path: str,
        dest_path: str,
        resolution_dims: str,
        overlay_text: Optional[str] = None,
        font_size: Optional[int] = None,
    ) -> list[str]:
        """
        Build the FFmpeg command line for the final montage.

        Args:
            manifest_path: Concat demuxer list file
            dest_path: Output video path
            resolution_dims: Target size as WIDTHxHEIGHT
            overlay_text: Optional text drawn centered over the video
            font_size: Overlay font size (defaults to the configured size)

        Returns:
            Argument list suitable for subprocess.run
        """
        video_filter = self.build_video_filter(resolution_dims, overlay_text, font_size)
        return [
            self.settings.ffmpeg_path,
            "-f", "concat",
            "-safe", "0",
            "-i", manifest_path,
            "-vf", video_filter,
            "-c:v", "libx264",
            "-c:a", "aac",
            "-preset", self.settings.ffmpeg_preset,
            "-crf", str(self.settings.ffmpeg_crf),
            "-y",
            dest_path,
        ]

    def build_video_filter(
        self,
        resolution_dims: str,
        overlay_text: Optional[str] = None,
        font_size: Optional[int] = None,
    ) -> str:
        width, _, height = resolution_dims.partition("x")
        filters = [f"scale={width}:{height}"]

        if overlay_text:
            size = font_size or self.settings.default_font_size
            filters.append(
                f"drawtext=text={escape_drawtext(overlay_text)}"
                f":fontsize={size}"
                f":fontcolor={self.settings.overlay_font_color}"
                ":x=(w-text_w)/2:y=(h-text_h)/2"
            )

        return ",".join(filters)

    async def _run_cmd(self, cmd: list[str]) -> str:
        """Run a command in the thread pool and return its stdout."""
        logger.debug(f"Running: {' '.join(cmd[:10])}...")

        loop = asyncio.get_event_loop()
        try:
            result = await loop.run_in_executor(
                None,
                lambda: subprocess.run(cmd, capture_output=True)
            )
        except OSError as e:
            raise MediaToolError(f"{cmd[0]} could not be started: {e}")

        if result.returncode != 0:
            error_msg = result.stderr.decode(errors="replace")[-1000:] if result.stderr else "Unknown error"
            raise MediaToolError(f"{cmd[0]} exited with code {result.returncode}: {error_msg}")

        return result.stdout.decode(errors="replace") if result.stdout else ""
