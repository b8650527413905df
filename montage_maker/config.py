"""
Configuration module using Pydantic Settings for environment variable management.

Only essential environment variables are exposed. Encoding and clip selection
settings are hardcoded for consistency and simplicity.
"""

import tempfile
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


# ============================================================
# RESOLUTION PRESETS
# ============================================================

DEFAULT_RESOLUTION = "720p"

RESOLUTION_PRESETS = {
    "480p": "854x480",
    "720p": "1280x720",
    "1080p": "1920x1080",
}


def get_resolution_dims(resolution: Optional[str]) -> str:
    """
    Map a symbolic resolution tag to a pixel dimension string.

    Unknown or missing tags fall back to the 720p dimensions.

    Args:
        resolution: One of the RESOLUTION_PRESETS keys (e.g. "1080p")

    Returns:
        Dimension string in WIDTHxHEIGHT form
    """
    return RESOLUTION_PRESETS.get(resolution or "", RESOLUTION_PRESETS[DEFAULT_RESOLUTION])


def get_available_resolutions() -> list[dict]:
    """List resolution presets with their dimensions."""
    return [
        {"id": tag, "dimensions": dims, "default": tag == DEFAULT_RESOLUTION}
        for tag, dims in RESOLUTION_PRESETS.items()
    ]


class Settings(BaseSettings):
    """
    Application settings.

    Only essential configuration is loaded from environment variables.
    All encoding settings are hardcoded for consistency.
    """

    # ============================================================
    # ENVIRONMENT VARIABLES (minimal set)
    # ============================================================

    # Application
    app_name: str = "montage-maker"
    debug: bool = False
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    # Performance tuning
    max_concurrent_jobs: int = 4  # Pipelines allowed to run at once

    # Job retention (unset = jobs and workspaces live for the whole process)
    job_ttl_seconds: Optional[int] = None
    janitor_interval_seconds: int = 300

    # Filesystem and tools
    temp_directory: str = tempfile.gettempdir()
    ytdlp_path: str = "yt-dlp"
    ffmpeg_path: str = "ffmpeg"

    # ============================================================
    # HARDCODED SETTINGS (not configurable via env vars)
    # ============================================================

    @property
    def workspace_prefix(self) -> str:
        return "montage-"

    @property
    def clip_format_selector(self) -> str:
        return "best[height<=720]"

    @property
    def ffmpeg_preset(self) -> str:
        return "fast"

    @property
    def ffmpeg_crf(self) -> int:
        return 23

    @property
    def default_font_size(self) -> int:
        return 48

    @property
    def overlay_font_color(self) -> str:
        return "white"

    @property
    def default_output_name(self) -> str:
        return "montage"

    @property
    def output_version_tag(self) -> str:
        return "v01"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
