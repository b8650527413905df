"""
Pytest configuration and fixtures.
"""

import os
import random
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from montage_maker.config import Settings
from montage_maker.services.job_registry import JobRegistry, MontageParams
from montage_maker.services.media_tools import MediaToolError, MediaTools
from montage_maker.services.montage_pipeline import MontagePipeline
from montage_maker.services.workspace import WorkspaceManager


class FakeMediaTools(MediaTools):
    """
    MediaTools stand-in that never spawns processes.

    Clip and montage files are written as small placeholder files so the
    pipeline's on-disk checks behave as with the real tools.
    """

    def __init__(self, settings: Settings, duration: str = "2:00"):
        super().__init__(settings)
        self.duration = duration
        self.available = {settings.ytdlp_path, settings.ffmpeg_path}
        self.fail_probe_calls: set[int] = set()
        self.fail_extract_calls: set[int] = set()
        self.encode_error: str | None = None
        self.probe_calls: list[str] = []
        self.extract_calls: list[dict] = []
        self.encode_calls: list[dict] = []

    def tool_available(self, name: str) -> bool:
        return name in self.available

    async def probe_duration(self, url: str) -> str:
        self.probe_calls.append(url)
        if len(self.probe_calls) in self.fail_probe_calls:
            raise MediaToolError("yt-dlp exited with code 1: ERROR: Video unavailable")
        return self.duration

    async def extract_clip(self, url, start_seconds, duration_seconds, dest_path) -> None:
        self.extract_calls.append({
            "url": url,
            "start": start_seconds,
            "duration": duration_seconds,
            "dest": dest_path,
        })
        if len(self.extract_calls) in self.fail_extract_calls:
            raise MediaToolError("yt-dlp exited with code 1: ERROR: unable to download")
        with open(dest_path, "wb") as f:
            f.write(b"clip")

    async def encode(self, manifest_path, dest_path, resolution_dims, overlay_text=None, font_size=None) -> None:
        with open(manifest_path, encoding="utf-8") as f:
            manifest = f.read()
        self.encode_calls.append({
            "manifest": manifest,
            "dest": dest_path,
            "dims": resolution_dims,
            "overlay_text": overlay_text,
            "font_size": font_size,
            "filter": self.build_video_filter(resolution_dims, overlay_text, font_size),
        })
        if self.encode_error:
            raise MediaToolError(self.encode_error)
        with open(dest_path, "wb") as f:
            f.write(b"montage")


@pytest.fixture
def settings(tmp_path):
    """Settings with workspaces under a per-test temp directory."""
    return Settings(temp_directory=str(tmp_path / "work"), job_ttl_seconds=None)


@pytest.fixture
def registry():
    return JobRegistry()


@pytest.fixture
def media_tools(settings):
    return FakeMediaTools(settings)


@pytest.fixture
def workspace_manager(settings):
    return WorkspaceManager(settings)


@pytest.fixture
def pipeline(registry, media_tools, workspace_manager, settings):
    return MontagePipeline(
        registry=registry,
        media_tools=media_tools,
        workspace_manager=workspace_manager,
        rng=random.Random(42),
        settings=settings,
    )


@pytest.fixture
def make_params():
    """Factory for montage parameters with sensible defaults."""

    def _make(**overrides) -> MontageParams:
        values = {
            "video_urls": ["https://www.youtube.com/watch?v=abc123"],
            "interval": 30,
            "montage_length": 60,
            "resolution": "720p",
        }
        values.update(overrides)
        return MontageParams(**values)

    return _make


@pytest.fixture
def api_client(registry, media_tools, workspace_manager):
    """TestClient with the fake tools and a fresh registry installed."""
    from fastapi.testclient import TestClient

    from montage_maker.main import app

    app.state.job_registry = registry
    app.state.media_tools = media_tools
    app.state.workspace_manager = workspace_manager

    with TestClient(app) as client:
        yield client

    app.state.job_registry = None
    app.state.media_tools = None
    app.state.workspace_manager = None
