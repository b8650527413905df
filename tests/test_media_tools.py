"""
Unit tests for the media tool wrappers and resolution presets.
"""

import asyncio
import subprocess

import pytest

from montage_maker.config import get_available_resolutions, get_resolution_dims
from montage_maker.services.media_tools import (
    MediaToolError,
    MediaTools,
    escape_drawtext,
    parse_duration,
)


class TestParseDuration:
    """Tests for yt-dlp duration parsing."""

    def test_hours_minutes_seconds(self):
        assert parse_duration("1:02:03") == 3723

    def test_minutes_seconds(self):
        assert parse_duration("02:03") == 123

    def test_bare_seconds(self):
        assert parse_duration("45") == 45

    def test_surrounding_whitespace(self):
        assert parse_duration(" 10:00\n") == 600

    def test_fractional_seconds_truncated(self):
        assert parse_duration("1:30.9") == 90

    @pytest.mark.parametrize("value", ["", "abc", "1::2", "1:2:3:4"])
    def test_malformed(self, value):
        with pytest.raises(ValueError):
            parse_duration(value)


class TestResolutionPresets:
    """Tests for resolution tag mapping."""

    @pytest.mark.parametrize(
        "tag,dims",
        [("480p", "854x480"), ("720p", "1280x720"), ("1080p", "1920x1080")],
    )
    def test_known_tags(self, tag, dims):
        assert get_resolution_dims(tag) == dims

    def test_unknown_tag_defaults_to_720p(self):
        assert get_resolution_dims("4k") == "1280x720"
        assert get_resolution_dims(None) == "1280x720"

    def test_available_resolutions_marks_default(self):
        defaults = [r["id"] for r in get_available_resolutions() if r["default"]]
        assert defaults == ["720p"]


class TestCommandConstruction:
    """Tests for the yt-dlp and FFmpeg command lines."""

    @pytest.fixture
    def tools(self, settings):
        return MediaTools(settings)

    def test_extract_command(self, tools):
        cmd = tools.build_extract_command("https://example.com/v", 12, 30, "/tmp/clip_01.mp4")
        assert cmd[0] == "yt-dlp"
        assert cmd[cmd.index("-f") + 1] == "best[height<=720]"
        assert cmd[cmd.index("--external-downloader") + 1] == "ffmpeg"
        assert cmd[cmd.index("--external-downloader-args") + 1] == "ffmpeg_i:-ss 12 -t 30"
        assert cmd[cmd.index("-o") + 1] == "/tmp/clip_01.mp4"
        assert cmd[-1] == "https://example.com/v"

    def test_extract_command_fractional_duration(self, tools):
        cmd = tools.build_extract_command("https://example.com/v", 0, 1.5, "/tmp/clip_01.mp4")
        assert cmd[cmd.index("--external-downloader-args") + 1] == "ffmpeg_i:-ss 0 -t 1.5"

    def test_encode_command_without_overlay(self, tools):
        cmd = tools.build_encode_command("/w/clip_list.txt", "/w/montage_v01.mp4", "1280x720")
        assert cmd[:7] == ["ffmpeg", "-f", "concat", "-safe", "0", "-i", "/w/clip_list.txt"]
        assert cmd[cmd.index("-vf") + 1] == "scale=1280:720"
        assert cmd[cmd.index("-c:v") + 1] == "libx264"
        assert cmd[cmd.index("-c:a") + 1] == "aac"
        assert cmd[cmd.index("-preset") + 1] == "fast"
        assert cmd[cmd.index("-crf") + 1] == "23"
        assert cmd[-2:] == ["-y", "/w/montage_v01.mp4"]

    def test_encode_command_with_overlay(self, tools):
        cmd = tools.build_encode_command("/w/list.txt", "/w/out.mp4", "1920x1080", "Hello", 64)
        video_filter = cmd[cmd.index("-vf") + 1]
        assert video_filter.startswith("scale=1920:1080,drawtext=text=Hello")
        assert ":fontsize=64" in video_filter
        assert ":fontcolor=white" in video_filter
        assert "x=(w-text_w)/2:y=(h-text_h)/2" in video_filter

    def test_overlay_default_font_size(self, tools):
        video_filter = tools.build_video_filter("854x480", "Hi")
        assert ":fontsize=48" in video_filter

    def test_escape_drawtext(self):
        assert escape_drawtext("It's 10:30, 100%") == "It\\'s 10\\:30\\, 100\\%"
        assert escape_drawtext("a\\b") == "a\\\\b"


class TestProcessExecution:
    """Tests for running the external processes."""

    @pytest.fixture
    def tools(self, settings):
        return MediaTools(settings)

    def test_probe_returns_stripped_stdout(self, tools, mocker):
        run = mocker.patch(
            "montage_maker.services.media_tools.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=0, stdout=b"3:25\n", stderr=b""),
        )
        assert asyncio.run(tools.probe_duration("https://example.com/v")) == "3:25"
        assert run.call_args.args[0] == ["yt-dlp", "--get-duration", "https://example.com/v"]

    def test_non_zero_exit_raises(self, tools, mocker):
        mocker.patch(
            "montage_maker.services.media_tools.subprocess.run",
            return_value=subprocess.CompletedProcess(args=[], returncode=1, stdout=b"", stderr=b"boom"),
        )
        with pytest.raises(MediaToolError, match="exited with code 1: boom"):
            asyncio.run(tools.encode("/w/list.txt", "/w/out.mp4", "1280x720"))

    def test_missing_executable_raises(self, tools, mocker):
        mocker.patch(
            "montage_maker.services.media_tools.subprocess.run",
            side_effect=FileNotFoundError("No such file or directory: 'yt-dlp'"),
        )
        with pytest.raises(MediaToolError, match="could not be started"):
            asyncio.run(tools.extract_clip("https://example.com/v", 0, 30, "/w/clip.mp4"))

    def test_missing_tools(self, tools, mocker):
        mocker.patch(
            "montage_maker.services.media_tools.shutil.which",
            side_effect=lambda name: "/usr/bin/ffmpeg" if name == "ffmpeg" else None,
        )
        assert tools.missing_tools() == ["yt-dlp"]
        assert tools.tool_available("ffmpeg") is True
