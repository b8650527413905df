"""
Command-line client for the Montage Maker API.

Submits a montage job, polls it until it finishes, and downloads the result.

Usage Examples:
    # One-minute montage of 30-second clips
    montage-submit "https://www.youtube.com/watch?v=VIDEO_ID" --interval 30 --length 60

    # 1080p with a text overlay and custom file name
    montage-submit URL --resolution 1080p --overlay "Road Trip" --font-size 64 --name roadtrip

    # Check the status of an existing job
    montage-submit --status JOB_ID
"""

import argparse
import os
import sys
import time
from pathlib import Path
from typing import Optional

import requests
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

DEFAULT_BASE_URL = "http://localhost:3000"
TERMINAL_STATUSES = ("completed", "failed")


class MontageClientError(Exception):
    """Exception raised when the API cannot satisfy a client request."""
    pass


class MontageClient:
    """Client for interacting with the Montage Maker API."""

    def __init__(self, base_url: Optional[str] = None, session: Optional[requests.Session] = None):
        self.base_url = (base_url or os.getenv("MONTAGE_API_URL", DEFAULT_BASE_URL)).rstrip("/")
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})

    def health_check(self) -> dict:
        """Check API health status."""
        response = self.session.get(f"{self.base_url}/health")
        response.raise_for_status()
        return response.json()

    def submit_montage(
        self,
        video_urls: list[str],
        interval: float,
        montage_length: float,
        resolution: str = "720p",
        overlay_text: Optional[str] = None,
        font_size: Optional[int] = None,
        custom_filename: Optional[str] = None,
    ) -> str:
        """Submit a montage job and return its ID."""
        payload = {
            "videoUrls": video_urls,
            "interval": interval,
            "montageLength": montage_length,
            "resolution": resolution,
        }
        if overlay_text:
            payload["overlayText"] = overlay_text
        if font_size:
            payload["fontSize"] = font_size
        if custom_filename:
            payload["customFilename"] = custom_filename

        response = self.session.post(f"{self.base_url}/api/generate-montage", json=payload)
        if response.status_code == 400:
            raise MontageClientError(response.json().get("error", "Invalid request"))
        response.raise_for_status()
        return response.json()["jobId"]

    def get_status(self, job_id: str) -> dict:
        """Get the current job snapshot."""
        response = self.session.get(f"{self.base_url}/api/job-status/{job_id}")
        if response.status_code == 404:
            raise MontageClientError(f"Job not found: {job_id}")
        response.raise_for_status()
        return response.json()

    def wait_for_completion(
        self,
        job_id: str,
        poll_interval: float = 5,
        max_wait: float = 3600,
        on_progress=None,
    ) -> dict:
        """
        Poll a job until it reaches a terminal status.

        Args:
            job_id: Job to poll
            poll_interval: Seconds between polls
            max_wait: Give up after this many seconds
            on_progress: Optional callable receiving each snapshot

        Returns:
            The terminal job snapshot

        Raises:
            MontageClientError: If the job does not finish in time
        """
        deadline = time.monotonic() + max_wait
        while True:
            job = self.get_status(job_id)
            if on_progress:
                on_progress(job)
            if job["status"] in TERMINAL_STATUSES:
                return job
            if time.monotonic() >= deadline:
                raise MontageClientError(f"Job {job_id} did not finish within {max_wait}s")
            time.sleep(poll_interval)

    def download(self, job_id: str, output_dir: Path) -> Path:
        """Download a finished montage into output_dir and return its path."""
        response = self.session.get(f"{self.base_url}/api/download/{job_id}", stream=True)
        if response.status_code == 404:
            raise MontageClientError(response.json().get("error", "File not found"))
        response.raise_for_status()

        filename = _filename_from_disposition(response.headers.get("content-disposition")) or f"{job_id}.mp4"
        output_dir.mkdir(parents=True, exist_ok=True)
        output_path = output_dir / filename

        with open(output_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=1024 * 1024):
                if chunk:
                    f.write(chunk)

        return output_path


def _filename_from_disposition(disposition: Optional[str]) -> Optional[str]:
    if not disposition:
        return None
    for part in disposition.split(";"):
        key, _, value = part.strip().partition("=")
        if key.lower() == "filename" and value:
            return os.path.basename(value.strip('"'))
    return None


def print_progress(job: dict) -> None:
    print(
        f"  [{job['status']:>10}] {job['progress']:3d}% - {job.get('currentStep', '')}",
        flush=True,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Submit a montage job and download the result")
    parser.add_argument("urls", nargs="*", help="Source video URLs (only the first is used)")
    parser.add_argument("--interval", type=float, default=30, help="Clip length in seconds")
    parser.add_argument("--length", type=float, default=60, help="Total montage length in seconds")
    parser.add_argument("--resolution", default="720p", choices=["480p", "720p", "1080p"])
    parser.add_argument("--overlay", help="Text to draw over the montage")
    parser.add_argument("--font-size", type=int, help="Overlay font size")
    parser.add_argument("--name", help="Output file base name")
    parser.add_argument("--output-dir", type=Path, default=Path("montages"))
    parser.add_argument("--base-url", help="API base URL (default: $MONTAGE_API_URL)")
    parser.add_argument("--poll-interval", type=float, default=5)
    parser.add_argument("--max-wait", type=float, default=3600)
    parser.add_argument("--status", metavar="JOB_ID", help="Only print the status of a job")
    parser.add_argument("--no-download", action="store_true", help="Do not download the result")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    client = MontageClient(base_url=args.base_url)

    try:
        if args.status:
            print_progress(client.get_status(args.status))
            return 0

        if not args.urls:
            print("At least one video URL is required", file=sys.stderr)
            return 2

        job_id = client.submit_montage(
            video_urls=args.urls,
            interval=args.interval,
            montage_length=args.length,
            resolution=args.resolution,
            overlay_text=args.overlay,
            font_size=args.font_size,
            custom_filename=args.name,
        )
        print(f"Submitted job {job_id}")

        job = client.wait_for_completion(
            job_id,
            poll_interval=args.poll_interval,
            max_wait=args.max_wait,
            on_progress=print_progress,
        )
        if job["status"] == "failed":
            print(f"Job failed: {job.get('error')}", file=sys.stderr)
            return 1

        if not args.no_download:
            path = client.download(job_id, args.output_dir)
            print(f"Saved montage to {path}")
        return 0

    except (MontageClientError, requests.RequestException) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
