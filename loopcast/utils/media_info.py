"""Media file information utilities using FFprobe."""

import asyncio
import json
import subprocess
from dataclasses import dataclass

from loopcast.config import get_settings
from loopcast.exceptions import ProbeError


def _get_settings():
    """Get settings lazily to avoid import issues in tests."""
    return get_settings()


@dataclass
class MediaInfo:
    """Media file information."""

    duration: float | None = None  # seconds
    width: int | None = None
    height: int | None = None
    video_codec: str | None = None
    audio_codec: str | None = None
    has_video: bool = False
    has_audio: bool = False


def _run_ffprobe(file_path: str, *args) -> dict:
    """Run ffprobe and return parsed JSON."""
    settings = _get_settings()
    cmd = [
        settings.ffprobe_path,
        "-v", "quiet",
        "-print_format", "json",
        *args,
        file_path,
    ]

    try:
        result = subprocess.run(cmd, capture_output=True, text=True)
    except FileNotFoundError as e:
        raise ProbeError(f"ffprobe not found: {settings.ffprobe_path}") from e

    if result.returncode != 0:
        raise ProbeError(f"ffprobe failed for {file_path}: {result.stderr.strip()}")

    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise ProbeError(f"Failed to parse ffprobe output: {e}")


def get_media_duration(file_path: str) -> float:
    """
    Get media file duration in seconds.

    Args:
        file_path: Path to media file

    Returns:
        Duration in seconds

    Raises:
        ProbeError: If ffprobe fails or duration not found
    """
    data = _run_ffprobe(file_path, "-show_format")
    format_info = data.get("format", {})

    if "duration" not in format_info:
        raise ProbeError(f"Duration not found in: {file_path}")

    return float(format_info["duration"])


async def probe_duration(file_path: str) -> float:
    """Async wrapper around ``get_media_duration`` that keeps the loop free."""
    return await asyncio.to_thread(get_media_duration, file_path)


async def probe_media(file_path: str) -> MediaInfo:
    """Async wrapper around ``get_media_info``."""
    return await asyncio.to_thread(get_media_info, file_path)


def get_media_info(file_path: str) -> MediaInfo:
    """
    Get complete media file information.

    Raises:
        ProbeError: If ffprobe fails
    """
    data = _run_ffprobe(file_path, "-show_format", "-show_streams")

    info = MediaInfo()

    format_info = data.get("format", {})
    if "duration" in format_info:
        info.duration = float(format_info["duration"])

    for stream in data.get("streams", []):
        codec_type = stream.get("codec_type")

        if codec_type == "video" and not info.has_video:
            info.has_video = True
            info.width = stream.get("width")
            info.height = stream.get("height")
            info.video_codec = stream.get("codec_name")
        elif codec_type == "audio" and not info.has_audio:
            info.has_audio = True
            info.audio_codec = stream.get("codec_name")

    return info
