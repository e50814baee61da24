"""
vidgist.extract.ffmpeg - Async FFmpeg/FFprobe invocation.

Subprocesses are killed when the awaiting task is cancelled, so a
timed-out run never leaves an encoder writing into the scratch directory.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

from vidgist.exceptions import ExtractionError
from vidgist.logging import logger
from vidgist.models import MediaStream
from vidgist.utils import truncate


async def run_command(cmd: list[str], description: str) -> str:
    """Run a command to completion and return its stdout.

    Args:
        cmd: Program and arguments
        description: Human-readable step name for error messages

    Returns:
        Decoded stdout

    Raises:
        ExtractionError: If the program is missing or exits non-zero
    """
    logger.debug("Running %s: %s", description, " ".join(cmd))
    try:
        proc = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ExtractionError(f"{cmd[0]} not found in PATH") from e

    try:
        stdout, stderr = await proc.communicate()
    except asyncio.CancelledError:
        if proc.returncode is None:
            proc.kill()
            await proc.wait()
        raise

    if proc.returncode != 0:
        message = truncate(stderr.decode(errors="replace"))
        raise ExtractionError(f"{description} failed (exit {proc.returncode}): {message}")
    return stdout.decode(errors="replace")


def _header_args(stream: MediaStream) -> list[str]:
    if not stream.http_headers:
        return []
    headers = "".join(f"{key}: {value}\r\n" for key, value in stream.http_headers.items())
    return ["-headers", headers]


def build_audio_command(
    stream: MediaStream,
    output_path: Path,
    sample_rate: int = 16000,
    bitrate_kbps: int = 128,
    ffmpeg: str = "ffmpeg",
) -> list[str]:
    """Transcode a remote stream to mono MP3 for speech-to-text."""
    return [
        ffmpeg,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        *_header_args(stream),
        "-i",
        stream.url,
        "-vn",
        "-ac",
        "1",
        "-ar",
        str(sample_rate),
        "-b:a",
        f"{bitrate_kbps}k",
        "-f",
        "mp3",
        str(output_path),
    ]


def build_download_command(
    stream: MediaStream,
    output_path: Path,
    ffmpeg: str = "ffmpeg",
) -> list[str]:
    """Copy a remote video stream to a local file without re-encoding."""
    return [
        ffmpeg,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        *_header_args(stream),
        "-i",
        stream.url,
        "-an",
        "-c:v",
        "copy",
        str(output_path),
    ]


def build_frame_command(
    video_path: Path,
    offset_seconds: float,
    output_path: Path,
    width: int = 1280,
    height: int = 720,
    ffmpeg: str = "ffmpeg",
) -> list[str]:
    """Grab one frame at offset_seconds, scaled to width x height."""
    return [
        ffmpeg,
        "-y",
        "-hide_banner",
        "-loglevel",
        "error",
        "-ss",
        f"{offset_seconds:.3f}",
        "-i",
        str(video_path),
        "-frames:v",
        "1",
        "-vf",
        f"scale={width}:{height}",
        str(output_path),
    ]


def parse_probe_duration(probe_output: str) -> float:
    """Pull the container (or first stream) duration out of ffprobe JSON."""
    try:
        data = json.loads(probe_output or "{}")
    except json.JSONDecodeError as e:
        raise ExtractionError(f"ffprobe returned invalid JSON: {e}") from e

    duration = data.get("format", {}).get("duration")
    if duration is None:
        for stream in data.get("streams", []):
            if stream.get("codec_type") == "video" and stream.get("duration"):
                duration = stream["duration"]
                break
    try:
        return float(duration) if duration is not None else 0.0
    except (TypeError, ValueError):
        return 0.0


async def probe_duration(path: Path, ffprobe: str = "ffprobe") -> float:
    """Probe a local media file for its duration in seconds."""
    cmd = [
        ffprobe,
        "-v",
        "quiet",
        "-print_format",
        "json",
        "-show_format",
        "-show_streams",
        str(path),
    ]
    output = await run_command(cmd, f"ffprobe {path.name}")
    return parse_probe_duration(output)
