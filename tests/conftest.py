"""
Test configuration and shared fixtures.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path

import pytest
import yaml

from vidgist.config import VidgistConfig
from vidgist.exceptions import ExtractionError, TranscriptionError, VisionAnalysisError
from vidgist.models import (
    AssetKind,
    MediaReference,
    MediaStream,
    Platform,
    Transcript,
    TranscriptSegment,
)

YOUTUBE_URL = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
INSTAGRAM_URL = "https://www.instagram.com/reel/Cx1AbC2dEfG/"


class FakeStreams:
    """Stream provider that hands out fixed URLs and records its calls."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, bool]] = []

    async def open_stream(self, ref: MediaReference, audio_only: bool) -> MediaStream:
        self.calls.append((ref.media_id, audio_only))
        if self.fail:
            raise ExtractionError("HTTP Error 403: Forbidden")
        kind = "audio" if audio_only else "video"
        return MediaStream(url=f"https://cdn.example.com/{ref.media_id}/{kind}", extension="mp4")


class FakeAudioExtractor:
    def __init__(self, fail: bool = False, delay: float = 0.0) -> None:
        self.fail = fail
        self.delay = delay
        self.calls = 0

    async def extract_audio(self, ref, scratch):
        self.calls += 1
        asset = scratch.allocate(AssetKind.AUDIO, ".mp3")
        asset.path.write_bytes(b"ID3 fake audio")
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            scratch.release(asset)
            raise ExtractionError("Audio transcode failed (exit 1): broken pipe")
        return asset


class FakeTranscriber:
    def __init__(self, transcript: Transcript, fail: bool = False) -> None:
        self.transcript = transcript
        self.fail = fail
        self.seen_paths: list[Path] = []

    async def transcribe(self, asset, scratch):
        self.seen_paths.append(asset.path)
        try:
            if self.fail:
                raise TranscriptionError("Transcription failed: 500 Internal Server Error")
            return self.transcript
        finally:
            scratch.release(asset)


class FakeFrameSampler:
    def __init__(self, fail: bool = False, delay: float = 0.0) -> None:
        self.fail = fail
        self.delay = delay
        self.calls = 0

    async def sample_frames(self, ref, scratch, frame_count=10):
        self.calls += 1
        if self.fail:
            raise ExtractionError("Video download failed (exit 1): 404 Not Found")
        frames = []
        for i in range(frame_count):
            frame = scratch.allocate(AssetKind.FRAME, ".png", index=i, offset_seconds=float(i * 10))
            frame.path.write_bytes(b"\x89PNG fake frame")
            frames.append(frame)
        if self.delay:
            await asyncio.sleep(self.delay)
        return frames


class FakeVisionClient:
    """Describes frames by index; indices in fail_indices raise."""

    def __init__(self, fail_indices: set[int] | None = None, delays: dict[int, float] | None = None):
        self.fail_indices = fail_indices or set()
        self.delays = delays or {}
        self.calls: list[int] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def describe_image(self, image_path: Path, instruction: str) -> str:
        index = int(image_path.stem.rsplit("-", 1)[1])
        self.calls.append(index)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delays.get(index, 0))
            if index in self.fail_indices:
                raise VisionAnalysisError(f"Vision request failed for frame {index}")
            if index % 2 == 0:
                return f'Slide with a bar chart titled "Revenue {index}".'
            return "Speaker talking to the camera."
        finally:
            self.in_flight -= 1


@pytest.fixture
def scratch_root(tmp_path: Path) -> Path:
    root = tmp_path / "scratch"
    root.mkdir()
    return root


@pytest.fixture
def config(scratch_root: Path) -> VidgistConfig:
    return VidgistConfig(scratch_dir=scratch_root, timeout_seconds=30)


@pytest.fixture
def youtube_ref() -> MediaReference:
    return MediaReference(source_url=YOUTUBE_URL, platform=Platform.YOUTUBE, media_id="dQw4w9WgXcQ")


@pytest.fixture
def unknown_ref() -> MediaReference:
    return MediaReference(
        source_url="https://vimeo.com/123456",
        platform=Platform.UNKNOWN,
        media_id="0b7c6f4e-0000-4000-8000-000000000000",
        synthetic_id=True,
    )


@pytest.fixture
def sample_transcript() -> Transcript:
    return Transcript.from_segments(
        [
            TranscriptSegment(start=0.0, end=4.2, text="Welcome back to the channel."),
            TranscriptSegment(start=4.2, end=9.8, text="Today we look at quarterly revenue."),
            TranscriptSegment(start=9.8, end=15.0, text="Let's start with the first chart."),
        ],
        language="en",
    )


@pytest.fixture
def sample_whisper_response() -> dict:
    """A verbose_json response as returned by the Whisper API."""
    return {
        "task": "transcribe",
        "language": "english",
        "duration": 15.0,
        "text": "Welcome back to the channel. Today we look at quarterly revenue.",
        "segments": [
            {"id": 0, "start": 0.0, "end": 4.2, "text": " Welcome back to the channel."},
            {"id": 1, "start": 4.2, "end": 9.8, "text": " Today we look at quarterly revenue."},
        ],
    }


@pytest.fixture
def fake_ffmpeg(monkeypatch):
    """Replace run_command with a fake that writes each command's output file.

    ffprobe invocations answer with a 100 second duration. Commands whose
    description starts with an entry in fail_on raise ExtractionError after the
    output file has been (partially) written; entries in hang_on write the
    partial file and then never finish.
    """
    state = {"commands": [], "fail_on": set(), "hang_on": set(), "duration": 100.0}

    async def run_command(cmd: list[str], description: str) -> str:
        state["commands"].append((description, cmd))
        if cmd[0].endswith("ffprobe"):
            return json.dumps({"format": {"duration": str(state["duration"])}})
        failing = any(description.startswith(prefix) for prefix in state["fail_on"])
        hanging = any(description.startswith(prefix) for prefix in state["hang_on"])
        Path(cmd[-1]).write_bytes(b"partial" if failing or hanging else b"complete")
        if hanging:
            await asyncio.sleep(30)
        if failing:
            raise ExtractionError(f"{description} failed (exit 1): simulated")
        return ""

    monkeypatch.setattr("vidgist.extract.ffmpeg.run_command", run_command)
    monkeypatch.setattr("vidgist.extract.audio.run_command", run_command)
    monkeypatch.setattr("vidgist.extract.frames.run_command", run_command)
    return state


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "vidgist.yaml"
    with open(path, "w") as f:
        yaml.dump({"profile": "cloud", "frame_count": 6}, f)
    return path
