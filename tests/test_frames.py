"""Tests for vidgist.extract.frames module."""

from __future__ import annotations

import asyncio
import shutil
import subprocess
from pathlib import Path

import pytest

from conftest import FakeStreams
from vidgist.exceptions import ExtractionError, UnsupportedPlatformError
from vidgist.extract.frames import FrameSampler, frame_offsets
from vidgist.models import AssetKind, MediaStream
from vidgist.scratch import ScratchSpace


class TestFrameOffsets:
    def test_evenly_spaced_inside_video(self) -> None:
        assert frame_offsets(100.0, 4) == [20.0, 40.0, 60.0, 80.0]

    def test_skips_first_and_last_instant(self) -> None:
        offsets = frame_offsets(60.0, 10)
        assert len(offsets) == 10
        assert offsets[0] > 0
        assert offsets[-1] < 60.0
        assert offsets == sorted(offsets)

    def test_zero_frames_or_duration(self) -> None:
        assert frame_offsets(100.0, 0) == []
        assert frame_offsets(0.0, 10) == []


class TestFrameSampler:
    def test_samples_requested_frames(self, fake_ffmpeg, scratch_root: Path, youtube_ref) -> None:
        streams = FakeStreams()
        scratch = ScratchSpace(scratch_root)
        frames = asyncio.run(FrameSampler(streams).sample_frames(youtube_ref, scratch, 10))

        assert len(frames) == 10
        assert [f.index for f in frames] == list(range(10))
        assert all(f.kind == AssetKind.FRAME and f.path.exists() for f in frames)
        offsets = [f.offset_seconds for f in frames]
        assert offsets == sorted(offsets)
        assert streams.calls == [("dQw4w9WgXcQ", False)]
        # Only frames remain; the downloaded video is gone
        assert sorted(p.name for p in scratch_root.iterdir()) == sorted(f.path.name for f in frames)

    def test_frame_command_uses_configured_size(
        self, fake_ffmpeg, scratch_root: Path, youtube_ref
    ) -> None:
        sampler = FrameSampler(FakeStreams(), width=640, height=360)
        asyncio.run(sampler.sample_frames(youtube_ref, ScratchSpace(scratch_root), 2))
        frame_cmds = [cmd for desc, cmd in fake_ffmpeg["commands"] if desc.startswith("Frame")]
        assert len(frame_cmds) == 2
        assert all("scale=640:360" in cmd for cmd in frame_cmds)

    def test_frame_failure_removes_everything(
        self, fake_ffmpeg, scratch_root: Path, youtube_ref
    ) -> None:
        # 10 frames over 100s: the fifth lands at 45.5s
        fake_ffmpeg["fail_on"].add("Frame capture at 45.5")
        scratch = ScratchSpace(scratch_root)
        with pytest.raises(ExtractionError):
            asyncio.run(FrameSampler(FakeStreams()).sample_frames(youtube_ref, scratch, 10))
        assert list(scratch_root.iterdir()) == []
        assert scratch.assets == []

    def test_cancelled_capture_removes_everything(
        self, fake_ffmpeg, scratch_root: Path, youtube_ref
    ) -> None:
        fake_ffmpeg["hang_on"].add("Frame capture at 45.5")
        scratch = ScratchSpace(scratch_root)
        sample = FrameSampler(FakeStreams()).sample_frames(youtube_ref, scratch, 10)
        with pytest.raises(asyncio.TimeoutError):
            asyncio.run(asyncio.wait_for(sample, timeout=0.1))
        assert list(scratch_root.iterdir()) == []
        assert scratch.assets == []

    def test_download_failure(self, fake_ffmpeg, scratch_root: Path, youtube_ref) -> None:
        fake_ffmpeg["fail_on"].add("Video download")
        with pytest.raises(ExtractionError, match="Video download"):
            asyncio.run(
                FrameSampler(FakeStreams()).sample_frames(youtube_ref, ScratchSpace(scratch_root), 3)
            )
        assert list(scratch_root.iterdir()) == []

    def test_zero_duration_raises(self, fake_ffmpeg, scratch_root: Path, youtube_ref) -> None:
        fake_ffmpeg["duration"] = 0
        with pytest.raises(ExtractionError, match="duration"):
            asyncio.run(
                FrameSampler(FakeStreams()).sample_frames(youtube_ref, ScratchSpace(scratch_root), 3)
            )
        assert list(scratch_root.iterdir()) == []

    def test_zero_frames_does_no_work(self, fake_ffmpeg, scratch_root: Path, youtube_ref) -> None:
        streams = FakeStreams()
        frames = asyncio.run(
            FrameSampler(streams).sample_frames(youtube_ref, ScratchSpace(scratch_root), 0)
        )
        assert frames == []
        assert streams.calls == []
        assert fake_ffmpeg["commands"] == []

    def test_negative_frame_count_raises(self, scratch_root: Path, youtube_ref) -> None:
        with pytest.raises(ValueError):
            asyncio.run(
                FrameSampler(FakeStreams()).sample_frames(youtube_ref, ScratchSpace(scratch_root), -1)
            )

    def test_unsupported_platform(self, scratch_root: Path, unknown_ref) -> None:
        with pytest.raises(UnsupportedPlatformError):
            asyncio.run(
                FrameSampler(FakeStreams()).sample_frames(unknown_ref, ScratchSpace(scratch_root), 3)
            )


@pytest.mark.slow
@pytest.mark.skipif(
    shutil.which("ffmpeg") is None or shutil.which("ffprobe") is None,
    reason="FFmpeg not installed",
)
class TestFrameSamplerWithFfmpeg:
    def test_samples_local_video(self, tmp_path: Path, scratch_root: Path, youtube_ref) -> None:
        video = tmp_path / "clip.mp4"
        subprocess.run(
            [
                "ffmpeg",
                "-y",
                "-hide_banner",
                "-loglevel",
                "error",
                "-f",
                "lavfi",
                "-i",
                "testsrc=duration=4:size=320x240:rate=10",
                "-c:v",
                "mpeg4",
                str(video),
            ],
            check=True,
            timeout=60,
        )

        class LocalStreams:
            async def open_stream(self, ref, audio_only):
                return MediaStream(url=str(video), extension="mp4")

        scratch = ScratchSpace(scratch_root)
        sampler = FrameSampler(LocalStreams(), width=160, height=120)
        frames = asyncio.run(sampler.sample_frames(youtube_ref, scratch, 3))

        assert [f.offset_seconds for f in frames] == pytest.approx([1.0, 2.0, 3.0], abs=0.1)
        assert all(f.path.stat().st_size > 0 for f in frames)
        assert sorted(p.name for p in scratch_root.iterdir()) == sorted(f.path.name for f in frames)
