"""
vidgist.extract.frames - Sample evenly spaced still frames from a video.

The full video is copied to scratch first, then frames are grabbed one
by one. Frame files exist when sample_frames() returns; the raw video
never outlives the call.
"""

from __future__ import annotations

from vidgist.exceptions import ExtractionError, UnsupportedPlatformError
from vidgist.extract.ffmpeg import (
    build_download_command,
    build_frame_command,
    probe_duration,
    run_command,
)
from vidgist.logging import logger
from vidgist.models import AssetKind, MediaReference, TemporaryAsset
from vidgist.scratch import ScratchSpace


def frame_offsets(duration: float, frame_count: int) -> list[float]:
    """Timestamps splitting duration into frame_count + 1 equal gaps.

    The first and last instants are skipped; they are usually black or
    a title card.
    """
    if frame_count <= 0 or duration <= 0:
        return []
    step = duration / (frame_count + 1)
    return [round(step * (i + 1), 3) for i in range(frame_count)]


class FrameSampler:
    """Produces an ordered list of Frame assets per pipeline run."""

    def __init__(
        self,
        streams,
        width: int = 1280,
        height: int = 720,
        ffmpeg: str = "ffmpeg",
        ffprobe: str = "ffprobe",
    ) -> None:
        self.streams = streams
        self.width = width
        self.height = height
        self.ffmpeg = ffmpeg
        self.ffprobe = ffprobe

    async def sample_frames(
        self,
        ref: MediaReference,
        scratch: ScratchSpace,
        frame_count: int = 10,
    ) -> list[TemporaryAsset]:
        """Download ref and extract frame_count frames.

        Args:
            ref: Resolved media reference
            scratch: Scratch space of the calling run
            frame_count: Number of frames to sample

        Returns:
            Frame assets in timestamp order; index 0 is the earliest

        Raises:
            UnsupportedPlatformError: If ref.platform is not supported
            ExtractionError: If download, probing or frame capture fails
            ValueError: If frame_count is negative
        """
        if frame_count < 0:
            raise ValueError(f"frame_count must be >= 0, got {frame_count}")
        if not ref.supported:
            raise UnsupportedPlatformError(ref.source_url, ref.platform.value)
        if frame_count == 0:
            return []

        try:
            stream = await self.streams.open_stream(ref, audio_only=False)
        except (ExtractionError, UnsupportedPlatformError):
            raise
        except Exception as e:
            raise ExtractionError(f"Video stream resolution failed: {e}") from e

        video = scratch.allocate(AssetKind.RAW_VIDEO, f".{stream.extension or 'mp4'}")
        frames: list[TemporaryAsset] = []
        try:
            await run_command(
                build_download_command(stream, video.path, ffmpeg=self.ffmpeg),
                "Video download",
            )
            duration = await probe_duration(video.path, ffprobe=self.ffprobe)
            if duration <= 0:
                raise ExtractionError(f"Could not determine duration of {ref.source_url}")

            for index, offset in enumerate(frame_offsets(duration, frame_count)):
                frame = scratch.allocate(
                    AssetKind.FRAME, ".png", index=index, offset_seconds=offset
                )
                frames.append(frame)
                await run_command(
                    build_frame_command(
                        video.path,
                        offset,
                        frame.path,
                        width=self.width,
                        height=self.height,
                        ffmpeg=self.ffmpeg,
                    ),
                    f"Frame capture at {offset:.1f}s",
                )
                if not frame.path.exists():
                    raise ExtractionError(f"Frame capture at {offset:.1f}s produced no image")
        except ExtractionError:
            scratch.release_all(frames)
            raise
        except Exception as e:
            scratch.release_all(frames)
            raise ExtractionError(f"Frame sampling failed: {e}") from e
        except BaseException:
            scratch.release_all(frames)
            raise
        finally:
            scratch.release(video)

        logger.info("Sampled %d frame(s) from %s", len(frames), ref.media_id)
        return frames
