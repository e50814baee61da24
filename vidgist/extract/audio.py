"""
vidgist.extract.audio - Stream a video's audio track to a scratch MP3.

The stream is read and transcoded by a single FFmpeg process: mono,
16kHz, 128kbps, matching what the speech-to-text backends expect.
"""

from __future__ import annotations

from vidgist.exceptions import ExtractionError, UnsupportedPlatformError
from vidgist.extract.ffmpeg import build_audio_command, run_command
from vidgist.logging import logger
from vidgist.models import AssetKind, MediaReference, TemporaryAsset
from vidgist.scratch import ScratchSpace
from vidgist.utils import format_size


class AudioExtractor:
    """Produces one Audio asset per pipeline run."""

    def __init__(
        self,
        streams,
        sample_rate: int = 16000,
        bitrate_kbps: int = 128,
        ffmpeg: str = "ffmpeg",
    ) -> None:
        self.streams = streams
        self.sample_rate = sample_rate
        self.bitrate_kbps = bitrate_kbps
        self.ffmpeg = ffmpeg

    async def extract_audio(self, ref: MediaReference, scratch: ScratchSpace) -> TemporaryAsset:
        """Extract the audio track of ref into the run's scratch space.

        Args:
            ref: Resolved media reference
            scratch: Scratch space of the calling run

        Returns:
            TemporaryAsset of kind AUDIO; the caller's next stage owns its deletion

        Raises:
            UnsupportedPlatformError: If ref.platform is not supported
            ExtractionError: If stream resolution or transcoding fails
        """
        if not ref.supported:
            raise UnsupportedPlatformError(ref.source_url, ref.platform.value)

        asset = scratch.allocate(AssetKind.AUDIO, ".mp3")
        try:
            try:
                stream = await self.streams.open_stream(ref, audio_only=True)
                cmd = build_audio_command(
                    stream,
                    asset.path,
                    sample_rate=self.sample_rate,
                    bitrate_kbps=self.bitrate_kbps,
                    ffmpeg=self.ffmpeg,
                )
                await run_command(cmd, "Audio transcode")
            except (ExtractionError, UnsupportedPlatformError):
                raise
            except Exception as e:
                raise ExtractionError(f"Audio extraction failed: {e}") from e

            if not asset.path.exists() or asset.path.stat().st_size == 0:
                raise ExtractionError("Audio extraction produced no output")
        except BaseException:
            scratch.release(asset)
            raise

        logger.info("Extracted audio for %s (%s)", ref.media_id, format_size(asset.path))
        return asset
