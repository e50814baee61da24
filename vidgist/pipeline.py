"""
vidgist.pipeline - Run the audio and visual branches and merge them.

One call to PipelineCoordinator.process() is one pipeline run:

    resolve ─┬─ extract audio → transcribe ──────┬─ aggregate
             └─ sample frames → analyze frames ──┘

The branches run concurrently and never see each other's failures. A
failed branch is replaced by an empty result and flagged in the run
diagnostics; only a run where both branches fail raises.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field
from typing import Any

from vidgist.config import MAX_FRAME_COUNT, VidgistConfig, load_config
from vidgist.exceptions import (
    PipelineFailedError,
    PipelineTimeoutError,
    UnsupportedPlatformError,
    VidgistError,
)
from vidgist.extract.audio import AudioExtractor
from vidgist.extract.frames import FrameSampler
from vidgist.extract.streams import YtDlpStreamProvider
from vidgist.logging import RunLogger, run_logger
from vidgist.models import (
    ExtractedContent,
    MediaReference,
    RunDiagnostics,
    Stage,
    Transcript,
    VideoInfo,
    VisualSummary,
)
from vidgist.resolve import PlatformResolver
from vidgist.scratch import ScratchSpace
from vidgist.transcribe.engine import Transcriber
from vidgist.vision.analyzer import VisualAnalyzer
from vidgist.vision.client import create_client_from_config


@dataclass
class BranchOutcome:
    value: Any = None
    error: BaseException | None = None
    failed_stage: Stage | None = None


@dataclass
class RunState:
    """Mutable bookkeeping for a single run; never shared between runs."""

    run_id: str
    ref: MediaReference
    stages: list[Stage] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    frames_sampled: int = 0
    log: RunLogger = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.log = run_logger(self.run_id)

    def enter(self, stage: Stage) -> None:
        self.stages.append(stage)
        self.log.debug("%s", stage.value)


class PipelineCoordinator:
    """Sequences the ingestion stages for one video URL per process() call."""

    def __init__(
        self,
        config: VidgistConfig | None = None,
        resolver=None,
        streams=None,
        audio_extractor=None,
        transcriber=None,
        frame_sampler=None,
        visual_analyzer=None,
    ) -> None:
        self.config = config or VidgistConfig()
        self.resolver = resolver or PlatformResolver()
        self.streams = streams or YtDlpStreamProvider()

        width, height = self.config.frame_dimensions
        self.audio_extractor = audio_extractor or AudioExtractor(
            self.streams,
            sample_rate=self.config.audio_sample_rate,
            bitrate_kbps=self.config.audio_bitrate_kbps,
            ffmpeg=self.config.ffmpeg_path,
        )
        self.transcriber = transcriber or Transcriber(
            backend=self.config.whisper_backend,
            model=self.config.whisper_model,
            language=self.config.whisper_language,
            privacy_mode=self.config.privacy_mode,
        )
        self.frame_sampler = frame_sampler or FrameSampler(
            self.streams,
            width=width,
            height=height,
            ffmpeg=self.config.ffmpeg_path,
            ffprobe=self.config.ffprobe_path,
        )
        self.visual_analyzer = visual_analyzer or VisualAnalyzer(
            create_client_from_config(self.config),
            concurrency=self.config.frame_concurrency,
        )

    async def _audio_branch(self, run: RunState, scratch: ScratchSpace) -> BranchOutcome:
        stage = Stage.AUDIO_EXTRACTING
        try:
            run.enter(stage)
            asset = await self.audio_extractor.extract_audio(run.ref, scratch)
            stage = Stage.TRANSCRIBING
            run.enter(stage)
            transcript = await self.transcriber.transcribe(asset, scratch)
            return BranchOutcome(value=transcript)
        except VidgistError as e:
            return BranchOutcome(error=e, failed_stage=stage)
        except Exception as e:
            run.log.exception("Unexpected error in audio branch")
            return BranchOutcome(error=e, failed_stage=stage)

    async def _visual_branch(
        self,
        run: RunState,
        scratch: ScratchSpace,
        frame_count: int,
    ) -> BranchOutcome:
        stage = Stage.FRAME_SAMPLING
        try:
            run.enter(stage)
            frames = await self.frame_sampler.sample_frames(run.ref, scratch, frame_count)
            run.frames_sampled = len(frames)
            stage = Stage.VISUAL_ANALYZING
            run.enter(stage)
            summary = await self.visual_analyzer.analyze_frames(frames, scratch)
            return BranchOutcome(value=summary)
        except VidgistError as e:
            return BranchOutcome(error=e, failed_stage=stage)
        except Exception as e:
            run.log.exception("Unexpected error in visual branch")
            return BranchOutcome(error=e, failed_stage=stage)

    async def process(
        self,
        url: str,
        frame_count: int | None = None,
        timeout: float | None = None,
    ) -> ExtractedContent:
        """Extract and analyze the video at url.

        Args:
            url: Video page URL
            frame_count: Frames to sample (config.frame_count if None)
            timeout: Seconds the whole run may take (config.timeout_seconds
                if None); zero or negative fails before any network call

        Returns:
            ExtractedContent; check .degraded for partially failed runs

        Raises:
            UnsupportedPlatformError: If url is not on a supported platform
            PipelineFailedError: If both branches fail
            PipelineTimeoutError: If the run exceeds its timeout
        """
        timeout = self.config.timeout_seconds if timeout is None else timeout
        if timeout <= 0:
            raise PipelineTimeoutError(timeout)

        frame_count = self.config.frame_count if frame_count is None else frame_count
        if not 0 <= frame_count <= MAX_FRAME_COUNT:
            raise ValueError(
                f"frame_count must be between 0 and {MAX_FRAME_COUNT}, got {frame_count}"
            )

        started = time.monotonic()
        ref = self.resolver.resolve(url)
        if not ref.supported:
            raise UnsupportedPlatformError(url, ref.platform.value)

        scratch = ScratchSpace(self.config.scratch_dir)
        run = RunState(run_id=scratch.run_id, ref=ref)
        run.enter(Stage.RESOLVED)
        run.log.info("Processing %s video %s", ref.platform.value, ref.media_id)

        with scratch:
            try:
                audio, visual = await asyncio.wait_for(
                    asyncio.gather(
                        self._audio_branch(run, scratch),
                        self._visual_branch(run, scratch, frame_count),
                    ),
                    timeout=timeout,
                )
            except asyncio.TimeoutError:
                run.enter(Stage.FAILED)
                run.log.error("Timed out after %ss", timeout)
                raise PipelineTimeoutError(timeout) from None

        if audio.error is not None and visual.error is not None:
            run.enter(Stage.FAILED)
            run.log.error(
                "Both branches failed (audio at %s, visual at %s)",
                audio.failed_stage.value,
                visual.failed_stage.value,
            )
            raise PipelineFailedError(audio.error, visual.error)

        transcript = audio.value
        if audio.error is not None:
            transcript = Transcript.empty()
            run.warnings.append(
                f"Audio branch failed during {audio.failed_stage.value}: {audio.error}; "
                "transcript is empty"
            )
            run.log.warning(run.warnings[-1])

        visual_summary = visual.value
        if visual.error is not None:
            visual_summary = VisualSummary.empty()
            run.warnings.append(
                f"Visual branch failed during {visual.failed_stage.value}: {visual.error}; "
                "visual summary is empty"
            )
            run.log.warning(run.warnings[-1])
        elif len(visual_summary.frame_notes) < run.frames_sampled:
            failed = run.frames_sampled - len(visual_summary.frame_notes)
            if failed == run.frames_sampled:
                run.warnings.append(
                    f"All {failed} frame(s) failed visual analysis; visual summary is empty"
                )
            else:
                run.warnings.append(f"{failed} of {run.frames_sampled} frame(s) could not be analyzed")
            run.log.warning(run.warnings[-1])

        run.enter(Stage.AGGREGATED)
        diagnostics = RunDiagnostics(
            run_id=run.run_id,
            platform=ref.platform,
            media_id=ref.media_id,
            stages=tuple(run.stages),
            warnings=tuple(run.warnings),
            audio_error=str(audio.error) if audio.error is not None else None,
            visual_error=str(visual.error) if visual.error is not None else None,
            frames_sampled=run.frames_sampled,
            frames_analyzed=len(visual_summary.frame_notes),
            elapsed_seconds=round(time.monotonic() - started, 3),
        )
        return ExtractedContent(
            source_url=ref.source_url,
            transcript=transcript,
            visual_summary=visual_summary,
            diagnostics=diagnostics,
        )


async def extract_and_analyze_video(
    url: str,
    frame_count: int | None = None,
    config: VidgistConfig | None = None,
    timeout: float | None = None,
) -> ExtractedContent:
    """Run the full pipeline for url with a coordinator built from config."""
    coordinator = PipelineCoordinator(config or load_config())
    return await coordinator.process(url, frame_count=frame_count, timeout=timeout)


async def get_video_info(url: str, streams=None) -> VideoInfo:
    """Fetch title, author, duration and similar metadata without ingesting.

    Raises:
        UnsupportedPlatformError: If url is not on a supported platform
        ExtractionError: If the metadata cannot be fetched
    """
    ref = PlatformResolver().resolve(url)
    if not ref.supported:
        raise UnsupportedPlatformError(url, ref.platform.value)
    provider = streams or YtDlpStreamProvider()
    return await provider.video_info(ref)
