"""
vidgist.vision.analyzer - Per-frame visual analysis with failure isolation.

Each frame is analyzed on its own. A failed frame is logged and dropped;
the stage only ever returns a (possibly empty) VisualSummary, even when
every frame failed.
"""

from __future__ import annotations

import asyncio

from vidgist.exceptions import VisionAnalysisError
from vidgist.logging import logger
from vidgist.models import FrameNote, TemporaryAsset, VisualSummary
from vidgist.scratch import ScratchSpace
from vidgist.vision.client import FRAME_INSTRUCTION
from vidgist.vision.notes import build_frame_note, build_visual_summary

FrameOutcome = FrameNote | VisionAnalysisError


class VisualAnalyzer:
    """Describes frames through a vision client, a few at a time."""

    def __init__(self, client, concurrency: int = 3, instruction: str = FRAME_INSTRUCTION) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self.client = client
        self.concurrency = concurrency
        self.instruction = instruction

    async def _analyze_one(
        self,
        position: int,
        frame: TemporaryAsset,
        scratch: ScratchSpace,
        semaphore: asyncio.Semaphore,
    ) -> FrameOutcome:
        frame_index = frame.index if frame.index is not None else position
        async with semaphore:
            try:
                description = await self.client.describe_image(frame.path, self.instruction)
                return build_frame_note(frame_index, description, frame.offset_seconds)
            except VisionAnalysisError as e:
                e.frame_index = frame_index
                logger.warning("Skipping frame %d: %s", frame_index, e)
                return e
            except Exception as e:
                logger.warning("Skipping frame %d: %s", frame_index, e)
                return VisionAnalysisError(str(e), frame_index=frame_index)
            finally:
                scratch.release(frame)

    async def analyze_frames(
        self,
        frames: list[TemporaryAsset],
        scratch: ScratchSpace,
    ) -> VisualSummary:
        """Analyze frames and assemble a VisualSummary in frame order.

        Args:
            frames: Frame assets in sampling order
            scratch: Scratch space of the calling run; each frame is released
                right after its own analysis attempt

        Returns:
            VisualSummary holding one note per successfully analyzed frame;
            empty when no frame could be analyzed
        """
        if not frames:
            return VisualSummary.empty()

        semaphore = asyncio.Semaphore(self.concurrency)
        outcomes = await asyncio.gather(
            *(self._analyze_one(i, frame, scratch, semaphore) for i, frame in enumerate(frames))
        )

        notes = [o for o in outcomes if isinstance(o, FrameNote)]
        failed = len(outcomes) - len(notes)
        if failed:
            logger.warning("%d of %d frame(s) could not be analyzed", failed, len(frames))

        return build_visual_summary(notes)
