"""
vidgist.models - Canonical data types for the video ingestion pipeline.

All models are immutable once built. ExtractedContent is the single
object handed to downstream text generators.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Platform(str, Enum):
    YOUTUBE = "youtube"
    INSTAGRAM = "instagram"
    UNKNOWN = "unknown"


SUPPORTED_PLATFORMS = frozenset({Platform.YOUTUBE, Platform.INSTAGRAM})


class AssetKind(str, Enum):
    AUDIO = "audio"
    FRAME = "frame"
    RAW_VIDEO = "raw_video"


class Stage(str, Enum):
    RESOLVED = "resolved"
    AUDIO_EXTRACTING = "audio_extracting"
    TRANSCRIBING = "transcribing"
    FRAME_SAMPLING = "frame_sampling"
    VISUAL_ANALYZING = "visual_analyzing"
    AGGREGATED = "aggregated"
    FAILED = "failed"


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class MediaReference(_Frozen):
    """One ingestion request: where the video lives and what it is called."""

    source_url: str
    platform: Platform
    media_id: str
    synthetic_id: bool = False

    @property
    def supported(self) -> bool:
        return self.platform in SUPPORTED_PLATFORMS


class MediaStream(_Frozen):
    """A directly readable stream URL resolved from a hosting page."""

    url: str
    http_headers: dict[str, str] = Field(default_factory=dict)
    format_id: str | None = None
    extension: str | None = None


class TemporaryAsset(_Frozen):
    """A scratch file owned by exactly one pipeline run."""

    path: Path
    kind: AssetKind
    owner: str
    index: int | None = None
    offset_seconds: float | None = None


class TranscriptSegment(_Frozen):
    start: float = Field(ge=0.0)
    end: float = Field(ge=0.0)
    text: str

    @model_validator(mode="after")
    def check_bounds(self) -> TranscriptSegment:
        if self.end < self.start:
            raise ValueError(f"Segment ends ({self.end}) before it starts ({self.start})")
        return self


class Transcript(_Frozen):
    full_text: str = ""
    segments: tuple[TranscriptSegment, ...] = ()
    duration_seconds: float = 0.0
    language: str = "unknown"

    @field_validator("segments")
    @classmethod
    def check_ordering(cls, v: tuple[TranscriptSegment, ...]) -> tuple[TranscriptSegment, ...]:
        for prev, seg in zip(v, v[1:]):
            if seg.start < prev.start:
                raise ValueError("Transcript segments must be ordered by start time")
            if seg.start < prev.end:
                raise ValueError(
                    f"Transcript segments overlap at {seg.start:.2f}s (previous ends {prev.end:.2f}s)"
                )
        return v

    @classmethod
    def from_segments(
        cls,
        segments: list[TranscriptSegment],
        full_text: str | None = None,
        language: str = "unknown",
    ) -> Transcript:
        """Build a transcript whose duration is the end of its last segment."""
        if full_text is None:
            full_text = " ".join(s.text for s in segments if s.text)
        duration = segments[-1].end if segments else 0.0
        return cls(
            full_text=full_text,
            segments=tuple(segments),
            duration_seconds=duration,
            language=language,
        )

    @classmethod
    def empty(cls) -> Transcript:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.full_text and not self.segments


class FrameNote(_Frozen):
    frame_index: int = Field(ge=0)
    description: str
    extracted_text_snippets: frozenset[str] = frozenset()
    is_important: bool = False
    offset_seconds: float | None = None


class VisualSummary(_Frozen):
    frame_notes: tuple[FrameNote, ...] = ()
    key_visual_tags: frozenset[str] = frozenset()

    @field_validator("frame_notes")
    @classmethod
    def check_ordering(cls, v: tuple[FrameNote, ...]) -> tuple[FrameNote, ...]:
        indices = [n.frame_index for n in v]
        if indices != sorted(indices):
            raise ValueError("Frame notes must be ordered by frame index")
        return v

    @classmethod
    def empty(cls) -> VisualSummary:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.frame_notes


class RunDiagnostics(_Frozen):
    """Per-run bookkeeping; never part of the canonical text."""

    run_id: str
    platform: Platform
    media_id: str
    stages: tuple[Stage, ...] = ()
    warnings: tuple[str, ...] = ()
    audio_error: str | None = None
    visual_error: str | None = None
    frames_sampled: int = 0
    frames_analyzed: int = 0
    elapsed_seconds: float = 0.0

    @property
    def audio_degraded(self) -> bool:
        return self.audio_error is not None

    @property
    def visual_degraded(self) -> bool:
        """The visual branch failed or none of its sampled frames could be analyzed."""
        if self.visual_error is not None:
            return True
        return self.frames_sampled > 0 and self.frames_analyzed == 0

    @property
    def degraded(self) -> bool:
        return self.audio_degraded or self.visual_degraded


class ExtractedContent(_Frozen):
    source_url: str
    transcript: Transcript
    visual_summary: VisualSummary
    diagnostics: RunDiagnostics

    @property
    def degraded(self) -> bool:
        return self.diagnostics.degraded

    def to_text(self) -> str:
        """Render the canonical text consumed by downstream generators."""
        parts = []
        if self.transcript.full_text:
            parts.append(self.transcript.full_text.strip())
        if self.visual_summary.frame_notes:
            lines = ["Visual notes:"]
            for note in self.visual_summary.frame_notes:
                lines.append(f"- [frame {note.frame_index}] {note.description.strip()}")
            if self.visual_summary.key_visual_tags:
                tags = ", ".join(sorted(self.visual_summary.key_visual_tags))
                lines.append(f"Key visual elements: {tags}")
            parts.append("\n".join(lines))
        return "\n\n".join(parts)


class VideoInfo(_Frozen):
    title: str = ""
    description: str = ""
    duration_seconds: float = 0.0
    author: str = ""
    view_count: int | None = None
    upload_date: str | None = None
    keywords: tuple[str, ...] = ()
    thumbnails: tuple[str, ...] = ()
