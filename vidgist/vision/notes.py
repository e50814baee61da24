"""
vidgist.vision.notes - Turn vision model descriptions into frame notes.
"""

from __future__ import annotations

import re

from vidgist.models import FrameNote, VisualSummary

VISUAL_TAG_KEYWORDS: dict[str, tuple[str, ...]] = {
    "charts": ("chart", "graph"),
    "diagrams": ("diagram", "flowchart"),
    "tables": ("table",),
    "on-screen text": ("text", "title"),
}

IMPORTANCE_KEYWORDS = ("important", "key", "significant")

QUOTED_TEXT = re.compile(r"[\"“]([^\"“”]+)[\"”]")


def _contains_word(text: str, keyword: str) -> bool:
    """Whole-word match; a trailing plural "s" is allowed."""
    return re.search(rf"\b{re.escape(keyword)}s?\b", text) is not None


def key_visual_tags(descriptions: list[str]) -> frozenset[str]:
    """Tags for every keyword group mentioned in any description."""
    tags = set()
    for description in descriptions:
        lowered = description.lower()
        for tag, keywords in VISUAL_TAG_KEYWORDS.items():
            if any(_contains_word(lowered, k) for k in keywords):
                tags.add(tag)
    return frozenset(tags)


def extract_quoted_text(description: str) -> frozenset[str]:
    """On-screen text the model quoted verbatim."""
    return frozenset(m.strip() for m in QUOTED_TEXT.findall(description) if m.strip())


def is_important(description: str) -> bool:
    lowered = description.lower()
    return any(_contains_word(lowered, k) for k in IMPORTANCE_KEYWORDS)


def build_frame_note(
    frame_index: int,
    description: str,
    offset_seconds: float | None = None,
) -> FrameNote:
    description = description.strip()
    return FrameNote(
        frame_index=frame_index,
        description=description,
        extracted_text_snippets=extract_quoted_text(description),
        is_important=is_important(description),
        offset_seconds=offset_seconds,
    )


def build_visual_summary(notes: list[FrameNote]) -> VisualSummary:
    """Assemble notes in frame order, whatever order they finished in."""
    ordered = sorted(notes, key=lambda n: n.frame_index)
    return VisualSummary(
        frame_notes=tuple(ordered),
        key_visual_tags=key_visual_tags([n.description for n in ordered]),
    )
