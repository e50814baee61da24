"""
vidgist.transcribe - Speech-to-text stage.

Transcribes the extracted audio through the Whisper API (via litellm) or a
local Whisper backend, producing segment-level timestamps.
"""

from __future__ import annotations
