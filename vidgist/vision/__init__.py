"""
vidgist.vision - Frame-level visual analysis.

Sends each sampled frame to a vision-capable model (via litellm) and turns
the free-text answers into ordered frame notes and visual tags.
"""

from __future__ import annotations
