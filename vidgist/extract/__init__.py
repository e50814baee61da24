"""
vidgist.extract - Media acquisition stages.

Resolves hosted videos to streams (yt-dlp), transcodes the audio track and
samples still frames (FFmpeg). Every file written lands in the run's
scratch space.
"""

from __future__ import annotations
