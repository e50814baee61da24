"""
vidgist.extract.streams - Resolve hosted videos to readable streams.

Uses yt-dlp metadata extraction only; nothing is downloaded here. The
returned MediaStream URL is read directly by FFmpeg.
"""

from __future__ import annotations

import asyncio
from typing import Any

from vidgist.exceptions import ExtractionError, UnsupportedPlatformError
from vidgist.logging import logger
from vidgist.models import MediaReference, MediaStream, VideoInfo

AUDIO_FORMAT = "bestaudio/best"
VIDEO_FORMAT = "best[height<=720][vcodec!=none]/best[vcodec!=none]/best"


class YtDlpStreamProvider:
    """MediaStreamProvider backed by yt-dlp."""

    def __init__(self, socket_timeout: int = 30) -> None:
        self.socket_timeout = socket_timeout

    def _options(self, fmt: str | None) -> dict[str, Any]:
        opts: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "noplaylist": True,
            "skip_download": True,
            "socket_timeout": self.socket_timeout,
        }
        if fmt:
            opts["format"] = fmt
        return opts

    def _extract_info(self, url: str, fmt: str | None) -> dict[str, Any]:
        try:
            import yt_dlp
        except ImportError as e:
            raise ExtractionError("yt-dlp not installed. Install with: pip install yt-dlp") from e

        with yt_dlp.YoutubeDL(self._options(fmt)) as ydl:
            info = ydl.extract_info(url, download=False)
            if not info:
                raise ExtractionError(f"No media information returned for {url}")
            return ydl.sanitize_info(info)

    async def open_stream(self, ref: MediaReference, audio_only: bool) -> MediaStream:
        """Resolve the best audio-only or progressive video stream for ref.

        Raises:
            UnsupportedPlatformError: If ref is not on a supported platform
            ExtractionError: If yt-dlp cannot resolve a stream
        """
        if not ref.supported:
            raise UnsupportedPlatformError(ref.source_url, ref.platform.value)

        fmt = AUDIO_FORMAT if audio_only else VIDEO_FORMAT
        try:
            info = await asyncio.to_thread(self._extract_info, ref.source_url, fmt)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Could not resolve stream for {ref.source_url}: {e}") from e

        stream = select_stream(info)
        logger.debug(
            "Resolved %s stream %s for %s",
            "audio" if audio_only else "video",
            stream.format_id,
            ref.media_id,
        )
        return stream

    async def video_info(self, ref: MediaReference) -> VideoInfo:
        """Fetch page metadata without touching the media itself."""
        if not ref.supported:
            raise UnsupportedPlatformError(ref.source_url, ref.platform.value)
        try:
            info = await asyncio.to_thread(self._extract_info, ref.source_url, None)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(f"Could not fetch video info for {ref.source_url}: {e}") from e
        return parse_video_info(info)


def select_stream(info: dict[str, Any]) -> MediaStream:
    """Pick the stream yt-dlp selected for the requested format."""
    selected = info
    if not selected.get("url") and info.get("requested_formats"):
        selected = info["requested_formats"][0]
    url = selected.get("url")
    if not url:
        raise ExtractionError("No direct stream URL in media information")
    headers = selected.get("http_headers") or info.get("http_headers") or {}
    return MediaStream(
        url=url,
        http_headers={str(k): str(v) for k, v in headers.items()},
        format_id=selected.get("format_id"),
        extension=selected.get("ext"),
    )


def parse_video_info(info: dict[str, Any]) -> VideoInfo:
    """Map yt-dlp metadata onto VideoInfo."""
    thumbnails = tuple(
        t["url"] for t in info.get("thumbnails") or [] if isinstance(t, dict) and t.get("url")
    )
    view_count = info.get("view_count")
    return VideoInfo(
        title=info.get("title") or "",
        description=info.get("description") or "",
        duration_seconds=float(info.get("duration") or 0),
        author=info.get("uploader") or info.get("channel") or "",
        view_count=int(view_count) if view_count is not None else None,
        upload_date=info.get("upload_date"),
        keywords=tuple(info.get("tags") or ()),
        thumbnails=thumbnails,
    )
