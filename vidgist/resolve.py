"""
vidgist.resolve - Classify video URLs and extract media ids.

Resolution never fails: URLs that match no supported platform come back
as Platform.UNKNOWN with a synthetic id, and callers decide whether that
is fatal.
"""

from __future__ import annotations

import re
import uuid
from urllib.parse import parse_qs, urlparse

from vidgist.models import MediaReference, Platform

YOUTUBE_HOSTS = {
    "youtube.com",
    "m.youtube.com",
    "music.youtube.com",
    "youtube-nocookie.com",
    "youtu.be",
}
INSTAGRAM_HOSTS = {"instagram.com"}

YOUTUBE_ID_PATTERN = re.compile(
    r"(?:youtu\.be/|/v/|/embed/|/shorts/|/live/|/u/\w/|watch\?v=|&v=)([A-Za-z0-9_-]{11})(?![A-Za-z0-9_-])"
)
INSTAGRAM_ID_PATTERN = re.compile(r"/(?:p|reel|reels|tv)/([A-Za-z0-9_-]+)")


def _normalized_host(url: str) -> tuple[str, str]:
    """Return (host, url-with-scheme). Scheme-less URLs are accepted."""
    candidate = url.strip()
    if "://" not in candidate:
        candidate = f"https://{candidate}"
    parsed = urlparse(candidate)
    host = (parsed.hostname or "").lower()
    if host.startswith("www."):
        host = host[4:]
    return host, candidate


def detect_platform(url: str) -> Platform:
    host, _ = _normalized_host(url)
    if host in YOUTUBE_HOSTS:
        return Platform.YOUTUBE
    if host in INSTAGRAM_HOSTS:
        return Platform.INSTAGRAM
    return Platform.UNKNOWN


def extract_media_id(url: str, platform: Platform) -> str | None:
    """Parse the platform's media token from a URL, or None."""
    _, full_url = _normalized_host(url)
    if platform is Platform.YOUTUBE:
        match = YOUTUBE_ID_PATTERN.search(full_url)
        if match:
            return match.group(1)
        video_ids = parse_qs(urlparse(full_url).query).get("v", [])
        if video_ids and re.fullmatch(r"[A-Za-z0-9_-]{11}", video_ids[0]):
            return video_ids[0]
        return None
    if platform is Platform.INSTAGRAM:
        match = INSTAGRAM_ID_PATTERN.search(urlparse(full_url).path)
        return match.group(1) if match else None
    return None


def resolve_url(url: str) -> MediaReference:
    """Resolve a raw URL to a MediaReference.

    Args:
        url: Video page URL, with or without scheme

    Returns:
        MediaReference; platform is UNKNOWN and media_id a fresh UUID when
        nothing can be parsed
    """
    platform = detect_platform(url)
    media_id = extract_media_id(url, platform)
    synthetic = media_id is None
    return MediaReference(
        source_url=url.strip(),
        platform=platform,
        media_id=media_id or str(uuid.uuid4()),
        synthetic_id=synthetic,
    )


class PlatformResolver:
    """Object form of resolve_url, for injection into the coordinator."""

    def resolve(self, url: str) -> MediaReference:
        return resolve_url(url)
