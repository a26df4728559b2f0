"""
YouTube search adapter for ytbeats.
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yt_dlp

from logging_config import get_logger, SearchError
from tunes.progress import format_timestamp

logger = get_logger('search')

DEFAULT_LIMIT: int = 10
WATCH_URL: str = "https://www.youtube.com/watch?v={}"


@dataclass(frozen=True)
class Track:
    """One search result."""

    title: str
    id: str
    url: str
    duration_text: str
    author: str

    @property
    def label(self) -> str:
        """Text shown for this track in the selection prompt."""
        return f"{self.title} - {self.author} [{self.duration_text}]"


def _track_from_entry(entry: Dict[str, Any]) -> Optional[Track]:
    """Build a Track from a flat yt-dlp search entry."""
    video_id = entry.get("id")
    if not video_id:
        return None

    duration = entry.get("duration")
    if duration:
        duration_text = format_timestamp(duration)
    else:
        duration_text = entry.get("duration_string") or "0:00"

    url = entry.get("url") or WATCH_URL.format(video_id)
    if not url.startswith("http"):
        url = WATCH_URL.format(video_id)

    return Track(
        title=entry.get("title") or "Unknown",
        id=video_id,
        url=url,
        duration_text=duration_text,
        author=entry.get("uploader") or entry.get("channel") or "Unknown",
    )


def _run_provider(query: str, limit: int) -> List[Dict[str, Any]]:
    ydl_opts = {
        'quiet': True,
        'no_warnings': True,
        'extract_flat': True,
        'skip_download': True,
    }
    try:
        with yt_dlp.YoutubeDL(ydl_opts) as ydl:
            info = ydl.extract_info(f"ytsearch{limit}:{query}", download=False)
    except Exception as e:
        raise SearchError(f"search for {query!r} failed: {e}") from e

    if not isinstance(info, dict):
        raise SearchError(f"unexpected search response: {type(info).__name__}")
    return [entry for entry in info.get("entries") or [] if isinstance(entry, dict)]


def search_tracks(query: str, limit: int = DEFAULT_LIMIT) -> List[Track]:
    """Search YouTube and return up to ``limit`` tracks in provider order.

    Provider failures are logged and reported as an empty result.

    Args:
        query: Non-empty search text
        limit: Maximum number of results

    Returns:
        List of Track records
    """
    try:
        entries = _run_provider(query, limit)
    except SearchError as e:
        logger.warning(str(e))
        return []

    tracks = []
    for entry in entries:
        track = _track_from_entry(entry)
        if track is not None:
            tracks.append(track)
        if len(tracks) >= limit:
            break

    logger.info(f"Search {query!r} returned {len(tracks)} tracks")
    return tracks
