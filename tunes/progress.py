"""
Duration parsing and progress bar rendering for ytbeats.
"""
from typing import Optional, TextIO

BAR_WIDTH: int = 40
BAR_FILLED: str = "█"
BAR_EMPTY: str = "░"


def parse_duration(text: Optional[str]) -> int:
    """Convert a "M:SS" or "H:MM:SS" timestamp to total seconds.

    Args:
        text: Timestamp as shown by the search provider

    Returns:
        Total seconds, or 0 when the format is not recognized
    """
    if not text:
        return 0

    parts = text.strip().split(":")
    try:
        values = [int(part) for part in parts]
    except ValueError:
        return 0

    if len(values) == 2:
        return values[0] * 60 + values[1]
    if len(values) == 3:
        return values[0] * 3600 + values[1] * 60 + values[2]
    return 0


def format_timestamp(seconds: Optional[float]) -> str:
    """Format seconds as "M:SS", or "H:MM:SS" from one hour up."""
    if not seconds or seconds < 0:
        return "0:00"

    total = int(seconds)
    hours, rest = divmod(total, 3600)
    mins, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def _format_clock(seconds: int) -> str:
    mins = int(seconds) // 60
    secs = int(seconds) % 60
    return f"{mins}:{secs:02d}"


def render_progress(current: int, total: int) -> str:
    """Render the progress line for the current playback position.

    An unknown total (0) renders as 0%.

    Args:
        current: Elapsed seconds
        total: Track length in seconds

    Returns:
        Bar, time pair and percentage, e.g. "[██░░...] 0:10 / 3:45 (4%)"
    """
    if total > 0:
        pct = min(max(current / total, 0.0), 1.0)
    else:
        pct = 0.0

    filled = int(BAR_WIDTH * pct)
    bar = BAR_FILLED * filled + BAR_EMPTY * (BAR_WIDTH - filled)
    return f"[{bar}] {_format_clock(current)} / {_format_clock(total)} ({int(pct * 100)}%)"


def draw_progress(current: int, total: int, out: TextIO) -> None:
    """Overwrite the current terminal line with the progress bar."""
    out.write("\r" + render_progress(current, total))
    out.flush()
