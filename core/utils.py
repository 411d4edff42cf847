import math
from typing import Optional


def format_seconds_to_human_readable(seconds: Optional[float]) -> str:
    """
    Converts a float of seconds into a human-readable string (e.g., "1h 25m 30s").
    Handles hours, minutes, and seconds, omitting units if their value is zero.
    """
    if seconds is None:
        return "N/A"

    seconds = math.ceil(max(seconds, 0))  # Round up to the nearest whole second

    hours = seconds // 3600
    minutes = (seconds % 3600) // 60
    remaining_seconds = seconds % 60

    parts = []
    if hours > 0:
        parts.append(f"{int(hours)}h")
    if minutes > 0:
        parts.append(f"{int(minutes)}m")
    if remaining_seconds > 0 or (hours == 0 and minutes == 0):  # Always show seconds under a minute
        parts.append(f"{int(remaining_seconds)}s")

    return " ".join(parts)


def format_clock(seconds: Optional[float]) -> str:
    """Formats a position as m:ss or h:mm:ss for the transport bar."""
    if not seconds or seconds < 0:
        return "0:00"
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def progress_label(fraction: float, completed: bool) -> str:
    return "Completed" if completed else f"{round(fraction * 100)}%"
