"""
This module contains helper functions for formatting data into human-readable strings.
They are used by the CLI progress line, the interactive queue view and the log
messages, so sizes, durations and percentages look the same everywhere.
"""

from datetime import timedelta
from typing import Optional


def format_timedelta(td_object: timedelta) -> str:
    """
    Formats a timedelta object into a "HH:MM:SS" string.

    Args:
        td_object: The timedelta object to format.

    Returns:
        A string representing the timedelta in HH:MM:SS format.
        For example, a timedelta of 7261 seconds becomes "02:01:01".
        Returns "00:00:00" if the input is not a valid timedelta object.
    """
    if not isinstance(td_object, timedelta):
        return "00:00:00"

    total_seconds = max(int(td_object.total_seconds()), 0)
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{seconds:02}"


def format_seconds(seconds: Optional[float]) -> str:
    """Formats a duration in seconds as "HH:MM:SS", or "--:--:--" when unknown."""
    if seconds is None or seconds < 0:
        return "--:--:--"
    return format_timedelta(timedelta(seconds=seconds))


def formatted_size(size_bytes: float) -> str:
    """
    Converts a size in bytes to a human-readable string (e.g., B, KB, MB, GB, TB).

    Args:
        size_bytes: The size of the file in bytes.

    Returns:
        A formatted string with the appropriate unit.
        For example, 1536 becomes "1.50 KB", and 2097152 becomes "2 MB".
    """
    if size_bytes <= 0:
        return "0 B"

    units = ["B", "KB", "MB", "GB", "TB", "PB"]
    factor = 1024.0

    for unit in units:
        if size_bytes < factor:
            if unit == "B":
                return f"{int(size_bytes)} {unit}"
            # "2.00 MB" -> "2 MB"
            return f"{size_bytes:.2f} {unit}".replace(".00", "")
        size_bytes /= factor

    return f"{size_bytes:.2f} {units[-1]}".replace(".00", "")


def format_percent(fraction: float) -> str:
    """Formats a fraction in [0, 1] as a whole percentage, e.g. 0.425 -> " 42%"."""
    fraction = min(max(fraction, 0.0), 1.0)
    return f"{int(fraction * 100):3d}%"


def size_ratio(original: int, compressed: int) -> str:
    """Describes the compressed size relative to the original, e.g. "-63%"."""
    if original <= 0:
        return "n/a"
    change = (compressed - original) / original * 100
    return f"{change:+.0f}%"
