"""Human time strings (``SS``, ``MM:SS``, ``HH:MM:SS``) to and from seconds."""

import math
import re

_PART_RE = re.compile(r"[0-9]+")


def parse_time(text: str) -> float | int:
    """Parse a time string to whole seconds.

    Returns ``math.nan`` for anything that is not one to three colon-separated
    runs of digits. Callers must check the result with :func:`is_valid_time`.
    """
    if not isinstance(text, str):
        return math.nan

    parts = text.strip().split(":")
    if len(parts) > 3 or not all(_PART_RE.fullmatch(p) for p in parts):
        return math.nan

    seconds = 0
    for part in parts:
        seconds = seconds * 60 + int(part, 10)
    return seconds


def is_valid_time(value: float | int) -> bool:
    return not (isinstance(value, float) and math.isnan(value))


def format_time(seconds: int) -> str:
    """Format seconds as ``M:SS``. Minutes are unpadded and never roll over to hours."""
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"
