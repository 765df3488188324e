"""Forgiving parsers for duration ("1y2M3d") and size ("1TB500GB") strings."""
from __future__ import annotations
import re

MINUTE = 60
HOUR = 60 * MINUTE
DAY = 24 * HOUR

MB = 1 << 20
GB = 1 << 30
TB = 1 << 40

# Segment order is fixed; units are case-sensitive (M = months, m = minutes).
_DURATION_PATTERN = re.compile(
    r"(?P<years>\d+y)?(?P<months>\d+M)?(?P<weeks>\d+w)?(?P<days>\d+d)?"
    r"(?P<hours>\d+h)?(?P<minutes>\d+m)?(?P<seconds>\d+s)?",
    re.ASCII,
)
_DURATION_UNITS = {
    "years": 365 * DAY,
    "months": 30 * DAY,
    "weeks": 7 * DAY,
    "days": DAY,
    "hours": HOUR,
    "minutes": MINUTE,
    "seconds": 1,
}

_SIZE_PATTERN = re.compile(r"(?P<tb>\d+TB)?(?P<gb>\d+GB)?(?P<mb>\d+MB)?", re.ASCII)
_SIZE_UNITS = {"tb": TB, "gb": GB, "mb": MB}


def _segment_value(segment: str | None, suffix_len: int) -> int:
    if not segment:
        return 0
    try:
        return int(segment[:-suffix_len])
    except ValueError:
        return 0


def seconds(duration: str | None) -> int:
    """Convert a duration string to total seconds.

    Never fails: empty or unparseable input yields 0. Parsing stops at the
    first character that doesn't continue the ``y M w d h m s`` sequence.
    """
    if not duration:
        return 0
    match = _DURATION_PATTERN.match(duration)
    if match is None:
        return 0
    return sum(
        _segment_value(match.group(name), 1) * multiplier
        for name, multiplier in _DURATION_UNITS.items()
    )


def to_bytes(size: str | None) -> int:
    """Convert a size string such as ``"1TB512GB"`` to bytes (binary multipliers)."""
    if not size:
        return 0
    match = _SIZE_PATTERN.match(size)
    if match is None:
        return 0
    return sum(
        _segment_value(match.group(name), 2) * multiplier
        for name, multiplier in _SIZE_UNITS.items()
    )


def format_gb(num_bytes: int) -> str:
    return f"{num_bytes / GB:.2f}GB"
