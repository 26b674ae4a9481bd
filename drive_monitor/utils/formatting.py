"""
Pure formatting helpers shared by notifications, summaries and the log.
"""

import math
from datetime import datetime, timezone
from typing import Optional

_SIZE_UNITS = ["Bytes", "KB", "MB", "GB", "TB"]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from minus infinity (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def format_file_size(size_bytes: int) -> str:
    if size_bytes <= 0:
        return "0 Bytes"

    value = float(size_bytes)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1

    return f"{round(value, 2):g} {_SIZE_UNITS[unit]}"


def format_time_ago(timestamp: datetime, now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    seconds = max((ensure_aware(now) - ensure_aware(timestamp)).total_seconds(), 0.0)

    if seconds < 60:
        return f"{round_half_up(seconds)} seconds ago"
    if seconds < 3600:
        return f"{round_half_up(seconds / 60)} minutes ago"
    if seconds < 86400:
        return f"{round_half_up(seconds / 3600)} hours ago"
    return f"{round_half_up(seconds / 86400)} days ago"


def ensure_aware(value: datetime) -> datetime:
    """Naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def to_log_timestamp(value: datetime) -> str:
    """
    The single timestamp representation used in the change log.

    UTC ISO-8601 with seconds precision, so the first ten characters are the
    UTC calendar date the aggregator matches on.
    """
    return ensure_aware(value).astimezone(timezone.utc).isoformat(timespec="seconds")
