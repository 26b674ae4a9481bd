"""
Utilities package for the drive monitor.

Pure functions without side effects, plus the host settings file helper.
"""

from .formatting import (
    ensure_aware,
    format_file_size,
    format_time_ago,
    round_half_up,
    to_log_timestamp,
)

__all__ = [
    "ensure_aware",
    "format_file_size",
    "format_time_ago",
    "round_half_up",
    "to_log_timestamp",
]
