"""Weekday and clock-time helpers shared by timetables, courses and tasks."""

import re
import time
from datetime import datetime
from typing import Optional

# Full day names as they appear in extracted schedules
DAY_NAMES = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]

# Calendar day index as stored on courses (0=Sunday, 6=Saturday)
DAY_INDEX = {
    "Sunday": 0, "Monday": 1, "Tuesday": 2, "Wednesday": 3,
    "Thursday": 4, "Friday": 5, "Saturday": 6,
}

DEFAULT_DAY_INDEX = DAY_INDEX["Monday"]

_TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):([0-5]\d)$")


def now_ms() -> int:
    """Current time as epoch milliseconds."""
    return int(time.time() * 1000)


def is_valid_time(time_str: str) -> bool:
    """Check for a 24-hour HH:MM string."""
    if not isinstance(time_str, str):
        return False
    return bool(_TIME_PATTERN.match(time_str))


def time_to_minutes(time_str: str) -> Optional[int]:
    """Convert HH:MM to minutes since midnight, or None if malformed."""
    match = _TIME_PATTERN.match(time_str or "")
    if not match:
        return None
    return int(match.group(1)) * 60 + int(match.group(2))


def day_index(day_name: str) -> Optional[int]:
    """
    Map a weekday name to its 0=Sunday index.

    Accepts any case and three-letter abbreviations ("mon", "Tue").
    """
    if not day_name:
        return None
    key = day_name.strip().lower()
    for name, index in DAY_INDEX.items():
        if key == name.lower() or key == name[:3].lower():
            return index
    return None


def parse_datetime(value: str) -> Optional[datetime]:
    """Parse an ISO date or datetime string, tolerating a trailing Z."""
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
