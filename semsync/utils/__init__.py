# Utility functions
from .time_utils import (
    DAY_NAMES,
    DAY_INDEX,
    now_ms,
    is_valid_time,
    time_to_minutes,
    day_index,
    parse_datetime,
)
from .file_validation import validate_file, format_bytes
