"""Schedule entry contract shared by the extraction model call and course import."""

from dataclasses import dataclass, asdict
from typing import Optional

from ..utils.time_utils import DAY_NAMES

ENTRY_TYPES = ["lecture", "tutorial", "lab", "other"]

REQUIRED_FIELDS = ["day", "startTime", "endTime", "subject"]

# Structured-output schema handed to Gemini. Required fields are enforced by
# the model call; replies are returned unfiltered.
TIMETABLE_SCHEMA = {
    "description": "List of classes from a timetable",
    "type": "ARRAY",
    "items": {
        "type": "OBJECT",
        "properties": {
            "day": {"type": "STRING", "description": "Full day name (Monday, etc.)"},
            "startTime": {"type": "STRING", "description": "HH:mm format"},
            "endTime": {"type": "STRING", "description": "HH:mm format"},
            "subject": {"type": "STRING", "description": "Course code and name"},
            "room": {"type": "STRING", "description": "Venue/Location"},
            "type": {
                "type": "STRING",
                "enum": ENTRY_TYPES,
                "description": "Class type",
            },
            "lecturer": {"type": "STRING", "description": "Lecturer name if visible"},
        },
        "required": REQUIRED_FIELDS,
    },
}


@dataclass
class ScheduleEntry:
    """One class slot read off a timetable image."""
    day: str  # Full weekday name, Monday..Sunday
    startTime: str  # HH:MM, 24-hour
    endTime: str  # HH:MM, 24-hour
    subject: str
    room: str = ""
    type: str = "other"  # lecture | tutorial | lab | other
    lecturer: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "ScheduleEntry":
        """Build an entry from model output, filling optional fields with defaults."""
        missing = [field for field in REQUIRED_FIELDS if not data.get(field)]
        if missing:
            raise ValueError(f"Schedule entry missing required fields: {', '.join(missing)}")

        entry_type = data.get("type") or "other"
        if entry_type not in ENTRY_TYPES:
            entry_type = "other"

        return cls(
            day=data["day"],
            startTime=data["startTime"],
            endTime=data["endTime"],
            subject=data["subject"],
            room=data.get("room") or "",
            type=entry_type,
            lecturer=data.get("lecturer"),
        )

    def to_dict(self) -> dict:
        return asdict(self)

    @property
    def has_known_day(self) -> bool:
        return self.day in DAY_NAMES
