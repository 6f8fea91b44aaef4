# AI module - Gemini integration
from .gemini_client import get_gemini_client, GeminiClient, is_rate_limit_error
from .schema import ScheduleEntry, TIMETABLE_SCHEMA, ENTRY_TYPES
from .timetable_extractor import (
    TimetableExtractor,
    ExtractionAttempt,
    ExtractionResult,
    ExtractionFailed,
)
