"""Weekly timetable assembly and import of extracted schedules."""

import logging
from typing import Iterable

from ..ai.schema import ScheduleEntry
from ..database.operations import DEFAULT_COURSE_COLOR, DatabaseOperations
from ..utils.error_handlers import ValidationError
from ..utils.time_utils import DEFAULT_DAY_INDEX, day_index, time_to_minutes

logger = logging.getLogger(__name__)

GROUP_UNIT_COLOR = "#4f46e5"
GROUP_UNIT_BORDER = "#4338ca"


def _sort_key(event: dict) -> tuple:
    return (
        event["daysOfWeek"][0],
        time_to_minutes(event["startTime"]) or 0,
        str(event["id"]),
    )


def build_weekly_timetable(courses: Iterable[dict], units: Iterable[dict]) -> list[dict]:
    """
    Merge personal courses and group unit slots into recurring weekly events.

    Days use 0=Sunday. A unit slot whose day name is not recognised is placed
    on Monday.
    """
    events = []

    for course in courses:
        color = course.get("color") or DEFAULT_COURSE_COLOR
        events.append({
            "id": str(course["id"]),
            "title": course["name"],
            "daysOfWeek": [int(course["dayOfWeek"])],
            "startTime": course["startTime"],
            "endTime": course["endTime"],
            "backgroundColor": color,
            "borderColor": color,
            "extendedProps": {
                "location": course.get("location", ""),
                "code": course.get("code", ""),
                "type": "personal",
            },
        })

    for unit in units:
        for idx, slot in enumerate(unit.get("schedule") or []):
            index = day_index(slot.get("day", ""))
            events.append({
                "id": f"{unit['id']}-{idx}",
                "title": unit["name"],
                "daysOfWeek": [DEFAULT_DAY_INDEX if index is None else index],
                "startTime": slot.get("startTime", ""),
                "endTime": slot.get("endTime", ""),
                "backgroundColor": GROUP_UNIT_COLOR,
                "borderColor": GROUP_UNIT_BORDER,
                "extendedProps": {
                    "location": slot.get("location", ""),
                    "code": unit.get("code", ""),
                    "type": "group",
                    "lecturer": unit.get("lecturerName", ""),
                },
            })

    events.sort(key=_sort_key)
    return events


def import_schedule_entries(
    db: DatabaseOperations,
    user_id: str,
    entries: Iterable,
    color: str = DEFAULT_COURSE_COLOR,
) -> dict:
    """
    Save extracted timetable rows as personal courses.

    Rows with an unknown day or malformed times are skipped rather than
    failing the whole import.

    Returns:
        {"imported": [courses], "skipped": [{"entry", "reason"}]}
    """
    imported, skipped = [], []

    for raw in entries:
        try:
            entry = raw if isinstance(raw, ScheduleEntry) else ScheduleEntry.from_dict(raw)
        except ValueError as e:
            skipped.append({"entry": raw, "reason": str(e)})
            continue

        index = day_index(entry.day)
        if index is None:
            skipped.append({"entry": entry.to_dict(), "reason": f"Unknown day: {entry.day}"})
            continue

        try:
            course = db.add_course(
                user_id,
                name=entry.subject,
                location=entry.room or "TBA",
                day_of_week=index,
                start_time=entry.startTime,
                end_time=entry.endTime,
                color=color,
            )
        except ValidationError as e:
            skipped.append({"entry": entry.to_dict(), "reason": str(e)})
            continue
        imported.append(course)

    logger.info(f"Imported {len(imported)} courses for {user_id} ({len(skipped)} skipped)")
    return {"imported": imported, "skipped": skipped}
