"""Request bodies accepted by the API."""

from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..database.operations import DEFAULT_COURSE_COLOR


class ProfileIn(BaseModel):
    email: Optional[str] = None
    displayName: str = ""
    role: Literal["student", "instructor"] = "student"


class TaskIn(BaseModel):
    title: str
    dueDate: str
    description: Optional[str] = None
    courseCode: Optional[str] = None
    priority: str = "medium"
    status: str = "todo"


class TaskStatusIn(BaseModel):
    status: str


class CompletionIn(BaseModel):
    completed: bool


class NoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None


class CourseIn(BaseModel):
    name: str
    location: str
    dayOfWeek: int
    startTime: str
    endTime: str
    code: str = ""
    color: str = DEFAULT_COURSE_COLOR


class ScheduleImportIn(BaseModel):
    """Rows as returned by extractTimetable."""
    entries: list[dict]
    color: str = DEFAULT_COURSE_COLOR


class GroupIn(BaseModel):
    name: str
    code: str
    lecturerName: str = ""


class JoinGroupIn(BaseModel):
    joinCode: str


class UnitSlotIn(BaseModel):
    day: str
    startTime: str
    endTime: str
    location: str = ""


class UnitIn(BaseModel):
    name: str
    code: str = ""
    lecturerName: str = ""
    schedule: list[UnitSlotIn] = Field(default_factory=list)


class PostIn(BaseModel):
    content: str
    unitId: Optional[int] = None
    isAssessment: bool = False
    eventDate: Optional[str] = None
