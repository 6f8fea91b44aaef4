"""Per-user collections: profile, tasks, assessment markers, notes, courses, timetable."""

from fastapi import APIRouter, Depends, status

from ...database.operations import DatabaseOperations
from ...functions.callable import AuthContext
from ...services.timetable import build_weekly_timetable, import_schedule_entries
from ...utils.error_handlers import NotFoundError
from ..auth import get_current_user
from ..deps import get_db
from ..schemas import (
    CompletionIn,
    CourseIn,
    NoteUpdate,
    ProfileIn,
    ScheduleImportIn,
    TaskIn,
    TaskStatusIn,
)

router = APIRouter(prefix="/api", tags=["personal"])


# ==================== Profile ====================

@router.put("/profile")
def save_profile(
    body: ProfileIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    email = body.email or user.token.get("email") or ""
    display_name = body.displayName or user.token.get("name") or ""
    return db.create_user_profile(user.uid, email, display_name, body.role)


@router.get("/profile")
def get_profile(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    profile = db.get_user_profile(user.uid)
    if profile is None:
        raise NotFoundError(f"No profile for {user.uid}")
    return profile


# ==================== Tasks ====================

@router.get("/tasks")
def list_tasks(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.get_tasks(user.uid)


@router.post("/tasks", status_code=status.HTTP_201_CREATED)
def create_task(
    body: TaskIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.add_task(
        user.uid,
        title=body.title,
        due_date=body.dueDate,
        description=body.description,
        course_code=body.courseCode,
        priority=body.priority,
        status=body.status,
    )


@router.patch("/tasks/{task_id}/status")
def set_task_status(
    task_id: int,
    body: TaskStatusIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.update_task_status(user.uid, task_id, body.status)


@router.delete("/tasks/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_task(
    task_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> None:
    if not db.delete_task(user.uid, task_id):
        raise NotFoundError(f"Task {task_id} not found for {user.uid}")


@router.get("/assessments/completed")
def list_completed_assessments(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[int]:
    return db.get_completed_assessments(user.uid)


@router.put("/assessments/{post_id}/completion")
def set_assessment_completion(
    post_id: int,
    body: CompletionIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    completed = db.toggle_assessment_completion(user.uid, post_id, body.completed)
    return {"assessmentId": post_id, "completed": completed}


# ==================== Notes ====================

@router.get("/notes")
def list_notes(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.get_notes(user.uid)


@router.post("/notes", status_code=status.HTTP_201_CREATED)
def create_note(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.create_note(user.uid)


@router.patch("/notes/{note_id}")
def edit_note(
    note_id: int,
    body: NoteUpdate,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.update_note(user.uid, note_id, title=body.title, content=body.content)


@router.delete("/notes/{note_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_note(
    note_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> None:
    if not db.delete_note(user.uid, note_id):
        raise NotFoundError(f"Note {note_id} not found for {user.uid}")


# ==================== Courses ====================

@router.get("/courses")
def list_courses(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return db.get_courses(user.uid)


@router.post("/courses", status_code=status.HTTP_201_CREATED)
def create_course(
    body: CourseIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return db.add_course(
        user.uid,
        name=body.name,
        location=body.location,
        day_of_week=body.dayOfWeek,
        start_time=body.startTime,
        end_time=body.endTime,
        code=body.code,
        color=body.color,
    )


@router.post("/courses/import")
def import_courses(
    body: ScheduleImportIn,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> dict:
    return import_schedule_entries(db, user.uid, body.entries, color=body.color)


@router.delete("/courses/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_course(
    course_id: int,
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> None:
    if not db.delete_course(user.uid, course_id):
        raise NotFoundError(f"Course {course_id} not found for {user.uid}")


# ==================== Timetable ====================

@router.get("/timetable")
def weekly_timetable(
    user: AuthContext = Depends(get_current_user),
    db: DatabaseOperations = Depends(get_db),
) -> list[dict]:
    return build_weekly_timetable(db.get_courses(user.uid), db.get_units_for_user(user.uid))
