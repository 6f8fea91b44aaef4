"""Database CRUD operations for all collections."""

import json
import logging
import random
import sqlite3
import string
from typing import Optional

from .changes import ADDED, MODIFIED, REMOVED, ChangeFeed, Subscription
from .models import get_connection
from ..utils.error_handlers import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..utils.time_utils import is_valid_time, now_ms, parse_datetime

logger = logging.getLogger(__name__)

ROLES = ("student", "instructor")
TASK_PRIORITIES = ("low", "medium", "high")
TASK_STATUSES = ("todo", "in-progress", "done")
DEFAULT_COURSE_COLOR = "#2563eb"
JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
JOIN_CODE_LENGTH = 6


def generate_join_code() -> str:
    """Random 6-character join code (A-Z, 0-9)."""
    return "".join(random.choices(JOIN_CODE_ALPHABET, k=JOIN_CODE_LENGTH))


# ==================== Row mappers ====================

def _profile(row) -> dict:
    return {
        "uid": row["uid"],
        "email": row["email"],
        "displayName": row["display_name"],
        "role": row["role"],
        "createdAt": row["created_at"],
    }


def _task(row) -> dict:
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "title": row["title"],
        "description": row["description"],
        "courseCode": row["course_code"],
        "dueDate": row["due_date"],
        "priority": row["priority"],
        "status": row["status"],
        "completed": bool(row["completed"]),
        "createdAt": row["created_at"],
    }


def _note(row) -> dict:
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "title": row["title"],
        "content": row["content"],
        "lastModified": row["last_modified"],
    }


def _course(row) -> dict:
    return {
        "id": row["id"],
        "userId": row["user_id"],
        "instructorId": row["instructor_id"],
        "code": row["code"],
        "name": row["name"],
        "location": row["location"],
        "dayOfWeek": row["day_of_week"],
        "startTime": row["start_time"],
        "endTime": row["end_time"],
        "color": row["color"],
    }


def _group(row) -> dict:
    return {
        "id": row["id"],
        "name": row["name"],
        "code": row["code"],
        "joinCode": row["join_code"],
        "lecturerName": row["lecturer_name"],
        "repId": row["rep_id"],
        "memberCount": row["member_count"],
        "createdAt": row["created_at"],
    }


def _unit(row) -> dict:
    return {
        "id": row["id"],
        "groupId": row["group_id"],
        "name": row["name"],
        "code": row["code"],
        "lecturerName": row["lecturer_name"],
        "schedule": json.loads(row["schedule"] or "[]"),
    }


def _post(row) -> dict:
    return {
        "id": row["id"],
        "groupId": row["group_id"],
        "authorId": row["author_id"],
        "authorName": row["author_name"],
        "content": row["content"],
        "type": row["type"],
        "unitId": row["unit_id"],
        "unitName": row["unit_name"],
        "isAssessment": bool(row["is_assessment"]),
        "eventDate": row["event_date"],
        "createdAt": row["created_at"],
    }


def _resource(row) -> dict:
    return {
        "id": row["id"],
        "groupId": row["group_id"],
        "unitId": row["unit_id"],
        "unitName": row["unit_name"],
        "title": row["title"],
        "description": row["description"],
        "category": row["category"],
        "fileUrl": row["file_url"],
        "storagePath": row["storage_path"],
        "fileType": row["file_type"],
        "fileName": row["file_name"],
        "fileSize": row["file_size"],
        "uploadedBy": row["uploaded_by"],
        "uploadedByName": row["uploaded_by_name"],
        "createdAt": row["created_at"],
    }


def _validate_slot(slot: dict) -> dict:
    """Normalize one unit schedule slot."""
    if not isinstance(slot, dict):
        raise ValidationError("Each schedule slot must be an object")
    day = str(slot.get("day") or "").strip()
    start, end = slot.get("startTime", ""), slot.get("endTime", "")
    if not day:
        raise ValidationError("Schedule slot is missing a day")
    if not is_valid_time(start) or not is_valid_time(end):
        raise ValidationError("Schedule times must use HH:MM format")
    return {
        "day": day,
        "startTime": start,
        "endTime": end,
        "location": str(slot.get("location") or ""),
    }


class DatabaseOperations:
    """Database operations wrapper. Every mutation is announced on the change feed."""

    def __init__(self, db_path: str, feed: Optional[ChangeFeed] = None):
        self.db_path = db_path
        self.feed = feed or ChangeFeed()

    def _get_conn(self) -> sqlite3.Connection:
        return get_connection(self.db_path)

    def _publish(self, collection: str, scope, kind: str, doc_id=None) -> None:
        self.feed.publish(collection, scope, kind, doc_id)

    # ==================== User Profiles ====================

    def create_user_profile(
        self,
        uid: str,
        email: str,
        display_name: str = "",
        role: str = "student",
    ) -> dict:
        """Create or overwrite the profile for a uid."""
        if role not in ROLES:
            raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")

        conn = self._get_conn()
        try:
            existing = conn.execute(
                "SELECT created_at FROM users WHERE uid = ?", (uid,)
            ).fetchone()
            created_at = existing["created_at"] if existing else now_ms()
            conn.execute(
                """INSERT OR REPLACE INTO users (uid, email, display_name, role, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (uid, email, display_name, role, created_at)
            )
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Saved profile for {uid}")
        return self.get_user_profile(uid)

    def get_user_profile(self, uid: str) -> Optional[dict]:
        """Get a user profile by uid."""
        conn = self._get_conn()
        try:
            row = conn.execute("SELECT * FROM users WHERE uid = ?", (uid,)).fetchone()
            return _profile(row) if row else None
        finally:
            conn.close()

    # ==================== Tasks ====================

    def add_task(
        self,
        user_id: str,
        title: str,
        due_date: str,
        description: str = None,
        course_code: str = None,
        priority: str = "medium",
        status: str = "todo",
    ) -> dict:
        """Add a personal task. Returns the stored task."""
        if not title or not title.strip():
            raise ValidationError("Task title is required")
        if parse_datetime(due_date) is None:
            raise ValidationError("Due date must be an ISO date or datetime")
        if priority not in TASK_PRIORITIES:
            raise ValidationError(f"Priority must be one of: {', '.join(TASK_PRIORITIES)}")
        if status not in TASK_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(TASK_STATUSES)}")

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """INSERT INTO tasks
                   (user_id, title, description, course_code, due_date,
                    priority, status, completed, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (user_id, title.strip(), description, course_code, due_date,
                 priority, status, int(status == "done"), now_ms())
            )
            conn.commit()
            task_id = cursor.lastrowid
        finally:
            conn.close()

        self._publish("tasks", user_id, ADDED, task_id)
        return self.get_task(user_id, task_id)

    def get_task(self, user_id: str, task_id: int) -> dict:
        """Get one of the caller's tasks."""
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Task {task_id} not found for {user_id}")
        return _task(row)

    def get_tasks(self, user_id: str) -> list[dict]:
        """All tasks of a user, earliest due date first."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? ORDER BY due_date ASC, id ASC",
                (user_id,)
            )
            return [_task(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def update_task_status(self, user_id: str, task_id: int, status: str) -> dict:
        """Move a task between columns. `completed` follows `status == "done"`."""
        if status not in TASK_STATUSES:
            raise ValidationError(f"Status must be one of: {', '.join(TASK_STATUSES)}")

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "UPDATE tasks SET status = ?, completed = ? WHERE id = ? AND user_id = ?",
                (status, int(status == "done"), task_id, user_id)
            )
            conn.commit()
            updated = cursor.rowcount > 0
        finally:
            conn.close()

        if not updated:
            raise NotFoundError(f"Task {task_id} not found for {user_id}")
        self._publish("tasks", user_id, MODIFIED, task_id)
        return self.get_task(user_id, task_id)

    def delete_task(self, user_id: str, task_id: int) -> bool:
        """Delete a task. Returns True if deleted."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM tasks WHERE id = ? AND user_id = ?", (task_id, user_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()

        if deleted:
            self._publish("tasks", user_id, REMOVED, task_id)
        return deleted

    def subscribe_to_tasks(self, user_id: str) -> Subscription:
        return self.feed.subscribe("tasks", user_id, lambda: self.get_tasks(user_id))

    # ==================== Assessment completion ====================

    def toggle_assessment_completion(
        self, user_id: str, assessment_id: int, completed: bool
    ) -> bool:
        """
        Set or clear the caller's completion marker. Returns the new state.

        Marking requires an assessment post in a group the user belongs to.
        Clearing never checks, so a marker can always be removed.

        Raises:
            NotFoundError: No assessment post has this id.
            PermissionDeniedError: The user is not in the post's group.
        """
        if completed:
            self._require_assessment(user_id, assessment_id)

        conn = self._get_conn()
        try:
            if completed:
                conn.execute(
                    """INSERT OR IGNORE INTO completed_assessments
                       (user_id, assessment_id, completed_at) VALUES (?, ?, ?)""",
                    (user_id, assessment_id, now_ms())
                )
            else:
                conn.execute(
                    "DELETE FROM completed_assessments WHERE user_id = ? AND assessment_id = ?",
                    (user_id, assessment_id)
                )
            conn.commit()
        finally:
            conn.close()

        self._publish("completed_assessments", user_id, ADDED if completed else REMOVED, assessment_id)
        return completed

    def _require_assessment(self, user_id: str, post_id: int) -> dict:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM posts WHERE id = ? AND is_assessment = 1", (post_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Assessment {post_id} not found")
        self.require_member(row["group_id"], user_id)
        return _post(row)

    def get_completed_assessments(self, user_id: str) -> list[int]:
        """Ids of the assessments the user has marked complete."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """SELECT assessment_id FROM completed_assessments
                   WHERE user_id = ? ORDER BY completed_at""",
                (user_id,)
            )
            return [row["assessment_id"] for row in cursor.fetchall()]
        finally:
            conn.close()

    def subscribe_to_completed_assessments(self, user_id: str) -> Subscription:
        return self.feed.subscribe(
            "completed_assessments", user_id, lambda: self.get_completed_assessments(user_id)
        )

    # ==================== Notes ====================

    def create_note(self, user_id: str) -> dict:
        """Create an empty note."""
        timestamp = now_ms()
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """INSERT INTO notes (user_id, title, content, last_modified, created_at)
                   VALUES (?, '', '', ?, ?)""",
                (user_id, timestamp, timestamp)
            )
            conn.commit()
            note_id = cursor.lastrowid
        finally:
            conn.close()

        self._publish("notes", user_id, ADDED, note_id)
        return self.get_note(user_id, note_id)

    def get_note(self, user_id: str, note_id: int) -> dict:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM notes WHERE id = ? AND user_id = ?", (note_id, user_id)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Note {note_id} not found for {user_id}")
        return _note(row)

    def get_notes(self, user_id: str) -> list[dict]:
        """All notes of a user, most recently modified first."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "SELECT * FROM notes WHERE user_id = ? ORDER BY last_modified DESC, id DESC",
                (user_id,)
            )
            return [_note(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def update_note(
        self,
        user_id: str,
        note_id: int,
        title: str = None,
        content: str = None,
    ) -> dict:
        """Update title and/or content and bump lastModified."""
        updates = {}
        if title is not None:
            updates["title"] = title
        if content is not None:
            updates["content"] = content
        # Never go backwards, even within the same millisecond
        current = self.get_note(user_id, note_id)
        updates["last_modified"] = max(now_ms(), current["lastModified"] + 1)

        fields = ", ".join(f"{k} = ?" for k in updates.keys())
        values = list(updates.values()) + [note_id, user_id]

        conn = self._get_conn()
        try:
            conn.execute(
                f"UPDATE notes SET {fields} WHERE id = ? AND user_id = ?",
                values
            )
            conn.commit()
        finally:
            conn.close()

        self._publish("notes", user_id, MODIFIED, note_id)
        return self.get_note(user_id, note_id)

    def delete_note(self, user_id: str, note_id: int) -> bool:
        """Delete a note. Returns True if deleted."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM notes WHERE id = ? AND user_id = ?", (note_id, user_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()

        if deleted:
            self._publish("notes", user_id, REMOVED, note_id)
        return deleted

    def subscribe_to_notes(self, user_id: str) -> Subscription:
        return self.feed.subscribe("notes", user_id, lambda: self.get_notes(user_id))

    # ==================== Courses ====================

    def add_course(
        self,
        user_id: str,
        name: str,
        location: str,
        day_of_week: int,
        start_time: str,
        end_time: str,
        code: str = "",
        color: str = DEFAULT_COURSE_COLOR,
    ) -> dict:
        """Add a personal recurring class (day_of_week: 0=Sunday..6=Saturday)."""
        if not name or len(name.strip()) < 2:
            raise ValidationError("Course name must be at least 2 characters")
        if not location or not location.strip():
            raise ValidationError("Location is required")
        if not isinstance(day_of_week, int) or not 0 <= day_of_week <= 6:
            raise ValidationError("Day of week must be between 0 (Sunday) and 6 (Saturday)")
        if not is_valid_time(start_time) or not is_valid_time(end_time):
            raise ValidationError("Times must use HH:MM format")

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """INSERT INTO courses
                   (user_id, instructor_id, code, name, location, day_of_week,
                    start_time, end_time, color, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (user_id, user_id, code or "", name.strip(), location.strip(), day_of_week,
                 start_time, end_time, color or DEFAULT_COURSE_COLOR, now_ms())
            )
            conn.commit()
            course_id = cursor.lastrowid
        finally:
            conn.close()

        self._publish("courses", user_id, ADDED, course_id)
        return self.get_course(user_id, course_id)

    def get_course(self, user_id: str, course_id: int) -> dict:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM courses WHERE id = ? AND user_id = ?", (course_id, user_id)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Course {course_id} not found for {user_id}")
        return _course(row)

    def get_courses(self, user_id: str) -> list[dict]:
        """All personal courses, ordered by day then start time."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """SELECT * FROM courses WHERE user_id = ?
                   ORDER BY day_of_week, start_time""",
                (user_id,)
            )
            return [_course(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def delete_course(self, user_id: str, course_id: int) -> bool:
        """Delete a course. Returns True if deleted."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM courses WHERE id = ? AND user_id = ?", (course_id, user_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()

        if deleted:
            self._publish("courses", user_id, REMOVED, course_id)
        return deleted

    def subscribe_to_courses(self, user_id: str) -> Subscription:
        return self.feed.subscribe("courses", user_id, lambda: self.get_courses(user_id))

    # ==================== Academic Groups ====================

    def create_group(
        self,
        user_id: str,
        name: str,
        code: str,
        lecturer_name: str = "",
    ) -> dict:
        """Create a group. The creator becomes its rep and first member."""
        if not name or not name.strip():
            raise ValidationError("Group name is required")
        if not code or not code.strip():
            raise ValidationError("Group code is required")

        timestamp = now_ms()
        conn = self._get_conn()
        try:
            # Retry on the rare join code collision
            for _ in range(5):
                try:
                    cursor = conn.execute(
                        """INSERT INTO academic_groups
                           (name, code, join_code, lecturer_name, rep_id, member_count, created_at)
                           VALUES (?, ?, ?, ?, ?, 1, ?)""",
                        (name.strip(), code.strip(), generate_join_code(),
                         lecturer_name or "", user_id, timestamp)
                    )
                    break
                except sqlite3.IntegrityError:
                    continue
            else:
                raise ConflictError("Could not allocate a join code. Please try again.")

            group_id = cursor.lastrowid
            conn.execute(
                "INSERT INTO group_members (group_id, user_id, joined_at) VALUES (?, ?, ?)",
                (group_id, user_id, timestamp)
            )
            conn.commit()
        finally:
            conn.close()

        logger.info(f"Group {group_id} created by {user_id}")
        self._publish("groups", user_id, ADDED, group_id)
        return self.get_group(group_id)

    def get_group(self, group_id: int) -> dict:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM academic_groups WHERE id = ?", (group_id,)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Group {group_id} not found")
        return _group(row)

    def get_user_groups(self, user_id: str) -> list[dict]:
        """Groups the user belongs to."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """SELECT g.* FROM academic_groups g
                   JOIN group_members m ON m.group_id = g.id
                   WHERE m.user_id = ?
                   ORDER BY g.created_at""",
                (user_id,)
            )
            return [_group(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_group_member_ids(self, group_id: int) -> list[str]:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "SELECT user_id FROM group_members WHERE group_id = ? ORDER BY joined_at",
                (group_id,)
            )
            return [row["user_id"] for row in cursor.fetchall()]
        finally:
            conn.close()

    def is_member(self, group_id: int, user_id: str) -> bool:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT 1 FROM group_members WHERE group_id = ? AND user_id = ?",
                (group_id, user_id)
            ).fetchone()
            return row is not None
        finally:
            conn.close()

    def require_member(self, group_id: int, user_id: str) -> dict:
        """Return the group if the user belongs to it, else raise."""
        group = self.get_group(group_id)
        if not self.is_member(group_id, user_id):
            raise PermissionDeniedError(
                f"{user_id} is not a member of group {group_id}",
                "You are not a member of this group.",
            )
        return group

    def require_rep(self, group_id: int, user_id: str) -> dict:
        """Return the group if the user is its rep, else raise."""
        group = self.get_group(group_id)
        if group["repId"] != user_id:
            raise PermissionDeniedError(
                f"{user_id} is not the rep of group {group_id}",
                "Only the class rep can do that.",
            )
        return group

    def join_group(self, user_id: str, join_code: str) -> dict:
        """Join a group by its join code. Returns the group."""
        code = (join_code or "").strip().upper()
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM academic_groups WHERE join_code = ?", (code,)
            ).fetchone()
            if not row:
                raise ValidationError("Invalid join code")

            group_id = row["id"]
            already = conn.execute(
                "SELECT 1 FROM group_members WHERE group_id = ? AND user_id = ?",
                (group_id, user_id)
            ).fetchone()
            if already:
                raise ConflictError("You are already a member of this group")

            conn.execute(
                "INSERT INTO group_members (group_id, user_id, joined_at) VALUES (?, ?, ?)",
                (group_id, user_id, now_ms())
            )
            conn.execute(
                "UPDATE academic_groups SET member_count = member_count + 1 WHERE id = ?",
                (group_id,)
            )
            conn.commit()
        finally:
            conn.close()

        logger.info(f"{user_id} joined group {group_id}")
        for member_id in self.get_group_member_ids(group_id):
            kind = ADDED if member_id == user_id else MODIFIED
            self._publish("groups", member_id, kind, group_id)
        return self.get_group(group_id)

    def subscribe_to_groups(self, user_id: str) -> Subscription:
        return self.feed.subscribe("groups", user_id, lambda: self.get_user_groups(user_id))

    # ==================== Units ====================

    def add_unit(
        self,
        user_id: str,
        group_id: int,
        name: str,
        code: str = "",
        lecturer_name: str = "",
        schedule: list = None,
    ) -> dict:
        """Add a unit to a group. Rep only."""
        self.require_rep(group_id, user_id)
        if not name or not name.strip():
            raise ValidationError("Unit name is required")
        slots = [_validate_slot(slot) for slot in (schedule or [])]

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """INSERT INTO units (group_id, name, code, lecturer_name, schedule)
                   VALUES (?, ?, ?, ?, ?)""",
                (group_id, name.strip(), code or "", lecturer_name or "", json.dumps(slots))
            )
            conn.commit()
            unit_id = cursor.lastrowid
        finally:
            conn.close()

        self._publish("units", group_id, ADDED, unit_id)
        return self.get_unit(group_id, unit_id)

    def get_unit(self, group_id: int, unit_id: int) -> dict:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM units WHERE id = ? AND group_id = ?", (unit_id, group_id)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Unit {unit_id} not found in group {group_id}")
        return _unit(row)

    def get_units(self, group_id: int) -> list[dict]:
        """Units of a group (no membership check)."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "SELECT * FROM units WHERE group_id = ? ORDER BY id", (group_id,)
            )
            return [_unit(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def list_units(self, user_id: str, group_id: int) -> list[dict]:
        """Units of a group, for a member."""
        self.require_member(group_id, user_id)
        return self.get_units(group_id)

    def get_units_for_user(self, user_id: str) -> list[dict]:
        """Units across every group the user belongs to."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """SELECT u.* FROM units u
                   JOIN group_members m ON m.group_id = u.group_id
                   WHERE m.user_id = ?
                   ORDER BY u.group_id, u.id""",
                (user_id,)
            )
            return [_unit(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def subscribe_to_units(self, user_id: str, group_id: int) -> Subscription:
        self.require_member(group_id, user_id)
        return self.feed.subscribe("units", group_id, lambda: self.get_units(group_id))

    # ==================== Posts ====================

    def create_post(
        self,
        user_id: str,
        group_id: int,
        author_name: str,
        content: str,
        unit_id: int = None,
        is_assessment: bool = False,
        event_date: str = None,
    ) -> dict:
        """Post to a group feed. The rep's posts are announcements."""
        group = self.require_member(group_id, user_id)
        if not content or not content.strip():
            raise ValidationError("Post content is required")
        if is_assessment and parse_datetime(event_date or "") is None:
            raise ValidationError("Assessments need a valid event date")

        unit_name = None
        if unit_id is not None:
            unit_name = self.get_unit(group_id, unit_id)["name"]

        post_type = "announcement" if group["repId"] == user_id else "general"

        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """INSERT INTO posts
                   (group_id, author_id, author_name, content, type, unit_id,
                    unit_name, is_assessment, event_date, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (group_id, user_id, author_name or "Unknown", content.strip(), post_type,
                 unit_id, unit_name, int(bool(is_assessment)), event_date, now_ms())
            )
            conn.commit()
            post_id = cursor.lastrowid
        finally:
            conn.close()

        self._publish("posts", group_id, ADDED, post_id)
        return self.get_post(group_id, post_id)

    def get_post(self, group_id: int, post_id: int) -> dict:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM posts WHERE id = ? AND group_id = ?", (post_id, group_id)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Post {post_id} not found in group {group_id}")
        return _post(row)

    def _get_posts(self, group_id: int, assessments_only: bool = False) -> list[dict]:
        query = "SELECT * FROM posts WHERE group_id = ?"
        if assessments_only:
            query += " AND is_assessment = 1"
        query += " ORDER BY created_at DESC, id DESC"

        conn = self._get_conn()
        try:
            cursor = conn.execute(query, (group_id,))
            return [_post(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_posts(self, user_id: str, group_id: int) -> list[dict]:
        """Group feed, newest first."""
        self.require_member(group_id, user_id)
        return self._get_posts(group_id)

    def get_assessments(self, user_id: str, group_id: int) -> list[dict]:
        """Assessment posts of a group, newest first."""
        self.require_member(group_id, user_id)
        return self._get_posts(group_id, assessments_only=True)

    def subscribe_to_posts(self, user_id: str, group_id: int) -> Subscription:
        self.require_member(group_id, user_id)
        return self.feed.subscribe("posts", group_id, lambda: self._get_posts(group_id))

    # ==================== Resources ====================

    def add_resource(
        self,
        group_id: int,
        title: str,
        file_url: str,
        storage_path: str,
        file_type: str,
        file_name: str,
        file_size: int,
        uploaded_by: str,
        uploaded_by_name: str = "Unknown",
        unit_id: str = "",
        unit_name: str = "General",
        description: str = "",
        category: str = "other",
    ) -> dict:
        """Save resource metadata. The blob must already be stored."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                """INSERT INTO resources
                   (group_id, unit_id, unit_name, title, description, category,
                    file_url, storage_path, file_type, file_name, file_size,
                    uploaded_by, uploaded_by_name, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (group_id, unit_id or "", unit_name or "General", title, description or "",
                 category, file_url, storage_path, file_type, file_name, file_size,
                 uploaded_by, uploaded_by_name or "Unknown", now_ms())
            )
            conn.commit()
            resource_id = cursor.lastrowid
        finally:
            conn.close()

        self._publish("resources", group_id, ADDED, resource_id)
        return self.get_resource(group_id, resource_id)

    def get_resource(self, group_id: int, resource_id: int) -> dict:
        conn = self._get_conn()
        try:
            row = conn.execute(
                "SELECT * FROM resources WHERE id = ? AND group_id = ?",
                (resource_id, group_id)
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Resource {resource_id} not found in group {group_id}")
        return _resource(row)

    def _get_resources(self, group_id: int) -> list[dict]:
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "SELECT * FROM resources WHERE group_id = ? ORDER BY created_at DESC, id DESC",
                (group_id,)
            )
            return [_resource(row) for row in cursor.fetchall()]
        finally:
            conn.close()

    def get_resources(self, user_id: str, group_id: int) -> list[dict]:
        """Materials shared in a group, newest first."""
        self.require_member(group_id, user_id)
        return self._get_resources(group_id)

    def delete_resource(self, group_id: int, resource_id: int) -> bool:
        """Delete resource metadata. Returns True if deleted."""
        conn = self._get_conn()
        try:
            cursor = conn.execute(
                "DELETE FROM resources WHERE id = ? AND group_id = ?",
                (resource_id, group_id)
            )
            conn.commit()
            deleted = cursor.rowcount > 0
        finally:
            conn.close()

        if deleted:
            self._publish("resources", group_id, REMOVED, resource_id)
        return deleted

    def subscribe_to_resources(self, user_id: str, group_id: int) -> Subscription:
        self.require_member(group_id, user_id)
        return self.feed.subscribe("resources", group_id, lambda: self._get_resources(group_id))
