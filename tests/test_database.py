"""Tests for database CRUD operations."""

import os
import tempfile
import time

import pytest

from semsync.database.changes import ADDED, MODIFIED, REMOVED, SNAPSHOT
from semsync.database.models import get_connection, init_db
from semsync.database.operations import DatabaseOperations, JOIN_CODE_ALPHABET
from semsync.utils.error_handlers import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


@pytest.fixture
def test_db():
    """Create a temporary test database."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Initialize database schema
    init_db(path)

    # Create operations instance
    db = DatabaseOperations(path)

    yield db

    # Cleanup
    os.unlink(path)


@pytest.fixture
def group(test_db):
    """A group whose rep is 'rep' with 'student' as a second member."""
    created = test_db.create_group("rep", "Software Engineering Y2", "BITS", "Dr Lim")
    test_db.join_group("student", created["joinCode"])
    return test_db.get_group(created["id"])


class TestSchema:
    """Tests for database initialization."""

    def test_tables_created(self, test_db):
        conn = get_connection(test_db.db_path)
        try:
            names = {
                row["name"] for row in
                conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'")
            }
        finally:
            conn.close()

        for table in ("users", "tasks", "completed_assessments", "notes", "courses",
                      "academic_groups", "group_members", "units", "posts", "resources"):
            assert table in names

    def test_init_is_idempotent(self, test_db):
        init_db(test_db.db_path)


class TestUserProfiles:
    """Tests for profile operations."""

    def test_create_and_get(self, test_db):
        profile = test_db.create_user_profile("u1", "a@uni.edu", "Aina", "student")

        assert profile["uid"] == "u1"
        assert profile["displayName"] == "Aina"
        assert test_db.get_user_profile("u1") == profile

    def test_overwrite_keeps_created_at(self, test_db):
        first = test_db.create_user_profile("u1", "a@uni.edu", "Aina")
        second = test_db.create_user_profile("u1", "a@uni.edu", "Aina B", "instructor")

        assert second["createdAt"] == first["createdAt"]
        assert second["role"] == "instructor"

    def test_invalid_role(self, test_db):
        with pytest.raises(ValidationError):
            test_db.create_user_profile("u1", "a@uni.edu", role="admin")

    def test_missing_profile(self, test_db):
        assert test_db.get_user_profile("nobody") is None


class TestTasks:
    """Tests for task operations."""

    def test_add_task(self, test_db):
        task = test_db.add_task("u1", "Lab report", "2025-10-25", priority="high")

        assert task["id"] > 0
        assert task["status"] == "todo"
        assert task["completed"] is False

    def test_sorted_by_due_date(self, test_db):
        test_db.add_task("u1", "Later", "2025-12-01")
        test_db.add_task("u1", "Sooner", "2025-10-01")

        titles = [t["title"] for t in test_db.get_tasks("u1")]
        assert titles == ["Sooner", "Later"]

    def test_completed_follows_status(self, test_db):
        task = test_db.add_task("u1", "Quiz", "2025-10-25")

        done = test_db.update_task_status("u1", task["id"], "done")
        assert done["completed"] is True

        reopened = test_db.update_task_status("u1", task["id"], "in-progress")
        assert reopened["completed"] is False

    def test_tasks_scoped_to_owner(self, test_db):
        task = test_db.add_task("u1", "Mine", "2025-10-25")

        assert test_db.get_tasks("u2") == []
        with pytest.raises(NotFoundError):
            test_db.update_task_status("u2", task["id"], "done")
        assert test_db.delete_task("u2", task["id"]) is False

    def test_delete_task(self, test_db):
        task = test_db.add_task("u1", "Gone", "2025-10-25")
        assert test_db.delete_task("u1", task["id"]) is True
        assert test_db.get_tasks("u1") == []

    def test_validation(self, test_db):
        with pytest.raises(ValidationError):
            test_db.add_task("u1", "  ", "2025-10-25")
        with pytest.raises(ValidationError):
            test_db.add_task("u1", "Bad date", "next week")
        with pytest.raises(ValidationError):
            test_db.add_task("u1", "Bad priority", "2025-10-25", priority="urgent")


class TestAssessmentCompletion:
    """Tests for per-user assessment markers."""

    @pytest.fixture
    def quiz(self, group, test_db):
        return test_db.create_post(
            "rep", group["id"], "Rep", "Quiz 1", is_assessment=True, event_date="2025-11-03",
        )

    def test_toggle_on_and_off(self, quiz, test_db):
        test_db.toggle_assessment_completion("student", quiz["id"], True)
        test_db.toggle_assessment_completion("student", quiz["id"], True)
        assert test_db.get_completed_assessments("student") == [quiz["id"]]

        test_db.toggle_assessment_completion("student", quiz["id"], False)
        assert test_db.get_completed_assessments("student") == []

    def test_markers_are_per_user(self, quiz, test_db):
        test_db.toggle_assessment_completion("student", quiz["id"], True)
        assert test_db.get_completed_assessments("rep") == []

    def test_unknown_assessment(self, test_db):
        with pytest.raises(NotFoundError):
            test_db.toggle_assessment_completion("u1", 7, True)
        assert test_db.get_completed_assessments("u1") == []

    def test_general_post_is_not_an_assessment(self, group, test_db):
        post = test_db.create_post("rep", group["id"], "Rep", "Hello")

        with pytest.raises(NotFoundError):
            test_db.toggle_assessment_completion("student", post["id"], True)

    def test_outsider_cannot_mark(self, quiz, test_db):
        with pytest.raises(PermissionDeniedError):
            test_db.toggle_assessment_completion("outsider", quiz["id"], True)
        assert test_db.get_completed_assessments("outsider") == []

    def test_clearing_unknown_marker_is_allowed(self, test_db):
        assert test_db.toggle_assessment_completion("u1", 7, False) is False


class TestNotes:
    """Tests for notebook operations."""

    def test_create_empty_note(self, test_db):
        note = test_db.create_note("u1")
        assert note["title"] == ""
        assert note["content"] == ""

    def test_update_bumps_last_modified(self, test_db):
        note = test_db.create_note("u1")
        updated = test_db.update_note("u1", note["id"], title="Week 1", content="Intro")

        assert updated["title"] == "Week 1"
        assert updated["lastModified"] > note["lastModified"]

    def test_newest_first(self, test_db):
        first = test_db.create_note("u1")
        second = test_db.create_note("u1")
        time.sleep(0.01)
        test_db.update_note("u1", first["id"], content="edited")

        ids = [n["id"] for n in test_db.get_notes("u1")]
        assert ids == [first["id"], second["id"]]

    def test_other_users_note(self, test_db):
        note = test_db.create_note("u1")
        with pytest.raises(NotFoundError):
            test_db.update_note("u2", note["id"], title="hijack")


class TestCourses:
    """Tests for personal course operations."""

    def test_add_course(self, test_db):
        course = test_db.add_course("u1", "Calculus", "BK13", 1, "08:00", "10:00", code="MTH101")

        assert course["instructorId"] == "u1"
        assert course["color"] == "#2563eb"
        assert course["dayOfWeek"] == 1

    def test_validation(self, test_db):
        with pytest.raises(ValidationError):
            test_db.add_course("u1", "C", "BK13", 1, "08:00", "10:00")
        with pytest.raises(ValidationError):
            test_db.add_course("u1", "Calculus", "", 1, "08:00", "10:00")
        with pytest.raises(ValidationError):
            test_db.add_course("u1", "Calculus", "BK13", 1, "8am", "10:00")
        with pytest.raises(ValidationError):
            test_db.add_course("u1", "Calculus", "BK13", 7, "08:00", "10:00")

    def test_delete_course(self, test_db):
        course = test_db.add_course("u1", "Calculus", "BK13", 1, "08:00", "10:00")
        assert test_db.delete_course("u1", course["id"]) is True
        assert test_db.get_courses("u1") == []


class TestGroups:
    """Tests for academic group membership."""

    def test_creator_is_rep_and_member(self, test_db):
        created = test_db.create_group("rep", "SE Y2", "BITS")

        assert created["repId"] == "rep"
        assert created["memberCount"] == 1
        assert test_db.is_member(created["id"], "rep")
        assert len(created["joinCode"]) == 6
        assert all(ch in JOIN_CODE_ALPHABET for ch in created["joinCode"])

    def test_join_increments_count(self, group, test_db):
        assert group["memberCount"] == 2
        assert [g["id"] for g in test_db.get_user_groups("student")] == [group["id"]]

    def test_join_is_case_insensitive(self, test_db):
        created = test_db.create_group("rep", "SE Y2", "BITS")
        joined = test_db.join_group("s2", created["joinCode"].lower())
        assert joined["id"] == created["id"]

    def test_invalid_join_code(self, test_db):
        with pytest.raises(ValidationError, match="Invalid join code"):
            test_db.join_group("student", "ZZZZZZ")

    def test_already_member(self, group, test_db):
        with pytest.raises(ConflictError, match="already a member"):
            test_db.join_group("student", group["joinCode"])
        assert test_db.get_group(group["id"])["memberCount"] == 2

    def test_outsider_cannot_read(self, group, test_db):
        with pytest.raises(PermissionDeniedError):
            test_db.get_posts("outsider", group["id"])
        with pytest.raises(PermissionDeniedError):
            test_db.list_units("outsider", group["id"])

    def test_unknown_group(self, test_db):
        with pytest.raises(NotFoundError):
            test_db.require_member(999, "rep")


class TestUnitsAndPosts:
    """Tests for group units and the group feed."""

    def test_rep_adds_unit(self, group, test_db):
        unit = test_db.add_unit("rep", group["id"], "Data Structures", "BITP2213", "Dr Lim", [
            {"day": "Tuesday", "startTime": "10:00", "endTime": "12:00", "location": "BK2"},
        ])

        assert unit["schedule"][0]["day"] == "Tuesday"
        assert test_db.list_units("student", group["id"]) == [unit]

    def test_member_cannot_add_unit(self, group, test_db):
        with pytest.raises(PermissionDeniedError):
            test_db.add_unit("student", group["id"], "Sneaky")

    def test_bad_slot_time(self, group, test_db):
        with pytest.raises(ValidationError):
            test_db.add_unit("rep", group["id"], "DS", schedule=[
                {"day": "Tuesday", "startTime": "25:00", "endTime": "12:00"},
            ])

    def test_post_type_follows_author(self, group, test_db):
        announcement = test_db.create_post("rep", group["id"], "Rep", "Class moved")
        general = test_db.create_post("student", group["id"], "Student", "Thanks")

        assert announcement["type"] == "announcement"
        assert general["type"] == "general"

    def test_posts_newest_first(self, group, test_db):
        first = test_db.create_post("rep", group["id"], "Rep", "one")
        second = test_db.create_post("rep", group["id"], "Rep", "two")

        ids = [p["id"] for p in test_db.get_posts("student", group["id"])]
        assert ids == [second["id"], first["id"]]

    def test_assessments_filtered(self, group, test_db):
        unit = test_db.add_unit("rep", group["id"], "DS")
        test_db.create_post("rep", group["id"], "Rep", "Hello")
        quiz = test_db.create_post(
            "rep", group["id"], "Rep", "Quiz 1", unit_id=unit["id"],
            is_assessment=True, event_date="2025-11-03",
        )

        assessments = test_db.get_assessments("student", group["id"])
        assert [a["id"] for a in assessments] == [quiz["id"]]
        assert assessments[0]["unitName"] == "DS"

    def test_assessment_needs_date(self, group, test_db):
        with pytest.raises(ValidationError):
            test_db.create_post("rep", group["id"], "Rep", "Quiz", is_assessment=True)


class TestChangeNotifications:
    """Tests for mutations reaching subscribers."""

    def test_task_lifecycle_events(self, test_db):
        with test_db.subscribe_to_tasks("u1") as sub:
            task = test_db.add_task("u1", "Essay", "2025-10-25")
            test_db.update_task_status("u1", task["id"], "done")
            test_db.delete_task("u1", task["id"])

            kinds = [event.kind for event in sub.pending()]

        assert kinds == [SNAPSHOT, ADDED, MODIFIED, REMOVED]

    def test_snapshot_reflects_change(self, test_db):
        with test_db.subscribe_to_notes("u1") as sub:
            sub.get(timeout=1)
            note = test_db.create_note("u1")
            event = sub.get(timeout=1)

        assert event.kind == ADDED
        assert event.doc_id == note["id"]
        assert event.snapshot == [note]

    def test_join_notifies_existing_members(self, test_db):
        created = test_db.create_group("rep", "SE Y2", "BITS")
        with test_db.subscribe_to_groups("rep") as sub:
            sub.get(timeout=1)
            test_db.join_group("student", created["joinCode"])
            event = sub.get(timeout=1)

        assert event.kind == MODIFIED
        assert event.snapshot[0]["memberCount"] == 2

    def test_outsider_cannot_subscribe_to_posts(self, group, test_db):
        with pytest.raises(PermissionDeniedError):
            test_db.subscribe_to_posts("outsider", group["id"])

    def test_unit_subscription(self, group, test_db):
        with test_db.subscribe_to_units("student", group["id"]) as sub:
            assert sub.get(timeout=1).kind == SNAPSHOT
            unit = test_db.add_unit("rep", group["id"], "Data Structures")
            event = sub.get(timeout=1)

        assert event.kind == ADDED
        assert event.doc_id == unit["id"]
        assert [u["id"] for u in event.snapshot] == [unit["id"]]

    def test_outsider_cannot_subscribe_to_units(self, group, test_db):
        with pytest.raises(PermissionDeniedError):
            test_db.subscribe_to_units("outsider", group["id"])

    def test_resource_subscription(self, group, test_db):
        with test_db.subscribe_to_resources("student", group["id"]) as sub:
            assert sub.get(timeout=1).snapshot == []
            resource = test_db.add_resource(
                group["id"], "Slides", "/files/a.pdf", "resources/1/a.pdf",
                "application/pdf", "a.pdf", 10, "rep",
            )
            added = sub.get(timeout=1)
            test_db.delete_resource(group["id"], resource["id"])
            removed = sub.get(timeout=1)

        assert added.kind == ADDED
        assert added.snapshot == [resource]
        assert removed.kind == REMOVED
        assert removed.snapshot == []

    def test_outsider_cannot_subscribe_to_resources(self, group, test_db):
        with pytest.raises(PermissionDeniedError):
            test_db.subscribe_to_resources("outsider", group["id"])
