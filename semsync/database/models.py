"""Database schema and initialization."""

import sqlite3
from pathlib import Path


SCHEMA = """
-- User profiles (one per Firebase uid)
CREATE TABLE IF NOT EXISTS users (
    uid TEXT PRIMARY KEY,
    email TEXT NOT NULL,
    display_name TEXT NOT NULL DEFAULT '',
    role TEXT NOT NULL DEFAULT 'student',
    created_at INTEGER NOT NULL
);

-- Personal tasks
CREATE TABLE IF NOT EXISTS tasks (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    course_code TEXT,
    due_date TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'medium',
    status TEXT NOT NULL DEFAULT 'todo',
    completed INTEGER NOT NULL DEFAULT 0,
    created_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_tasks_user ON tasks (user_id);

-- Group assessments a user has ticked off (per-user marker)
CREATE TABLE IF NOT EXISTS completed_assessments (
    user_id TEXT NOT NULL,
    assessment_id INTEGER NOT NULL,
    completed_at INTEGER NOT NULL,
    PRIMARY KEY (user_id, assessment_id)
);

-- Notebook
CREATE TABLE IF NOT EXISTS notes (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    title TEXT NOT NULL DEFAULT '',
    content TEXT NOT NULL DEFAULT '',
    last_modified INTEGER NOT NULL,
    created_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_notes_user ON notes (user_id);

-- Personal recurring classes (day_of_week: 0=Sunday)
CREATE TABLE IF NOT EXISTS courses (
    id INTEGER PRIMARY KEY,
    user_id TEXT NOT NULL,
    instructor_id TEXT NOT NULL,
    code TEXT NOT NULL DEFAULT '',
    name TEXT NOT NULL,
    location TEXT NOT NULL DEFAULT '',
    day_of_week INTEGER NOT NULL,
    start_time TEXT NOT NULL,
    end_time TEXT NOT NULL,
    color TEXT NOT NULL DEFAULT '#2563eb',
    created_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_courses_user ON courses (user_id);

-- Academic groups (class cohorts) and their members
CREATE TABLE IF NOT EXISTS academic_groups (
    id INTEGER PRIMARY KEY,
    name TEXT NOT NULL,
    code TEXT NOT NULL,
    join_code TEXT UNIQUE NOT NULL,
    lecturer_name TEXT NOT NULL DEFAULT '',
    rep_id TEXT NOT NULL,
    member_count INTEGER NOT NULL DEFAULT 1,
    created_at INTEGER NOT NULL
);

CREATE TABLE IF NOT EXISTS group_members (
    group_id INTEGER NOT NULL REFERENCES academic_groups(id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    joined_at INTEGER NOT NULL,
    PRIMARY KEY (group_id, user_id)
);

-- Units taught within a group; schedule is a JSON list of slots
CREATE TABLE IF NOT EXISTS units (
    id INTEGER PRIMARY KEY,
    group_id INTEGER NOT NULL REFERENCES academic_groups(id) ON DELETE CASCADE,
    name TEXT NOT NULL,
    code TEXT NOT NULL DEFAULT '',
    lecturer_name TEXT NOT NULL DEFAULT '',
    schedule TEXT NOT NULL DEFAULT '[]'
);

-- Group feed: announcements, general posts and assessments
CREATE TABLE IF NOT EXISTS posts (
    id INTEGER PRIMARY KEY,
    group_id INTEGER NOT NULL REFERENCES academic_groups(id) ON DELETE CASCADE,
    author_id TEXT NOT NULL,
    author_name TEXT NOT NULL,
    content TEXT NOT NULL,
    type TEXT NOT NULL DEFAULT 'general',
    unit_id INTEGER,
    unit_name TEXT,
    is_assessment INTEGER NOT NULL DEFAULT 0,
    event_date TEXT,
    created_at INTEGER NOT NULL
);

-- Uploaded learning materials (bytes live in the blob store)
CREATE TABLE IF NOT EXISTS resources (
    id INTEGER PRIMARY KEY,
    group_id INTEGER NOT NULL REFERENCES academic_groups(id) ON DELETE CASCADE,
    unit_id TEXT NOT NULL DEFAULT '',
    unit_name TEXT NOT NULL DEFAULT 'General',
    title TEXT NOT NULL,
    description TEXT NOT NULL DEFAULT '',
    category TEXT NOT NULL DEFAULT 'other',
    file_url TEXT NOT NULL,
    storage_path TEXT NOT NULL,
    file_type TEXT NOT NULL,
    file_name TEXT NOT NULL,
    file_size INTEGER NOT NULL,
    uploaded_by TEXT NOT NULL,
    uploaded_by_name TEXT NOT NULL DEFAULT 'Unknown',
    created_at INTEGER NOT NULL
);
"""


def get_connection(db_path: str) -> sqlite3.Connection:
    """Get a database connection with row factory enabled."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


def init_db(db_path: str) -> None:
    """Initialize the database with all required tables."""
    # Ensure parent directory exists
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    conn = get_connection(db_path)
    try:
        conn.executescript(SCHEMA)
        conn.commit()
    finally:
        conn.close()
