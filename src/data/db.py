"""
GrowFlow — SQLite Datastore.

Local implementation of DatastorePort with the same tables the hosted
Supabase project exposes (profiles, notes, tasks, notifications). Used for
development and tests; production points DATASTORE_PROVIDER at Supabase.
"""

from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

from src.data.models import Note, Notification, Profile, Task
from src.ports.datastore_port import DatastoreError, TaskNotFoundError, escape_like

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id          TEXT PRIMARY KEY,
    full_name   TEXT NOT NULL,
    email       TEXT
);

CREATE TABLE IF NOT EXISTS notes (
    id                   TEXT PRIMARY KEY,
    user_id              TEXT NOT NULL REFERENCES profiles(id),
    content              TEXT NOT NULL,
    processed            INTEGER NOT NULL DEFAULT 0,
    meeting_title        TEXT,
    meeting_date         TEXT,
    meeting_location     TEXT,
    meeting_participants TEXT,
    created_at           TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS tasks (
    id           TEXT PRIMARY KEY,
    user_id      TEXT NOT NULL REFERENCES profiles(id),
    assignee_id  TEXT REFERENCES profiles(id),
    note_id      TEXT REFERENCES notes(id),
    description  TEXT NOT NULL,
    status       TEXT NOT NULL DEFAULT 'Not Started'
                 CHECK (status IN ('Not Started', 'In Progress', 'Done')),
    priority     TEXT NOT NULL DEFAULT 'Medium'
                 CHECK (priority IN ('Low', 'Medium', 'High')),
    deadline     TEXT,
    created_at   TEXT NOT NULL,
    updated_at   TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS notifications (
    id            TEXT PRIMARY KEY,
    recipient_id  TEXT NOT NULL REFERENCES profiles(id),
    actor_id      TEXT NOT NULL REFERENCES profiles(id),
    type          TEXT NOT NULL CHECK (type IN ('assigned', 'updated', 'completed')),
    task_id       TEXT REFERENCES tasks(id) ON DELETE CASCADE,
    message       TEXT NOT NULL,
    read          INTEGER NOT NULL DEFAULT 0,
    created_at    TEXT NOT NULL
);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class SQLiteDatastore:
    """SQLite-backed implementation of DatastorePort."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise DatastoreError(str(exc)) from exc
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Create the tables if they don't exist."""
        with self._connect() as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Datastore initialized at %s", self._db_path)

    # ------------------------------------------------------------------
    # Row mappers
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_profile(row: sqlite3.Row) -> Profile:
        return Profile(id=row["id"], full_name=row["full_name"], email=row["email"])

    @staticmethod
    def _row_to_note(row: sqlite3.Row) -> Note:
        participants = row["meeting_participants"]
        return Note(
            id=row["id"],
            user_id=row["user_id"],
            content=row["content"],
            processed=bool(row["processed"]),
            meeting_title=row["meeting_title"],
            meeting_date=row["meeting_date"],
            meeting_location=row["meeting_location"],
            meeting_participants=json.loads(participants) if participants else None,
            created_at=row["created_at"],
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            user_id=row["user_id"],
            assignee_id=row["assignee_id"],
            note_id=row["note_id"],
            description=row["description"],
            status=row["status"],
            priority=row["priority"],
            deadline=row["deadline"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )

    @staticmethod
    def _row_to_notification(row: sqlite3.Row) -> Notification:
        return Notification(
            id=row["id"],
            recipient_id=row["recipient_id"],
            actor_id=row["actor_id"],
            type=row["type"],
            task_id=row["task_id"],
            message=row["message"],
            read=bool(row["read"]),
            created_at=row["created_at"],
        )

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------

    def add_profile(
        self, full_name: str, email: str | None = None, profile_id: str | None = None,
    ) -> Profile:
        """Register a profile. Hosted deployments create these from auth sign-ups."""
        profile = Profile(id=profile_id or str(uuid.uuid4()), full_name=full_name.strip(), email=email)
        with self._connect() as conn:
            conn.execute(
                "INSERT INTO profiles (id, full_name, email) VALUES (?, ?, ?)",
                (profile.id, profile.full_name, profile.email),
            )
        logger.info("Profile added: %s '%s'", profile.id, profile.full_name)
        return profile

    def get_profile(self, profile_id: str) -> Profile | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM profiles WHERE id = ?", (profile_id,)).fetchone()
        return self._row_to_profile(row) if row else None

    def find_profile_by_name(self, name: str) -> Profile | None:
        """Case-insensitive partial match on full_name; first match wins."""
        pattern = f"%{escape_like(name.strip().lower())}%"
        with self._connect() as conn:
            row = conn.execute(
                "SELECT * FROM profiles WHERE lower(full_name) LIKE ? ESCAPE '\\' "
                "ORDER BY rowid LIMIT 1",
                (pattern,),
            ).fetchone()
        return self._row_to_profile(row) if row else None

    # ------------------------------------------------------------------
    # Notes
    # ------------------------------------------------------------------

    def insert_note(
        self,
        user_id: str,
        content: str,
        meeting_title: str | None = None,
        meeting_date: str | None = None,
        meeting_location: str | None = None,
        meeting_participants: list[str] | None = None,
    ) -> Note:
        note = Note(
            id=str(uuid.uuid4()),
            user_id=user_id,
            content=content,
            processed=False,
            meeting_title=meeting_title,
            meeting_date=meeting_date,
            meeting_location=meeting_location,
            meeting_participants=meeting_participants,
            created_at=_now(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notes
                    (id, user_id, content, processed, meeting_title, meeting_date,
                     meeting_location, meeting_participants, created_at)
                VALUES (?, ?, ?, 0, ?, ?, ?, ?, ?)
                """,
                (
                    note.id, user_id, content, meeting_title, meeting_date,
                    meeting_location,
                    json.dumps(meeting_participants) if meeting_participants is not None else None,
                    note.created_at,
                ),
            )
        logger.info("Note saved: %s (%d chars)", note.id, len(content))
        return note

    def get_note(self, note_id: str) -> Note | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM notes WHERE id = ?", (note_id,)).fetchone()
        return self._row_to_note(row) if row else None

    def mark_note_processed(self, note_id: str) -> None:
        with self._connect() as conn:
            conn.execute("UPDATE notes SET processed = 1 WHERE id = ?", (note_id,))
        logger.info("Note %s marked processed", note_id)

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def insert_task(
        self,
        user_id: str,
        description: str,
        priority: str,
        status: str,
        assignee_id: str | None = None,
        deadline: str | None = None,
        note_id: str | None = None,
    ) -> Task:
        now = _now()
        task = Task(
            id=str(uuid.uuid4()),
            user_id=user_id,
            assignee_id=assignee_id,
            note_id=note_id,
            description=description,
            status=status,
            priority=priority,
            deadline=deadline,
            created_at=now,
            updated_at=now,
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tasks
                    (id, user_id, assignee_id, note_id, description, status,
                     priority, deadline, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    task.id, user_id, assignee_id, note_id, description, status,
                    priority, deadline, now, now,
                ),
            )
        logger.info("Task created: %s '%s'", task.id, description)
        return task

    def get_task(self, task_id: str) -> Task | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        return self._row_to_task(row) if row else None

    def update_task_status(self, task_id: str, status: str) -> Task:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE tasks SET status = ?, updated_at = ? WHERE id = ?",
                (status, _now(), task_id),
            )
            if cursor.rowcount == 0:
                raise TaskNotFoundError(f"Task {task_id} not found")
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        logger.info("Task %s updated to status: %s", task_id, status)
        return self._row_to_task(row)

    def list_tasks(self, user_id: str) -> list[Task]:
        """Tasks the user created or is assigned to, newest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM tasks WHERE user_id = ? OR assignee_id = ? "
                "ORDER BY created_at DESC, rowid DESC",
                (user_id, user_id),
            ).fetchall()
        return [self._row_to_task(r) for r in rows]

    # ------------------------------------------------------------------
    # Notifications
    # ------------------------------------------------------------------

    def insert_notification(
        self,
        recipient_id: str,
        actor_id: str,
        type: str,
        message: str,
        task_id: str | None = None,
    ) -> Notification:
        notification = Notification(
            id=str(uuid.uuid4()),
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=type,
            task_id=task_id,
            message=message,
            read=False,
            created_at=_now(),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO notifications
                    (id, recipient_id, actor_id, type, task_id, message, read, created_at)
                VALUES (?, ?, ?, ?, ?, ?, 0, ?)
                """,
                (
                    notification.id, recipient_id, actor_id, type, task_id,
                    message, notification.created_at,
                ),
            )
        return notification

    def list_notifications(
        self, recipient_id: str, unread_only: bool = False,
    ) -> list[Notification]:
        query = "SELECT * FROM notifications WHERE recipient_id = ?"
        if unread_only:
            query += " AND read = 0"
        query += " ORDER BY created_at DESC, rowid DESC"
        with self._connect() as conn:
            rows = conn.execute(query, (recipient_id,)).fetchall()
        return [self._row_to_notification(r) for r in rows]

    def mark_notification_read(self, notification_id: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE notifications SET read = 1 WHERE id = ? AND read = 0",
                (notification_id,),
            )
            updated = cursor.rowcount > 0
        return updated

    def mark_all_notifications_read(self, recipient_id: str) -> int:
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE notifications SET read = 1 WHERE recipient_id = ? AND read = 0",
                (recipient_id,),
            )
            updated = cursor.rowcount
        return updated
