"""Datastore port — abstract interface over the notes/tasks/profiles/notifications tables.

Core modules depend on this protocol, never on a specific backend
(Supabase in production, SQLite for local development and tests).
"""

from __future__ import annotations

from typing import Protocol

from src.data.models import Note, Notification, Profile, Task


class DatastoreError(Exception):
    """Raised when any datastore operation fails."""


class TaskNotFoundError(DatastoreError):
    """Raised when a task id does not match any row."""


def escape_like(value: str) -> str:
    """Escape LIKE/ILIKE wildcards so a name is matched literally (backslash escape)."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class DatastorePort(Protocol):
    """Abstract datastore interface used by core modules."""

    # Profiles
    def find_profile_by_name(self, name: str) -> Profile | None: ...

    # Notes
    def insert_note(
        self,
        user_id: str,
        content: str,
        meeting_title: str | None = None,
        meeting_date: str | None = None,
        meeting_location: str | None = None,
        meeting_participants: list[str] | None = None,
    ) -> Note: ...

    def mark_note_processed(self, note_id: str) -> None: ...

    # Tasks
    def insert_task(
        self,
        user_id: str,
        description: str,
        priority: str,
        status: str,
        assignee_id: str | None = None,
        deadline: str | None = None,
        note_id: str | None = None,
    ) -> Task: ...

    def get_task(self, task_id: str) -> Task | None: ...

    def update_task_status(self, task_id: str, status: str) -> Task: ...

    def list_tasks(self, user_id: str) -> list[Task]: ...

    # Notifications
    def insert_notification(
        self,
        recipient_id: str,
        actor_id: str,
        type: str,
        message: str,
        task_id: str | None = None,
    ) -> Notification: ...

    def list_notifications(
        self, recipient_id: str, unread_only: bool = False,
    ) -> list[Notification]: ...

    def mark_notification_read(self, notification_id: str) -> bool: ...

    def mark_all_notifications_read(self, recipient_id: str) -> int: ...
