"""Supabase datastore adapter — implements DatastorePort.

Talks to the hosted Supabase project with the service-role key. Table
schema, RLS policies and triggers live in the Supabase project itself.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from functools import wraps
from typing import Any, Callable, TypeVar

import httpx
from postgrest.exceptions import APIError
from supabase import Client, create_client

from src.data.models import Note, Notification, Profile, Task
from src.ports.datastore_port import DatastoreError, TaskNotFoundError, escape_like

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

_TASK_FIELDS = (
    "id", "user_id", "assignee_id", "note_id", "description", "status",
    "priority", "deadline", "created_at", "updated_at",
)
_NOTE_FIELDS = (
    "id", "user_id", "content", "processed", "meeting_title", "meeting_date",
    "meeting_location", "meeting_participants", "created_at",
)
_NOTIFICATION_FIELDS = (
    "id", "recipient_id", "actor_id", "type", "task_id", "message", "read", "created_at",
)


def _wrap_errors(func: Callable[..., _T]) -> Callable[..., _T]:
    """Translate Supabase/PostgREST and transport errors into DatastoreError."""

    @wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> _T:
        try:
            return func(*args, **kwargs)
        except APIError as exc:
            raise DatastoreError(exc.message or str(exc)) from exc
        except httpx.HTTPError as exc:
            raise DatastoreError(f"Supabase request failed: {exc}") from exc

    return wrapper


def _pick(row: dict, fields: tuple[str, ...]) -> dict:
    return {name: row.get(name) for name in fields if name in row}


def _first_row(data: Any) -> dict:
    if isinstance(data, list):
        if not data:
            raise DatastoreError("Supabase returned no rows")
        return data[0]
    return data


class SupabaseDatastore:
    """Supabase implementation of DatastorePort."""

    def __init__(
        self, url: str = "", service_key: str = "", client: Client | None = None,
    ) -> None:
        self._client = client or create_client(url, service_key)

    @staticmethod
    def _row_to_task(row: dict) -> Task:
        return Task(**_pick(row, _TASK_FIELDS))

    @staticmethod
    def _row_to_note(row: dict) -> Note:
        return Note(**_pick(row, _NOTE_FIELDS))

    @staticmethod
    def _row_to_notification(row: dict) -> Notification:
        return Notification(**_pick(row, _NOTIFICATION_FIELDS))

    # Profiles

    @_wrap_errors
    def find_profile_by_name(self, name: str) -> Profile | None:
        response = (
            self._client.table("profiles")
            .select("id, full_name, email")
            .ilike("full_name", f"%{escape_like(name.strip())}%")
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        row = response.data[0]
        return Profile(id=row["id"], full_name=row["full_name"], email=row.get("email"))

    # Notes

    @_wrap_errors
    def insert_note(
        self,
        user_id: str,
        content: str,
        meeting_title: str | None = None,
        meeting_date: str | None = None,
        meeting_location: str | None = None,
        meeting_participants: list[str] | None = None,
    ) -> Note:
        response = (
            self._client.table("notes")
            .insert({
                "user_id": user_id,
                "content": content,
                "processed": False,
                "meeting_title": meeting_title,
                "meeting_date": meeting_date,
                "meeting_location": meeting_location,
                "meeting_participants": meeting_participants,
            })
            .execute()
        )
        note = self._row_to_note(_first_row(response.data))
        logger.info("Note saved: %s (%d chars)", note.id, len(content))
        return note

    @_wrap_errors
    def mark_note_processed(self, note_id: str) -> None:
        self._client.table("notes").update({"processed": True}).eq("id", note_id).execute()
        logger.info("Note %s marked processed", note_id)

    # Tasks

    @_wrap_errors
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
        row = {
            "user_id": user_id,
            "assignee_id": assignee_id,
            "description": description,
            "priority": priority,
            "status": status,
            "deadline": deadline,
        }
        if note_id:
            row["note_id"] = note_id
        response = self._client.table("tasks").insert(row).execute()
        task = self._row_to_task(_first_row(response.data))
        logger.info("Task created: %s '%s'", task.id, description)
        return task

    @_wrap_errors
    def get_task(self, task_id: str) -> Task | None:
        response = self._client.table("tasks").select("*").eq("id", task_id).limit(1).execute()
        if not response.data:
            return None
        return self._row_to_task(response.data[0])

    @_wrap_errors
    def update_task_status(self, task_id: str, status: str) -> Task:
        response = (
            self._client.table("tasks")
            .update({"status": status, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", task_id)
            .execute()
        )
        if not response.data:
            raise TaskNotFoundError(f"Task {task_id} not found")
        logger.info("Task %s updated to status: %s", task_id, status)
        return self._row_to_task(response.data[0])

    @_wrap_errors
    def list_tasks(self, user_id: str) -> list[Task]:
        """Tasks the user created or is assigned to, newest first.

        Two parameterized eq() queries merged here; user_id never goes into
        a raw PostgREST filter string.
        """
        rows: dict[str, dict] = {}
        for column in ("user_id", "assignee_id"):
            response = (
                self._client.table("tasks")
                .select("*")
                .eq(column, user_id)
                .order("created_at", desc=True)
                .execute()
            )
            for row in response.data or []:
                rows.setdefault(row["id"], row)
        ordered = sorted(rows.values(), key=lambda r: r.get("created_at") or "", reverse=True)
        return [self._row_to_task(r) for r in ordered]

    # Notifications

    @_wrap_errors
    def insert_notification(
        self,
        recipient_id: str,
        actor_id: str,
        type: str,
        message: str,
        task_id: str | None = None,
    ) -> Notification:
        response = (
            self._client.table("notifications")
            .insert({
                "recipient_id": recipient_id,
                "actor_id": actor_id,
                "type": type,
                "task_id": task_id,
                "message": message,
                "read": False,
            })
            .execute()
        )
        return self._row_to_notification(_first_row(response.data))

    @_wrap_errors
    def list_notifications(
        self, recipient_id: str, unread_only: bool = False,
    ) -> list[Notification]:
        query = self._client.table("notifications").select("*").eq("recipient_id", recipient_id)
        if unread_only:
            query = query.eq("read", False)
        response = query.order("created_at", desc=True).execute()
        return [self._row_to_notification(r) for r in response.data or []]

    @_wrap_errors
    def mark_notification_read(self, notification_id: str) -> bool:
        response = (
            self._client.table("notifications")
            .update({"read": True, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("id", notification_id)
            .eq("read", False)
            .execute()
        )
        return bool(response.data)

    @_wrap_errors
    def mark_all_notifications_read(self, recipient_id: str) -> int:
        response = (
            self._client.table("notifications")
            .update({"read": True, "updated_at": datetime.now(timezone.utc).isoformat()})
            .eq("recipient_id", recipient_id)
            .eq("read", False)
            .execute()
        )
        return len(response.data or [])
