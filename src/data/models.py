"""
GrowFlow — Data Models.

Persisted rows (profiles, notes, tasks, notifications) are plain dataclasses
mirroring the datastore tables. ExtractedTask is the pydantic contract shared
by both note parsers and the direct-insert request form.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pydantic import BaseModel, field_validator


class Priority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TaskStatus(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    DONE = "Done"


class NotificationType(str, Enum):
    ASSIGNED = "assigned"
    UPDATED = "updated"
    COMPLETED = "completed"


def match_enum(enum_cls: type[Enum], value: object) -> object:
    """Case-insensitive lookup by value; anything else passes through to pydantic."""
    if isinstance(value, str):
        for member in enum_cls:
            if member.value.lower() == value.strip().lower():
                return member
    return value


@dataclass
class Profile:
    """A user in the profile directory (assignee resolution target)."""

    id: str
    full_name: str
    email: str | None = None


@dataclass
class Note:
    """Raw meeting notes submitted by a user.

    Immutable once stored except for the processed flag, which is set
    after extraction has run.
    """

    id: str
    user_id: str
    content: str
    processed: bool = False
    meeting_title: str | None = None
    meeting_date: str | None = None        # ISO date YYYY-MM-DD
    meeting_location: str | None = None
    meeting_participants: list[str] | None = None
    created_at: str = ""


@dataclass
class Task:
    """A persisted task row."""

    id: str
    user_id: str                      # creator
    description: str
    status: str = TaskStatus.NOT_STARTED.value
    priority: str = Priority.MEDIUM.value
    assignee_id: str | None = None
    deadline: str | None = None       # ISO date YYYY-MM-DD
    note_id: str | None = None
    created_at: str = ""
    updated_at: str = ""


@dataclass
class Notification:
    """Per-user notification written as a side effect of task changes."""

    id: str
    recipient_id: str
    actor_id: str
    type: str
    message: str
    task_id: str | None = None
    read: bool = field(default=False)
    created_at: str = ""


class ExtractedTask(BaseModel):
    """Structured task extracted from meeting notes.

    JSON example:
    {
        "description": "Finish the quarterly report",
        "assignee_name": "John",
        "priority": "High",
        "status": "Not Started",
        "deadline": "2025-03-01"
    }
    """

    description: str
    assignee_name: str | None = None
    priority: Priority = Priority.MEDIUM
    status: TaskStatus = TaskStatus.NOT_STARTED
    deadline: str | None = None       # ISO format YYYY-MM-DD

    @field_validator("description")
    @classmethod
    def description_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("description must not be empty")
        return v

    @field_validator("assignee_name", "deadline", mode="before")
    @classmethod
    def blank_to_none(cls, v: object) -> object:
        if isinstance(v, str) and not v.strip():
            return None
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("priority", mode="before")
    @classmethod
    def parse_priority(cls, v: object) -> object:
        return match_enum(Priority, v)

    @field_validator("status", mode="before")
    @classmethod
    def parse_status(cls, v: object) -> object:
        return match_enum(TaskStatus, v)
