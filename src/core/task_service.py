"""
GrowFlow — UI-Agnostic Task Service.

Stateless service layer that orchestrates the note-to-task pipeline:
request → extract (LLM or rules) → materialize → structured response.

Each ingress adapter (HTTP API, Telegram bot) calls this service and
renders the response objects in its own way.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Annotated, Any, Literal, Union

from pydantic import (
    BaseModel,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from src.core.extraction import extract_tasks
from src.core.llm import LLMConfig
from src.core.materializer import TaskError, materialize
from src.core.notifications import update_task_status
from src.data.models import (
    ExtractedTask,
    Notification,
    Priority,
    Task,
    TaskStatus,
    match_enum,
)

if TYPE_CHECKING:
    from src.config import Settings
    from src.ports.datastore_port import DatastorePort

logger = logging.getLogger(__name__)

NO_TASKS_MESSAGE = "No actionable tasks found in the notes"


# ---------------------------------------------------------------------------
# Request types
# ---------------------------------------------------------------------------


class DirectTaskRequest(BaseModel):
    """Insert already-structured tasks, skipping extraction.

    Items are validated one by one in TaskService.process so that a bad
    item is reported in `errors` instead of rejecting the whole batch.
    """

    kind: Literal["direct"] = "direct"
    user_id: str = Field(..., min_length=1)
    tasks: list[Any]


class NoteRequest(BaseModel):
    """Run the full extraction pipeline over raw note text."""

    kind: Literal["note"] = "note"
    user_id: str = Field(..., min_length=1)
    note_text: str
    note_id: str | None = None
    default_priority: Priority | None = None

    @field_validator("default_priority", mode="before")
    @classmethod
    def parse_priority(cls, v: object) -> object:
        return match_enum(Priority, v)


def _request_kind(body: Any) -> str | None:
    """Tag an incoming body as "direct" or "note" (None → unrecognized)."""
    if isinstance(body, dict):
        if body.get("kind") in ("direct", "note"):
            return body["kind"]
        if isinstance(body.get("tasks"), list):
            return "direct"
        if isinstance(body.get("note_text"), str):
            return "note"
        return None
    return getattr(body, "kind", None)


ProcessRequest = Annotated[
    Union[
        Annotated[DirectTaskRequest, Tag("direct")],
        Annotated[NoteRequest, Tag("note")],
    ],
    Discriminator(_request_kind),
]

process_request_adapter: TypeAdapter[DirectTaskRequest | NoteRequest] = TypeAdapter(ProcessRequest)


class NoteSubmission(BaseModel):
    """A note arriving from the webhook or Telegram ingress, with meeting metadata."""

    user_id: str = Field(..., min_length=1)
    note_text: str = Field(..., min_length=1)
    meeting_title: str | None = None
    meeting_date: str | None = None
    meeting_location: str | None = None
    meeting_participants: list[str] | None = None
    default_priority: Priority | None = None

    @field_validator("note_text")
    @classmethod
    def note_text_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("note_text must not be blank")
        return v.strip()

    @field_validator("meeting_title", "meeting_location", "meeting_date")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    @field_validator("default_priority", mode="before")
    @classmethod
    def parse_priority(cls, v: object) -> object:
        return match_enum(Priority, v)


def validate_direct_items(items: list[Any]) -> tuple[list[ExtractedTask], list[TaskError]]:
    """Validate each direct task on its own; invalid items become TaskErrors."""
    tasks: list[ExtractedTask] = []
    errors: list[TaskError] = []
    for index, item in enumerate(items):
        try:
            tasks.append(ExtractedTask.model_validate(item))
        except ValidationError as exc:
            label = item.get("description") if isinstance(item, dict) else None
            if not isinstance(label, str) or not label.strip():
                label = f"tasks[{index}]"
            err = exc.errors()[0]
            location = ".".join(str(p) for p in err.get("loc", ()))
            message = f"{location}: {err['msg']}" if location else err["msg"]
            logger.warning("Skipping invalid direct task %s: %s", label, message)
            errors.append(TaskError(task=label, error=message))
    return tasks, errors


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


@dataclass
class TaskBatchResponse:
    success: bool
    created: int
    tasks: list[Task] = field(default_factory=list)
    errors: list[TaskError] | None = None
    message: str | None = None


@dataclass
class NoteIntakeResult:
    note_id: str
    tasks_created: int
    batch: TaskBatchResponse

    @property
    def message(self) -> str:
        return f"Note saved and {self.tasks_created} task(s) created"


# ---------------------------------------------------------------------------
# TaskService
# ---------------------------------------------------------------------------


class TaskService:
    """Stateless service that orchestrates extraction and persistence.

    Returns structured response objects — never renders HTTP or chat replies.
    """

    def __init__(
        self,
        store: DatastorePort,
        llm: LLMConfig | None = None,
        default_priority: Priority = Priority.MEDIUM,
    ) -> None:
        self._store = store
        self._llm = llm
        self._default_priority = default_priority

    @classmethod
    def from_settings(cls, settings: Settings, store: DatastorePort) -> TaskService:
        return cls(
            store=store,
            llm=LLMConfig.from_settings(settings),
            default_priority=settings.DEFAULT_PRIORITY,
        )

    # ------------------------------------------------------------------
    # Public: extraction entry point
    # ------------------------------------------------------------------

    async def process(self, request: DirectTaskRequest | NoteRequest) -> TaskBatchResponse:
        """Create tasks from a direct task list or from note text."""
        invalid: list[TaskError] = []
        if isinstance(request, DirectTaskRequest):
            logger.info("Processing direct task insertion (%d task(s))", len(request.tasks))
            tasks, invalid = validate_direct_items(request.tasks)
            note_id = None
        elif isinstance(request, NoteRequest):
            logger.info("Processing notes for user %s", request.user_id)
            tasks = await self._extract(request)
            note_id = request.note_id
        else:
            raise TypeError(f"Unsupported request type: {type(request).__name__}")

        if not tasks and not invalid:
            return TaskBatchResponse(success=True, created=0, tasks=[], message=NO_TASKS_MESSAGE)

        # Datastore clients are synchronous; keep them off the event loop.
        result = await asyncio.to_thread(
            materialize, tasks, request.user_id, self._store, note_id,
        )
        errors = invalid + result.errors
        return TaskBatchResponse(
            success=True,
            created=len(result.created),
            tasks=result.created,
            errors=errors or None,
        )

    async def _extract(self, request: NoteRequest) -> list[ExtractedTask]:
        outcome = await extract_tasks(
            request.note_text,
            self._llm,
            request.default_priority or self._default_priority,
        )
        logger.info(
            "Extracted %d task(s) via %s parser", len(outcome.tasks), outcome.strategy.value,
        )

        if request.note_id:
            try:
                await asyncio.to_thread(self._store.mark_note_processed, request.note_id)
            except Exception as exc:
                logger.error("Error updating note %s: %s", request.note_id, exc)

        return outcome.tasks

    # ------------------------------------------------------------------
    # Public: note intake (webhook / Telegram)
    # ------------------------------------------------------------------

    async def submit_note(self, submission: NoteSubmission) -> NoteIntakeResult:
        """Save a note with its meeting metadata, then run it through the pipeline.

        Raises:
            DatastoreError: if the note itself cannot be saved.
        """
        note = await asyncio.to_thread(
            self._store.insert_note,
            user_id=submission.user_id,
            content=submission.note_text,
            meeting_title=submission.meeting_title,
            meeting_date=submission.meeting_date,
            meeting_location=submission.meeting_location,
            meeting_participants=submission.meeting_participants or None,
        )
        batch = await self.process(
            NoteRequest(
                user_id=submission.user_id,
                note_text=submission.note_text,
                note_id=note.id,
                default_priority=submission.default_priority,
            )
        )
        return NoteIntakeResult(note_id=note.id, tasks_created=batch.created, batch=batch)

    # ------------------------------------------------------------------
    # Public: dashboard operations
    # ------------------------------------------------------------------

    def update_status(self, task_id: str, new_status: TaskStatus, actor_id: str) -> Task:
        return update_task_status(self._store, task_id, new_status, actor_id)

    def list_tasks(self, user_id: str) -> list[Task]:
        return self._store.list_tasks(user_id)

    def list_notifications(self, user_id: str, unread_only: bool = False) -> list[Notification]:
        return self._store.list_notifications(user_id, unread_only=unread_only)

    def mark_notification_read(self, notification_id: str) -> bool:
        return self._store.mark_notification_read(notification_id)

    def mark_all_notifications_read(self, user_id: str) -> int:
        return self._store.mark_all_notifications_read(user_id)
