"""
GrowFlow — HTTP API.

FastAPI application exposing the note-to-task pipeline:

    POST /process-ai-notes           direct task list or note text → tasks
    POST /webhook/notes              save a note (+ meeting metadata) and process it
    POST /tasks/{task_id}/status     move a task, notify the creator on completion
    GET  /users/{user_id}/tasks      dashboard task list
    GET  /users/{user_id}/notifications
    POST /notifications/{id}/read
    POST /users/{user_id}/notifications/read-all

Errors are always returned as {"error": "..."}: 400 for bad requests,
404 for unknown tasks, 500 for anything unexpected.
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.config import Settings
from src.core.task_service import (
    NoteSubmission,
    TaskBatchResponse,
    TaskService,
    process_request_adapter,
)
from src.data.models import TaskStatus, match_enum
from src.ports.datastore_port import DatastoreError, TaskNotFoundError

logger = logging.getLogger(__name__)


class StatusUpdateRequest(BaseModel):
    actor_id: str = Field(..., min_length=1)
    new_status: TaskStatus

    @field_validator("new_status", mode="before")
    @classmethod
    def parse_status(cls, v: object) -> object:
        return match_enum(TaskStatus, v)


class BadRequest(Exception):
    """Raised by handlers for malformed request bodies (rendered as 400)."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _error(status_code: int, message: str, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **extra})


def _first_error_message(exc: ValidationError | RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    err = errors[0]
    location = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
    return f"{location}: {err['msg']}" if location else err["msg"]


async def _read_json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise BadRequest("Invalid JSON body") from exc
    if not isinstance(body, dict):
        raise BadRequest("Request body must be a JSON object")
    return body


def _batch_payload(batch: TaskBatchResponse) -> dict:
    payload = {
        "success": batch.success,
        "created": batch.created,
        "tasks": [asdict(t) for t in batch.tasks],
    }
    if batch.errors:
        payload["errors"] = [asdict(e) for e in batch.errors]
    if batch.message:
        payload["message"] = batch.message
    return payload


def _service(request: Request) -> TaskService:
    return request.app.state.service


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------


def create_app(settings: Settings | None = None, service: TaskService | None = None) -> FastAPI:
    """Build the FastAPI app. Settings are loaded once here unless a service is injected."""
    if service is None:
        from src.adapters.datastore_factory import create_datastore
        from src.config import load_settings

        settings = settings or load_settings()
        service = TaskService.from_settings(settings, create_datastore(settings))

    app = FastAPI(title="GrowFlow API")
    app.state.service = service
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Client-Info", "Apikey"],
    )

    @app.exception_handler(BadRequest)
    async def _bad_request(request: Request, exc: BadRequest) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, _first_error_message(exc))

    @app.exception_handler(Exception)
    async def _unhandled(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error(500, str(exc))

    @app.get("/health")
    def health_check() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/process-ai-notes")
    async def process_ai_notes(request: Request) -> JSONResponse:
        body = await _read_json_object(request)
        if not body.get("user_id"):
            raise BadRequest("user_id is required")
        try:
            parsed = process_request_adapter.validate_python(body)
        except ValidationError as exc:
            if any(e["type"] == "union_tag_not_found" for e in exc.errors()):
                raise BadRequest("Invalid request format") from exc
            raise BadRequest(_first_error_message(exc)) from exc

        batch = await _service(request).process(parsed)
        return JSONResponse(content=_batch_payload(batch))

    @app.post("/webhook/notes")
    async def webhook_note(request: Request) -> JSONResponse:
        body = await _read_json_object(request)
        if not body.get("user_id") or not body.get("note_text"):
            raise BadRequest("user_id and note_text are required")
        try:
            submission = NoteSubmission.model_validate(body)
        except ValidationError as exc:
            raise BadRequest(_first_error_message(exc)) from exc

        result = await _service(request).submit_note(submission)
        return JSONResponse(content={
            "success": True,
            "note_id": result.note_id,
            "tasks_created": result.tasks_created,
            "message": result.message,
        })

    @app.post("/tasks/{task_id}/status")
    def update_task_status(task_id: str, payload: StatusUpdateRequest, request: Request) -> JSONResponse:
        try:
            task = _service(request).update_status(task_id, payload.new_status, payload.actor_id)
        except TaskNotFoundError as exc:
            return _error(404, str(exc))
        except DatastoreError as exc:
            logger.error("Task update error: %s", exc)
            return _error(500, "Failed to update task", details=str(exc))
        return JSONResponse(content={
            "success": True,
            "task": asdict(task),
            "message": "Task status updated successfully",
        })

    @app.get("/users/{user_id}/tasks")
    def list_tasks(user_id: str, request: Request) -> dict:
        tasks = _service(request).list_tasks(user_id)
        return {"tasks": [asdict(t) for t in tasks]}

    @app.get("/users/{user_id}/notifications")
    def list_notifications(user_id: str, request: Request, unread_only: bool = False) -> dict:
        notifications = _service(request).list_notifications(user_id, unread_only=unread_only)
        return {
            "notifications": [asdict(n) for n in notifications],
            "unread": sum(1 for n in notifications if not n.read),
        }

    @app.post("/notifications/{notification_id}/read")
    def mark_notification_read(notification_id: str, request: Request) -> dict:
        return {"success": _service(request).mark_notification_read(notification_id)}

    @app.post("/users/{user_id}/notifications/read-all")
    def mark_all_notifications_read(user_id: str, request: Request) -> dict:
        return {"success": True, "updated": _service(request).mark_all_notifications_read(user_id)}

    return app
