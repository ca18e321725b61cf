"""
GrowFlow — Task Materializer.

Persists extracted tasks one at a time, in input order:

    resolve assignee name → profile id (or the submitter)
    validate deadline     → calendar date (or dropped)
    insert task row       → on failure: record error, continue
    notify assignee       → only when assignee ≠ submitter

A failing task never aborts the batch and nothing already inserted is
rolled back.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import TYPE_CHECKING

from src.core.note_parser import normalize_deadline
from src.core.notifications import notify_assigned
from src.data.models import ExtractedTask, Task

if TYPE_CHECKING:
    from src.ports.datastore_port import DatastorePort

logger = logging.getLogger(__name__)


@dataclass
class TaskError:
    task: str     # description of the task that failed
    error: str


@dataclass
class MaterializeResult:
    created: list[Task] = field(default_factory=list)
    errors: list[TaskError] = field(default_factory=list)


def resolve_assignee(store: DatastorePort, assignee_name: str | None) -> str | None:
    """Match a free-text name to a profile id (case-insensitive, partial).

    Returns None when there is no name, no match, or the lookup fails.
    """
    if not assignee_name or not assignee_name.strip():
        return None
    try:
        profile = store.find_profile_by_name(assignee_name)
    except Exception as exc:
        logger.warning("Profile lookup failed for '%s': %s", assignee_name, exc)
        return None
    if profile is None:
        logger.info("No profile found for assignee: %s", assignee_name)
        return None
    logger.info("Matched assignee '%s' to profile: %s", assignee_name, profile.full_name)
    return profile.id


def coerce_deadline(value: str | None, today: date | None = None) -> str | None:
    """Return value as a YYYY-MM-DD string, or None if it is not a real date."""
    if not value:
        return None
    text = value.strip()
    # fromisoformat before 3.11 rejects a trailing "Z"
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass
    deadline = normalize_deadline(value, today)
    if deadline is None:
        logger.warning("Invalid deadline format: %s", value)
    return deadline


def materialize(
    tasks: list[ExtractedTask],
    submitter_id: str,
    store: DatastorePort,
    note_id: str | None = None,
) -> MaterializeResult:
    """Persist tasks and emit assignment notifications, isolating per-task failures."""
    result = MaterializeResult()

    for task in tasks:
        try:
            assignee_id = resolve_assignee(store, task.assignee_name) or submitter_id
            new_task = store.insert_task(
                user_id=submitter_id,
                description=task.description,
                priority=task.priority.value,
                status=task.status.value,
                assignee_id=assignee_id,
                deadline=coerce_deadline(task.deadline),
                note_id=note_id,
            )
        except Exception as exc:
            logger.error("Task insertion error for '%s': %s", task.description, exc)
            result.errors.append(TaskError(task=task.description, error=str(exc)))
            continue

        result.created.append(new_task)
        notify_assigned(store, new_task, actor_id=submitter_id)

    logger.info(
        "Materialized %d task(s), %d error(s)", len(result.created), len(result.errors),
    )
    return result
