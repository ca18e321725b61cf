"""
GrowFlow — Task Notifications.

Notification rows are a side effect of task changes:

    task created for someone else   → "assigned" to the assignee
    task marked Done by non-creator → "completed" to the creator

Self-notifications are never written. A failed notification write is
logged at warning level and never fails the task operation that caused it.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from src.data.models import Notification, NotificationType, Task, TaskStatus

if TYPE_CHECKING:
    from src.ports.datastore_port import DatastorePort

logger = logging.getLogger(__name__)


def _emit(
    store: DatastorePort,
    recipient_id: str,
    actor_id: str,
    kind: NotificationType,
    message: str,
    task_id: str | None,
) -> Notification | None:
    """Write one notification; swallow and log any failure."""
    if recipient_id == actor_id:
        logger.debug("Suppressed self-notification (%s) for %s", kind.value, actor_id)
        return None
    try:
        notification = store.insert_notification(
            recipient_id=recipient_id,
            actor_id=actor_id,
            type=kind.value,
            message=message,
            task_id=task_id,
        )
    except Exception as exc:
        logger.warning(
            "Notification insertion error (%s → %s): %s", kind.value, recipient_id, exc,
        )
        return None
    logger.info("Notification '%s' created for %s", kind.value, recipient_id)
    return notification


def notify_assigned(store: DatastorePort, task: Task, actor_id: str) -> Notification | None:
    """Tell the assignee about a new task, unless they created it themselves."""
    if not task.assignee_id:
        return None
    return _emit(
        store,
        recipient_id=task.assignee_id,
        actor_id=actor_id,
        kind=NotificationType.ASSIGNED,
        message=f"You've been assigned: {task.description}",
        task_id=task.id,
    )


def notify_completed(store: DatastorePort, task: Task, actor_id: str) -> Notification | None:
    """Tell the task's creator that someone else finished it."""
    return _emit(
        store,
        recipient_id=task.user_id,
        actor_id=actor_id,
        kind=NotificationType.COMPLETED,
        message=f"Task completed: {task.description}",
        task_id=task.id,
    )


def update_task_status(
    store: DatastorePort,
    task_id: str,
    new_status: TaskStatus,
    actor_id: str,
) -> Task:
    """Move a task to any status and emit a completion notification when due.

    Raises:
        TaskNotFoundError: if the task does not exist.
        DatastoreError: if the status update itself fails.
    """
    task = store.update_task_status(task_id, new_status.value)

    if new_status is TaskStatus.DONE:
        if actor_id == task.user_id:
            logger.info("Task creator completed their own task - no notification sent")
        else:
            notify_completed(store, task, actor_id)

    return task
