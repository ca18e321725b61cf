"""Tests for src.core.materializer — assignee resolution, persistence, error isolation."""

from unittest.mock import MagicMock

from src.core.materializer import coerce_deadline, materialize, resolve_assignee
from src.data.models import ExtractedTask, Priority, Profile, Task
from src.ports.datastore_port import DatastoreError


# ---------------------------------------------------------------------------
# Assignee resolution
# ---------------------------------------------------------------------------


class TestResolveAssignee:
    def test_case_insensitive_partial_match(self, store, profiles):
        assert resolve_assignee(store, "john") == "user-john"

    def test_matches_middle_of_name(self, store, profiles):
        assert resolve_assignee(store, "JANE") == "user-mary"

    def test_no_match(self, store, profiles):
        assert resolve_assignee(store, "Zed") is None

    def test_empty_name(self, store, profiles):
        assert resolve_assignee(store, None) is None
        assert resolve_assignee(store, "  ") is None

    def test_wildcards_are_literal(self, store, profiles):
        assert resolve_assignee(store, "%") is None

    def test_lookup_failure_leaves_unresolved(self):
        broken = MagicMock()
        broken.find_profile_by_name.side_effect = DatastoreError("timeout")
        assert resolve_assignee(broken, "John") is None


class TestCoerceDeadline:
    def test_iso_date(self):
        assert coerce_deadline("2025-03-01") == "2025-03-01"

    def test_iso_datetime(self):
        assert coerce_deadline("2025-03-01T17:00:00") == "2025-03-01"

    def test_utc_z_suffix(self):
        assert coerce_deadline("2025-03-01T00:00:00Z") == "2025-03-01"

    def test_numeric_with_year(self):
        assert coerce_deadline("3/5/2026") == "2026-03-05"

    def test_malformed_dropped(self):
        assert coerce_deadline("next Friday-ish") is None
        assert coerce_deadline("2025-13-45") is None

    def test_empty(self):
        assert coerce_deadline(None) is None
        assert coerce_deadline("") is None


# ---------------------------------------------------------------------------
# Materialize (SQLite)
# ---------------------------------------------------------------------------


class TestMaterialize:
    def test_creates_tasks_in_order(self, store, profiles):
        tasks = [
            ExtractedTask(description="First task"),
            ExtractedTask(description="Second task", priority=Priority.HIGH),
        ]
        result = materialize(tasks, "user-alice", store)
        assert [t.description for t in result.created] == ["First task", "Second task"]
        assert result.created[1].priority == "High"
        assert result.errors == []

    def test_unresolved_assignee_defaults_to_submitter(self, store, profiles):
        result = materialize(
            [ExtractedTask(description="Do it", assignee_name="Nobody")], "user-alice", store,
        )
        assert result.created[0].assignee_id == "user-alice"
        assert store.list_notifications("user-alice") == []

    def test_resolved_assignee_gets_notification(self, store, profiles):
        result = materialize(
            [ExtractedTask(description="Finish report", assignee_name="john")],
            "user-alice",
            store,
        )
        task = result.created[0]
        assert task.assignee_id == "user-john"
        notifications = store.list_notifications("user-john")
        assert len(notifications) == 1
        assert notifications[0].type == "assigned"
        assert notifications[0].actor_id == "user-alice"
        assert notifications[0].task_id == task.id
        assert notifications[0].message == "You've been assigned: Finish report"
        assert notifications[0].read is False

    def test_self_assignment_no_notification(self, store, profiles):
        materialize(
            [ExtractedTask(description="My own task", assignee_name="Alice")], "user-alice", store,
        )
        assert store.list_notifications("user-alice") == []

    def test_malformed_deadline_dropped_not_failed(self, store, profiles):
        result = materialize(
            [ExtractedTask(description="Odd date", deadline="someday")], "user-alice", store,
        )
        assert result.errors == []
        assert result.created[0].deadline is None

    def test_note_id_recorded(self, store, profiles):
        note = store.insert_note("user-alice", "notes")
        result = materialize([ExtractedTask(description="Linked task")], "user-alice", store, note.id)
        assert store.get_task(result.created[0].id).note_id == note.id

    def test_unknown_submitter_is_per_task_error(self, store, profiles):
        result = materialize([ExtractedTask(description="Orphan task")], "user-ghost", store)
        assert result.created == []
        assert len(result.errors) == 1
        assert result.errors[0].task == "Orphan task"
        assert "FOREIGN KEY" in result.errors[0].error


class TestMaterializeErrorIsolation:
    def _task(self, task_id, description):
        return Task(id=task_id, user_id="u1", assignee_id="u1", description=description)

    def test_middle_failure_does_not_abort_batch(self):
        store = MagicMock()
        store.find_profile_by_name.return_value = None
        store.insert_task.side_effect = [
            self._task("t1", "one"),
            DatastoreError("violates check constraint"),
            self._task("t3", "three"),
        ]
        tasks = [ExtractedTask(description=d) for d in ("one", "two", "three")]

        result = materialize(tasks, "u1", store)

        assert [t.id for t in result.created] == ["t1", "t3"]
        assert len(result.errors) == 1
        assert result.errors[0].task == "two"
        assert result.errors[0].error == "violates check constraint"
        assert store.insert_task.call_count == 3

    def test_notification_failure_does_not_fail_task(self):
        store = MagicMock()
        store.find_profile_by_name.return_value = Profile(id="u2", full_name="Bob")
        store.insert_task.return_value = Task(
            id="t1", user_id="u1", assignee_id="u2", description="Ship it",
        )
        store.insert_notification.side_effect = DatastoreError("notifications down")

        result = materialize([ExtractedTask(description="Ship it", assignee_name="Bob")], "u1", store)

        assert [t.id for t in result.created] == ["t1"]
        assert result.errors == []
        store.insert_notification.assert_called_once()
