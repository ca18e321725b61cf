"""Tests for src.core.note_parser — deterministic rules-based parsing."""

from datetime import date

import pytest

from src.core.note_parser import (
    extract_task_from_line,
    normalize_deadline,
    parse_notes_basic,
    split_note_lines,
)
from src.data.models import Priority, TaskStatus

TODAY = date(2025, 2, 10)


# ---------------------------------------------------------------------------
# Line tokenizer
# ---------------------------------------------------------------------------


class TestSplitNoteLines:
    def test_drops_blank_and_short_lines(self):
        text = "Follow up with vendor\n\n  ok  \nabcd\nShip the release"
        assert split_note_lines(text) == ["Follow up with vendor", "Ship the release"]

    def test_exactly_five_chars_kept(self):
        assert split_note_lines("  hello  ") == ["hello"]

    def test_handles_windows_newlines(self):
        assert split_note_lines("Write docs\r\nFix tests") == ["Write docs", "Fix tests"]


# ---------------------------------------------------------------------------
# Deadline normalization
# ---------------------------------------------------------------------------


class TestNormalizeDeadline:
    def test_iso_date_kept(self):
        assert normalize_deadline("2025-03-01", TODAY) == "2025-03-01"

    def test_iso_date_invalid(self):
        assert normalize_deadline("2025-02-30", TODAY) is None

    def test_month_name_uses_current_year(self):
        assert normalize_deadline("Jan 5", TODAY) == "2025-01-05"

    def test_full_month_name(self):
        assert normalize_deadline("September 15", TODAY) == "2025-09-15"

    def test_unknown_month(self):
        assert normalize_deadline("Foo 5", TODAY) is None

    def test_numeric_month_day(self):
        assert normalize_deadline("3/5", TODAY) == "2025-03-05"

    def test_numeric_dash_separator(self):
        assert normalize_deadline("12-24", TODAY) == "2025-12-24"

    def test_numeric_two_digit_year(self):
        assert normalize_deadline("3/5/26", TODAY) == "2026-03-05"

    def test_numeric_four_digit_year(self):
        assert normalize_deadline("11/30/2027", TODAY) == "2027-11-30"

    def test_numeric_out_of_range(self):
        assert normalize_deadline("13/40", TODAY) is None

    def test_garbage(self):
        assert normalize_deadline("next week", TODAY) is None


# ---------------------------------------------------------------------------
# Attribute extractor
# ---------------------------------------------------------------------------


class TestExtractTaskFromLine:
    def test_assignee_and_iso_deadline(self):
        task = extract_task_from_line("John: Finish report by 2025-03-01", Priority.MEDIUM, TODAY)
        assert task is not None
        assert task.assignee_name == "John"
        assert task.description == "Finish report"
        assert task.deadline == "2025-03-01"
        assert task.priority == Priority.MEDIUM
        assert task.status == TaskStatus.NOT_STARTED

    def test_multi_word_assignee(self):
        task = extract_task_from_line("Mary Jane: Book the venue", Priority.MEDIUM, TODAY)
        assert task.assignee_name == "Mary Jane"
        assert task.description == "Book the venue"

    def test_bold_assignee(self):
        task = extract_task_from_line("**Sam**: Draft the agenda", Priority.MEDIUM, TODAY)
        assert task.assignee_name == "Sam"
        assert task.description == "Draft the agenda"

    def test_bullet_markers_stripped(self):
        for line in ("- Review budget", "* Review budget", "• Review budget"):
            task = extract_task_from_line(line, Priority.MEDIUM, TODAY)
            assert task.description == "Review budget"

    def test_lowercase_prefix_is_not_assignee(self):
        task = extract_task_from_line("note: check the logs", Priority.MEDIUM, TODAY)
        assert task.assignee_name is None
        assert task.description == "note: check the logs"

    def test_high_priority_keyword(self):
        task = extract_task_from_line("Fix login bug ASAP", Priority.MEDIUM, TODAY)
        assert task.priority == Priority.HIGH
        assert task.description == "Fix login bug"

    def test_low_priority_keyword(self):
        task = extract_task_from_line("Clean up old branches eventually", Priority.MEDIUM, TODAY)
        assert task.priority == Priority.LOW
        assert task.description == "Clean up old branches"

    def test_urgent_wins_over_low_keywords(self):
        task = extract_task_from_line(
            "Polish dashboard, nice to have but urgent, by 3/5", Priority.LOW, TODAY,
        )
        assert task.priority == Priority.HIGH
        assert task.deadline == "2025-03-05"

    def test_default_priority_applies(self):
        task = extract_task_from_line("Prepare slides", Priority.LOW, TODAY)
        assert task.priority == Priority.LOW

    def test_month_name_deadline(self):
        task = extract_task_from_line("Send invoices before Jan 5", Priority.MEDIUM, TODAY)
        assert task.deadline == "2025-01-05"
        assert task.description == "Send invoices"

    def test_deadline_colon_trigger(self):
        task = extract_task_from_line("Submit taxes deadline: 2025-04-15", Priority.MEDIUM, TODAY)
        assert task.deadline == "2025-04-15"
        assert task.description == "Submit taxes"

    def test_iso_tried_before_numeric(self):
        task = extract_task_from_line(
            "Ship v2 by 2025-06-01 and docs due 7/1", Priority.MEDIUM, TODAY,
        )
        assert task.deadline == "2025-06-01"
        assert task.description == "Ship v2 and docs"

    def test_invalid_date_text_stripped_without_deadline(self):
        task = extract_task_from_line("Plan offsite by 13/40", Priority.MEDIUM, TODAY)
        assert task.deadline is None
        assert task.description == "Plan offsite"

    def test_trigger_inside_word_ignored(self):
        task = extract_task_from_line("Stand up the standby 3/5 cluster", Priority.MEDIUM, TODAY)
        assert task.deadline is None

    def test_too_short_after_stripping(self):
        assert extract_task_from_line("- urgent ASAP", Priority.MEDIUM, TODAY) is None


# ---------------------------------------------------------------------------
# Full parser
# ---------------------------------------------------------------------------


class TestParseNotesBasic:
    def test_multi_line_note(self):
        note = (
            "Weekly sync\n"
            "- John: Finish report by 2025-03-01\n"
            "- Fix login bug ASAP\n"
            "ok\n"
            "- Update wiki when possible\n"
        )
        tasks = parse_notes_basic(note, Priority.MEDIUM, TODAY)
        assert [t.description for t in tasks] == [
            "Weekly sync", "Finish report", "Fix login bug", "Update wiki",
        ]
        assert [t.priority for t in tasks] == [
            Priority.MEDIUM, Priority.MEDIUM, Priority.HIGH, Priority.LOW,
        ]

    def test_fallback_to_full_note(self):
        tasks = parse_notes_basic("ok\nyes\nurgent", Priority.HIGH, TODAY)
        assert len(tasks) == 1
        assert tasks[0].description == "ok\nyes\nurgent"
        assert tasks[0].priority == Priority.HIGH
        assert tasks[0].deadline is None

    def test_short_non_empty_note_still_produces_task(self):
        tasks = parse_notes_basic("  hi  ", Priority.MEDIUM, TODAY)
        assert len(tasks) == 1
        assert tasks[0].description == "hi"

    @pytest.mark.parametrize("text", ["", "   ", "\n\n"])
    def test_empty_note_produces_nothing(self, text):
        assert parse_notes_basic(text, Priority.MEDIUM, TODAY) == []

    @pytest.mark.parametrize("text", [
        "a", "Call Bob", "x\ny\nz", "- urgent", "John: ok", "by 2025-01-01",
        "Lorem ipsum dolor sit amet\nconsectetur",
    ])
    def test_non_empty_note_never_yields_nothing(self, text):
        assert len(parse_notes_basic(text, Priority.MEDIUM, TODAY)) >= 1

    def test_numeric_deadline_uses_current_year(self):
        tasks = parse_notes_basic("Renew the domain by 3/5")
        assert tasks[0].deadline == f"{date.today().year}-03-05"

    def test_deterministic(self):
        note = "John: Finish report by 2025-03-01\nFix login bug ASAP"
        first = parse_notes_basic(note, Priority.MEDIUM, TODAY)
        second = parse_notes_basic(note, Priority.MEDIUM, TODAY)
        assert first == second
