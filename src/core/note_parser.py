"""
GrowFlow — Deterministic Note Parser.

Rules-based fallback for turning meeting notes into tasks when no LLM is
configured (or the LLM call fails). Works line by line:

    "- John: Finish report by 2025-03-01 urgent"
        → assignee "John", priority High, deadline 2025-03-01,
          description "Finish report"

Never raises: a non-empty note always yields at least one task.
"""

from __future__ import annotations

import logging
import re
from datetime import date

from src.data.models import ExtractedTask, Priority, TaskStatus

logger = logging.getLogger(__name__)

MIN_LINE_LENGTH = 5
MIN_DESCRIPTION_LENGTH = 4

# ---------------------------------------------------------------------------
# Patterns
# ---------------------------------------------------------------------------

_BULLET_RE = re.compile(r"^[-*•]\s*")

# "John:" / "Mary Jane:" / "**John**:" at the start of a line
_ASSIGNEE_RE = re.compile(r"^\*{0,2}([A-Z][a-z]+(?:\s+[A-Z][a-z]+)*)\*{0,2}:\s*(.+)$")

_HIGH_PRIORITY_RE = re.compile(r"(urgent|asap|critical|high priority|important)", re.IGNORECASE)
_LOW_PRIORITY_RE = re.compile(r"(low priority|when possible|eventually|nice to have)", re.IGNORECASE)
_PRIORITY_KEYWORDS_RE = re.compile(
    r"\b(urgent|asap|critical|high priority|low priority|when possible|eventually|important|nice to have)\b",
    re.IGNORECASE,
)

_TRIGGER = r"\b(?:by|before|due|deadline:?)\s*"

_MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}
_MONTH_NAME = (
    r"(?:jan(?:uary)?|feb(?:ruary)?|mar(?:ch)?|apr(?:il)?|may|june?|july?"
    r"|aug(?:ust)?|sep(?:t(?:ember)?)?|oct(?:ober)?|nov(?:ember)?|dec(?:ember)?)"
)

# Tried in this order; first match wins per line.
_ISO_DATE_RE = re.compile(_TRIGGER + r"(\d{4}-\d{2}-\d{2})\b", re.IGNORECASE)
_MONTH_DATE_RE = re.compile(
    _TRIGGER + r"(" + _MONTH_NAME + r"\.?\s+\d{1,2})(?:st|nd|rd|th)?\b", re.IGNORECASE,
)
_NUMERIC_DATE_RE = re.compile(
    _TRIGGER + r"(\d{1,2}[-/]\d{1,2}(?:[-/]\d{2,4})?)\b", re.IGNORECASE,
)

_DATE_PATTERNS = (_ISO_DATE_RE, _MONTH_DATE_RE, _NUMERIC_DATE_RE)


# ---------------------------------------------------------------------------
# Date normalization
# ---------------------------------------------------------------------------

def _safe_date(year: int, month: int, day: int) -> date | None:
    if year < 1000:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_deadline(raw: str, today: date | None = None) -> str | None:
    """Normalize an ISO, month-name or numeric date expression to YYYY-MM-DD.

    The current year is assumed when the expression has none. Returns None
    for anything that is not a real calendar date.
    """
    today = today or date.today()
    value = raw.strip().rstrip(".")

    if re.fullmatch(r"\d{4}-\d{2}-\d{2}", value):
        year, month, day = (int(p) for p in value.split("-"))
        parsed = _safe_date(year, month, day)
        return parsed.isoformat() if parsed else None

    m = re.fullmatch(r"([A-Za-z]+)\.?\s+(\d{1,2})", value)
    if m:
        month = _MONTHS.get(m.group(1)[:3].lower())
        if month is None:
            return None
        parsed = _safe_date(today.year, month, int(m.group(2)))
        return parsed.isoformat() if parsed else None

    m = re.fullmatch(r"(\d{1,2})[-/](\d{1,2})(?:[-/](\d{2,4}))?", value)
    if m:
        year = today.year
        if m.group(3):
            year = int(m.group(3))
            if year < 100:
                year += 2000
        parsed = _safe_date(year, int(m.group(1)), int(m.group(2)))
        return parsed.isoformat() if parsed else None

    return None


# ---------------------------------------------------------------------------
# Line tokenizer / attribute extractor
# ---------------------------------------------------------------------------

def split_note_lines(note_text: str) -> list[str]:
    """Split note text into candidate task lines, dropping blank and short ones."""
    return [
        line.strip()
        for line in note_text.splitlines()
        if len(line.strip()) >= MIN_LINE_LENGTH
    ]


def _infer_priority(text: str, default_priority: Priority) -> Priority:
    if _HIGH_PRIORITY_RE.search(text):
        return Priority.HIGH
    if _LOW_PRIORITY_RE.search(text):
        return Priority.LOW
    return default_priority


def _find_deadline(text: str, today: date) -> str | None:
    for pattern in _DATE_PATTERNS:
        m = pattern.search(text)
        if m:
            deadline = normalize_deadline(m.group(1), today)
            if deadline is None:
                logger.debug("Could not normalize deadline %r", m.group(1))
            return deadline
    return None


def _strip_tokens(text: str) -> str:
    text = _PRIORITY_KEYWORDS_RE.sub("", text)
    for pattern in _DATE_PATTERNS:
        text = pattern.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def extract_task_from_line(
    line: str,
    default_priority: Priority = Priority.MEDIUM,
    today: date | None = None,
) -> ExtractedTask | None:
    """Extract a single task from one note line, or None if nothing is left."""
    today = today or date.today()
    description = _BULLET_RE.sub("", line.strip())
    assignee_name: str | None = None

    m = _ASSIGNEE_RE.match(description)
    if m:
        assignee_name = m.group(1)
        description = m.group(2)

    priority = _infer_priority(description, default_priority)
    deadline = _find_deadline(description, today)
    description = _strip_tokens(description)

    if len(description) < MIN_DESCRIPTION_LENGTH:
        return None

    return ExtractedTask(
        description=description,
        assignee_name=assignee_name,
        priority=priority,
        status=TaskStatus.NOT_STARTED,
        deadline=deadline,
    )


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------

def parse_notes_basic(
    note_text: str,
    default_priority: Priority = Priority.MEDIUM,
    today: date | None = None,
) -> list[ExtractedTask]:
    """Parse meeting notes into tasks without an LLM.

    If no line produces a task but the note is non-empty, the whole note
    becomes a single task so nothing the user submitted is silently lost.
    """
    logger.info("Using basic note parser (no AI)")
    note_text = note_text or ""
    tasks: list[ExtractedTask] = []

    for line in split_note_lines(note_text):
        task = extract_task_from_line(line, default_priority, today)
        if task is not None:
            tasks.append(task)

    if not tasks and note_text.strip():
        tasks.append(
            ExtractedTask(
                description=note_text.strip(),
                priority=default_priority,
                status=TaskStatus.NOT_STARTED,
            )
        )

    logger.info("Basic parser extracted %d task(s)", len(tasks))
    return tasks
