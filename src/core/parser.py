"""
GrowFlow — LLM Note Parser.

Converts free-text meeting notes into structured tasks using the configured
LLM provider. Produces the same ExtractedTask list as the deterministic
parser, so the two are interchangeable pipeline stages.

Transport and JSON decode failures are NOT handled here: they propagate so
the extraction orchestrator can fall back to the deterministic parser.
"""

from __future__ import annotations

import json
import logging
from datetime import date

from pydantic import ValidationError

from src.core.llm import LLMConfig, complete
from src.data.models import ExtractedTask, Priority, TaskStatus

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# System prompt for LLM
# ---------------------------------------------------------------------------

_SYSTEM_PROMPT = """\
You are a task extraction assistant. Extract actionable tasks from meeting notes and return them as a JSON array.

Today's date is: {today}

Each task should have:
- description (string, required): The task description
- assignee_name (string, optional): Person's name if mentioned
- priority ("Low" | "Medium" | "High", optional): Task priority, default {default_priority}. Only override this if the note explicitly mentions a different priority.
- status ("Not Started" | "In Progress" | "Done", optional): Default "Not Started"
- deadline (string, optional): Date in YYYY-MM-DD format if mentioned. Convert relative dates like "next Friday", "tomorrow", "in 2 weeks" to absolute dates based on today's date.

Return ONLY a valid JSON array of tasks, nothing else. If no tasks found, return empty array [].
"""


def build_system_prompt(default_priority: Priority, today: date | None = None) -> str:
    today = today or date.today()
    return _SYSTEM_PROMPT.format(
        today=today.isoformat(),
        default_priority=default_priority.value,
    )


# ---------------------------------------------------------------------------
# Response cleaning
# ---------------------------------------------------------------------------

def _clean_llm_response(raw_text: str) -> str:
    """Remove markdown code block delimiters from LLM's raw response."""
    cleaned_text = raw_text.strip()
    if cleaned_text.startswith("```json"):
        cleaned_text = cleaned_text.removeprefix("```json")
    elif cleaned_text.startswith("```"):
        cleaned_text = cleaned_text.removeprefix("```")
    if cleaned_text.endswith("```"):
        cleaned_text = cleaned_text.removesuffix("```")
    return cleaned_text.strip()


def _instantiate_task(data: dict, default_priority: Priority) -> ExtractedTask | None:
    """Validate one task dict from the model, or None if it is unusable."""
    payload = {k: v for k, v in data.items() if v is not None}
    payload.setdefault("priority", default_priority)
    payload.setdefault("status", TaskStatus.NOT_STARTED)
    try:
        return ExtractedTask(**payload)
    except ValidationError as exc:
        logger.warning("Skipping invalid task from LLM: %s — %s", data, exc.errors()[0]["msg"])
        return None


# ---------------------------------------------------------------------------
# Parser function
# ---------------------------------------------------------------------------

async def parse_notes_with_model(
    note_text: str,
    llm: LLMConfig,
    default_priority: Priority = Priority.MEDIUM,
    today: date | None = None,
) -> list[ExtractedTask]:
    """Parse meeting notes into tasks using the configured LLM.

    Returns a list of ExtractedTask objects (may be empty). A response that
    is valid JSON but not an array yields an empty list.

    Raises:
        Exception: provider/transport errors from `complete()`.
        json.JSONDecodeError: when the response is not JSON at all.
    """
    raw_text = await complete(
        llm,
        system=build_system_prompt(default_priority, today),
        user_message=note_text,
        max_tokens=2048,
    )
    raw_text = _clean_llm_response(raw_text or "")
    logger.debug("LLM raw response: %s", raw_text)

    if not raw_text:
        logger.info("LLM returned an empty response for note: %s", note_text[:80])
        return []

    try:
        data = json.loads(raw_text)
    except json.JSONDecodeError:
        logger.error("Failed to parse LLM response as JSON — raw: '%s'", raw_text)
        raise

    if not isinstance(data, list):
        logger.warning("LLM returned unexpected type: %s", type(data).__name__)
        return []

    results: list[ExtractedTask] = []
    for item in data:
        if not isinstance(item, dict):
            logger.warning("Skipping non-dict item in array: %s", item)
            continue
        task = _instantiate_task(item, default_priority)
        if task is not None:
            results.append(task)

    logger.info("LLM extracted %d task(s)", len(results))
    return results
