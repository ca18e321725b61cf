"""
GrowFlow — Extraction Orchestrator.

Chooses the extraction strategy for one note:

    no model key        → deterministic parser
    model key           → LLM parser
    LLM raises/timeouts → deterministic parser (fallback, logged)

Always returns a list (never None). The deterministic path guarantees at
least one task for a non-empty note.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum

from src.core.llm import LLMConfig
from src.core.note_parser import parse_notes_basic
from src.core.parser import parse_notes_with_model
from src.data.models import ExtractedTask, Priority

logger = logging.getLogger(__name__)


class ExtractionStrategy(Enum):
    MODEL = "model"
    DETERMINISTIC = "deterministic"


@dataclass
class ExtractionOutcome:
    strategy: ExtractionStrategy
    tasks: list[ExtractedTask] = field(default_factory=list)
    fallback_reason: str = ""


async def extract_tasks(
    note_text: str,
    llm: LLMConfig | None,
    default_priority: Priority = Priority.MEDIUM,
    today: date | None = None,
) -> ExtractionOutcome:
    """Extract tasks from note text, falling back to the rules parser on any LLM failure."""
    if llm is None:
        logger.info("No LLM key configured, using basic parser")
        return ExtractionOutcome(
            strategy=ExtractionStrategy.DETERMINISTIC,
            tasks=parse_notes_basic(note_text, default_priority, today),
        )

    try:
        tasks = await asyncio.wait_for(
            parse_notes_with_model(note_text, llm, default_priority, today),
            timeout=llm.timeout_seconds,
        )
    except Exception as exc:
        reason = f"{type(exc).__name__}: {exc}"
        logger.warning("LLM parsing failed, falling back to basic parser (%s)", reason)
        return ExtractionOutcome(
            strategy=ExtractionStrategy.DETERMINISTIC,
            tasks=parse_notes_basic(note_text, default_priority, today),
            fallback_reason=reason,
        )

    return ExtractionOutcome(strategy=ExtractionStrategy.MODEL, tasks=tasks)
