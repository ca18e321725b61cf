"""Tests for src.core.extraction — strategy choice and LLM fallback."""

import asyncio
import json
from datetime import date

import pytest
from unittest.mock import AsyncMock, patch

from src.core.extraction import ExtractionStrategy, extract_tasks
from src.core.llm import LLMConfig
from src.data.models import ExtractedTask, Priority

NOTE = "John: Finish report by 2025-03-01\nFix login bug ASAP"
TODAY = date(2025, 2, 10)
LLM = LLMConfig(provider="openai", api_key="fake-key", timeout_seconds=5)


class TestWithoutModelKey:
    @pytest.mark.asyncio
    async def test_uses_deterministic_parser(self):
        mock = AsyncMock()
        with patch("src.core.extraction.parse_notes_with_model", mock):
            outcome = await extract_tasks(NOTE, None, Priority.MEDIUM, TODAY)
        mock.assert_not_called()
        assert outcome.strategy == ExtractionStrategy.DETERMINISTIC
        assert [t.description for t in outcome.tasks] == ["Finish report", "Fix login bug"]
        assert outcome.fallback_reason == ""


class TestWithModelKey:
    @pytest.mark.asyncio
    async def test_model_results_used(self):
        model_tasks = [ExtractedTask(description="From the model", priority=Priority.HIGH)]
        with patch("src.core.extraction.parse_notes_with_model", AsyncMock(return_value=model_tasks)):
            outcome = await extract_tasks(NOTE, LLM, Priority.MEDIUM, TODAY)
        assert outcome.strategy == ExtractionStrategy.MODEL
        assert outcome.tasks == model_tasks

    @pytest.mark.asyncio
    async def test_model_empty_list_is_respected(self):
        with patch("src.core.extraction.parse_notes_with_model", AsyncMock(return_value=[])):
            outcome = await extract_tasks(NOTE, LLM, Priority.MEDIUM, TODAY)
        assert outcome.strategy == ExtractionStrategy.MODEL
        assert outcome.tasks == []

    @pytest.mark.asyncio
    async def test_network_error_falls_back(self):
        failing = AsyncMock(side_effect=ConnectionError("endpoint unreachable"))
        with patch("src.core.extraction.parse_notes_with_model", failing):
            outcome = await extract_tasks(NOTE, LLM, Priority.MEDIUM, TODAY)
        assert outcome.strategy == ExtractionStrategy.DETERMINISTIC
        assert "endpoint unreachable" in outcome.fallback_reason
        assert [t.description for t in outcome.tasks] == ["Finish report", "Fix login bug"]

    @pytest.mark.asyncio
    async def test_bad_json_from_llm_falls_back(self):
        with patch("src.core.parser.complete", AsyncMock(return_value="Sure! Here are your tasks")):
            outcome = await extract_tasks(NOTE, LLM, Priority.LOW, TODAY)
        assert outcome.strategy == ExtractionStrategy.DETERMINISTIC
        assert "JSONDecodeError" in outcome.fallback_reason
        assert outcome.tasks[0].priority == Priority.LOW

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self):
        async def _hang(*args, **kwargs):
            await asyncio.sleep(10)

        llm = LLMConfig(provider="openai", api_key="fake-key", timeout_seconds=0.01)
        with patch("src.core.extraction.parse_notes_with_model", _hang):
            outcome = await extract_tasks(NOTE, llm, Priority.MEDIUM, TODAY)
        assert outcome.strategy == ExtractionStrategy.DETERMINISTIC
        assert "TimeoutError" in outcome.fallback_reason
        assert len(outcome.tasks) == 2

    @pytest.mark.asyncio
    async def test_idempotent_with_fixed_model_response(self):
        response = json.dumps([{"description": "Finish report", "assignee_name": "John"}])
        with patch("src.core.parser.complete", AsyncMock(return_value=response)):
            first = await extract_tasks(NOTE, LLM, Priority.MEDIUM, TODAY)
            second = await extract_tasks(NOTE, LLM, Priority.MEDIUM, TODAY)
        assert first.tasks == second.tasks
        assert first.strategy == ExtractionStrategy.MODEL
