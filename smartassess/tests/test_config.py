"""
Tests for settings and logging setup.
"""

import json
import logging

import pytest
from pydantic import ValidationError

from smartassess.assessments.evaluation.dependencies import build_memory_components
from smartassess.common.logger import JsonFormatter, LoggerAdapter, with_context
from smartassess.config import Settings
from smartassess.domain.questions import QuestionFilter


def test_scorer_defaults():
    config = Settings()
    assert config.SCORER_TIMEOUT == 30.0
    assert config.SCORER_BATCH_DELAY == 0.5
    assert config.SCORER_TEMPERATURE == 0.3
    assert config.SCORER_MAX_TOKENS == 500
    assert config.API_V1_STR == "/api/v1"


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("STORAGE_BACKEND", "SQL")
    monkeypatch.setenv("SCORER_MODEL", "local-grader")
    config = Settings()
    assert config.STORAGE_BACKEND == "sql"
    assert config.SCORER_MODEL == "local-grader"


@pytest.mark.asyncio
async def test_memory_backend_is_the_default_and_starts_empty(monkeypatch):
    monkeypatch.delenv("STORAGE_BACKEND", raising=False)
    config = Settings(_env_file=None)
    assert config.STORAGE_BACKEND == "memory"

    components = build_memory_components(config)

    assert await components.questions.find(QuestionFilter(subject_id="physics")) == []
    assert await components.tests.get_by_id("test-1") is None


@pytest.mark.parametrize("overrides", [
    {"STORAGE_BACKEND": "redis"},
    {"LOG_LEVEL": "VERBOSE"},
    {"SCORER_TIMEOUT": -1},
])
def test_invalid_settings(overrides):
    with pytest.raises(ValidationError):
        Settings(**overrides)


def test_adapter_prefixes_context_and_attaches_data():
    adapter = with_context("tests", submission_id="sub-1")
    msg, kwargs = adapter.process("scored", {})

    assert msg == "[submission_id=sub-1] scored"
    assert kwargs["extra"]["data"] == {"submission_id": "sub-1"}

    nested = adapter.with_context(evaluator="teacher-1")
    assert isinstance(nested, LoggerAdapter)
    assert nested.extra == {"submission_id": "sub-1", "evaluator": "teacher-1"}


def test_json_formatter_merges_context():
    record = logging.LogRecord("smartassess.tests", logging.INFO, __file__, 10, "hello", None, None)
    record.data = {"submission_id": "sub-1"}

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello"
    assert payload["level"] == "INFO"
    assert payload["submission_id"] == "sub-1"
