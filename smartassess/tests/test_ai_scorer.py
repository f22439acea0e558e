"""
Tests for the AI scorer adapter.

This module contains tests for the AIScorerAdapter, focusing on:
1. The chat completions request it sends
2. Turning HTTP failures into fallback results
3. Sequential batch scoring through the rate limiter
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from smartassess.assessments.evaluation.ai_scorer import (
    FALLBACK_FEEDBACK,
    NO_REFERENCE_PLACEHOLDER,
    AIScorerAdapter,
    ScoringRequest
)
from smartassess.common.exceptions import ScorerError
from smartassess.common.rate_limiter import RateLimiter
from smartassess.tests.factories import json_reply, make_scorer, scorer_settings

REQUEST = ScoringRequest(
    question_text="State Newton's second law.",
    reference_answer="F = ma",
    answer_text="Force equals mass times acceleration",
    max_marks=5
)


class FakeResponse:
    """Minimal stand-in for an aiohttp response used as an async context manager."""

    def __init__(self, status=200, payload=None, text=""):
        self.status = status
        self._payload = payload
        self._text = text

    async def json(self, content_type=None):
        return self._payload

    async def text(self):
        return self._text

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


def session_returning(response):
    session = MagicMock()
    session.closed = False
    session.post = MagicMock(return_value=response)
    return session


def chat_payload(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_payload_uses_configured_model_and_sampling():
    scorer = AIScorerAdapter(scorer_settings(SCORER_MODEL="grader-7b"))
    payload = scorer.build_payload(scorer.build_prompt(REQUEST))

    assert payload["model"] == "grader-7b"
    assert payload["temperature"] == 0.3
    assert payload["max_tokens"] == 500
    assert [m["role"] for m in payload["messages"]] == ["system", "user"]
    user_prompt = payload["messages"][1]["content"]
    assert "State Newton's second law." in user_prompt
    assert "F = ma" in user_prompt
    assert "Maximum Marks: 5" in user_prompt


def test_missing_reference_uses_placeholder():
    request = ScoringRequest("Explain inertia.", None, "Objects resist change", 4)
    assert NO_REFERENCE_PLACEHOLDER in AIScorerAdapter.build_prompt(request)


@pytest.mark.asyncio
async def test_score_parses_reply():
    session = session_returning(FakeResponse(payload=chat_payload(json_reply(4, "Well explained"))))
    scorer = AIScorerAdapter(scorer_settings(), session=session)

    result = await scorer.score(REQUEST)

    assert result.marks == 4
    assert result.feedback == "Well explained"
    assert result.fallback is False
    url = session.post.call_args.args[0]
    assert url == "http://scorer.test/v1/chat/completions"


@pytest.mark.asyncio
async def test_non_2xx_status_gives_fallback():
    session = session_returning(FakeResponse(status=503, text="model not loaded"))
    scorer = AIScorerAdapter(scorer_settings(), session=session)

    result = await scorer.score(REQUEST)

    assert result.fallback is True
    assert result.marks == 0
    assert result.feedback == FALLBACK_FEEDBACK
    assert "503" in result.rationale


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    {"choices": []},
    {"choices": [{"message": {"content": ""}}]},
    {"error": "bad request"},
])
async def test_missing_content_gives_fallback(payload):
    scorer = AIScorerAdapter(scorer_settings(), session=session_returning(FakeResponse(payload=payload)))
    result = await scorer.score(REQUEST)
    assert result.fallback is True
    assert result.marks == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("content", [
    [{"type": "text", "text": '{"marksObtained": 3}'}],
    7,
])
async def test_non_text_content_gives_fallback(content):
    scorer = AIScorerAdapter(scorer_settings(), session=session_returning(FakeResponse(payload=chat_payload(content))))

    result = await scorer.score(REQUEST)

    assert result.fallback is True
    assert result.marks == 0
    assert "Scorer reply content is not text" in result.rationale


@pytest.mark.asyncio
async def test_batch_survives_non_text_reply():
    scorer = make_scorer([7, json_reply(2)])

    results = await scorer.score_batch([REQUEST, REQUEST])

    assert [r.fallback for r in results] == [True, False]
    assert [r.marks for r in results] == [0, 2]


@pytest.mark.asyncio
@pytest.mark.parametrize("error", [
    asyncio.TimeoutError(),
    aiohttp.ClientConnectionError("refused"),
    ScorerError("No response content from scorer"),
])
async def test_transport_errors_give_fallback(error):
    scorer = make_scorer(side_effect=error)
    result = await scorer.score(REQUEST)

    assert result.fallback is True
    assert result.rationale


@pytest.mark.asyncio
async def test_batch_continues_after_failure():
    scorer = make_scorer(side_effect=[
        json_reply(2),
        aiohttp.ClientConnectionError("reset"),
        json_reply(5),
    ])
    results = await scorer.score_batch([REQUEST, REQUEST, REQUEST])

    assert [r.marks for r in results] == [2, 0, 5]
    assert [r.fallback for r in results] == [False, True, False]


@pytest.mark.asyncio
async def test_batch_is_throttled_between_calls():
    sleep = AsyncMock()
    clock = MagicMock(return_value=100.0)
    limiter = RateLimiter(max_concurrent=1, min_interval=0.5, clock=clock, sleep=sleep)
    scorer = AIScorerAdapter(scorer_settings(), limiter=limiter)
    scorer._post_chat = AsyncMock(side_effect=[json_reply(1), json_reply(1), json_reply(1)])

    await scorer.score_batch([REQUEST, REQUEST, REQUEST])

    # No wait before the first call, a full interval before each later one
    assert sleep.await_count == 2
    sleep.assert_awaited_with(0.5)


@pytest.mark.asyncio
async def test_batch_items_run_through_limiter():
    limiter = RateLimiter(max_concurrent=1, min_interval=0)
    scorer = AIScorerAdapter(scorer_settings(), limiter=limiter)
    scorer._post_chat = AsyncMock(side_effect=[json_reply(1), json_reply(3)])

    with patch.object(limiter, "run", wraps=limiter.run) as run:
        results = await scorer.score_batch([REQUEST, REQUEST])

    assert run.await_count == 2
    assert [r.marks for r in results] == [1, 3]


@pytest.mark.asyncio
async def test_check_connection():
    scorer = make_scorer(["Hello! I am working."])
    assert await scorer.check_connection() is True

    scorer = make_scorer(side_effect=aiohttp.ClientConnectionError("refused"))
    assert await scorer.check_connection() is False


@pytest.mark.asyncio
async def test_close_leaves_injected_session_open():
    session = session_returning(FakeResponse())
    session.close = AsyncMock()
    scorer = AIScorerAdapter(scorer_settings(), session=session)

    await scorer.close()

    session.close.assert_not_awaited()
