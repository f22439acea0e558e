"""
Tests for manual and AI grading.

This module contains tests for the GradingEngine, focusing on:
1. Mark caps and all-or-nothing manual evaluation
2. AI evaluation eligibility, guards and the force flag
3. Fallback results when the scorer is unreachable
4. Single-answer AI evaluation
"""

import asyncio

import aiohttp
import pytest

from smartassess.assessments.evaluation.grading import (
    AI_REMARK_PREFIX,
    GradingEngine,
    MarkEntry,
    SubmissionLocks
)
from smartassess.assessments.evaluation.ai_scorer import FALLBACK_FEEDBACK
from smartassess.common.exceptions import (
    AlreadyEvaluatedError,
    NoEligibleAnswersError,
    NotFoundError,
    NothingToGradeError,
    ValidationError
)
from smartassess.domain.assessments import MemoryTestRepository
from smartassess.domain.questions import MemoryQuestionRepository
from smartassess.domain.submissions import (
    Answer,
    MemorySubmissionRepository,
    Submission,
    SubmissionStatus
)
from smartassess.tests.factories import json_reply, make_question, make_scorer, make_test

QUESTIONS = [
    make_question("mc", marks=2, question_type="multiple-choice", correct_answer="A"),
    make_question("short", marks=5, question_type="short-answer", correct_answer="Force is mass times acceleration"),
    make_question("long", marks=10, question_type="long-answer"),
]


def submitted(answers, status=SubmissionStatus.SUBMITTED) -> Submission:
    submission = Submission(
        submission_id="sub-1",
        test_id="test-1",
        student_id="student-1",
        answers=answers,
        status=status
    )
    submission.recompute_total()
    return submission


async def build_engine(submission, scorer=None):
    submissions = MemorySubmissionRepository()
    await submissions.insert(submission)
    engine = GradingEngine(
        MemoryTestRepository([make_test(QUESTIONS)]),
        MemoryQuestionRepository(QUESTIONS),
        submissions,
        scorer or make_scorer()
    )
    return engine, submissions


def typical_answers():
    return [
        Answer("mc", "A", 2, "Correct (Auto-graded)"),
        Answer("short", "F = ma", None, "Pending manual evaluation"),
        Answer("long", "An essay about momentum", None, "Pending manual evaluation"),
    ]


@pytest.mark.asyncio
async def test_manual_evaluate_completes_submission():
    engine, submissions = await build_engine(submitted(typical_answers()))

    result = await engine.manual_evaluate("sub-1", [
        MarkEntry("short", 4, "Good"),
        MarkEntry("long", 7.5),
    ], evaluator_id="teacher-1")

    assert result.status == SubmissionStatus.EVALUATED
    assert result.total_marks_obtained == 13.5
    assert result.evaluated_by == "teacher-1"
    assert result.get_answer("short").answer_text == "F = ma"

    stored = await submissions.get_by_id("sub-1")
    assert stored.status == SubmissionStatus.EVALUATED
    assert stored.get_answer("long").marks_obtained == 7.5


@pytest.mark.asyncio
@pytest.mark.parametrize("marks", [-1, 5.5])
async def test_manual_evaluate_rejects_marks_outside_cap(marks):
    engine, submissions = await build_engine(submitted(typical_answers()))

    with pytest.raises(ValidationError) as exc_info:
        await engine.manual_evaluate("sub-1", [
            MarkEntry("long", 8),
            MarkEntry("short", marks),
        ], evaluator_id="teacher-1")

    assert "short" in exc_info.value.message
    assert "5" in exc_info.value.message
    stored = await submissions.get_by_id("sub-1")
    assert stored.get_answer("long").marks_obtained is None
    assert stored.status == SubmissionStatus.SUBMITTED


@pytest.mark.asyncio
async def test_manual_evaluate_rejects_foreign_question():
    engine, _ = await build_engine(submitted(typical_answers()))
    with pytest.raises(ValidationError):
        await engine.manual_evaluate("sub-1", [MarkEntry("unknown", 1)], evaluator_id="teacher-1")


@pytest.mark.asyncio
async def test_manual_evaluate_requires_every_answer_marked():
    engine, submissions = await build_engine(submitted(typical_answers()))
    with pytest.raises(ValidationError):
        await engine.manual_evaluate("sub-1", [MarkEntry("short", 3)], evaluator_id="teacher-1")

    stored = await submissions.get_by_id("sub-1")
    assert stored.get_answer("short").marks_obtained is None


@pytest.mark.asyncio
async def test_manual_evaluate_adds_answer_for_unanswered_question():
    answers = [Answer("mc", "A", 2, "Correct (Auto-graded)")]
    engine, _ = await build_engine(submitted(answers))

    result = await engine.manual_evaluate("sub-1", [MarkEntry("long", 0, "Not attempted")], evaluator_id="t")

    added = result.get_answer("long")
    assert added is not None
    assert added.answer_text is None
    assert added.marks_obtained == 0
    assert result.total_marks_obtained == 2


@pytest.mark.asyncio
async def test_manual_evaluate_unknown_submission():
    engine, _ = await build_engine(submitted(typical_answers()))
    with pytest.raises(NotFoundError):
        await engine.manual_evaluate("missing", [], evaluator_id="t")


@pytest.mark.asyncio
async def test_ai_evaluate_scores_pending_subjective_answers():
    scorer = make_scorer([json_reply(4, "Nearly complete"), json_reply(12, "Excellent")])
    engine, submissions = await build_engine(submitted(typical_answers()), scorer)

    outcome = await engine.ai_evaluate("sub-1", evaluator_id="teacher-1")

    assert outcome.evaluated_count == 2
    assert outcome.fallback_count == 0
    submission = outcome.submission
    assert submission.get_answer("short").marks_obtained == 4
    assert submission.get_answer("short").remarks == f"{AI_REMARK_PREFIX}Nearly complete"
    # Clamped to the 10 marks of the question
    assert submission.get_answer("long").marks_obtained == 10
    assert submission.total_marks_obtained == 16
    assert submission.status == SubmissionStatus.EVALUATED
    assert submission.evaluated_by == "teacher-1"
    assert outcome.summary() == {"evaluated": 2, "fallback": 0, "total_marks_obtained": 16}

    stored = await submissions.get_by_id("sub-1")
    assert stored.total_marks_obtained == 16


@pytest.mark.asyncio
async def test_ai_evaluate_builds_requests_with_reference_placeholder():
    scorer = make_scorer([json_reply(3), json_reply(5)])
    engine, _ = await build_engine(submitted(typical_answers()), scorer)

    await engine.ai_evaluate("sub-1", evaluator_id="teacher-1")

    prompts = [call.args[0]["messages"][1]["content"] for call in scorer._post_chat.await_args_list]
    assert "Force is mass times acceleration" in prompts[0]
    assert "No reference answer provided. Evaluate on general correctness." in prompts[1]


@pytest.mark.asyncio
async def test_ai_evaluate_fallback_when_scorer_unreachable():
    scorer = make_scorer(side_effect=aiohttp.ClientConnectionError("connection refused"))
    engine, _ = await build_engine(submitted(typical_answers()), scorer)

    outcome = await engine.ai_evaluate("sub-1", evaluator_id="teacher-1")

    assert outcome.fallback_count == 2
    for question_id in ("short", "long"):
        answer = outcome.submission.get_answer(question_id)
        assert answer.marks_obtained == 0
        assert answer.remarks == f"{AI_REMARK_PREFIX}{FALLBACK_FEEDBACK}"
    assert outcome.submission.total_marks_obtained == 2
    assert outcome.submission.status == SubmissionStatus.EVALUATED


@pytest.mark.asyncio
async def test_ai_evaluate_skips_blank_answers_and_keeps_status():
    answers = typical_answers()
    answers[2].answer_text = "   "
    scorer = make_scorer([json_reply(5)])
    engine, _ = await build_engine(submitted(answers), scorer)

    outcome = await engine.ai_evaluate("sub-1", evaluator_id="teacher-1")

    assert outcome.evaluated_count == 1
    assert outcome.submission.get_answer("long").marks_obtained is None
    assert outcome.submission.status == SubmissionStatus.SUBMITTED
    assert outcome.submission.total_marks_obtained == 7


@pytest.mark.asyncio
async def test_ai_evaluate_guard_on_evaluated_submission():
    answers = typical_answers()
    answers[1].marks_obtained = 3
    answers[2].marks_obtained = 6
    scorer = make_scorer([json_reply(1), json_reply(1)])
    engine, submissions = await build_engine(submitted(answers, SubmissionStatus.EVALUATED), scorer)

    with pytest.raises(AlreadyEvaluatedError) as exc_info:
        await engine.ai_evaluate("sub-1", evaluator_id="teacher-1")
    assert exc_info.value.total_marks_obtained == 11
    scorer._post_chat.assert_not_awaited()

    outcome = await engine.ai_evaluate("sub-1", evaluator_id="teacher-1", force=True)
    assert outcome.evaluated_count == 2
    assert outcome.submission.total_marks_obtained == 4
    assert (await submissions.get_by_id("sub-1")).total_marks_obtained == 4


@pytest.mark.asyncio
async def test_ai_evaluate_nothing_to_grade():
    answers = typical_answers()
    answers[1].marks_obtained = 3
    answers[2].marks_obtained = 6
    engine, _ = await build_engine(submitted(answers))

    with pytest.raises(NothingToGradeError):
        await engine.ai_evaluate("sub-1", evaluator_id="teacher-1")


@pytest.mark.asyncio
async def test_ai_evaluate_no_eligible_answers():
    answers = [
        Answer("mc", "A", 2, "Correct (Auto-graded)"),
        Answer("short", "", None, "Pending manual evaluation"),
    ]
    engine, _ = await build_engine(submitted(answers))

    with pytest.raises(NoEligibleAnswersError) as exc_info:
        await engine.ai_evaluate("sub-1", evaluator_id="teacher-1")
    assert exc_info.value.ungraded_questions == ["short"]


@pytest.mark.asyncio
async def test_ai_evaluate_single_answer():
    scorer = make_scorer([json_reply(3, "Partially correct", "Missing units")])
    engine, submissions = await build_engine(submitted(typical_answers()), scorer)

    outcome = await engine.ai_evaluate_single("sub-1", "short", evaluator_id="teacher-1")

    assert outcome.marks_obtained == 3
    assert outcome.result.feedback == "Partially correct"
    assert outcome.result.rationale == "Missing units"
    # "long" is still unmarked
    assert outcome.status == SubmissionStatus.SUBMITTED
    assert outcome.total_marks_obtained == 5
    assert (await submissions.get_by_id("sub-1")).get_answer("short").marks_obtained == 3


@pytest.mark.asyncio
async def test_ai_evaluate_single_promotes_when_last_answer_marked():
    answers = typical_answers()
    answers[1].marks_obtained = 3
    scorer = make_scorer([json_reply(8)])
    engine, _ = await build_engine(submitted(answers), scorer)

    outcome = await engine.ai_evaluate_single("sub-1", "long", evaluator_id="teacher-1")

    assert outcome.status == SubmissionStatus.EVALUATED
    assert outcome.total_marks_obtained == 13
    assert outcome.submission.evaluated_by == "teacher-1"


@pytest.mark.asyncio
async def test_ai_evaluate_single_missing_answer():
    answers = typical_answers()[:2]
    engine, _ = await build_engine(submitted(answers))

    with pytest.raises(NotFoundError):
        await engine.ai_evaluate_single("sub-1", "long", evaluator_id="teacher-1")


@pytest.mark.asyncio
async def test_concurrent_evaluations_are_serialized():
    """Two concurrent AI runs on one submission: the second sees the first's result."""
    scorer = make_scorer([json_reply(4), json_reply(9)])
    engine, _ = await build_engine(submitted(typical_answers()), scorer)

    results = await asyncio.gather(
        engine.ai_evaluate("sub-1", evaluator_id="t1"),
        engine.ai_evaluate("sub-1", evaluator_id="t2"),
        return_exceptions=True
    )

    assert sum(1 for r in results if isinstance(r, AlreadyEvaluatedError)) == 1
    assert scorer._post_chat.await_count == 2


def test_submission_locks_reuse_lock_while_held():
    locks = SubmissionLocks()
    first = locks.lock_for("sub-1")
    assert locks.lock_for("sub-1") is first
    assert locks.lock_for("sub-2") is not first
