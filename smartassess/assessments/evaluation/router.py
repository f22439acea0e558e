"""
Evaluation API Router

HTTP endpoints for test composition, submissions, grading and analytics.
Domain errors propagate to the exception handlers registered in
``smartassess.api``.
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, Query, status

from smartassess.api import APIResponse
from smartassess.common.exceptions import NoSubmissionsError
from smartassess.common.logger import app_logger
from smartassess.domain.submissions import Submission
from .composer import CompositionRequest, CompositionResult
from .dependencies import EvaluationComponents, get_components, get_current_user_id
from .grading import MarkEntry
from .lifecycle import SubmittedAnswer
from .schemas import (
    ComposeTestRequest,
    CreateSubmissionRequest,
    ManualEvaluationRequest,
    SingleAnswerEvaluationRequest
)

logger = app_logger.getChild("assessments.router")

router = APIRouter()


def _composition_payload(result: CompositionResult) -> Dict[str, Any]:
    return {
        "questions": [
            {"question": cq.question.to_dict(), "marks": cq.marks, "order": cq.order}
            for cq in result.questions
        ],
        "distribution": result.distribution.to_dict(),
        "targets": result.targets.to_dict(),
        "total_marks": result.total_marks,
    }


def _submission_payload(submission: Submission, show_results: bool = True) -> Dict[str, Any]:
    data = submission.to_dict()
    if not show_results:
        data.pop("total_marks_obtained", None)
        for answer in data["answers"]:
            answer.pop("marks_obtained", None)
            answer.pop("remarks", None)
    return data


@router.get("/health")
async def health() -> Dict[str, str]:
    return {"status": "ok"}


@router.post("/tests/compose", tags=["tests"])
async def compose_test(
    payload: ComposeTestRequest,
    user_id: str = Depends(get_current_user_id),
    components: EvaluationComponents = Depends(get_components)
):
    """Select questions for a test from the question bank."""
    result = await components.composer.compose(CompositionRequest(
        subject_id=payload.subject_id,
        total_marks=payload.total_marks,
        easy_percentage=payload.easy_percentage,
        medium_percentage=payload.medium_percentage,
        hard_percentage=payload.hard_percentage,
        chapters=payload.chapters,
        topics=payload.topics,
        question_types=payload.question_types,
        specific_marks=payload.specific_marks
    ))
    return APIResponse.success(
        _composition_payload(result),
        message=f"Selected {len(result.questions)} questions"
    )


@router.post("/submissions", status_code=status.HTTP_201_CREATED, tags=["submissions"])
async def create_submission(
    payload: CreateSubmissionRequest,
    user_id: str = Depends(get_current_user_id),
    components: EvaluationComponents = Depends(get_components)
):
    """Submit answers for a test as the calling student."""
    created = await components.lifecycle.create_submission(
        test_id=payload.test_id,
        student_id=user_id,
        answers=[SubmittedAnswer(a.question_id, a.answer_text) for a in payload.answers],
        time_taken=payload.time_taken
    )
    return APIResponse.success(
        {
            "submission": _submission_payload(created.submission, created.show_results),
            "auto_graded": created.auto_graded,
            "show_results": created.show_results,
        },
        message="Test submitted successfully"
    )


@router.put("/submissions/{submission_id}/evaluate", tags=["submissions"])
async def evaluate_submission(
    submission_id: str,
    payload: ManualEvaluationRequest,
    user_id: str = Depends(get_current_user_id),
    components: EvaluationComponents = Depends(get_components)
):
    """Apply manual marks to every answer of a submission."""
    submission = await components.grading.manual_evaluate(
        submission_id,
        [MarkEntry(m.question_id, m.marks_obtained, m.remarks) for m in payload.answers],
        evaluator_id=user_id
    )
    return APIResponse.success(_submission_payload(submission), message="Submission evaluated successfully")


@router.put("/submissions/{submission_id}/ai-evaluate", tags=["submissions"])
async def ai_evaluate_submission(
    submission_id: str,
    force: bool = Query(False, description="Re-score answers that already have marks"),
    user_id: str = Depends(get_current_user_id),
    components: EvaluationComponents = Depends(get_components)
):
    """Score the subjective answers of a submission with the AI scorer."""
    outcome = await components.grading.ai_evaluate(submission_id, evaluator_id=user_id, force=force)
    return APIResponse.success(
        {
            "submission": _submission_payload(outcome.submission),
            "summary": outcome.summary(),
        },
        message=f"AI evaluated {outcome.evaluated_count} answers"
    )


@router.post("/submissions/{submission_id}/evaluate-answer", tags=["submissions"])
async def ai_evaluate_answer(
    submission_id: str,
    payload: SingleAnswerEvaluationRequest,
    user_id: str = Depends(get_current_user_id),
    components: EvaluationComponents = Depends(get_components)
):
    """Score a single answer with the AI scorer."""
    outcome = await components.grading.ai_evaluate_single(
        submission_id, payload.question_id, evaluator_id=user_id
    )
    return APIResponse.success(
        {
            "question_id": outcome.question_id,
            "marks_obtained": outcome.marks_obtained,
            "feedback": outcome.result.feedback,
            "rationale": outcome.result.rationale,
            "fallback": outcome.result.fallback,
            "status": outcome.status.value,
            "total_marks_obtained": outcome.total_marks_obtained,
        },
        message="Answer evaluated"
    )


@router.get("/analytics/tests/{test_id}/students/{student_id}", tags=["analytics"])
async def student_report(
    test_id: str,
    student_id: str,
    user_id: str = Depends(get_current_user_id),
    components: EvaluationComponents = Depends(get_components)
):
    """Performance breakdown of one student on a test."""
    report = await components.analytics.student_report(test_id, student_id)
    return APIResponse.success(report.to_dict())


@router.get("/analytics/tests/{test_id}", tags=["analytics"])
async def test_analytics(
    test_id: str,
    user_id: str = Depends(get_current_user_id),
    components: EvaluationComponents = Depends(get_components)
):
    """Statistics over the evaluated submissions of a test."""
    try:
        analytics = await components.analytics.test_analytics(test_id)
    except NoSubmissionsError as e:
        logger.info(f"No evaluated submissions for test {test_id}")
        return {"status": "success", "message": e.message, "analytics": None}
    return {"status": "success", "message": "Success", "analytics": analytics.to_dict()}
