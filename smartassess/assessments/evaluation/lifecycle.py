"""
Submission Lifecycle

Creation of submissions: validation against the test, auto-grading of
objective answers and the initial status decision.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from smartassess.common.exceptions import ConflictError, NotFoundError, ValidationError
from smartassess.common.logger import app_logger, log_execution_time
from smartassess.domain.assessments import Test, TestRepository
from smartassess.domain.questions import Question, QuestionRepository
from smartassess.domain.submissions import (
    Answer,
    Submission,
    SubmissionRepository,
    SubmissionStatus
)

logger = app_logger.getChild("assessments.lifecycle")

AUTO_GRADER_ID = "auto-grader"
REMARK_CORRECT = "Correct (Auto-graded)"
REMARK_INCORRECT = "Incorrect (Auto-graded)"
REMARK_PENDING = "Pending manual evaluation"


@dataclass(frozen=True)
class SubmittedAnswer:
    """An answer as sent by the student."""
    question_id: str
    answer_text: Optional[str] = None


@dataclass
class CreatedSubmission:
    """Result of ``SubmissionLifecycle.create_submission``."""
    submission: Submission
    auto_graded: bool
    show_results: bool


def _normalize(text: Optional[str]) -> str:
    return (text or "").strip().lower()


def grade_objective(question: Question, answer_text: Optional[str], marks: float) -> Tuple[float, str]:
    """
    Grade an objective answer by trimmed, case-insensitive comparison.

    A blank answer or a question without a reference answer never matches.
    """
    expected = _normalize(question.correct_answer)
    given = _normalize(answer_text)
    if expected and given and expected == given:
        return marks, REMARK_CORRECT
    return 0, REMARK_INCORRECT


class SubmissionLifecycle:
    """Creates submissions and auto-grades what can be graded mechanically."""

    def __init__(self,
                 test_repository: TestRepository,
                 question_repository: QuestionRepository,
                 submission_repository: SubmissionRepository):
        self.tests = test_repository
        self.questions = question_repository
        self.submissions = submission_repository

    async def _load_test(self, test_id: str) -> Test:
        test = await self.tests.get_by_id(test_id)
        if test is None:
            raise NotFoundError("Test", test_id)
        return test

    async def _load_questions(self, test: Test) -> Dict[str, Question]:
        questions = await self.questions.get_many(test.question_ids())
        return {q.question_id: q for q in questions}

    @staticmethod
    def _check_answers(test: Test, answers: Sequence[SubmittedAnswer]) -> None:
        seen = set()
        for answer in answers:
            if test.get_test_question(answer.question_id) is None:
                raise ValidationError(
                    f"Question {answer.question_id} is not part of test {test.test_id}",
                    field="answers"
                )
            if answer.question_id in seen:
                raise ValidationError(
                    f"Duplicate answer for question {answer.question_id}",
                    field="answers"
                )
            seen.add(answer.question_id)

    @log_execution_time(logger)
    async def create_submission(self,
                                test_id: str,
                                student_id: str,
                                answers: Sequence[SubmittedAnswer],
                                time_taken: Optional[float] = None) -> CreatedSubmission:
        """
        Record a student's submission for a test.

        Objective answers are graded immediately. The submission is marked
        evaluated at creation only when every question of the test is
        objective.

        Raises:
            ConflictError: If the student already submitted this test
            NotFoundError: If the test does not exist
            ValidationError: If an answer does not belong to the test or is duplicated
        """
        existing = await self.submissions.get_by_test_and_student(test_id, student_id)
        if existing is not None:
            raise ConflictError(
                "Submission", f"test={test_id}, student={student_id}",
                message="Submission already exists"
            )

        test = await self._load_test(test_id)
        self._check_answers(test, answers)
        questions = await self._load_questions(test)

        graded: List[Answer] = []
        for submitted in answers:
            test_question = test.get_test_question(submitted.question_id)
            question = questions.get(submitted.question_id)
            if question is not None and question.is_objective:
                marks, remarks = grade_objective(question, submitted.answer_text, test_question.marks)
                graded.append(Answer(submitted.question_id, submitted.answer_text, marks, remarks))
            else:
                graded.append(Answer(submitted.question_id, submitted.answer_text, None, REMARK_PENDING))

        submission = Submission.create(test_id, student_id, graded, time_taken=time_taken)
        submission.recompute_total()

        auto_graded = all(
            tq.question_id in questions and questions[tq.question_id].is_objective
            for tq in test.questions
        )
        if auto_graded:
            submission.mark_evaluated(AUTO_GRADER_ID, datetime.utcnow())
        else:
            submission.status = SubmissionStatus.SUBMITTED

        await self.submissions.insert(submission)

        logger.info(
            f"Submission {submission.submission_id} created for test {test_id} by {student_id} "
            f"(status={submission.status.value}, total={submission.total_marks_obtained})"
        )
        return CreatedSubmission(
            submission=submission,
            auto_graded=auto_graded,
            show_results=test.results_visible
        )
