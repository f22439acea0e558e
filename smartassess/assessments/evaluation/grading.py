"""
Grading Engine

Manual and AI evaluation of submissions.

Every mutation works on a copy of the stored submission, holds the
submission's lock for its whole duration and ends in a single repository
``update``; a request that fails validation writes nothing.

The lock only serializes requests inside one process. Two server
processes evaluating the same submission still race, and the last write
wins.
"""

import asyncio
import weakref
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from smartassess.common.exceptions import (
    AlreadyEvaluatedError,
    NoEligibleAnswersError,
    NotFoundError,
    NothingToGradeError,
    ValidationError
)
from smartassess.common.logger import app_logger, log_execution_time, with_context
from smartassess.domain.assessments import Test, TestRepository
from smartassess.domain.questions import Question, QuestionRepository
from smartassess.domain.submissions import (
    Answer,
    Submission,
    SubmissionRepository,
    SubmissionStatus
)
from .ai_scorer import AIScorerAdapter, ScoringRequest, ScoringResult

logger = app_logger.getChild("assessments.grading")

AI_REMARK_PREFIX = "[AI] "


class SubmissionLocks:
    """Registry of per-submission locks; unused locks are dropped automatically."""

    def __init__(self):
        self._locks: "weakref.WeakValueDictionary[str, asyncio.Lock]" = weakref.WeakValueDictionary()

    def lock_for(self, submission_id: str) -> asyncio.Lock:
        lock = self._locks.get(submission_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[submission_id] = lock
        return lock


@dataclass(frozen=True)
class MarkEntry:
    """A manual mark for one question."""
    question_id: str
    marks_obtained: float
    remarks: Optional[str] = None


@dataclass
class AIEvaluationOutcome:
    """Result of a batch AI evaluation."""
    submission: Submission
    evaluated_count: int
    fallback_count: int

    @property
    def total_marks_obtained(self) -> Optional[float]:
        return self.submission.total_marks_obtained

    def summary(self) -> Dict[str, float]:
        return {
            "evaluated": self.evaluated_count,
            "fallback": self.fallback_count,
            "total_marks_obtained": self.total_marks_obtained,
        }


@dataclass
class SingleEvaluationOutcome:
    """Result of AI evaluation of one answer."""
    submission: Submission
    question_id: str
    result: ScoringResult

    @property
    def marks_obtained(self) -> float:
        return self.result.marks

    @property
    def status(self) -> SubmissionStatus:
        return self.submission.status

    @property
    def total_marks_obtained(self) -> Optional[float]:
        return self.submission.total_marks_obtained


class GradingEngine:
    """Applies manual and AI marks to submissions."""

    def __init__(self,
                 test_repository: TestRepository,
                 question_repository: QuestionRepository,
                 submission_repository: SubmissionRepository,
                 scorer: AIScorerAdapter,
                 locks: Optional[SubmissionLocks] = None):
        self.tests = test_repository
        self.questions = question_repository
        self.submissions = submission_repository
        self.scorer = scorer
        self.locks = locks or SubmissionLocks()

    async def _load(self, submission_id: str) -> Tuple[Submission, Test]:
        submission = await self.submissions.get_by_id(submission_id)
        if submission is None:
            raise NotFoundError("Submission", submission_id)
        test = await self.tests.get_by_id(submission.test_id)
        if test is None:
            raise NotFoundError("Test", submission.test_id)
        # Work on a copy so a failed request leaves the stored state untouched
        return submission.clone(), test

    async def _questions_for(self, test: Test) -> Dict[str, Question]:
        return {q.question_id: q for q in await self.questions.get_many(test.question_ids())}

    @staticmethod
    def _scoring_request(question: Question, answer: Answer, max_marks: float) -> ScoringRequest:
        return ScoringRequest(
            question_text=question.text,
            reference_answer=question.correct_answer,
            answer_text=answer.answer_text or "",
            max_marks=max_marks
        )

    @staticmethod
    def _apply_result(answer: Answer, result: ScoringResult) -> None:
        answer.marks_obtained = result.marks
        answer.remarks = f"{AI_REMARK_PREFIX}{result.feedback}"

    @staticmethod
    def _finish(submission: Submission, evaluator_id: str) -> None:
        """Recompute the total and promote to evaluated once every answer has a mark."""
        submission.recompute_total()
        if submission.all_answers_marked():
            submission.mark_evaluated(evaluator_id, datetime.utcnow())

    @log_execution_time(logger)
    async def manual_evaluate(self,
                              submission_id: str,
                              entries: Sequence[MarkEntry],
                              evaluator_id: str) -> Submission:
        """
        Apply teacher-assigned marks and finalize the submission.

        Raises:
            NotFoundError: If the submission or its test does not exist
            ValidationError: If an entry references a question outside the test,
                a mark is outside [0, question marks], or an answer is left unmarked
        """
        log = with_context("assessments.grading", submission_id=submission_id, evaluator=evaluator_id)

        async with self.locks.lock_for(submission_id):
            submission, test = await self._load(submission_id)

            for entry in entries:
                test_question = test.get_test_question(entry.question_id)
                if test_question is None:
                    raise ValidationError(
                        f"Question {entry.question_id} is not part of test {test.test_id}",
                        field="answers"
                    )
                if entry.marks_obtained is None or entry.marks_obtained < 0 \
                        or entry.marks_obtained > test_question.marks:
                    raise ValidationError(
                        f"Marks for question {entry.question_id} must be between 0 and "
                        f"{test_question.marks}, got {entry.marks_obtained}",
                        field="answers"
                    )

            for entry in entries:
                answer = submission.get_answer(entry.question_id)
                if answer is None:
                    answer = Answer(question_id=entry.question_id)
                    submission.answers.append(answer)
                answer.marks_obtained = entry.marks_obtained
                answer.remarks = entry.remarks

            unmarked = [a.question_id for a in submission.answers if not a.is_marked]
            if unmarked:
                raise ValidationError(
                    f"Answers without marks: {', '.join(unmarked)}",
                    field="answers"
                )

            submission.recompute_total()
            submission.mark_evaluated(evaluator_id, datetime.utcnow())
            await self.submissions.update(submission)

        log.info(f"Manually evaluated with total {submission.total_marks_obtained}")
        return submission

    @log_execution_time(logger)
    async def ai_evaluate(self,
                          submission_id: str,
                          evaluator_id: str,
                          force: bool = False) -> AIEvaluationOutcome:
        """
        Score the subjective answers of a submission with the AI scorer.

        Only answers with text and without a mark are scored, unless
        ``force`` is set, in which case marked subjective answers are
        re-scored too.

        Raises:
            NotFoundError: If the submission or its test does not exist
            AlreadyEvaluatedError: If the submission is evaluated and ``force`` is not set
            NothingToGradeError: If nothing is eligible and every answer is marked
            NoEligibleAnswersError: If nothing is eligible but some answers are unmarked
        """
        log = with_context("assessments.grading", submission_id=submission_id, evaluator=evaluator_id)

        async with self.locks.lock_for(submission_id):
            submission, test = await self._load(submission_id)

            if submission.is_evaluated and not force:
                raise AlreadyEvaluatedError(submission_id, submission.total_marks_obtained)

            questions = await self._questions_for(test)
            eligible: List[Answer] = []
            requests: List[ScoringRequest] = []
            for answer in submission.answers:
                question = questions.get(answer.question_id)
                test_question = test.get_test_question(answer.question_id)
                if question is None or test_question is None:
                    continue
                if question.is_objective or not answer.has_text:
                    continue
                if answer.is_marked and not force:
                    continue
                eligible.append(answer)
                requests.append(self._scoring_request(question, answer, test_question.marks))

            if not eligible:
                if submission.all_answers_marked():
                    raise NothingToGradeError(submission_id, submission.total_marks_obtained)
                raise NoEligibleAnswersError(
                    submission_id, [a.question_id for a in submission.answers if not a.is_marked]
                )

            log.info(f"Scoring {len(eligible)} answers with the AI scorer")
            results = await self.scorer.score_batch(requests)
            for answer, result in zip(eligible, results):
                self._apply_result(answer, result)

            self._finish(submission, evaluator_id)
            await self.submissions.update(submission)

        outcome = AIEvaluationOutcome(
            submission=submission,
            evaluated_count=len(eligible),
            fallback_count=sum(1 for r in results if r.fallback)
        )
        log.info(f"AI evaluation finished: {outcome.summary()} status={submission.status.value}")
        return outcome

    @log_execution_time(logger)
    async def ai_evaluate_single(self,
                                 submission_id: str,
                                 question_id: str,
                                 evaluator_id: str) -> SingleEvaluationOutcome:
        """
        Score one answer with the AI scorer.

        Raises:
            NotFoundError: If the submission, its test, the answer or the question does not exist
        """
        log = with_context(
            "assessments.grading",
            submission_id=submission_id, question_id=question_id, evaluator=evaluator_id
        )

        async with self.locks.lock_for(submission_id):
            submission, test = await self._load(submission_id)

            answer = submission.get_answer(question_id)
            if answer is None:
                raise NotFoundError("Answer", question_id, message=f"Answer for question {question_id} not found")
            test_question = test.get_test_question(question_id)
            question = await self.questions.get_by_id(question_id)
            if test_question is None or question is None:
                raise NotFoundError("Question", question_id)

            result = await self.scorer.score(self._scoring_request(question, answer, test_question.marks))
            self._apply_result(answer, result)
            self._finish(submission, evaluator_id)
            await self.submissions.update(submission)

        log.info(f"Answer scored {result.marks}/{test_question.marks} (fallback={result.fallback})")
        return SingleEvaluationOutcome(submission=submission, question_id=question_id, result=result)
