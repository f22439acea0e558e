"""
Performance Analytics

Read-only reports over evaluated submissions: a per-student breakdown with
class average and rank, and test-wide statistics.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from smartassess.common.exceptions import NoSubmissionsError, NotFoundError
from smartassess.common.logger import app_logger, log_execution_time
from smartassess.domain.assessments import Test, TestRepository
from smartassess.domain.questions import Difficulty, Question, QuestionRepository
from smartassess.domain.submissions import Submission, SubmissionRepository, SubmissionStatus

logger = app_logger.getChild("assessments.analytics")

UNCATEGORIZED = "Uncategorized"
PREVIEW_LENGTH = 100

# (label, inclusive upper bound in percent)
DISTRIBUTION_BUCKETS = (
    ("0-25%", 25),
    ("26-50%", 50),
    ("51-75%", 75),
    ("76-100%", None),
)


@dataclass
class MarksBucket:
    obtained: float = 0
    total: float = 0

    def add(self, obtained: float, total: float) -> None:
        self.obtained += obtained
        self.total += total

    def to_dict(self) -> Dict[str, float]:
        return {"obtained": self.obtained, "total": self.total}


@dataclass
class StudentReport:
    """Performance of one student on one test."""
    submission: Submission
    test: Test
    total_marks_obtained: float
    percentage: float
    by_difficulty: Dict[str, MarksBucket]
    by_topic: Dict[str, MarksBucket]
    by_chapter: Dict[str, MarksBucket]
    class_average: float
    rank: int
    total_students: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "submission_id": self.submission.submission_id,
            "test_id": self.test.test_id,
            "test_title": self.test.title,
            "student_id": self.submission.student_id,
            "status": self.submission.status.value,
            "total_marks_obtained": self.total_marks_obtained,
            "total_marks": self.test.total_marks,
            "percentage": self.percentage,
            "time_taken": self.submission.time_taken,
            "difficulty_analysis": {k: v.to_dict() for k, v in self.by_difficulty.items()},
            "topic_analysis": {k: v.to_dict() for k, v in self.by_topic.items()},
            "chapter_analysis": {k: v.to_dict() for k, v in self.by_chapter.items()},
            "class_average": self.class_average,
            "rank": self.rank,
            "total_students": self.total_students,
        }


@dataclass
class QuestionStats:
    question_id: str
    preview: str
    marks: float
    difficulty: Optional[str]
    average_marks: float
    attempted: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "question_id": self.question_id,
            "question_text": self.preview,
            "marks": self.marks,
            "difficulty": self.difficulty,
            "average_marks": self.average_marks,
            "attempted": self.attempted,
        }


@dataclass
class TestAnalytics:
    """Statistics over all evaluated submissions of a test."""
    __test__ = False  # not a pytest test class

    test: Test
    total_submissions: int
    average_score: float
    highest_score: float
    lowest_score: float
    score_distribution: Dict[str, int]
    difficulty_analysis: Dict[str, Dict[str, float]]
    questions: List[QuestionStats] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "test_id": self.test.test_id,
            "test_title": self.test.title,
            "total_marks": self.test.total_marks,
            "total_submissions": self.total_submissions,
            "average_score": self.average_score,
            "highest_score": self.highest_score,
            "lowest_score": self.lowest_score,
            "score_distribution": dict(self.score_distribution),
            "difficulty_analysis": self.difficulty_analysis,
            "question_analysis": [q.to_dict() for q in self.questions],
        }


def compute_rank(submissions: List[Submission], submission_id: str) -> int:
    """
    1-based position of ``submission_id`` in a stable descending sort by total.

    Ties keep the input order. Returns 0 when the submission is not in the list.
    """
    ranked = sorted(submissions, key=lambda s: s.total_marks_obtained or 0, reverse=True)
    for position, submission in enumerate(ranked, start=1):
        if submission.submission_id == submission_id:
            return position
    return 0


def distribution_bucket(percentage: float) -> str:
    for label, upper in DISTRIBUTION_BUCKETS:
        if upper is None or percentage <= upper:
            return label
    return DISTRIBUTION_BUCKETS[-1][0]


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}..."


def _percentage(obtained: float, total: float) -> float:
    return (obtained / total) * 100 if total > 0 else 0


class AnalyticsAggregator:
    """Builds performance reports from stored tests and submissions."""

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

    async def _questions_for(self, test: Test) -> Dict[str, Question]:
        return {q.question_id: q for q in await self.questions.get_many(test.question_ids())}

    @log_execution_time(logger)
    async def student_report(self, test_id: str, student_id: str) -> StudentReport:
        """
        Build the performance report of one student.

        Raises:
            NotFoundError: If the submission or the test does not exist
        """
        submission = await self.submissions.get_by_test_and_student(test_id, student_id)
        if submission is None:
            raise NotFoundError(
                "Submission", f"test={test_id}, student={student_id}",
                message="Submission not found"
            )
        test = await self._load_test(test_id)
        questions = await self._questions_for(test)

        by_difficulty = {d.value: MarksBucket() for d in Difficulty}
        by_topic: Dict[str, MarksBucket] = {}
        by_chapter: Dict[str, MarksBucket] = {}

        for answer in submission.answers:
            test_question = test.get_test_question(answer.question_id)
            question = questions.get(answer.question_id)
            if test_question is None or question is None:
                continue
            obtained = answer.marks_obtained or 0
            by_difficulty[question.difficulty.value].add(obtained, test_question.marks)
            by_topic.setdefault(question.topic or UNCATEGORIZED, MarksBucket()).add(obtained, test_question.marks)
            by_chapter.setdefault(question.chapter, MarksBucket()).add(obtained, test_question.marks)

        evaluated = await self.submissions.find_by_test(test_id, status=SubmissionStatus.EVALUATED)
        totals = [s.total_marks_obtained or 0 for s in evaluated]
        class_average = sum(totals) / len(totals) if totals else 0
        rank = compute_rank(evaluated, submission.submission_id) if submission.is_evaluated else 0

        total_obtained = submission.total_marks_obtained or 0
        return StudentReport(
            submission=submission,
            test=test,
            total_marks_obtained=total_obtained,
            percentage=_percentage(total_obtained, test.total_marks),
            by_difficulty=by_difficulty,
            by_topic=by_topic,
            by_chapter=by_chapter,
            class_average=class_average,
            rank=rank,
            total_students=len(evaluated)
        )

    @log_execution_time(logger)
    async def test_analytics(self, test_id: str) -> TestAnalytics:
        """
        Build statistics over the evaluated submissions of a test.

        Raises:
            NotFoundError: If the test does not exist
            NoSubmissionsError: If no submission has been evaluated yet
        """
        test = await self._load_test(test_id)
        evaluated = await self.submissions.find_by_test(test_id, status=SubmissionStatus.EVALUATED)
        if not evaluated:
            raise NoSubmissionsError(test_id)

        questions = await self._questions_for(test)
        totals = [s.total_marks_obtained or 0 for s in evaluated]

        distribution = {label: 0 for label, _ in DISTRIBUTION_BUCKETS}
        for total in totals:
            distribution[distribution_bucket(_percentage(total, test.total_marks))] += 1

        sums = {d.value: {"obtained": 0.0, "total": 0.0, "count": 0} for d in Difficulty}
        for submission in evaluated:
            for answer in submission.answers:
                test_question = test.get_test_question(answer.question_id)
                question = questions.get(answer.question_id)
                if test_question is None or question is None:
                    continue
                bucket = sums[question.difficulty.value]
                bucket["obtained"] += answer.marks_obtained or 0
                bucket["total"] += test_question.marks
                bucket["count"] += 1

        count = len(evaluated)
        difficulty_analysis = {
            name: {
                "avg_obtained": values["obtained"] / count,
                "avg_total": values["total"] / count,
                "count": values["count"],
            }
            for name, values in sums.items()
        }

        question_stats = []
        for test_question in test.questions:
            question = questions.get(test_question.question_id)
            marks = [
                answer.marks_obtained
                for answer in (s.get_answer(test_question.question_id) for s in evaluated)
                if answer is not None and answer.is_marked
            ]
            question_stats.append(QuestionStats(
                question_id=test_question.question_id,
                preview=preview(question.text) if question else "",
                marks=test_question.marks,
                difficulty=question.difficulty.value if question else None,
                average_marks=sum(marks) / len(marks) if marks else 0,
                attempted=len(marks)
            ))

        logger.info(f"Analytics for test {test_id} over {count} evaluated submissions")
        return TestAnalytics(
            test=test,
            total_submissions=count,
            average_score=sum(totals) / count,
            highest_score=max(totals),
            lowest_score=min(totals),
            score_distribution=distribution,
            difficulty_analysis=difficulty_analysis,
            questions=question_stats
        )
