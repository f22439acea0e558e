"""
Test Composition

This module assembles a test from the question bank so that the selected
marks follow a requested easy/medium/hard split of a target total.

Selection is first-fit per difficulty band: questions are scanned in bank
order and accepted while they fit the band's remaining budget. There is no
randomness and no backtracking, so the same bank and inputs always give the
same test.
"""

import math
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from smartassess.common.exceptions import (
    NoQuestionsFoundError,
    NoSuitableQuestionsError,
    ValidationError
)
from smartassess.common.logger import app_logger, log_execution_time
from smartassess.domain.assessments import TestQuestion
from smartassess.domain.questions import (
    Difficulty,
    Question,
    QuestionFilter,
    QuestionRepository,
    QuestionType
)

logger = app_logger.getChild("assessments.composer")

# Bands are filled in this order; order numbers follow it
BAND_ORDER = (Difficulty.EASY, Difficulty.MEDIUM, Difficulty.HARD)


@dataclass(frozen=True)
class CompositionRequest:
    """Inputs of a composition run."""
    subject_id: str
    total_marks: float
    easy_percentage: float
    medium_percentage: float
    hard_percentage: float
    chapters: Sequence[str] = ()
    topics: Sequence[str] = ()
    question_types: Sequence[QuestionType] = ()
    specific_marks: Sequence[int] = ()

    def percentage_for(self, difficulty: Difficulty) -> float:
        return {
            Difficulty.EASY: self.easy_percentage,
            Difficulty.MEDIUM: self.medium_percentage,
            Difficulty.HARD: self.hard_percentage,
        }[difficulty]

    def to_filter(self) -> QuestionFilter:
        return QuestionFilter(
            subject_id=self.subject_id,
            chapters=tuple(self.chapters),
            topics=tuple(self.topics),
            question_types=tuple(self.question_types),
            marks=tuple(self.specific_marks)
        )


@dataclass
class ComposedQuestion:
    """A selected question with the marks and position it gets in the test."""
    question: Question
    marks: float
    order: int

    def to_test_question(self) -> TestQuestion:
        return TestQuestion(question_id=self.question.question_id, marks=self.marks, order=self.order)


@dataclass
class BandDistribution:
    """Marks per difficulty band."""
    easy: float = 0
    medium: float = 0
    hard: float = 0

    @property
    def total(self) -> float:
        return self.easy + self.medium + self.hard

    def get(self, difficulty: Difficulty) -> float:
        return getattr(self, difficulty.value)

    def add(self, difficulty: Difficulty, marks: float) -> None:
        setattr(self, difficulty.value, self.get(difficulty) + marks)

    def to_dict(self) -> Dict[str, float]:
        return {
            "easy": self.easy,
            "medium": self.medium,
            "hard": self.hard,
            "total": self.total
        }


@dataclass
class CompositionResult:
    """Outcome of a composition run."""
    questions: List[ComposedQuestion] = field(default_factory=list)
    distribution: BandDistribution = field(default_factory=BandDistribution)
    targets: BandDistribution = field(default_factory=BandDistribution)

    @property
    def total_marks(self) -> float:
        return self.distribution.total

    def to_test_questions(self) -> List[TestQuestion]:
        return [cq.to_test_question() for cq in self.questions]


def compute_band_budgets(total_marks: float, easy: float, medium: float) -> BandDistribution:
    """
    Split ``total_marks`` into band budgets.

    Easy and medium budgets are floored; the hard band absorbs the
    remainder, so the three budgets always add up to the total.
    """
    easy_budget = math.floor(total_marks * (easy / 100))
    medium_budget = math.floor(total_marks * (medium / 100))
    hard_budget = total_marks - easy_budget - medium_budget
    return BandDistribution(easy=easy_budget, medium=medium_budget, hard=hard_budget)


def select_first_fit(candidates: Sequence[Question], budget: float) -> List[Question]:
    """Accept candidates in order while their marks fit the remaining budget."""
    selected: List[Question] = []
    used = 0
    for question in candidates:
        if used + question.marks <= budget:
            selected.append(question)
            used += question.marks
    return selected


def _validate(request: CompositionRequest) -> None:
    if not request.subject_id:
        raise ValidationError("Subject is required", field="subject_id")
    if request.total_marks is None or request.total_marks <= 0:
        raise ValidationError("Total marks must be a positive number", field="total_marks")
    for difficulty in BAND_ORDER:
        name = f"{difficulty.value}_percentage"
        value = request.percentage_for(difficulty)
        if value is None:
            raise ValidationError(f"{name} is required", field=name)
        if value < 0 or value > 100:
            raise ValidationError(f"{name} must be between 0 and 100, got {value}", field=name)


class TestComposer:
    """Selects questions from the bank to build a test."""

    __test__ = False  # not a pytest test class

    def __init__(self, question_repository: QuestionRepository):
        self.questions = question_repository

    @log_execution_time(logger)
    async def compose(self, request: CompositionRequest) -> CompositionResult:
        """
        Compose a test for ``request``.

        Args:
            request: Subject, target total, band percentages and filters

        Returns:
            Selected questions with achieved and target band totals

        Raises:
            ValidationError: If a required input is missing or out of range
            NoQuestionsFoundError: If no bank question matches the filters
            NoSuitableQuestionsError: If questions match but none fits a band budget
        """
        _validate(request)

        targets = compute_band_budgets(
            request.total_marks, request.easy_percentage, request.medium_percentage
        )
        base_filter = request.to_filter()
        criteria = base_filter.describe()

        candidates_by_band: Dict[Difficulty, List[Question]] = {}
        for difficulty in BAND_ORDER:
            candidates_by_band[difficulty] = await self.questions.find(
                base_filter.with_difficulty(difficulty)
            )

        available = sum(len(c) for c in candidates_by_band.values())
        if available == 0:
            logger.info(f"No questions for subject {request.subject_id} with criteria {criteria}")
            raise NoQuestionsFoundError(criteria)

        result = CompositionResult(targets=targets)
        order = 1
        for difficulty in BAND_ORDER:
            for question in select_first_fit(candidates_by_band[difficulty], targets.get(difficulty)):
                result.questions.append(
                    ComposedQuestion(question=question, marks=question.marks, order=order)
                )
                result.distribution.add(difficulty, question.marks)
                order += 1

        if not result.questions:
            logger.info(
                f"{available} questions available for subject {request.subject_id} "
                f"but none fit budgets {targets.to_dict()}"
            )
            raise NoSuitableQuestionsError(criteria)

        logger.info(
            f"Composed test for subject {request.subject_id}: {len(result.questions)} questions, "
            f"{result.total_marks} of {request.total_marks} marks"
        )
        return result
