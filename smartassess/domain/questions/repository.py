"""
Question Repository Module

This module defines the query filter and the repository interface used to
read the question bank.
"""

import abc
from dataclasses import dataclass, field, replace
from typing import Iterable, List, Optional, Sequence

from .model import Difficulty, Question, QuestionType


def _plural(label: str, values: Sequence) -> str:
    suffix = "s" if len(values) > 1 else ""
    return f"{label}{suffix}: {', '.join(str(v) for v in values)}"


@dataclass(frozen=True)
class QuestionFilter:
    """
    Criteria for selecting questions from the bank.

    List criteria match when the question's value is one of the listed
    values; an empty list means "any".
    """
    subject_id: Optional[str] = None
    difficulty: Optional[Difficulty] = None
    chapters: Sequence[str] = field(default_factory=tuple)
    topics: Sequence[str] = field(default_factory=tuple)
    question_types: Sequence[QuestionType] = field(default_factory=tuple)
    marks: Sequence[int] = field(default_factory=tuple)

    def with_difficulty(self, difficulty: Difficulty) -> 'QuestionFilter':
        return replace(self, difficulty=difficulty)

    def matches(self, question: Question) -> bool:
        if self.subject_id is not None and question.subject_id != self.subject_id:
            return False
        if self.difficulty is not None and question.difficulty != self.difficulty:
            return False
        if self.chapters and question.chapter not in self.chapters:
            return False
        if self.topics and question.topic not in self.topics:
            return False
        if self.question_types and question.question_type not in self.question_types:
            return False
        if self.marks and question.marks not in self.marks:
            return False
        return True

    def describe(self) -> List[str]:
        """Human readable criteria, used in "nothing found" messages."""
        criteria = []
        if self.chapters:
            criteria.append(_plural("chapter", self.chapters))
        if self.topics:
            criteria.append(_plural("topic", self.topics))
        if self.question_types:
            criteria.append(_plural("question type", [t.value for t in self.question_types]))
        if self.marks:
            criteria.append(_plural("mark value", self.marks))
        return criteria


class QuestionRepository(abc.ABC):
    """
    Abstract base class for question repositories.

    Implementations must return query results in a stable order (insertion
    order of the bank) so that test composition is deterministic.
    """

    @abc.abstractmethod
    async def get_by_id(self, question_id: str) -> Optional[Question]:
        """Get a question by its ID, or None."""

    @abc.abstractmethod
    async def get_many(self, question_ids: Iterable[str]) -> List[Question]:
        """Get the questions with the given IDs; unknown IDs are skipped."""

    @abc.abstractmethod
    async def find(self, criteria: QuestionFilter) -> List[Question]:
        """Find all questions matching ``criteria`` in insertion order."""

    @abc.abstractmethod
    async def save(self, question: Question) -> Question:
        """Create or replace a question."""
