"""
Memory Question Repository Module

In-memory question bank for development and testing.
"""

from typing import Dict, Iterable, List, Optional

from .model import Question
from .repository import QuestionFilter, QuestionRepository


class MemoryQuestionRepository(QuestionRepository):
    """
    In-memory implementation of the QuestionRepository.

    Questions are kept in insertion order; replacing an existing question
    keeps its original position.
    """

    def __init__(self, initial_data: Optional[List[Question]] = None):
        self._questions: Dict[str, Question] = {}
        for question in initial_data or []:
            self._questions[question.question_id] = question

    async def get_by_id(self, question_id: str) -> Optional[Question]:
        return self._questions.get(question_id)

    async def get_many(self, question_ids: Iterable[str]) -> List[Question]:
        return [self._questions[qid] for qid in question_ids if qid in self._questions]

    async def find(self, criteria: QuestionFilter) -> List[Question]:
        return [q for q in self._questions.values() if criteria.matches(q)]

    async def save(self, question: Question) -> Question:
        self._questions[question.question_id] = question
        return question
