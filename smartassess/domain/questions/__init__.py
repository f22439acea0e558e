"""
Question domain module.

This module contains the question bank model and its repositories.
"""

from .model import Question, Difficulty, QuestionType
from .repository import QuestionRepository, QuestionFilter
from .memory_repository import MemoryQuestionRepository

__all__ = [
    'Question',
    'Difficulty',
    'QuestionType',
    'QuestionRepository',
    'QuestionFilter',
    'MemoryQuestionRepository',
]
