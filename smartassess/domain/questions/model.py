"""
Question Domain Model Module

This module defines the question bank entities consumed by test
composition and grading.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


class Difficulty(enum.Enum):
    """Difficulty band of a question."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(enum.Enum):
    """Answer format of a question."""
    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    SHORT_ANSWER = "short-answer"
    LONG_ANSWER = "long-answer"

    @property
    def is_objective(self) -> bool:
        """Objective questions are graded by exact comparison with the reference answer."""
        return self in (QuestionType.MULTIPLE_CHOICE, QuestionType.TRUE_FALSE)

    @property
    def is_subjective(self) -> bool:
        return not self.is_objective


@dataclass
class Question:
    """
    A question in the bank.

    Attributes:
        question_id: Unique identifier for the question
        subject_id: Subject the question belongs to
        chapter: Chapter within the subject
        difficulty: Difficulty band
        marks: Default marks (positive integer)
        question_type: Answer format
        text: The question text
        topic: Optional topic within the chapter
        options: Answer options for choice questions
        correct_answer: Reference answer, if any
        created_by: Author identifier
        created_at: When the question was created
    """
    question_id: str
    subject_id: str
    chapter: str
    difficulty: Difficulty
    marks: int
    question_type: QuestionType
    text: str
    topic: Optional[str] = None
    options: List[str] = field(default_factory=list)
    correct_answer: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        if isinstance(self.difficulty, str):
            self.difficulty = Difficulty(self.difficulty)
        if isinstance(self.question_type, str):
            self.question_type = QuestionType(self.question_type)
        if isinstance(self.marks, bool) or not isinstance(self.marks, int) or self.marks <= 0:
            raise ValueError(f"Question marks must be a positive integer, got {self.marks!r}")
        if isinstance(self.created_at, str):
            self.created_at = datetime.fromisoformat(self.created_at)

    @property
    def is_objective(self) -> bool:
        return self.question_type.is_objective

    @classmethod
    def create(cls,
               subject_id: str,
               chapter: str,
               difficulty: Difficulty,
               marks: int,
               question_type: QuestionType,
               text: str,
               topic: Optional[str] = None,
               options: Optional[List[str]] = None,
               correct_answer: Optional[str] = None,
               created_by: Optional[str] = None) -> 'Question':
        """Create a new question with a generated ID."""
        return cls(
            question_id=str(uuid.uuid4()),
            subject_id=subject_id,
            chapter=chapter,
            difficulty=difficulty,
            marks=marks,
            question_type=question_type,
            text=text,
            topic=topic,
            options=options or [],
            correct_answer=correct_answer,
            created_by=created_by
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'question_id': self.question_id,
            'subject_id': self.subject_id,
            'chapter': self.chapter,
            'topic': self.topic,
            'difficulty': self.difficulty.value,
            'marks': self.marks,
            'question_type': self.question_type.value,
            'text': self.text,
            'options': list(self.options),
            'correct_answer': self.correct_answer,
            'created_by': self.created_by,
            'created_at': self.created_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        return cls(
            question_id=data['question_id'],
            subject_id=data['subject_id'],
            chapter=data['chapter'],
            difficulty=Difficulty(data['difficulty']),
            marks=int(data['marks']),
            question_type=QuestionType(data['question_type']),
            text=data.get('text', ''),
            topic=data.get('topic'),
            options=data.get('options') or [],
            correct_answer=data.get('correct_answer'),
            created_by=data.get('created_by'),
            created_at=data.get('created_at') or datetime.utcnow()
        )
