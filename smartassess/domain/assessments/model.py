"""
Test Domain Model Module

A Test is an ordered selection of bank questions, each with the marks it
carries in this particular test. It is read-only to the grading pipeline.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

DEFAULT_SECTION = "default"


@dataclass
class TestQuestion:
    """
    A question placed in a test.

    ``marks`` may differ from the question's default marks and is the cap
    used for grading.
    """
    __test__ = False  # not a pytest test class

    question_id: str
    marks: float
    order: int
    section: str = DEFAULT_SECTION

    def __post_init__(self):
        if self.marks < 0:
            raise ValueError(f"Test question marks cannot be negative, got {self.marks}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'question_id': self.question_id,
            'marks': self.marks,
            'order': self.order,
            'section': self.section
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'TestQuestion':
        return cls(
            question_id=data['question_id'],
            marks=data['marks'],
            order=data['order'],
            section=data.get('section') or DEFAULT_SECTION
        )


@dataclass
class Test:
    """
    A test assembled from the question bank.

    Attributes:
        test_id: Unique identifier
        title: Display title
        subject_id: Subject of the test
        questions: Ordered test questions
        duration: Duration in minutes
        created_by: Author identifier
        is_published: Whether students can take the test
        results_published: Whether results were released by the teacher
        show_results_immediately: Whether students see results right after submitting
    """
    __test__ = False  # not a pytest test class

    test_id: str
    title: str
    subject_id: str
    questions: List[TestQuestion] = field(default_factory=list)
    duration: int = 60
    created_by: Optional[str] = None
    is_published: bool = False
    results_published: bool = False
    show_results_immediately: bool = False
    created_at: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        self.questions = sorted(self.questions, key=lambda tq: tq.order)
        if isinstance(self.created_at, str):
            self.created_at = datetime.fromisoformat(self.created_at)

    @property
    def total_marks(self) -> float:
        return sum(tq.marks for tq in self.questions)

    @property
    def results_visible(self) -> bool:
        """Whether a student may see their score for this test."""
        return self.results_published or self.show_results_immediately

    def get_test_question(self, question_id: str) -> Optional[TestQuestion]:
        for test_question in self.questions:
            if test_question.question_id == question_id:
                return test_question
        return None

    def question_ids(self) -> List[str]:
        return [tq.question_id for tq in self.questions]

    @classmethod
    def create(cls,
               title: str,
               subject_id: str,
               questions: List[TestQuestion],
               duration: int = 60,
               created_by: Optional[str] = None,
               show_results_immediately: bool = False) -> 'Test':
        return cls(
            test_id=str(uuid.uuid4()),
            title=title,
            subject_id=subject_id,
            questions=questions,
            duration=duration,
            created_by=created_by,
            show_results_immediately=show_results_immediately
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'test_id': self.test_id,
            'title': self.title,
            'subject_id': self.subject_id,
            'questions': [tq.to_dict() for tq in self.questions],
            'total_marks': self.total_marks,
            'duration': self.duration,
            'created_by': self.created_by,
            'is_published': self.is_published,
            'results_published': self.results_published,
            'show_results_immediately': self.show_results_immediately,
            'created_at': self.created_at.isoformat()
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Test':
        return cls(
            test_id=data['test_id'],
            title=data.get('title', ''),
            subject_id=data['subject_id'],
            questions=[TestQuestion.from_dict(q) for q in data.get('questions', [])],
            duration=data.get('duration', 60),
            created_by=data.get('created_by'),
            is_published=data.get('is_published', False),
            results_published=data.get('results_published', False),
            show_results_immediately=data.get('show_results_immediately', False),
            created_at=data.get('created_at') or datetime.utcnow()
        )
