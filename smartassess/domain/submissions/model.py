"""
Submission Domain Model Module

A Submission is one student's attempt at a test: the submitted answers,
the marks awarded so far and the evaluation lifecycle state.
"""

import copy
import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


class SubmissionStatus(enum.Enum):
    """
    Lifecycle state of a submission.

    PENDING is the default of a freshly built object and is never assigned
    by the normal flows; it is kept because external callers filter on it.
    """
    PENDING = "pending"
    SUBMITTED = "submitted"
    EVALUATED = "evaluated"


@dataclass
class Answer:
    """A student's answer to one test question."""
    question_id: str
    answer_text: Optional[str] = None
    marks_obtained: Optional[float] = None
    remarks: Optional[str] = None

    @property
    def is_marked(self) -> bool:
        return self.marks_obtained is not None

    @property
    def has_text(self) -> bool:
        return bool(self.answer_text and self.answer_text.strip())

    def to_dict(self) -> Dict[str, Any]:
        return {
            'question_id': self.question_id,
            'answer_text': self.answer_text,
            'marks_obtained': self.marks_obtained,
            'remarks': self.remarks
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Answer':
        return cls(
            question_id=data['question_id'],
            answer_text=data.get('answer_text'),
            marks_obtained=data.get('marks_obtained'),
            remarks=data.get('remarks')
        )


@dataclass
class Submission:
    """
    A student's submission for a test.

    Attributes:
        submission_id: Unique identifier
        test_id: Test the submission belongs to
        student_id: Submitting student
        answers: Submitted answers, in submission order
        total_marks_obtained: Sum of the marks set so far
        status: Lifecycle state
        evaluated_by: Identity of the last evaluator
        evaluated_at: When the submission became evaluated
        submitted_at: When the student submitted
        time_taken: Minutes spent on the test
    """
    submission_id: str
    test_id: str
    student_id: str
    answers: List[Answer] = field(default_factory=list)
    total_marks_obtained: Optional[float] = None
    status: SubmissionStatus = SubmissionStatus.PENDING
    evaluated_by: Optional[str] = None
    evaluated_at: Optional[datetime] = None
    submitted_at: datetime = field(default_factory=datetime.utcnow)
    time_taken: Optional[float] = None

    def __post_init__(self):
        if isinstance(self.status, str):
            self.status = SubmissionStatus(self.status)
        if isinstance(self.submitted_at, str):
            self.submitted_at = datetime.fromisoformat(self.submitted_at)
        if isinstance(self.evaluated_at, str):
            self.evaluated_at = datetime.fromisoformat(self.evaluated_at)

    @classmethod
    def create(cls,
               test_id: str,
               student_id: str,
               answers: List[Answer],
               time_taken: Optional[float] = None) -> 'Submission':
        return cls(
            submission_id=str(uuid.uuid4()),
            test_id=test_id,
            student_id=student_id,
            answers=answers,
            time_taken=time_taken
        )

    @property
    def is_evaluated(self) -> bool:
        return self.status == SubmissionStatus.EVALUATED

    def get_answer(self, question_id: str) -> Optional[Answer]:
        for answer in self.answers:
            if answer.question_id == question_id:
                return answer
        return None

    def all_answers_marked(self) -> bool:
        return all(answer.is_marked for answer in self.answers)

    def recompute_total(self) -> float:
        """Sum the marks set so far (unset marks count as 0) and store the result."""
        self.total_marks_obtained = sum(
            answer.marks_obtained for answer in self.answers if answer.is_marked
        )
        return self.total_marks_obtained

    def mark_evaluated(self, evaluator_id: str, evaluated_at: Optional[datetime] = None) -> None:
        self.status = SubmissionStatus.EVALUATED
        self.evaluated_by = evaluator_id
        self.evaluated_at = evaluated_at or datetime.utcnow()

    def clone(self) -> 'Submission':
        """Deep copy used as a working copy, so failed mutations leave the original untouched."""
        return copy.deepcopy(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'submission_id': self.submission_id,
            'test_id': self.test_id,
            'student_id': self.student_id,
            'answers': [answer.to_dict() for answer in self.answers],
            'total_marks_obtained': self.total_marks_obtained,
            'status': self.status.value,
            'evaluated_by': self.evaluated_by,
            'evaluated_at': self.evaluated_at.isoformat() if self.evaluated_at else None,
            'submitted_at': self.submitted_at.isoformat(),
            'time_taken': self.time_taken
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Submission':
        return cls(
            submission_id=data['submission_id'],
            test_id=data['test_id'],
            student_id=data['student_id'],
            answers=[Answer.from_dict(a) for a in data.get('answers', [])],
            total_marks_obtained=data.get('total_marks_obtained'),
            status=SubmissionStatus(data.get('status', SubmissionStatus.PENDING.value)),
            evaluated_by=data.get('evaluated_by'),
            evaluated_at=data.get('evaluated_at'),
            submitted_at=data.get('submitted_at') or datetime.utcnow(),
            time_taken=data.get('time_taken')
        )
