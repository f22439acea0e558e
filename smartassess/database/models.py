"""
Table Models

SQLAlchemy tables backing the SQL repositories. Test questions and
submission answers are stored as JSON columns so a test or a submission is
always read and written as one row.
"""

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint
)

from smartassess.domain.assessments import Test, TestQuestion
from smartassess.domain.questions import Question
from smartassess.domain.submissions import Answer, Submission, SubmissionStatus
from .base import ModelBase


class QuestionModel(ModelBase):
    """Question bank row. ``id`` keeps the insertion order used by queries."""
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    question_id = Column(String(64), nullable=False, unique=True, index=True)
    subject_id = Column(String(64), nullable=False, index=True)
    chapter = Column(String(255), nullable=False)
    topic = Column(String(255), nullable=True)
    difficulty = Column(String(16), nullable=False)
    marks = Column(Integer, nullable=False)
    question_type = Column(String(32), nullable=False)
    text = Column(Text, nullable=False)
    options = Column(JSON, nullable=False, default=list)
    correct_answer = Column(Text, nullable=True)
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_domain(self) -> Question:
        return Question(
            question_id=self.question_id,
            subject_id=self.subject_id,
            chapter=self.chapter,
            topic=self.topic,
            difficulty=self.difficulty,
            marks=self.marks,
            question_type=self.question_type,
            text=self.text,
            options=list(self.options or []),
            correct_answer=self.correct_answer,
            created_by=self.created_by,
            created_at=self.created_at
        )

    @classmethod
    def values_from(cls, question: Question) -> dict:
        return {
            "question_id": question.question_id,
            "subject_id": question.subject_id,
            "chapter": question.chapter,
            "topic": question.topic,
            "difficulty": question.difficulty.value,
            "marks": question.marks,
            "question_type": question.question_type.value,
            "text": question.text,
            "options": list(question.options),
            "correct_answer": question.correct_answer,
            "created_by": question.created_by,
            "created_at": question.created_at,
        }


class TestModel(ModelBase):
    __test__ = False  # not a pytest test class
    __tablename__ = "tests"

    id = Column(Integer, primary_key=True, autoincrement=True)
    test_id = Column(String(64), nullable=False, unique=True, index=True)
    title = Column(String(255), nullable=False)
    subject_id = Column(String(64), nullable=False, index=True)
    questions = Column(JSON, nullable=False, default=list)
    duration = Column(Integer, nullable=False, default=60)
    created_by = Column(String(64), nullable=True)
    is_published = Column(Boolean, nullable=False, default=False)
    results_published = Column(Boolean, nullable=False, default=False)
    show_results_immediately = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    def to_domain(self) -> Test:
        return Test(
            test_id=self.test_id,
            title=self.title,
            subject_id=self.subject_id,
            questions=[TestQuestion.from_dict(q) for q in self.questions or []],
            duration=self.duration,
            created_by=self.created_by,
            is_published=self.is_published,
            results_published=self.results_published,
            show_results_immediately=self.show_results_immediately,
            created_at=self.created_at
        )

    @classmethod
    def values_from(cls, test: Test) -> dict:
        return {
            "test_id": test.test_id,
            "title": test.title,
            "subject_id": test.subject_id,
            "questions": [tq.to_dict() for tq in test.questions],
            "duration": test.duration,
            "created_by": test.created_by,
            "is_published": test.is_published,
            "results_published": test.results_published,
            "show_results_immediately": test.show_results_immediately,
            "created_at": test.created_at,
        }


class SubmissionModel(ModelBase):
    """One row per (test, student); the unique constraint backs the conflict check."""
    __tablename__ = "submissions"
    __table_args__ = (
        UniqueConstraint("test_id", "student_id"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    submission_id = Column(String(64), nullable=False, unique=True, index=True)
    test_id = Column(String(64), nullable=False, index=True)
    student_id = Column(String(64), nullable=False)
    answers = Column(JSON, nullable=False, default=list)
    total_marks_obtained = Column(Float, nullable=True)
    status = Column(String(16), nullable=False, default=SubmissionStatus.PENDING.value)
    evaluated_by = Column(String(64), nullable=True)
    evaluated_at = Column(DateTime, nullable=True)
    submitted_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    time_taken = Column(Float, nullable=True)

    def to_domain(self) -> Submission:
        return Submission(
            submission_id=self.submission_id,
            test_id=self.test_id,
            student_id=self.student_id,
            answers=[Answer.from_dict(a) for a in self.answers or []],
            total_marks_obtained=self.total_marks_obtained,
            status=SubmissionStatus(self.status),
            evaluated_by=self.evaluated_by,
            evaluated_at=self.evaluated_at,
            submitted_at=self.submitted_at,
            time_taken=self.time_taken
        )

    @classmethod
    def values_from(cls, submission: Submission) -> dict:
        return {
            "submission_id": submission.submission_id,
            "test_id": submission.test_id,
            "student_id": submission.student_id,
            "answers": [a.to_dict() for a in submission.answers],
            "total_marks_obtained": submission.total_marks_obtained,
            "status": submission.status.value,
            "evaluated_by": submission.evaluated_by,
            "evaluated_at": submission.evaluated_at,
            "submitted_at": submission.submitted_at,
            "time_taken": submission.time_taken,
        }
