"""
SQL Repositories

SQLAlchemy implementations of the question, test and submission
repositories. Each call runs in its own session and transaction.
"""

from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from smartassess.common.exceptions import ConflictError, DatabaseError, NotFoundError
from smartassess.common.logger import app_logger
from smartassess.domain.assessments import Test, TestRepository
from smartassess.domain.questions import Question, QuestionFilter, QuestionRepository
from smartassess.domain.submissions import Submission, SubmissionRepository, SubmissionStatus
from .models import QuestionModel, SubmissionModel, TestModel

logger = app_logger.getChild("database.repositories")


class SqlQuestionRepository(QuestionRepository):
    """Question bank stored in the ``questions`` table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get_by_id(self, question_id: str) -> Optional[Question]:
        async with self.session_factory() as session:
            row = await session.scalar(
                select(QuestionModel).where(QuestionModel.question_id == question_id)
            )
            return row.to_domain() if row else None

    async def get_many(self, question_ids: Iterable[str]) -> List[Question]:
        ids = list(question_ids)
        if not ids:
            return []
        async with self.session_factory() as session:
            rows = await session.scalars(
                select(QuestionModel)
                .where(QuestionModel.question_id.in_(ids))
                .order_by(QuestionModel.id)
            )
            return [row.to_domain() for row in rows]

    async def find(self, criteria: QuestionFilter) -> List[Question]:
        query = select(QuestionModel)
        if criteria.subject_id is not None:
            query = query.where(QuestionModel.subject_id == criteria.subject_id)
        if criteria.difficulty is not None:
            query = query.where(QuestionModel.difficulty == criteria.difficulty.value)
        if criteria.chapters:
            query = query.where(QuestionModel.chapter.in_(list(criteria.chapters)))
        if criteria.topics:
            query = query.where(QuestionModel.topic.in_(list(criteria.topics)))
        if criteria.question_types:
            query = query.where(QuestionModel.question_type.in_([t.value for t in criteria.question_types]))
        if criteria.marks:
            query = query.where(QuestionModel.marks.in_(list(criteria.marks)))

        async with self.session_factory() as session:
            rows = await session.scalars(query.order_by(QuestionModel.id))
            return [row.to_domain() for row in rows]

    async def save(self, question: Question) -> Question:
        values = QuestionModel.values_from(question)
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.scalar(
                    select(QuestionModel).where(QuestionModel.question_id == question.question_id)
                )
                if row is None:
                    session.add(QuestionModel(**values))
                else:
                    row.update(values)
        return question


class SqlTestRepository(TestRepository):
    """Tests stored in the ``tests`` table."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get_by_id(self, test_id: str) -> Optional[Test]:
        async with self.session_factory() as session:
            row = await session.scalar(select(TestModel).where(TestModel.test_id == test_id))
            return row.to_domain() if row else None

    async def save(self, test: Test) -> Test:
        values = TestModel.values_from(test)
        async with self.session_factory() as session:
            async with session.begin():
                row = await session.scalar(select(TestModel).where(TestModel.test_id == test.test_id))
                if row is None:
                    session.add(TestModel(**values))
                else:
                    row.update(values)
        return test


class SqlSubmissionRepository(SubmissionRepository):
    """
    Submissions stored in the ``submissions`` table.

    The ``(test_id, student_id)`` unique constraint turns a lost creation
    race into a ``ConflictError``.
    """

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory

    async def get_by_id(self, submission_id: str) -> Optional[Submission]:
        async with self.session_factory() as session:
            row = await session.scalar(
                select(SubmissionModel).where(SubmissionModel.submission_id == submission_id)
            )
            return row.to_domain() if row else None

    async def get_by_test_and_student(self, test_id: str, student_id: str) -> Optional[Submission]:
        async with self.session_factory() as session:
            row = await session.scalar(
                select(SubmissionModel).where(
                    SubmissionModel.test_id == test_id,
                    SubmissionModel.student_id == student_id
                )
            )
            return row.to_domain() if row else None

    async def find_by_test(
        self,
        test_id: str,
        status: Optional[SubmissionStatus] = None
    ) -> List[Submission]:
        query = select(SubmissionModel).where(SubmissionModel.test_id == test_id)
        if status is not None:
            query = query.where(SubmissionModel.status == status.value)
        async with self.session_factory() as session:
            rows = await session.scalars(query.order_by(SubmissionModel.id))
            return [row.to_domain() for row in rows]

    async def insert(self, submission: Submission) -> Submission:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    session.add(SubmissionModel(**SubmissionModel.values_from(submission)))
        except IntegrityError as e:
            logger.info(
                f"Duplicate submission for test {submission.test_id} by {submission.student_id}"
            )
            raise ConflictError(
                "Submission", f"test={submission.test_id}, student={submission.student_id}",
                message="Submission already exists"
            ) from e
        return submission

    async def update(self, submission: Submission) -> Submission:
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    row = await session.scalar(
                        select(SubmissionModel).where(
                            SubmissionModel.submission_id == submission.submission_id
                        )
                    )
                    if row is None:
                        raise NotFoundError("Submission", submission.submission_id)
                    row.update(SubmissionModel.values_from(submission))
        except SQLAlchemyError as e:
            logger.error(f"Failed to update submission {submission.submission_id}: {e}")
            raise DatabaseError("Failed to update submission", cause=e) from e
        return submission
