"""
Submission Repository Module

Repository interface and in-memory implementation for submissions. Both
implementations enforce the one-submission-per-(test, student) rule as a
unique index at insert time.
"""

import abc
from typing import Dict, List, Optional, Tuple

from smartassess.common.exceptions import ConflictError, NotFoundError
from .model import Submission, SubmissionStatus


class SubmissionRepository(abc.ABC):
    """Abstract base class for submission repositories."""

    @abc.abstractmethod
    async def get_by_id(self, submission_id: str) -> Optional[Submission]:
        """Get a submission by its ID, or None."""

    @abc.abstractmethod
    async def get_by_test_and_student(self, test_id: str, student_id: str) -> Optional[Submission]:
        """Get the submission of ``student_id`` for ``test_id``, or None."""

    @abc.abstractmethod
    async def find_by_test(
        self,
        test_id: str,
        status: Optional[SubmissionStatus] = None
    ) -> List[Submission]:
        """Submissions for a test in insertion order, optionally filtered by status."""

    @abc.abstractmethod
    async def insert(self, submission: Submission) -> Submission:
        """
        Insert a new submission.

        Raises:
            ConflictError: If a submission already exists for the same test and student
        """

    @abc.abstractmethod
    async def update(self, submission: Submission) -> Submission:
        """
        Replace a stored submission as a whole.

        Raises:
            NotFoundError: If the submission does not exist
        """


class MemorySubmissionRepository(SubmissionRepository):
    """
    In-memory implementation of the SubmissionRepository.

    Stored objects are copies, so callers mutating a submission they read do
    not change the stored state until they call ``update``.
    """

    def __init__(self):
        self._submissions: Dict[str, Submission] = {}
        self._by_test_student: Dict[Tuple[str, str], str] = {}

    async def get_by_id(self, submission_id: str) -> Optional[Submission]:
        stored = self._submissions.get(submission_id)
        return stored.clone() if stored else None

    async def get_by_test_and_student(self, test_id: str, student_id: str) -> Optional[Submission]:
        submission_id = self._by_test_student.get((test_id, student_id))
        if submission_id is None:
            return None
        return await self.get_by_id(submission_id)

    async def find_by_test(
        self,
        test_id: str,
        status: Optional[SubmissionStatus] = None
    ) -> List[Submission]:
        return [
            s.clone() for s in self._submissions.values()
            if s.test_id == test_id and (status is None or s.status == status)
        ]

    async def insert(self, submission: Submission) -> Submission:
        key = (submission.test_id, submission.student_id)
        if key in self._by_test_student:
            raise ConflictError(
                "Submission", f"test={submission.test_id}, student={submission.student_id}",
                message="Submission already exists"
            )
        if submission.submission_id in self._submissions:
            raise ConflictError("Submission", submission.submission_id)
        self._submissions[submission.submission_id] = submission.clone()
        self._by_test_student[key] = submission.submission_id
        return submission

    async def update(self, submission: Submission) -> Submission:
        if submission.submission_id not in self._submissions:
            raise NotFoundError("Submission", submission.submission_id)
        self._submissions[submission.submission_id] = submission.clone()
        return submission
