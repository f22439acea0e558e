"""
Common Exception Classes

This module defines the error taxonomy of the evaluation engine. Every
error carries a machine-readable code so the HTTP layer can map it to a
status code and callers can tell a guard (already evaluated, nothing to
grade) apart from a real failure.
"""

import json
from enum import Enum
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class ErrorCode(str, Enum):
    """Standard error codes for SmartAssess"""
    UNKNOWN_ERROR = "unknown_error"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    VALIDATION_ERROR = "validation_error"
    ALREADY_EVALUATED = "already_evaluated"
    NOTHING_TO_GRADE = "nothing_to_grade"
    NO_SUITABLE_QUESTIONS = "no_suitable_questions"
    NO_ELIGIBLE_ANSWERS = "no_eligible_answers"
    NO_SUBMISSIONS = "no_submissions"
    SCORER_ERROR = "scorer_error"
    DATABASE_ERROR = "database_error"


class ErrorInfo(BaseModel):
    """Structured information about an error, as rendered to API clients"""
    code: ErrorCode
    message: str
    timestamp: datetime = Field(default_factory=datetime.now)
    details: Dict[str, Any] = Field(default_factory=dict)
    exception_type: Optional[str] = None


class SmartAssessError(Exception):
    """Base class for all engine errors."""

    code: ErrorCode = ErrorCode.UNKNOWN_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None
    ):
        """
        Initialize the exception.

        Args:
            message: Error message
            details: Extra structured information for the caller
            cause: Original exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause

    def to_error_info(self) -> ErrorInfo:
        """Convert the exception to an ErrorInfo object"""
        details = dict(self.details)
        if self.cause is not None:
            details["cause"] = {
                "type": type(self.cause).__name__,
                "message": str(self.cause)
            }
        return ErrorInfo(
            code=self.code,
            message=self.message,
            details=details,
            exception_type=type(self).__name__
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the exception to a JSON-compatible dictionary"""
        return self.to_error_info().model_dump(mode="json")

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def __str__(self) -> str:
        base_str = f"{self.code.value}: {self.message}"
        if self.cause:
            base_str += f" caused by {type(self.cause).__name__}: {self.cause}"
        return base_str


class NotFoundError(SmartAssessError):
    """Raised when a test, submission, question or answer does not exist."""

    code = ErrorCode.NOT_FOUND

    def __init__(self, resource_type: str, resource_id: Any, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} with ID {resource_id} not found",
            details={"resource_type": resource_type, "resource_id": str(resource_id)}
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class NoQuestionsFoundError(NotFoundError):
    """Raised when the question bank holds nothing matching a composition filter."""

    def __init__(self, criteria: List[str]):
        if criteria:
            message = f"No questions found matching the selected criteria: {', '.join(criteria)}"
        else:
            message = "No questions found for the selected subject"
        super().__init__("Question", ", ".join(criteria) or "subject", message=message)
        self.details["criteria"] = criteria
        self.criteria = criteria


class ConflictError(SmartAssessError):
    """Raised when an entity already exists, e.g. a second submission for a student."""

    code = ErrorCode.CONFLICT

    def __init__(self, resource_type: str, identifier: Any, message: Optional[str] = None):
        super().__init__(
            message or f"{resource_type} with identifier {identifier} already exists",
            details={"resource_type": resource_type, "identifier": str(identifier)}
        )
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(SmartAssessError):
    """Raised when a request is rejected as a whole, e.g. marks above a question's cap."""

    code = ErrorCode.VALIDATION_ERROR

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        errors: Optional[Dict[str, Any]] = None
    ):
        details: Dict[str, Any] = dict(errors or {})
        if field is not None:
            details["field"] = field
        super().__init__(message, details=details)
        self.field = field
        self.errors = errors or {}


class AlreadyEvaluatedError(SmartAssessError):
    """
    Guard raised when AI evaluation is requested for an evaluated submission
    without ``force``. Carries the current total so callers can offer a
    forced re-run.
    """

    code = ErrorCode.ALREADY_EVALUATED

    def __init__(self, submission_id: str, total_marks_obtained: Optional[float]):
        super().__init__(
            "Submission has already been evaluated. Use force=true to re-evaluate.",
            details={
                "submission_id": submission_id,
                "total_marks_obtained": total_marks_obtained
            }
        )
        self.submission_id = submission_id
        self.total_marks_obtained = total_marks_obtained


class NothingToGradeError(SmartAssessError):
    """Raised when every answer of a submission already carries a mark."""

    code = ErrorCode.NOTHING_TO_GRADE

    def __init__(self, submission_id: str, total_marks_obtained: Optional[float]):
        super().__init__(
            "All answers are already graded",
            details={
                "submission_id": submission_id,
                "total_marks_obtained": total_marks_obtained
            }
        )
        self.submission_id = submission_id
        self.total_marks_obtained = total_marks_obtained


class NoSuitableQuestionsError(SmartAssessError):
    """Raised when matching questions exist but none fit the band budgets."""

    code = ErrorCode.NO_SUITABLE_QUESTIONS

    def __init__(self, criteria: List[str]):
        criteria_text = f" with the selected criteria ({', '.join(criteria)})" if criteria else ""
        super().__init__(
            f"No suitable questions found{criteria_text} matching the difficulty distribution "
            "and total marks. Try adjusting the difficulty percentages, total marks, "
            "or selection criteria.",
            details={"criteria": criteria}
        )
        self.criteria = criteria


class NoEligibleAnswersError(SmartAssessError):
    """Raised when a submission has ungraded answers but none the AI scorer can grade."""

    code = ErrorCode.NO_ELIGIBLE_ANSWERS

    def __init__(self, submission_id: str, ungraded_questions: List[str]):
        super().__init__(
            "No gradable subjective answers found. Ungraded answers are missing "
            "submitted text or are not short/long answer questions.",
            details={
                "submission_id": submission_id,
                "ungraded_questions": ungraded_questions
            }
        )
        self.submission_id = submission_id
        self.ungraded_questions = ungraded_questions


class NoSubmissionsError(SmartAssessError):
    """Raised when analytics are requested for a test without evaluated submissions."""

    code = ErrorCode.NO_SUBMISSIONS

    def __init__(self, test_id: str):
        super().__init__(
            "No submissions evaluated yet",
            details={"test_id": test_id}
        )
        self.test_id = test_id


class ScorerError(SmartAssessError):
    """
    Failure talking to the external scoring service. Only used inside the
    scorer adapter, which turns it into a fallback result.
    """

    code = ErrorCode.SCORER_ERROR

    def __init__(self, message: str, status: Optional[int] = None, cause: Optional[Exception] = None):
        super().__init__(message, details={"status": status}, cause=cause)
        self.status = status


class DatabaseError(SmartAssessError):
    """Exception raised for storage failures other than uniqueness conflicts."""

    code = ErrorCode.DATABASE_ERROR

    def __init__(self, message: str, cause: Optional[Exception] = None):
        super().__init__(f"Database error: {message}", cause=cause)
