"""
Request models for the evaluation API.
"""

from typing import List, Optional

from pydantic import BaseModel, Field

from smartassess.domain.questions import QuestionType


class ComposeTestRequest(BaseModel):
    subject_id: str = Field(..., min_length=1)
    total_marks: float = Field(..., description="Target total marks")
    easy_percentage: float
    medium_percentage: float
    hard_percentage: float
    chapters: List[str] = Field(default_factory=list)
    topics: List[str] = Field(default_factory=list)
    question_types: List[QuestionType] = Field(default_factory=list)
    specific_marks: List[int] = Field(default_factory=list)


class SubmittedAnswerModel(BaseModel):
    question_id: str
    answer_text: Optional[str] = None


class CreateSubmissionRequest(BaseModel):
    test_id: str
    answers: List[SubmittedAnswerModel] = Field(default_factory=list)
    time_taken: Optional[float] = Field(None, ge=0, description="Minutes spent on the test")


class ManualMarkModel(BaseModel):
    question_id: str
    marks_obtained: float
    remarks: Optional[str] = None


class ManualEvaluationRequest(BaseModel):
    answers: List[ManualMarkModel]


class SingleAnswerEvaluationRequest(BaseModel):
    question_id: str
