"""
Pydantic schemas for submissions, attempts and grading results
"""
from pydantic import Field
from typing import Any, List, Optional
from uuid import UUID
from datetime import date, datetime

from app.schemas.common import CamelModel
from app.schemas.assessment import AssessmentOut, CorrectAnswerOut, OptionOut


class ResponseSubmission(CamelModel):
    """Answer to one question; fill the field matching the question type"""
    question_id: UUID
    text_answer: Optional[str] = None
    numeric_answer: Optional[float] = None
    date_answer: Optional[str] = Field(None, description="ISO date or datetime")
    selected_options: List[str] = []
    file_urls: List[str] = []
    time_spent: Optional[int] = Field(None, ge=0)


class AssessmentSubmission(CamelModel):
    """Schema for assessment submission"""
    responses: List[ResponseSubmission]
    time_spent: Optional[int] = Field(None, ge=0, description="Seconds, client reported")


class AttemptSummary(CamelModel):
    id: UUID
    assessment_id: UUID
    attempt_number: int
    status: str
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    time_spent: Optional[int] = None
    total_score: float
    max_score: float
    percentage: float
    passed: bool
    is_graded: bool
    graded_at: Optional[datetime] = None


class GradedResponse(CamelModel):
    """Grading details for a single question"""
    question_id: UUID
    question_text: str
    question_type: str
    max_points: float
    is_correct: Optional[bool] = None
    points_earned: float
    feedback: Optional[str] = None
    explanation: Optional[str] = None
    correct_answer: Any = None
    selected_answer: Any = None


class SubmissionResults(CamelModel):
    total_questions: int
    answered_questions: int
    correct_answers: int
    incorrect_answers: int
    ungraded_answers: int
    total_score: float
    max_score: float
    percentage: float
    passing_score: float
    passed: bool
    grade: str


class SubmissionFeedback(CamelModel):
    message: str
    attempts_remaining: Optional[int] = None


class AttemptResult(CamelModel):
    """Response after assessment grading"""
    attempt: AttemptSummary
    results: SubmissionResults
    responses: List[GradedResponse]
    feedback: SubmissionFeedback


class UserProgress(CamelModel):
    attempts_taken: int
    attempts_remaining: Optional[int] = None
    max_attempts: Optional[int] = None
    can_take_assessment: bool
    latest_attempt: Optional[AttemptSummary] = None


class AssessmentOverview(CamelModel):
    """Assessment metadata with the caller's attempt history"""
    assessment: AssessmentOut
    user_progress: UserProgress
    attempts: List[AttemptSummary]


class UserAnswer(CamelModel):
    text_answer: Optional[str] = None
    numeric_answer: Optional[float] = None
    date_answer: Optional[date] = None
    selected_options: List[str] = []
    file_urls: List[str] = []


class AttemptResponseDetail(CamelModel):
    question_id: UUID
    question_text: str
    question_type: str
    points: float
    order: int
    options: List[OptionOut] = []
    user_answer: UserAnswer
    is_correct: Optional[bool] = None
    points_earned: float
    max_points: float
    feedback: Optional[str] = None
    time_spent: Optional[int] = None
    correct_answer: Optional[CorrectAnswerOut] = None
    explanation: Optional[str] = None


class AttemptDetailSummary(CamelModel):
    total_questions: int
    correct_answers: int
    incorrect_answers: int
    ungraded_questions: int


class AttemptAssessment(CamelModel):
    id: UUID
    family: str
    title: str
    description: Optional[str] = None
    total_points: float
    passing_score: float


class GradedAttempt(AttemptSummary):
    grade: str


class AttemptDetail(CamelModel):
    attempt: GradedAttempt
    assessment: AttemptAssessment
    summary: AttemptDetailSummary
    responses: List[AttemptResponseDetail]


class AttemptListItem(AttemptSummary):
    assessment_title: str
