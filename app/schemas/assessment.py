"""
Pydantic schemas for assessment authoring and question serving
"""
from pydantic import Field, model_validator
from typing import List, Optional
from uuid import UUID
from datetime import date, datetime

from app.schemas.common import CamelModel
from app.services.grading_service import QuestionType


class OptionCreate(CamelModel):
    """Answer choice for a choice-type question"""
    option_text: str = Field(..., min_length=1)
    is_correct: bool = False
    image_url: Optional[str] = None


class QuestionCreate(CamelModel):
    """
    Schema for adding a question

    Choice questions mark their correct options with ``is_correct``; the
    other gradable types carry the matching ``answer_*`` field.
    """
    question_text: str = Field(..., min_length=1)
    question_type: QuestionType
    points: float = Field(1.0, gt=0)
    order: Optional[int] = Field(None, ge=0)
    hint_text: Optional[str] = None
    explanation: Optional[str] = None
    image_url: Optional[str] = None
    difficulty_level: Optional[str] = Field(None, pattern="^(EASY|MEDIUM|HARD)$")
    options: List[OptionCreate] = []
    answer_text: Optional[str] = None
    answer_number: Optional[float] = None
    answer_date: Optional[date] = None


class AssessmentCreate(CamelModel):
    """Schema for creating a draft assessment"""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    max_attempts: Optional[int] = Field(None, ge=1, description="Omit for unlimited attempts")
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    show_correct_answers: bool = False
    show_feedback: bool = True
    shuffle_questions: bool = False
    shuffle_options: bool = False
    duration: Optional[int] = Field(None, ge=1, description="Duration in minutes")
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


# Columns an update may change but never clear; omit them instead of sending null
NON_NULLABLE_UPDATE_FIELDS = (
    "title", "status", "passing_score", "show_correct_answers",
    "show_feedback", "shuffle_questions", "shuffle_options",
)


class AssessmentUpdate(CamelModel):
    """
    Partial update; once attempts exist only the soft fields
    (title, description, instructions, dates, status) may change
    """
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    instructions: Optional[str] = None
    status: Optional[str] = Field(None, pattern="^(DRAFT|PUBLISHED|ACTIVE|CLOSED|ARCHIVED)$")
    max_attempts: Optional[int] = Field(None, ge=1)
    passing_score: Optional[float] = Field(None, ge=0, le=100)
    show_correct_answers: Optional[bool] = None
    show_feedback: Optional[bool] = None
    shuffle_questions: Optional[bool] = None
    shuffle_options: Optional[bool] = None
    duration: Optional[int] = Field(None, ge=1)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def reject_cleared_required(self):
        cleared = [
            name for name in NON_NULLABLE_UPDATE_FIELDS
            if name in self.model_fields_set and getattr(self, name) is None
        ]
        if cleared:
            raise ValueError(f"{', '.join(cleared)} cannot be null")
        return self


class OptionOut(CamelModel):
    id: UUID
    option_text: str
    order: int
    image_url: Optional[str] = None


class QuestionOut(CamelModel):
    """Question as served to learners - no correct answers"""
    id: UUID
    question_text: str
    question_type: str
    points: float
    order: int
    hint_text: Optional[str] = None
    image_url: Optional[str] = None
    difficulty_level: Optional[str] = None
    options: List[OptionOut] = []


class CorrectAnswerOut(CamelModel):
    answer_text: Optional[str] = None
    answer_number: Optional[float] = None
    answer_date: Optional[date] = None
    option_ids: Optional[List[str]] = None


class AuthoredOptionOut(OptionOut):
    is_correct: bool


class AuthoredQuestionOut(CamelModel):
    """Question as seen by its author"""
    id: UUID
    question_text: str
    question_type: str
    points: float
    order: int
    hint_text: Optional[str] = None
    explanation: Optional[str] = None
    image_url: Optional[str] = None
    difficulty_level: Optional[str] = None
    options: List[AuthoredOptionOut] = []
    correct_answer: Optional[CorrectAnswerOut] = None


class AssessmentOut(CamelModel):
    id: UUID
    family: str
    title: str
    description: Optional[str] = None
    instructions: Optional[str] = None
    status: str
    max_attempts: Optional[int] = None
    total_points: float
    passing_score: float
    show_correct_answers: bool
    show_feedback: bool
    shuffle_questions: bool
    shuffle_options: bool
    duration: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    published_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    questions_count: int = 0


class QuestionsPayload(CamelModel):
    """Questions served for taking an assessment"""
    assessment_id: UUID
    assessment_title: str
    questions: List[QuestionOut]
    total_questions: int
    total_points: float
    show_correct_answers: bool


class AuthoredAssessment(CamelModel):
    """Assessment with answers, for its author"""
    assessment: AssessmentOut
    questions: List[AuthoredQuestionOut]
    attempts_count: int
