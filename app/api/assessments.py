"""
Learner-facing assessment endpoints

One router per assessment family (library, exam-body, explore); all share
the same grading engine and attempt orchestration.
"""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import List, Optional
from uuid import UUID
import logging

from app.api.deps import get_current_user_id
from app.database import get_db
from app.schemas.assessment import QuestionsPayload
from app.schemas.attempt import (
    AssessmentOverview,
    AssessmentSubmission,
    AttemptDetail,
    AttemptListItem,
    AttemptResult,
)
from app.schemas.common import ApiResponse
from app.services.assessment_service import assessment_service
from app.services.attempt_service import attempt_service

logger = logging.getLogger(__name__)


def build_router(family: str) -> APIRouter:
    """Create the learner router for one assessment family"""

    router = APIRouter(prefix=f"/api/{family}/assessments", tags=[f"{family} assessments"])

    @router.get("/attempts", response_model=ApiResponse[List[AttemptListItem]])
    def list_attempts(
        assessment_id: Optional[UUID] = Query(None, alias="assessmentId"),
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """List the caller's attempts, optionally for one assessment"""
        attempts = attempt_service.list_attempts(db, family, user_id, assessment_id)
        return ApiResponse(message="Attempts retrieved successfully", data=attempts)

    @router.get("/attempts/{attempt_id}", response_model=ApiResponse[AttemptDetail])
    def get_attempt(
        attempt_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """
        Get one of the caller's attempts with per-question results

        Correct answers and explanations follow the assessment's
        visibility flags.
        """
        detail = attempt_service.get_attempt_detail(db, family, attempt_id, user_id)
        return ApiResponse(message="Attempt results retrieved successfully", data=detail)

    @router.get("/{assessment_id}", response_model=ApiResponse[AssessmentOverview])
    def get_assessment(
        assessment_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Assessment metadata, the caller's previous attempts and eligibility"""
        overview = attempt_service.get_overview(db, family, assessment_id, user_id)
        return ApiResponse(message="Assessment retrieved successfully", data=overview)

    @router.get("/{assessment_id}/questions", response_model=ApiResponse[QuestionsPayload])
    def get_questions(
        assessment_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """
        Questions and options without correct answers

        - Shuffled when the assessment enables question/option shuffling
        """
        payload = assessment_service.get_questions(db, family, assessment_id)
        return ApiResponse(message="Assessment questions retrieved successfully", data=payload)

    @router.post("/{assessment_id}/submit", response_model=ApiResponse[AttemptResult])
    def submit_assessment(
        assessment_id: UUID,
        submission: AssessmentSubmission,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """
        Submit and grade an assessment

        Grading is all-or-nothing per question:
        - Choice: option id match (order-insensitive for multiple)
        - Short answer / fill in blank: trimmed, case-insensitive match
        - Numeric: exact match
        - Date: same calendar date
        - Long answer, file upload, matching, ordering, rating: manual
        """
        result = attempt_service.submit(db, family, assessment_id, user_id, submission)
        return ApiResponse(message="Assessment submitted successfully", data=result)

    return router
