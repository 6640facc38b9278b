"""
Assessment authoring endpoints (owner only)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from uuid import UUID

from app.api.deps import get_current_user_id
from app.database import get_db
from app.schemas.assessment import (
    AssessmentCreate,
    AssessmentOut,
    AssessmentUpdate,
    AuthoredAssessment,
    AuthoredQuestionOut,
    QuestionCreate,
)
from app.schemas.common import ApiResponse
from app.services.assessment_service import assessment_service


def build_authoring_router(family: str) -> APIRouter:
    """Create the authoring router for one assessment family"""

    router = APIRouter(prefix=f"/api/{family}/assessments", tags=[f"{family} authoring"])

    @router.post("", response_model=ApiResponse[AssessmentOut], status_code=201)
    def create_assessment(
        payload: AssessmentCreate,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Create a draft assessment owned by the caller"""
        assessment = assessment_service.create(db, family, user_id, payload)
        return ApiResponse(message="Assessment created successfully", data=assessment)

    @router.get("/{assessment_id}/authoring", response_model=ApiResponse[AuthoredAssessment])
    def get_authored_assessment(
        assessment_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Assessment with questions, options and correct answers"""
        authored = assessment_service.get_authored(db, family, assessment_id, user_id)
        return ApiResponse(message="Assessment retrieved successfully", data=authored)

    @router.post(
        "/{assessment_id}/questions",
        response_model=ApiResponse[AuthoredQuestionOut],
        status_code=201
    )
    def add_question(
        assessment_id: UUID,
        payload: QuestionCreate,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """
        Add a question

        - Rejected once the assessment has attempts
        - Choice questions flag their correct options with isCorrect
        """
        question = assessment_service.add_question(db, family, assessment_id, user_id, payload)
        return ApiResponse(message="Question added successfully", data=question)

    @router.patch("/{assessment_id}", response_model=ApiResponse[AssessmentOut])
    def update_assessment(
        assessment_id: UUID,
        payload: AssessmentUpdate,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Update an assessment; only soft fields once attempts exist"""
        assessment = assessment_service.update(db, family, assessment_id, user_id, payload)
        return ApiResponse(message="Assessment updated successfully", data=assessment)

    @router.post("/{assessment_id}/publish", response_model=ApiResponse[AssessmentOut])
    def publish_assessment(
        assessment_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        assessment = assessment_service.publish(db, family, assessment_id, user_id)
        return ApiResponse(message="Assessment published successfully", data=assessment)

    @router.delete("/{assessment_id}", response_model=ApiResponse[None])
    def delete_assessment(
        assessment_id: UUID,
        user_id: UUID = Depends(get_current_user_id),
        db: Session = Depends(get_db)
    ):
        """Delete an assessment that has no attempts"""
        assessment_service.delete(db, family, assessment_id, user_id)
        return ApiResponse(message="Assessment deleted successfully")

    return router
