"""
Assessment service: availability checks, question serving and authoring
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.database import utcnow
from app.exceptions import (
    AssessmentClosedError,
    AssessmentNotOpenError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from app.models import Assessment, Attempt, CorrectAnswer, Option, Question
from app.schemas.assessment import (
    AssessmentCreate,
    AssessmentOut,
    AssessmentUpdate,
    AuthoredAssessment,
    AuthoredQuestionOut,
    QuestionCreate,
    QuestionOut,
    QuestionsPayload,
)
from app.services.grading_service import CHOICE_TYPES, MANUAL_TYPES, QuestionType
from app.services.reporting_service import get_policy
from app.utils.cache import cache_service
from app.utils.shuffle import fisher_yates

logger = logging.getLogger(__name__)

AVAILABLE_STATUSES = ("PUBLISHED", "ACTIVE")

# Fields an author may still change after learners have attempted the assessment
SOFT_FIELDS = {"title", "description", "instructions", "start_date", "end_date", "status"}

SINGLE_ANSWER_TYPES = {QuestionType.MULTIPLE_CHOICE_SINGLE, QuestionType.TRUE_FALSE}


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def assessment_out(assessment: Assessment) -> AssessmentOut:
    return AssessmentOut.model_validate(assessment).model_copy(
        update={"questions_count": len(assessment.questions)}
    )


class AssessmentService:
    """Loads assessments for learners and manages them for authors"""

    # ---- loading -------------------------------------------------------

    def get_available(self, db: Session, family: str, assessment_id: UUID) -> Assessment:
        """
        Load an assessment a learner may take right now

        Raises:
            NotFoundError: absent, in another family, or not published/active
            AssessmentNotOpenError: before the start date
            AssessmentClosedError: after the end date
        """
        assessment = db.query(Assessment).filter(
            Assessment.id == assessment_id,
            Assessment.family == family
        ).first()

        if not assessment or assessment.status not in AVAILABLE_STATUSES:
            logger.warning(f"Assessment not found or not available: {assessment_id}")
            raise NotFoundError("Assessment not found or not available")

        self.check_window(assessment)
        return assessment

    def check_window(self, assessment: Assessment, now: Optional[datetime] = None) -> None:
        now = now or utcnow()

        if assessment.start_date and now < assessment.start_date:
            logger.warning(f"Assessment {assessment.id} not started yet (starts {assessment.start_date})")
            raise AssessmentNotOpenError(
                f"This assessment has not started yet. It will be available on "
                f"{assessment.start_date:%b %d, %Y %H:%M} UTC."
            )

        if assessment.end_date and now > assessment.end_date:
            logger.warning(f"Assessment {assessment.id} ended at {assessment.end_date}")
            raise AssessmentClosedError(
                f"This assessment ended on {assessment.end_date:%b %d, %Y %H:%M} UTC. "
                f"No more attempts are allowed."
            )

    def get_owned(self, db: Session, family: str, assessment_id: UUID, user_id: UUID) -> Assessment:
        """Load an assessment for its author, whatever its status"""
        assessment = db.query(Assessment).filter(
            Assessment.id == assessment_id,
            Assessment.family == family
        ).first()

        if not assessment:
            raise NotFoundError("Assessment not found")

        if assessment.created_by != user_id:
            logger.warning(f"User {user_id} tried to manage assessment {assessment_id}")
            raise ForbiddenError("Only the assessment owner can manage it")

        return assessment

    def count_attempts(self, db: Session, assessment_id: UUID, user_id: Optional[UUID] = None) -> int:
        query = db.query(func.count(Attempt.id)).filter(Attempt.assessment_id == assessment_id)
        if user_id is not None:
            query = query.filter(Attempt.user_id == user_id)
        return query.scalar() or 0

    # ---- serving -------------------------------------------------------

    def get_questions(self, db: Session, family: str, assessment_id: UUID) -> QuestionsPayload:
        """
        Questions without correct answers, shuffled per the assessment flags

        The unshuffled payload is cached; shuffling happens per request.
        """
        assessment = self.get_available(db, family, assessment_id)

        cache_key = cache_service.questions_key(str(assessment.id))
        questions = cache_service.get(cache_key)

        if questions is None:
            questions = [
                QuestionOut.model_validate(q).model_dump(mode="json")
                for q in assessment.questions
            ]
            cache_service.set(cache_key, questions)

        if assessment.shuffle_questions:
            questions = fisher_yates(questions)

        if assessment.shuffle_options:
            questions = [{**q, "options": fisher_yates(q["options"])} for q in questions]

        logger.info(f"Serving {len(questions)} questions for assessment {assessment.id}")

        return QuestionsPayload(
            assessment_id=assessment.id,
            assessment_title=assessment.title,
            questions=questions,
            total_questions=len(questions),
            total_points=sum(q["points"] for q in questions),
            show_correct_answers=assessment.show_correct_answers,
        )

    # ---- authoring -----------------------------------------------------

    def create(self, db: Session, family: str, user_id: UUID, payload: AssessmentCreate) -> AssessmentOut:
        policy = get_policy(family)
        data = payload.model_dump()

        passing_score = data.pop("passing_score")
        data["start_date"] = to_naive_utc(data["start_date"])
        data["end_date"] = to_naive_utc(data["end_date"])

        assessment = Assessment(
            family=family,
            created_by=user_id,
            status="DRAFT",
            passing_score=policy.default_passing_score if passing_score is None else passing_score,
            total_points=0.0,
            **data
        )

        db.add(assessment)
        db.commit()
        db.refresh(assessment)

        logger.info(f"Assessment created: {assessment.id} ({family}) by {user_id}")
        return assessment_out(assessment)

    def get_authored(self, db: Session, family: str, assessment_id: UUID, user_id: UUID) -> AuthoredAssessment:
        assessment = self.get_owned(db, family, assessment_id, user_id)
        return AuthoredAssessment(
            assessment=assessment_out(assessment),
            questions=[AuthoredQuestionOut.model_validate(q) for q in assessment.questions],
            attempts_count=self.count_attempts(db, assessment.id),
        )

    def add_question(
        self,
        db: Session,
        family: str,
        assessment_id: UUID,
        user_id: UUID,
        payload: QuestionCreate
    ) -> AuthoredQuestionOut:
        """
        Add a question with its options and correct answer

        Choice questions take their correct answer from the options flagged
        ``is_correct``. A gradable question without an answer is graded manually.
        """
        assessment = self.get_owned(db, family, assessment_id, user_id)

        if self.count_attempts(db, assessment.id) > 0:
            raise ForbiddenError("Questions cannot be changed once the assessment has attempts")

        q_type = payload.question_type
        self._validate_question(payload)

        question = Question(
            id=uuid.uuid4(),
            question_text=payload.question_text,
            question_type=q_type.value,
            points=payload.points,
            order=payload.order if payload.order is not None else len(assessment.questions),
            hint_text=payload.hint_text,
            explanation=payload.explanation,
            image_url=payload.image_url,
            difficulty_level=payload.difficulty_level,
        )

        if q_type in CHOICE_TYPES:
            question.options = [
                Option(
                    id=uuid.uuid4(),
                    option_text=opt.option_text,
                    order=index,
                    is_correct=opt.is_correct,
                    image_url=opt.image_url,
                )
                for index, opt in enumerate(payload.options)
            ]

        question.correct_answer = self._build_correct_answer(question, payload)

        assessment.questions.append(question)
        assessment.total_points = sum(q.points for q in assessment.questions)

        db.commit()
        db.refresh(question)
        cache_service.invalidate_assessment(str(assessment.id))

        logger.info(
            f"Question added to assessment {assessment.id}: {q_type.value}, "
            f"{payload.points} points, graded={'manual' if question.correct_answer is None else 'auto'}"
        )
        return AuthoredQuestionOut.model_validate(question)

    def _validate_question(self, payload: QuestionCreate) -> None:
        q_type = payload.question_type

        if q_type in CHOICE_TYPES:
            if len(payload.options) < 2:
                raise ValidationError("Choice questions need at least two options")
            correct_count = sum(1 for opt in payload.options if opt.is_correct)
            if q_type in SINGLE_ANSWER_TYPES and correct_count > 1:
                raise ValidationError(f"{q_type.value} questions allow only one correct option")
        elif payload.options:
            raise ValidationError(f"{q_type.value} questions do not take options")

    def _build_correct_answer(self, question: Question, payload: QuestionCreate) -> Optional[CorrectAnswer]:
        q_type = payload.question_type

        if q_type in MANUAL_TYPES:
            return None

        if q_type in CHOICE_TYPES:
            option_ids = [str(opt.id) for opt in question.options if opt.is_correct]
            return CorrectAnswer(option_ids=option_ids) if option_ids else None

        if q_type in (QuestionType.SHORT_ANSWER, QuestionType.FILL_IN_BLANK):
            if payload.answer_text and payload.answer_text.strip():
                return CorrectAnswer(answer_text=payload.answer_text)
            return None

        if q_type == QuestionType.NUMERIC:
            if payload.answer_number is not None:
                return CorrectAnswer(answer_number=payload.answer_number)
            return None

        if q_type == QuestionType.DATE:
            if payload.answer_date is not None:
                return CorrectAnswer(answer_date=payload.answer_date)
            return None

        return None

    def update(
        self,
        db: Session,
        family: str,
        assessment_id: UUID,
        user_id: UUID,
        payload: AssessmentUpdate
    ) -> AssessmentOut:
        assessment = self.get_owned(db, family, assessment_id, user_id)
        changes = payload.model_dump(exclude_unset=True)

        if self.count_attempts(db, assessment.id) > 0:
            locked = sorted(set(changes) - SOFT_FIELDS)
            if locked:
                raise ForbiddenError(
                    f"Assessment has attempts; these fields can no longer change: {', '.join(locked)}"
                )

        for field_name in ("start_date", "end_date"):
            if field_name in changes:
                changes[field_name] = to_naive_utc(changes[field_name])

        start = changes.get("start_date", assessment.start_date)
        end = changes.get("end_date", assessment.end_date)
        if start and end and end <= start:
            raise ValidationError("end_date must be after start_date")

        status = changes.pop("status", None)
        if status in AVAILABLE_STATUSES:
            self._mark_published(assessment, status)
        elif status is not None:
            assessment.status = status

        for key, value in changes.items():
            setattr(assessment, key, value)

        db.commit()
        db.refresh(assessment)
        cache_service.invalidate_assessment(str(assessment.id))

        logger.info(f"Assessment {assessment.id} updated: {sorted(payload.model_fields_set)}")
        return assessment_out(assessment)

    def publish(self, db: Session, family: str, assessment_id: UUID, user_id: UUID) -> AssessmentOut:
        assessment = self.get_owned(db, family, assessment_id, user_id)

        self._mark_published(assessment, "PUBLISHED")

        db.commit()
        db.refresh(assessment)
        cache_service.invalidate_assessment(str(assessment.id))

        logger.info(f"Assessment published: {assessment.id}")
        return assessment_out(assessment)

    def _mark_published(self, assessment: Assessment, status: str) -> None:
        """Move an assessment to a learner-visible status"""
        if not assessment.questions:
            raise ValidationError("Cannot publish an assessment without questions")

        assessment.status = status
        if assessment.published_at is None:
            assessment.published_at = utcnow()

    def delete(self, db: Session, family: str, assessment_id: UUID, user_id: UUID) -> None:
        assessment = self.get_owned(db, family, assessment_id, user_id)

        attempts = self.count_attempts(db, assessment.id)
        if attempts > 0:
            raise ForbiddenError(f"Assessment has {attempts} attempts and cannot be deleted")

        db.delete(assessment)
        db.commit()
        cache_service.invalidate_assessment(str(assessment_id))

        logger.info(f"Assessment deleted: {assessment_id}")


# Global instance
assessment_service = AssessmentService()
