"""
Attempt orchestration: quota checks, grading, transactional persistence

Flow for a submission:
1. Load the assessment (published/active, inside its availability window)
2. Grade every response that matches a question of the assessment
3. Aggregate score, percentage and pass flag
4. Under the per-(assessment, user) lock, count attempts, enforce the quota
   and insert the attempt with all its responses in one commit; a unique
   constraint conflict triggers a re-count and retry
"""
import logging
import threading
from contextlib import contextmanager
from datetime import timedelta
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.database import utcnow
from app.exceptions import (
    AttemptsExhaustedError,
    ForbiddenError,
    InternalError,
    NotFoundError,
    ValidationError,
)
from app.models import Assessment, Attempt, Question, Response
from app.schemas.assessment import CorrectAnswerOut, OptionOut
from app.schemas.attempt import (
    AssessmentOverview,
    AssessmentSubmission,
    AttemptAssessment,
    AttemptDetail,
    AttemptDetailSummary,
    AttemptListItem,
    AttemptResponseDetail,
    AttemptResult,
    AttemptSummary,
    GradedAttempt,
    GradedResponse,
    ResponseSubmission,
    SubmissionFeedback,
    SubmissionResults,
    UserAnswer,
    UserProgress,
)
from app.services.assessment_service import assessment_out, assessment_service
from app.services.grading_service import GradeResult, SubmittedAnswer, grading_service, normalize_date
from app.services.reporting_service import GradingPolicy, feedback_message, get_policy, letter_grade

logger = logging.getLogger(__name__)


class AttemptLedger:
    """
    Serializes attempt-number assignment per (assessment, user)

    Lock striping keeps memory bounded: each key maps onto one of a fixed
    set of locks. Serialization only covers this process; the database
    unique constraint covers the rest.
    """

    def __init__(self, stripes: int = 64):
        self._locks = [threading.Lock() for _ in range(stripes)]

    @contextmanager
    def slot(self, assessment_id: UUID, user_id: UUID):
        lock = self._locks[hash((str(assessment_id), str(user_id))) % len(self._locks)]
        with lock:
            yield


def attempts_remaining(policy: GradingPolicy, assessment: Assessment, attempts_taken: int) -> Optional[int]:
    """None means unlimited"""
    if not policy.enforce_attempt_limit or assessment.max_attempts is None:
        return None
    return max(assessment.max_attempts - attempts_taken, 0)


def percentage_of(total_score: float, max_score: float) -> float:
    return (total_score / max_score * 100) if max_score > 0 else 0.0


class AttemptService:
    """Service for submitting assessments and reading attempts back"""

    def __init__(self):
        self.ledger = AttemptLedger()

    # ---- submission ----------------------------------------------------

    def submit(
        self,
        db: Session,
        family: str,
        assessment_id: UUID,
        user_id: UUID,
        submission: AssessmentSubmission
    ) -> AttemptResult:
        """
        Grade a submission and persist it as a new attempt

        Raises:
            NotFoundError / ForbiddenError: assessment not available
            AttemptsExhaustedError: quota used up, nothing persisted
            ValidationError: the same question answered twice
            InternalError: persistence failed, nothing persisted
        """
        policy = get_policy(family)
        assessment = assessment_service.get_available(db, family, assessment_id)

        logger.info(f"User {user_id} submitting assessment {assessment_id} ({family})")

        self._check_duplicates(submission.responses)

        graded = self.grade_submission(assessment.questions, submission.responses)

        total_score = sum(result.points_earned for _, _, result in graded)
        max_score = sum(q.points for q in assessment.questions)
        percentage = percentage_of(total_score, max_score)
        passed = percentage >= assessment.passing_score

        attempt = self._persist(db, policy, assessment, user_id, submission, graded, {
            "total_score": total_score,
            "max_score": max_score,
            "percentage": percentage,
            "passed": passed,
        })

        correct_count = sum(1 for _, _, r in graded if r.is_correct is True)
        incorrect_count = sum(1 for _, _, r in graded if r.is_correct is False)
        remaining = attempts_remaining(policy, assessment, attempt.attempt_number)

        logger.info(
            f"Attempt {attempt.attempt_number} saved for user {user_id}: "
            f"{total_score}/{max_score} ({percentage:.2f}%) - {'PASSED' if passed else 'FAILED'}, "
            f"{correct_count}/{len(graded)} correct"
        )

        is_owner = assessment.created_by == user_id
        responses = [
            self._graded_response(assessment, question, result, is_owner)
            for _, question, result in graded
        ]

        return AttemptResult(
            attempt=AttemptSummary.model_validate(attempt),
            results=SubmissionResults(
                total_questions=len(assessment.questions),
                answered_questions=len(graded),
                correct_answers=correct_count,
                incorrect_answers=incorrect_count,
                ungraded_answers=len(graded) - correct_count - incorrect_count,
                total_score=round(total_score, 2),
                max_score=round(max_score, 2),
                percentage=round(percentage, 2),
                passing_score=assessment.passing_score,
                passed=passed,
                grade=letter_grade(percentage, policy.letter_grades),
            ),
            responses=responses,
            feedback=SubmissionFeedback(**feedback_message(passed, remaining)),
        )

    def _check_duplicates(self, responses: List[ResponseSubmission]) -> None:
        seen = set()
        for response in responses:
            if response.question_id in seen:
                raise ValidationError(f"Question {response.question_id} answered more than once")
            seen.add(response.question_id)

    def grade_submission(
        self,
        questions: List[Question],
        responses: List[ResponseSubmission]
    ) -> List[Tuple[ResponseSubmission, Question, GradeResult]]:
        """
        Grade each response whose question belongs to the assessment

        Responses for unknown questions are skipped. Questions left
        unanswered produce no entry; they only count towards the max score.
        """
        questions_by_id: Dict[str, Question] = {str(q.id): q for q in questions}
        graded = []

        for response in responses:
            question = questions_by_id.get(str(response.question_id))
            if question is None:
                logger.warning(f"Question not found in assessment, skipping: {response.question_id}")
                continue

            answer = SubmittedAnswer(
                text_answer=response.text_answer,
                numeric_answer=response.numeric_answer,
                date_answer=response.date_answer,
                selected_options=response.selected_options,
                file_urls=response.file_urls,
            )
            result = grading_service.grade(question, question.correct_answer, answer)
            graded.append((response, question, result))

        return graded

    def _persist(
        self,
        db: Session,
        policy: GradingPolicy,
        assessment: Assessment,
        user_id: UUID,
        submission: AssessmentSubmission,
        graded: List[Tuple[ResponseSubmission, Question, GradeResult]],
        totals: dict
    ) -> Attempt:
        """Insert the attempt and its responses in one transaction"""
        assessment_id = assessment.id
        max_attempts = assessment.max_attempts

        with self.ledger.slot(assessment_id, user_id):
            for retry in range(settings.ATTEMPT_NUMBER_RETRIES):
                attempt_count = self.count_attempts(db, assessment_id, user_id)

                if policy.enforce_attempt_limit and max_attempts is not None and attempt_count >= max_attempts:
                    logger.warning(
                        f"User {user_id} exhausted attempts for {assessment_id} "
                        f"({attempt_count}/{max_attempts})"
                    )
                    raise AttemptsExhaustedError()

                attempt = self._build_attempt(assessment_id, user_id, attempt_count + 1, submission, graded, totals)
                db.add(attempt)

                try:
                    db.commit()
                    return attempt
                except IntegrityError:
                    db.rollback()
                    logger.warning(
                        f"Attempt number {attempt_count + 1} taken for user {user_id} on "
                        f"{assessment_id}, retrying ({retry + 1}/{settings.ATTEMPT_NUMBER_RETRIES})"
                    )
                except SQLAlchemyError as e:
                    db.rollback()
                    logger.error(f"Failed to save attempt: {str(e)}", exc_info=True)
                    raise InternalError("Failed to save assessment attempt") from e

        raise InternalError("Could not assign an attempt number, please try again")

    def count_attempts(self, db: Session, assessment_id: UUID, user_id: UUID) -> int:
        return assessment_service.count_attempts(db, assessment_id, user_id)

    def _build_attempt(
        self,
        assessment_id: UUID,
        user_id: UUID,
        attempt_number: int,
        submission: AssessmentSubmission,
        graded: List[Tuple[ResponseSubmission, Question, GradeResult]],
        totals: dict
    ) -> Attempt:
        now = utcnow()
        time_spent = submission.time_spent or 0

        return Attempt(
            assessment_id=assessment_id,
            user_id=user_id,
            attempt_number=attempt_number,
            status="SUBMITTED",
            started_at=now - timedelta(seconds=time_spent),
            submitted_at=now,
            time_spent=time_spent,
            is_graded=True,
            graded_at=now,
            responses=[
                Response(
                    question_id=question.id,
                    user_id=user_id,
                    text_answer=response.text_answer,
                    numeric_answer=response.numeric_answer,
                    date_answer=normalize_date(response.date_answer),
                    selected_options=list(response.selected_options),
                    file_urls=list(response.file_urls),
                    is_correct=result.is_correct,
                    points_earned=result.points_earned,
                    max_points=question.points,
                    feedback=result.feedback,
                    time_spent=response.time_spent or 0,
                    is_graded=True,
                )
                for response, question, result in graded
            ],
            **totals
        )

    def _graded_response(
        self,
        assessment: Assessment,
        question: Question,
        result: GradeResult,
        is_owner: bool
    ) -> GradedResponse:
        """Per-question breakdown, redacted per the assessment flags for learners"""
        show_answers = is_owner or assessment.show_correct_answers
        show_feedback = is_owner or assessment.show_feedback

        return GradedResponse(
            question_id=question.id,
            question_text=question.question_text,
            question_type=question.question_type,
            max_points=question.points,
            is_correct=result.is_correct,
            points_earned=result.points_earned,
            feedback=result.feedback if show_feedback else None,
            explanation=question.explanation if show_feedback else None,
            correct_answer=result.correct_answer if show_answers else None,
            selected_answer=result.selected_answer if show_answers else None,
        )

    # ---- reads ---------------------------------------------------------

    def get_overview(self, db: Session, family: str, assessment_id: UUID, user_id: UUID) -> AssessmentOverview:
        """Assessment metadata, the caller's attempts and eligibility"""
        policy = get_policy(family)
        assessment = assessment_service.get_available(db, family, assessment_id)

        attempts = db.query(Attempt).filter(
            Attempt.assessment_id == assessment.id,
            Attempt.user_id == user_id
        ).order_by(Attempt.attempt_number.desc()).all()

        summaries = [AttemptSummary.model_validate(a) for a in attempts]
        remaining = attempts_remaining(policy, assessment, len(attempts))

        return AssessmentOverview(
            assessment=assessment_out(assessment),
            user_progress=UserProgress(
                attempts_taken=len(attempts),
                attempts_remaining=remaining,
                max_attempts=assessment.max_attempts if policy.enforce_attempt_limit else None,
                can_take_assessment=remaining is None or remaining > 0,
                latest_attempt=summaries[0] if summaries else None,
            ),
            attempts=summaries,
        )

    def list_attempts(
        self,
        db: Session,
        family: str,
        user_id: UUID,
        assessment_id: Optional[UUID] = None
    ) -> List[AttemptListItem]:
        """The caller's own attempts in this family, newest first"""
        query = db.query(Attempt, Assessment.title).join(
            Assessment, Attempt.assessment_id == Assessment.id
        ).filter(
            Attempt.user_id == user_id,
            Assessment.family == family
        )

        if assessment_id is not None:
            query = query.filter(Attempt.assessment_id == assessment_id)

        rows = query.order_by(Attempt.submitted_at.desc()).all()
        logger.info(f"Retrieved {len(rows)} attempts for user {user_id} ({family})")

        return [
            AttemptListItem(
                **AttemptSummary.model_validate(attempt).model_dump(),
                assessment_title=title,
            )
            for attempt, title in rows
        ]

    def get_attempt_detail(self, db: Session, family: str, attempt_id: UUID, user_id: UUID) -> AttemptDetail:
        """
        One attempt with its responses; only the attempt's own user may read it
        """
        attempt = db.query(Attempt).join(
            Assessment, Attempt.assessment_id == Assessment.id
        ).filter(
            Attempt.id == attempt_id,
            Assessment.family == family
        ).first()

        if not attempt:
            raise NotFoundError("Attempt not found")

        if attempt.user_id != user_id:
            logger.warning(f"User {user_id} tried to access attempt {attempt_id} belonging to {attempt.user_id}")
            raise ForbiddenError("You can only view your own attempts")

        assessment = attempt.assessment
        policy = get_policy(family)
        is_owner = assessment.created_by == user_id
        show_answers = is_owner or assessment.show_correct_answers
        show_feedback = is_owner or assessment.show_feedback

        responses = sorted(attempt.responses, key=lambda r: r.question.order)
        details = []
        for response in responses:
            question = response.question
            correct = question.correct_answer
            details.append(AttemptResponseDetail(
                question_id=question.id,
                question_text=question.question_text,
                question_type=question.question_type,
                points=question.points,
                order=question.order,
                options=[OptionOut.model_validate(o) for o in question.options],
                user_answer=UserAnswer(
                    text_answer=response.text_answer,
                    numeric_answer=response.numeric_answer,
                    date_answer=response.date_answer,
                    selected_options=response.selected_options or [],
                    file_urls=response.file_urls or [],
                ),
                is_correct=response.is_correct,
                points_earned=response.points_earned,
                max_points=response.max_points,
                feedback=response.feedback if show_feedback else None,
                time_spent=response.time_spent,
                correct_answer=CorrectAnswerOut.model_validate(correct) if show_answers and correct else None,
                explanation=question.explanation if show_feedback else None,
            ))

        return AttemptDetail(
            attempt=GradedAttempt(
                **AttemptSummary.model_validate(attempt).model_dump(),
                grade=letter_grade(attempt.percentage, policy.letter_grades),
            ),
            assessment=AttemptAssessment.model_validate(assessment),
            summary=AttemptDetailSummary(
                total_questions=len(responses),
                correct_answers=sum(1 for r in responses if r.is_correct is True),
                incorrect_answers=sum(1 for r in responses if r.is_correct is False),
                ungraded_questions=sum(1 for r in responses if r.is_correct is None),
            ),
            responses=details,
        )


# Global instance
attempt_service = AttemptService()
