"""
Assessment grading engine
Deterministic, all-or-nothing grading of a single response

Dispatch by question type:
- Choice questions: option id comparison
- Short answer / fill in blank: trimmed, case-insensitive exact match
- Numeric: exact numeric equality
- Date: calendar-date equality
- Long answer, file upload, matching, ordering, rating scale: manual grading
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, List, Optional

logger = logging.getLogger(__name__)


class QuestionType(str, Enum):
    MULTIPLE_CHOICE_SINGLE = "MULTIPLE_CHOICE_SINGLE"
    MULTIPLE_CHOICE_MULTIPLE = "MULTIPLE_CHOICE_MULTIPLE"
    TRUE_FALSE = "TRUE_FALSE"
    SHORT_ANSWER = "SHORT_ANSWER"
    FILL_IN_BLANK = "FILL_IN_BLANK"
    NUMERIC = "NUMERIC"
    DATE = "DATE"
    LONG_ANSWER = "LONG_ANSWER"
    FILE_UPLOAD = "FILE_UPLOAD"
    MATCHING = "MATCHING"
    ORDERING = "ORDERING"
    RATING_SCALE = "RATING_SCALE"


CHOICE_TYPES = {
    QuestionType.MULTIPLE_CHOICE_SINGLE,
    QuestionType.MULTIPLE_CHOICE_MULTIPLE,
    QuestionType.TRUE_FALSE,
}

MANUAL_TYPES = {
    QuestionType.LONG_ANSWER,
    QuestionType.FILE_UPLOAD,
    QuestionType.MATCHING,
    QuestionType.ORDERING,
    QuestionType.RATING_SCALE,
}

NO_CORRECT_ANSWER_FEEDBACK = (
    "This question requires manual grading or has no correct answer defined."
)
MANUAL_GRADING_FEEDBACK = "This response requires manual grading"
UNKNOWN_TYPE_FEEDBACK = "Unknown question type"


@dataclass
class SubmittedAnswer:
    """Learner's answer to one question, in whichever shape the type uses"""
    text_answer: Optional[str] = None
    numeric_answer: Optional[float] = None
    date_answer: Optional[Any] = None
    selected_options: List[str] = field(default_factory=list)
    file_urls: List[str] = field(default_factory=list)


@dataclass
class GradeResult:
    is_correct: Optional[bool]
    points_earned: float
    correct_answer: Any = None
    selected_answer: Any = None
    feedback: Optional[str] = None


def _ungraded(feedback: str) -> GradeResult:
    return GradeResult(is_correct=None, points_earned=0.0, feedback=feedback)


def normalize_date(value: Any) -> Optional[date]:
    """
    Reduce a date, datetime or ISO string to its calendar date

    Aware datetimes are converted to UTC first. Unparseable input yields None.
    """
    if value is None:
        return None
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    return None


def has_correct_answer(correct_answer: Any) -> bool:
    """True when a correct-answer spec exists and carries at least one value"""
    if correct_answer is None:
        return False
    return bool(
        (correct_answer.answer_text or "").strip()
        or correct_answer.answer_number is not None
        or correct_answer.answer_date is not None
        or correct_answer.option_ids
    )


class GradingService:
    """
    Service for grading individual responses

    Pure computation: no I/O, no randomness. Every input maps to a
    GradeResult; a missing or malformed answer grades as incorrect.
    """

    def grade(
        self,
        question: Any,
        correct_answer: Any,
        response: Optional[SubmittedAnswer],
    ) -> GradeResult:
        """
        Grade one response against the question's correct answer

        Args:
            question: Object exposing ``question_type`` and ``points``
            correct_answer: Object exposing ``answer_text``, ``answer_number``,
                ``answer_date`` and ``option_ids``; None when undefined
            response: Submitted answer, or None when the learner gave none

        Returns:
            GradeResult with ``points_earned`` equal to ``question.points``
            when correct and 0 otherwise
        """
        if not has_correct_answer(correct_answer):
            return _ungraded(NO_CORRECT_ANSWER_FEEDBACK)

        response = response or SubmittedAnswer()

        try:
            q_type = QuestionType(question.question_type)
        except ValueError:
            logger.warning(f"Unknown question type: {question.question_type}")
            return GradeResult(is_correct=False, points_earned=0.0, feedback=UNKNOWN_TYPE_FEEDBACK)

        if q_type in (QuestionType.MULTIPLE_CHOICE_SINGLE, QuestionType.TRUE_FALSE):
            result = self._grade_single_choice(question, correct_answer, response)
        elif q_type == QuestionType.MULTIPLE_CHOICE_MULTIPLE:
            result = self._grade_multiple_choice(question, correct_answer, response)
        elif q_type in (QuestionType.SHORT_ANSWER, QuestionType.FILL_IN_BLANK):
            result = self._grade_short_answer(question, correct_answer, response)
        elif q_type == QuestionType.NUMERIC:
            result = self._grade_numeric(question, correct_answer, response)
        elif q_type == QuestionType.DATE:
            result = self._grade_date(question, correct_answer, response)
        else:
            result = _ungraded(MANUAL_GRADING_FEEDBACK)

        logger.debug(
            f"Graded {q_type.value}: correct={result.is_correct}, "
            f"points={result.points_earned}/{question.points}"
        )
        return result

    def _award(self, question: Any, is_correct: bool, correct: Any, selected: Any) -> GradeResult:
        return GradeResult(
            is_correct=is_correct,
            points_earned=float(question.points) if is_correct else 0.0,
            correct_answer=correct,
            selected_answer=selected,
        )

    def _grade_single_choice(self, question, correct_answer, response) -> GradeResult:
        if not correct_answer.option_ids:
            return _ungraded(NO_CORRECT_ANSWER_FEEDBACK)

        selected = response.selected_options[0] if response.selected_options else None
        correct_id = str(correct_answer.option_ids[0])
        is_correct = selected is not None and str(selected) == correct_id

        return self._award(question, is_correct, correct_id, selected)

    def _grade_multiple_choice(self, question, correct_answer, response) -> GradeResult:
        if not correct_answer.option_ids:
            return _ungraded(NO_CORRECT_ANSWER_FEEDBACK)

        selected = [str(opt) for opt in (response.selected_options or [])]
        correct = [str(opt) for opt in correct_answer.option_ids]

        # Order is irrelevant; duplicates make the cardinality differ
        is_correct = len(selected) == len(correct) and set(selected) == set(correct)

        return self._award(question, is_correct, correct, selected)

    def _grade_short_answer(self, question, correct_answer, response) -> GradeResult:
        if not (correct_answer.answer_text or "").strip():
            return _ungraded(NO_CORRECT_ANSWER_FEEDBACK)

        user_answer = (response.text_answer or "").strip().lower()
        correct_text = correct_answer.answer_text.strip().lower()
        is_correct = user_answer == correct_text

        return self._award(question, is_correct, correct_answer.answer_text, response.text_answer)

    def _grade_numeric(self, question, correct_answer, response) -> GradeResult:
        if correct_answer.answer_number is None:
            return _ungraded(NO_CORRECT_ANSWER_FEEDBACK)

        submitted = response.numeric_answer
        try:
            is_correct = submitted is not None and float(submitted) == float(correct_answer.answer_number)
        except (TypeError, ValueError):
            is_correct = False

        return self._award(question, is_correct, correct_answer.answer_number, submitted)

    def _grade_date(self, question, correct_answer, response) -> GradeResult:
        correct_date = normalize_date(correct_answer.answer_date)
        if correct_date is None:
            return _ungraded(NO_CORRECT_ANSWER_FEEDBACK)

        user_date = normalize_date(response.date_answer)
        is_correct = user_date is not None and user_date == correct_date

        return self._award(
            question,
            is_correct,
            correct_date.isoformat(),
            user_date.isoformat() if user_date else None,
        )


# Global instance
grading_service = GradingService()
