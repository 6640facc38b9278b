"""
Grade reporting: letter grades, pass/fail feedback and per-family grading policies
"""
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from app.config import settings

# (minimum percentage, letter), checked top to bottom
LETTER_GRADE_TABLES: Dict[str, List[Tuple[float, str]]] = {
    "simple": [(90, "A"), (80, "B"), (70, "C"), (60, "D")],
    "plus_minus": [(90, "A+"), (80, "A"), (70, "B"), (60, "C"), (50, "D")],
}

PASSED_MESSAGE = "Congratulations! You passed the assessment."
FAILED_MESSAGE = "Keep studying! You can retake the assessment."


@dataclass(frozen=True)
class GradingPolicy:
    """
    How one assessment family scores and limits attempts

    ``partial_credit`` is off for every family: each question scores its full
    points or nothing. It is exposed so callers can report the rule.
    """
    family: str
    letter_grades: str = "simple"
    enforce_attempt_limit: bool = True
    partial_credit: bool = False
    default_passing_score: float = settings.DEFAULT_PASSING_SCORE


POLICIES: Dict[str, GradingPolicy] = {
    "library": GradingPolicy(family="library", letter_grades="simple"),
    "exam-body": GradingPolicy(family="exam-body", letter_grades="plus_minus"),
    "explore": GradingPolicy(family="explore", letter_grades="simple", enforce_attempt_limit=False),
}

FAMILIES = tuple(POLICIES)


def get_policy(family: str) -> GradingPolicy:
    try:
        return POLICIES[family]
    except KeyError:
        raise ValueError(f"Unknown assessment family: {family}")


def letter_grade(percentage: float, strategy: str = "simple") -> str:
    """
    Map a percentage to a letter grade

    Args:
        percentage: Score percentage (0-100)
        strategy: "simple" (A-D, F) or "plus_minus" (A+ to D, F)
    """
    if strategy not in LETTER_GRADE_TABLES:
        raise ValueError(f"Unknown letter grade strategy: {strategy}")

    for threshold, letter in LETTER_GRADE_TABLES[strategy]:
        if percentage >= threshold:
            return letter
    return "F"


def feedback_message(passed: bool, attempts_remaining: Optional[int]) -> Dict[str, Any]:
    """Pass/fail message shown after a submission"""
    return {
        "message": PASSED_MESSAGE if passed else FAILED_MESSAGE,
        "attempts_remaining": attempts_remaining,
    }
