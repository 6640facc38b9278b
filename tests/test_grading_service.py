"""
Tests for the grading engine: per-type comparison rules, the ungraded
sentinel, determinism and all-or-nothing scoring.
"""
from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from app.services.grading_service import (
    GradingService,
    QuestionType,
    SubmittedAnswer,
    normalize_date,
)


@pytest.fixture
def grader():
    return GradingService()


def question(question_type, points=10):
    return SimpleNamespace(question_type=question_type, points=points)


def correct(answer_text=None, answer_number=None, answer_date=None, option_ids=None):
    return SimpleNamespace(
        answer_text=answer_text,
        answer_number=answer_number,
        answer_date=answer_date,
        option_ids=option_ids,
    )


class TestSingleChoice:

    def test_selected_correct_option(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_SINGLE"), correct(option_ids=["B"]),
                              SubmittedAnswer(selected_options=["B"]))
        assert result.is_correct is True
        assert result.points_earned == 10
        assert result.correct_answer == "B"
        assert result.selected_answer == "B"

    def test_selected_wrong_option(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_SINGLE"), correct(option_ids=["B"]),
                              SubmittedAnswer(selected_options=["A"]))
        assert result.is_correct is False
        assert result.points_earned == 0

    def test_no_submission(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_SINGLE"), correct(option_ids=["B"]), None)
        assert result.is_correct is False
        assert result.points_earned == 0

    def test_true_false_uses_same_rule(self, grader):
        spec = correct(option_ids=["true-id"])
        assert grader.grade(question("TRUE_FALSE", 2), spec,
                            SubmittedAnswer(selected_options=["true-id"])).points_earned == 2
        assert grader.grade(question("TRUE_FALSE", 2), spec,
                            SubmittedAnswer(selected_options=["false-id"])).is_correct is False

    def test_only_first_selected_option_counts(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_SINGLE"), correct(option_ids=["B"]),
                              SubmittedAnswer(selected_options=["A", "B"]))
        assert result.is_correct is False


class TestMultipleChoice:

    spec = correct(option_ids=["A", "C"])

    def test_same_set_different_order(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_MULTIPLE", 5), self.spec,
                              SubmittedAnswer(selected_options=["C", "A"]))
        assert result.is_correct is True
        assert result.points_earned == 5

    def test_subset_is_incorrect(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_MULTIPLE", 5), self.spec,
                              SubmittedAnswer(selected_options=["A"]))
        assert result.is_correct is False
        assert result.points_earned == 0

    def test_superset_is_incorrect(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_MULTIPLE", 5), self.spec,
                              SubmittedAnswer(selected_options=["A", "B", "C"]))
        assert result.is_correct is False

    def test_duplicates_do_not_pass(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_MULTIPLE", 5), self.spec,
                              SubmittedAnswer(selected_options=["A", "A"]))
        assert result.is_correct is False

    def test_nothing_selected(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_MULTIPLE", 5), self.spec, SubmittedAnswer())
        assert result.is_correct is False


class TestShortAnswer:

    def test_trim_and_case_normalization(self, grader):
        result = grader.grade(question("SHORT_ANSWER"), correct(answer_text="Paris"),
                              SubmittedAnswer(text_answer="  paris "))
        assert result.is_correct is True
        assert result.points_earned == 10

    def test_no_fuzzy_matching(self, grader):
        result = grader.grade(question("SHORT_ANSWER"), correct(answer_text="Paris"),
                              SubmittedAnswer(text_answer="Pariss"))
        assert result.is_correct is False

    def test_fill_in_blank_uses_same_rule(self, grader):
        result = grader.grade(question("FILL_IN_BLANK"), correct(answer_text=" Photosynthesis"),
                              SubmittedAnswer(text_answer="PHOTOSYNTHESIS"))
        assert result.is_correct is True

    def test_empty_answer(self, grader):
        result = grader.grade(question("SHORT_ANSWER"), correct(answer_text="Paris"),
                              SubmittedAnswer(text_answer="   "))
        assert result.is_correct is False


class TestNumeric:

    spec = correct(answer_number=42)

    def test_exact_integer(self, grader):
        assert grader.grade(question("NUMERIC"), self.spec,
                            SubmittedAnswer(numeric_answer=42)).is_correct is True

    def test_float_equal_value(self, grader):
        assert grader.grade(question("NUMERIC"), self.spec,
                            SubmittedAnswer(numeric_answer=42.0)).is_correct is True

    def test_no_tolerance(self, grader):
        result = grader.grade(question("NUMERIC"), self.spec, SubmittedAnswer(numeric_answer=42.01))
        assert result.is_correct is False
        assert result.points_earned == 0

    def test_missing_number(self, grader):
        assert grader.grade(question("NUMERIC"), self.spec, SubmittedAnswer()).is_correct is False

    def test_zero_is_a_real_answer(self, grader):
        result = grader.grade(question("NUMERIC"), correct(answer_number=0),
                              SubmittedAnswer(numeric_answer=0))
        assert result.is_correct is True


class TestDate:

    def test_same_calendar_date_ignores_time(self, grader, sample_date):
        result = grader.grade(question("DATE"), correct(answer_date=sample_date),
                              SubmittedAnswer(date_answer="2024-03-15T17:45:00"))
        assert result.is_correct is True
        assert result.correct_answer == "2024-03-15"
        assert result.selected_answer == "2024-03-15"

    def test_different_date(self, grader, sample_date):
        result = grader.grade(question("DATE"), correct(answer_date=sample_date),
                              SubmittedAnswer(date_answer="2024-03-16"))
        assert result.is_correct is False

    def test_aware_datetime_compared_in_utc(self, grader, sample_date):
        # 01:00 on the 16th at UTC+2 is 23:00 on the 15th in UTC
        tz = timezone(timedelta(hours=2))
        submitted = datetime(2024, 3, 16, 1, 0, tzinfo=tz)
        result = grader.grade(question("DATE"), correct(answer_date=sample_date),
                              SubmittedAnswer(date_answer=submitted))
        assert result.is_correct is True

    def test_malformed_date_is_no_answer(self, grader, sample_date):
        result = grader.grade(question("DATE"), correct(answer_date=sample_date),
                              SubmittedAnswer(date_answer="next tuesday"))
        assert result.is_correct is False
        assert result.selected_answer is None


class TestUngraded:
    """Manual types and the missing-answer sentinel"""

    @pytest.mark.parametrize("question_type", [
        "LONG_ANSWER", "FILE_UPLOAD", "MATCHING", "ORDERING", "RATING_SCALE",
    ])
    def test_manual_types_always_null(self, grader, question_type):
        result = grader.grade(question(question_type), correct(answer_text="anything"),
                              SubmittedAnswer(text_answer="anything", file_urls=["https://x/y.pdf"]))
        assert result.is_correct is None
        assert result.points_earned == 0
        assert "manual grading" in result.feedback

    def test_missing_correct_answer_spec(self, grader):
        result = grader.grade(question("MULTIPLE_CHOICE_SINGLE"), None,
                              SubmittedAnswer(selected_options=["B"]))
        assert result.is_correct is None
        assert result.points_earned == 0

    def test_empty_correct_answer_spec(self, grader):
        result = grader.grade(question("SHORT_ANSWER"), correct(answer_text="   "),
                              SubmittedAnswer(text_answer=""))
        assert result.is_correct is None

    def test_spec_without_field_for_type(self, grader):
        result = grader.grade(question("NUMERIC"), correct(answer_text="42"),
                              SubmittedAnswer(numeric_answer=42))
        assert result.is_correct is None
        assert result.points_earned == 0

    def test_unknown_type_is_false_not_null(self, grader):
        result = grader.grade(question("ESSAY_PLUS"), correct(answer_text="x"),
                              SubmittedAnswer(text_answer="x"))
        assert result.is_correct is False
        assert result.points_earned == 0
        assert result.feedback == "Unknown question type"

    def test_unknown_type_without_spec_is_null(self, grader):
        result = grader.grade(question("ESSAY_PLUS"), None, SubmittedAnswer(text_answer="x"))
        assert result.is_correct is None


GRADABLE_CASES = [
    ("MULTIPLE_CHOICE_SINGLE", correct(option_ids=["B"]), SubmittedAnswer(selected_options=["B"])),
    ("MULTIPLE_CHOICE_SINGLE", correct(option_ids=["B"]), SubmittedAnswer(selected_options=["C"])),
    ("MULTIPLE_CHOICE_MULTIPLE", correct(option_ids=["A", "C"]), SubmittedAnswer(selected_options=["C", "A"])),
    ("TRUE_FALSE", correct(option_ids=["t"]), SubmittedAnswer()),
    ("SHORT_ANSWER", correct(answer_text="Paris"), SubmittedAnswer(text_answer="paris")),
    ("FILL_IN_BLANK", correct(answer_text="x"), SubmittedAnswer(text_answer="y")),
    ("NUMERIC", correct(answer_number=3.5), SubmittedAnswer(numeric_answer=3.5)),
    ("DATE", correct(answer_date=date(2020, 1, 1)), SubmittedAnswer(date_answer="2020-01-01")),
]


@pytest.mark.parametrize("question_type,spec,answer", GRADABLE_CASES)
def test_grading_is_deterministic(grader, question_type, spec, answer):
    first = grader.grade(question(question_type, 7), spec, answer)
    second = grader.grade(question(question_type, 7), spec, answer)
    assert first == second


@pytest.mark.parametrize("question_type,spec,answer", GRADABLE_CASES)
def test_points_are_all_or_nothing(grader, question_type, spec, answer):
    result = grader.grade(question(question_type, 7.5), spec, answer)
    assert result.points_earned in (0, 7.5)
    assert (result.points_earned == 7.5) == (result.is_correct is True)


def test_every_enum_member_is_handled(grader):
    for question_type in QuestionType:
        result = grader.grade(question(question_type.value), correct(answer_text="a", option_ids=["a"],
                                                                    answer_number=1, answer_date=date.today()),
                              SubmittedAnswer())
        assert result.feedback != "Unknown question type"


class TestNormalizeDate:

    def test_date_passthrough(self, sample_date):
        assert normalize_date(sample_date) == sample_date

    def test_zulu_suffix(self):
        assert normalize_date("2024-03-15T23:30:00.000Z") == date(2024, 3, 15)

    def test_none(self):
        assert normalize_date(None) is None
