"""
Shared fixtures: a throwaway SQLite database, Redis disabled, and builders
for assessments and their questions.
"""
import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="assessment-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["REDIS_URL"] = "redis://127.0.0.1:6399/0"
os.environ["RATE_LIMIT_ENABLED"] = "false"

import uuid
from datetime import date

import pytest
from fastapi.testclient import TestClient

import app.models  # noqa: F401
from app.database import Base, SessionLocal, engine
from app.models import Assessment, CorrectAnswer, Option, Question
from app.utils.cache import cache_service


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture(autouse=True)
def no_redis(monkeypatch):
    monkeypatch.setattr(cache_service, "redis_client", None)


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client():
    from app.main import app
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def learner_id():
    return uuid.uuid4()


def headers_for(user_id):
    return {"X-User-Id": str(user_id)}


@pytest.fixture
def auth():
    """Build the identity header the gateway would forward"""
    return headers_for


class AssessmentBuilder:
    """Creates published assessments with questions directly through the ORM"""

    def __init__(self, db, owner_id):
        self.db = db
        self.owner_id = owner_id

    def assessment(self, family="library", **overrides):
        fields = dict(
            family=family,
            title="Fractions quiz",
            status="PUBLISHED",
            created_by=self.owner_id,
            max_attempts=None,
            passing_score=50.0,
            show_correct_answers=True,
            show_feedback=True,
        )
        fields.update(overrides)
        assessment = Assessment(**fields)
        self.db.add(assessment)
        self.db.commit()
        return assessment

    def choice_question(self, assessment, options=("A", "B", "C", "D"), correct=("B",),
                        points=10.0, question_type="MULTIPLE_CHOICE_SINGLE", order=None):
        """Returns (question, {option text: option id})"""
        question = Question(
            id=uuid.uuid4(),
            question_text=f"Pick {', '.join(correct)}",
            question_type=question_type,
            points=points,
            order=order if order is not None else len(assessment.questions),
            explanation="Because it is.",
        )
        question.options = [
            Option(id=uuid.uuid4(), option_text=text, order=i, is_correct=text in correct)
            for i, text in enumerate(options)
        ]
        ids = {opt.option_text: str(opt.id) for opt in question.options}
        if correct:
            question.correct_answer = CorrectAnswer(option_ids=[ids[c] for c in correct])
        self._attach(assessment, question)
        return question, ids

    def question(self, assessment, question_type, points=5.0, answer_text=None,
                 answer_number=None, answer_date=None, order=None, with_answer=True):
        question = Question(
            id=uuid.uuid4(),
            question_text=f"{question_type} question",
            question_type=question_type,
            points=points,
            order=order if order is not None else len(assessment.questions),
            explanation="See chapter 2.",
        )
        if with_answer:
            question.correct_answer = CorrectAnswer(
                answer_text=answer_text,
                answer_number=answer_number,
                answer_date=answer_date,
            )
        self._attach(assessment, question)
        return question

    def _attach(self, assessment, question):
        assessment.questions.append(question)
        assessment.total_points = sum(q.points for q in assessment.questions)
        self.db.commit()


@pytest.fixture
def builder(db, owner_id):
    return AssessmentBuilder(db, owner_id)


@pytest.fixture
def sample_date():
    return date(2024, 3, 15)
