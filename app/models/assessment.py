"""
Assessment, question, option and correct-answer models
"""
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text, Date, DateTime, ForeignKey, JSON, Uuid,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from app.database import Base, utcnow
import uuid

JSONType = JSON().with_variant(JSONB, "postgresql")


class Assessment(Base):
    """
    Assessments table - one row per assessment in any family
    (library, exam-body, explore)
    """
    __tablename__ = "assessments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    family = Column(String(20), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    instructions = Column(Text)
    status = Column(String(20), nullable=False, default="DRAFT")
    created_by = Column(Uuid, nullable=False, index=True)
    max_attempts = Column(Integer, nullable=True)  # NULL = unlimited
    total_points = Column(Float, nullable=False, default=0.0)
    passing_score = Column(Float, nullable=False, default=50.0)
    show_correct_answers = Column(Boolean, nullable=False, default=False)
    show_feedback = Column(Boolean, nullable=False, default=True)
    shuffle_questions = Column(Boolean, nullable=False, default=False)
    shuffle_options = Column(Boolean, nullable=False, default=False)
    duration = Column(Integer)  # minutes
    start_date = Column(DateTime)
    end_date = Column(DateTime)
    published_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    questions = relationship(
        "Question",
        back_populates="assessment",
        order_by="Question.order",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Assessment(id={self.id}, family={self.family}, title={self.title})>"


class Question(Base):
    """
    Questions table - belongs to one assessment
    """
    __tablename__ = "assessment_questions"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id = Column(Uuid, ForeignKey("assessments.id"), nullable=False, index=True)
    question_text = Column(Text, nullable=False)
    question_type = Column(String(40), nullable=False)
    points = Column(Float, nullable=False, default=1.0)
    order = Column(Integer, nullable=False, default=0)
    hint_text = Column(Text)
    explanation = Column(Text)
    image_url = Column(String(500))
    difficulty_level = Column(String(20))
    created_at = Column(DateTime, default=utcnow)

    assessment = relationship("Assessment", back_populates="questions")
    options = relationship(
        "Option",
        back_populates="question",
        order_by="Option.order",
        cascade="all, delete-orphan",
    )
    correct_answer = relationship(
        "CorrectAnswer",
        back_populates="question",
        uselist=False,
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Question(id={self.id}, type={self.question_type}, points={self.points})>"


class Option(Base):
    """
    Options table - answer choices for choice-type questions
    """
    __tablename__ = "assessment_options"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(Uuid, ForeignKey("assessment_questions.id"), nullable=False, index=True)
    option_text = Column(Text, nullable=False)
    order = Column(Integer, nullable=False, default=0)
    is_correct = Column(Boolean, nullable=False, default=False)  # never exposed before submission
    image_url = Column(String(500))

    question = relationship("Question", back_populates="options")

    def __repr__(self):
        return f"<Option(id={self.id}, order={self.order})>"


class CorrectAnswer(Base):
    """
    Correct answers table - at most one per question; absence means manual grading
    """
    __tablename__ = "assessment_correct_answers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    question_id = Column(
        Uuid, ForeignKey("assessment_questions.id"), nullable=False, unique=True
    )
    answer_text = Column(Text)
    answer_number = Column(Float)
    answer_date = Column(Date)
    option_ids = Column(JSONType)  # ["<option uuid>", ...]

    question = relationship("Question", back_populates="correct_answer")

    def __repr__(self):
        return f"<CorrectAnswer(question_id={self.question_id})>"
