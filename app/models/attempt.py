"""
Attempt and response models - graded submissions
"""
from sqlalchemy import (
    Column, String, Integer, Float, Boolean, Text, Date, DateTime, ForeignKey,
    UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship
from app.database import Base, utcnow
from app.models.assessment import JSONType
import uuid


class Attempt(Base):
    """
    Attempts table - one graded submission of an assessment by a user
    """
    __tablename__ = "assessment_attempts"
    __table_args__ = (
        UniqueConstraint(
            "assessment_id", "user_id", "attempt_number", name="uq_attempt_number"
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    assessment_id = Column(Uuid, ForeignKey("assessments.id"), nullable=False, index=True)
    user_id = Column(Uuid, nullable=False, index=True)
    attempt_number = Column(Integer, nullable=False)
    status = Column(String(20), nullable=False, default="SUBMITTED")
    started_at = Column(DateTime)
    submitted_at = Column(DateTime)
    time_spent = Column(Integer, default=0)  # seconds, client reported
    total_score = Column(Float, nullable=False, default=0.0)
    max_score = Column(Float, nullable=False, default=0.0)
    percentage = Column(Float, nullable=False, default=0.0)
    passed = Column(Boolean, nullable=False, default=False)
    is_graded = Column(Boolean, nullable=False, default=False)
    graded_at = Column(DateTime)
    created_at = Column(DateTime, default=utcnow)

    assessment = relationship("Assessment")
    responses = relationship(
        "Response",
        back_populates="attempt",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return (
            f"<Attempt(user_id={self.user_id}, assessment_id={self.assessment_id}, "
            f"number={self.attempt_number}, score={self.total_score})>"
        )


class Response(Base):
    """
    Responses table - a submitted answer and its grading output
    """
    __tablename__ = "assessment_responses"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    attempt_id = Column(Uuid, ForeignKey("assessment_attempts.id"), nullable=False, index=True)
    question_id = Column(Uuid, ForeignKey("assessment_questions.id"), nullable=False)
    user_id = Column(Uuid, nullable=False)
    text_answer = Column(Text)
    numeric_answer = Column(Float)
    date_answer = Column(Date)
    selected_options = Column(JSONType)
    file_urls = Column(JSONType)
    is_correct = Column(Boolean, nullable=True)  # NULL = ungraded / manual
    points_earned = Column(Float, nullable=False, default=0.0)
    max_points = Column(Float, nullable=False, default=0.0)
    feedback = Column(Text)
    time_spent = Column(Integer, default=0)
    is_graded = Column(Boolean, nullable=False, default=True)

    attempt = relationship("Attempt", back_populates="responses")
    question = relationship("Question")

    def __repr__(self):
        return f"<Response(question_id={self.question_id}, correct={self.is_correct})>"
