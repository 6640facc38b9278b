"""
Database models package
"""
from app.models.assessment import Assessment, Question, Option, CorrectAnswer
from app.models.attempt import Attempt, Response

__all__ = ["Assessment", "Question", "Option", "CorrectAnswer", "Attempt", "Response"]
