"""
Models package for the exam-preparation backend.
"""
from .base import Base, engine, SessionLocal, get_db
from .models import (
    Question,
    ExamTest,
    ExamSession,
    TestAnalytics,
    QuestionKind,
    DifficultyLevel,
    SessionStatus,
)

__all__ = [
    "Base",
    "engine",
    "SessionLocal",
    "get_db",
    "Question",
    "ExamTest",
    "ExamSession",
    "TestAnalytics",
    "QuestionKind",
    "DifficultyLevel",
    "SessionStatus",
]
